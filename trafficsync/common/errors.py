"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class AcquisitionError(PipelineError):
    """Raised when a single source cannot yield usable records."""

    error_code = "ACQUISITION_ERROR"


class NetworkFailure(AcquisitionError):
    """Connection errors and non-OK HTTP statuses."""

    error_code = "NETWORK_FAILURE"


class RequestTimeout(AcquisitionError):
    """The request deadline fired and the transport was closed."""

    error_code = "TIMEOUT"


class MalformedPayload(AcquisitionError):
    """Unparseable body, HTML error page, or empty payload."""

    error_code = "MALFORMED_PAYLOAD"


class ZeroRecords(AcquisitionError):
    """Well-formed payload with no valid entries."""

    error_code = "ZERO_RECORDS"
