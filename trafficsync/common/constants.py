"""Application constants."""

USER_AGENT = "trafficsync/0.3 (+camera-matrix; contact: configured-email)"

REQUEST_TIMEOUT_SECONDS = 12.0

ARCGIS_ENDPOINT = (
    "https://services.arcgis.com/XTtANUDT8Va4DLwI/ArcGIS/rest/services/"
    "LiveCamerasNZTA_Public_View/FeatureServer/0/query"
)
ARCGIS_QUERY_PARAMS = {"where": "1=1", "outFields": "*", "f": "geojson"}
LEGACY_XML_ENDPOINT = "https://trafficnz.info/service/traffic/rest/4/cameras/all"
INCIDENTS_ENDPOINT = "https://trafficnz.info/service/traffic/rest/4/incidents"

BASE_TRAFFIC_URL = "https://trafficnz.info"
CANONICAL_IMAGE_HOST = "trafficnz.info"
CANONICAL_HTTPS_ORIGIN = "https://www.trafficnz.info"
IMAGE_DIRECTORY_PATH = "/camera/images/"

SOURCE_AUTHORITATIVE = "NZTA ArcGIS (Authoritative)"
SOURCE_LEGACY = "TrafficNZ REST v4"
SOURCE_FALLBACK = "Static Matrix Fallback"

STATUS_OPERATIONAL = "Operational"
STATUS_OFFLINE = "Offline"
STATUS_CONSTRUCTION = "Construction"
STATUS_MAINTENANCE = "Maintenance"
STATUSES = (STATUS_OPERATIONAL, STATUS_OFFLINE, STATUS_CONSTRUCTION, STATUS_MAINTENANCE)

RECORD_TYPE_FEED = "feed"

COMMANDS = ("cameras", "incidents")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "relay",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_out",
    "error_code",
    "message",
)
