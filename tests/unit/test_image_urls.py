import pytest

from trafficsync.pipeline.image_urls import normalize_image_url


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("http://cdn.example.com/cam/1.jpg", "https://cdn.example.com/cam/1.jpg"),
        ("https://cdn.example.com/cam/1.jpg", "https://cdn.example.com/cam/1.jpg"),
        ("/camera/images/99.jpg", "https://trafficnz.info/camera/images/99.jpg"),
        ("20.jpg", "https://trafficnz.info/camera/images/20.jpg"),
        ("snapshots/akl.png", "https://trafficnz.info/camera/images/snapshots/akl.png"),
        ("http://www.trafficnz.info/camera/images/5.jpg", "https://www.trafficnz.info/camera/images/5.jpg"),
        ("http://trafficnz.info/camera/images/5.jpg", "https://www.trafficnz.info/camera/images/5.jpg"),
        ("https://trafficnz.info/camera/images/5.jpg", "https://trafficnz.info/camera/images/5.jpg"),
        ("//cdn.example.com/x.jpg", "https://cdn.example.com/x.jpg"),
        ("  21.jpg  ", "https://trafficnz.info/camera/images/21.jpg"),
    ],
)
def test_normalize_image_url_rules(raw, expected):
    assert normalize_image_url(raw) == expected


@pytest.mark.parametrize("missing", [None, "", "   "])
def test_normalize_image_url_missing_stays_empty(missing):
    assert normalize_image_url(missing) == ""


@pytest.mark.parametrize(
    "raw",
    [
        "http://cdn.example.com/cam/1.jpg",
        "/camera/images/99.jpg",
        "20.jpg",
        "snapshots/akl.png",
        "http://trafficnz.info/camera/images/5.jpg",
        "http://www.trafficnz.info/camera/images/5.jpg",
        "//cdn.example.com/x.jpg",
    ],
)
def test_normalize_image_url_is_idempotent(raw):
    once = normalize_image_url(raw)
    assert normalize_image_url(once) == once
    assert once.startswith("https://")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (
            "http://cdn.example.com/mirror/trafficnz.info/7.jpg",
            "https://cdn.example.com/mirror/trafficnz.info/7.jpg",
        ),
        (
            "http://cdn.example.com/cam.jpg?src=http://trafficnz.info/7.jpg",
            "https://cdn.example.com/cam.jpg?src=http://trafficnz.info/7.jpg",
        ),
        ("http://trafficnz.info.example.net/7.jpg", "https://trafficnz.info.example.net/7.jpg"),
        ("http://TrafficNZ.info/camera/images/8.jpg", "https://www.trafficnz.info/camera/images/8.jpg"),
    ],
)
def test_host_is_matched_on_hostname_not_substring(raw, expected):
    assert normalize_image_url(raw) == expected
