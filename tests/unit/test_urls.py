import pytest

from fleetlink.urls import resolve_asset_url

BASE = "http://10.0.0.74:5000"


@pytest.mark.parametrize(
    ("path", "base", "expected"),
    [
        ("http://10.0.0.9:9000/stsc-documents/vehicles/car.jpg", BASE, "http://10.0.0.74/storage/stsc-documents/vehicles/car.jpg"),
        ("https://minio.local:9000/bucket/a.png", "https://api.example.com/api", "https://api.example.com/storage/bucket/a.png"),
        ("http://10.0.0.9:9000/bucket/a.png", None, "http://10.0.0.9:9000/bucket/a.png"),
        ("https://cdn.example.com/a.png", BASE, "https://cdn.example.com/a.png"),
        ("/uploads/a.png", BASE, "http://10.0.0.74:5000/uploads/a.png"),
        ("uploads/a.png", BASE + "/", "http://10.0.0.74:5000/uploads/a.png"),
        ("uploads/a.png", None, None),
        ("", BASE, None),
        (None, BASE, None),
    ],
)
def test_resolve_asset_url(path, base, expected):
    assert resolve_asset_url(path, base) == expected
