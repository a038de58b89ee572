import pytest

from fleetlink.config import LinkSettings
from fleetlink.discovery import Candidate, CandidateGenerator


def test_generation_order_is_urls_then_subnet_then_fallback():
    generator = CandidateGenerator(
        urls=["http://10.0.0.74:5000", "http://10.0.0.27:5000/"],
        subnet_prefixes=["192.168.1"],
        scan_width=3,
        port=5000,
        fallback_hosts=["localhost"],
    )

    assert [c.base_url for c in generator.generate()] == [
        "http://10.0.0.74:5000",
        "http://10.0.0.27:5000",
        "http://192.168.1.1:5000",
        "http://192.168.1.2:5000",
        "http://192.168.1.3:5000",
        "http://localhost:5000",
    ]


def test_generation_is_deterministic_and_deduplicated():
    generator = CandidateGenerator(
        urls=["http://192.168.1.2:5000"],
        subnet_prefixes=["192.168.1"],
        scan_width=2,
        fallback_hosts=["192.168.1.1"],
    )

    first = generator.generate()
    assert first == generator.generate()
    assert [c.host for c in first] == ["192.168.1.2", "192.168.1.1"]


def test_invalid_and_public_inputs_are_skipped():
    generator = CandidateGenerator(
        urls=["ftp://10.0.0.1", "not a url", "https://api.example.com"],
        subnet_prefixes=["8.8.8", "300.1.1"],
        scan_width=5,
        fallback_hosts=[],
    )

    assert [c.base_url for c in generator.generate()] == ["https://api.example.com"]


def test_scan_width_is_clamped():
    generator = CandidateGenerator(subnet_prefixes=["10.1.2"], scan_width=1000, fallback_hosts=[])

    candidates = generator.generate()
    assert len(candidates) == 254
    assert candidates[-1].host == "10.1.2.254"


def test_from_settings_uses_configured_port_and_scheme():
    settings = LinkSettings(
        candidate_urls=[],
        subnet_prefixes=["172.16.0"],
        scan_width=1,
        backend_port=8080,
        backend_scheme="https",
        fallback_hosts=["localhost"],
    )

    assert [c.base_url for c in CandidateGenerator.from_settings(settings).generate()] == [
        "https://172.16.0.1:8080",
        "https://localhost:8080",
    ]


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("http://10.0.0.1:5000", "http://10.0.0.1:5000"),
        ("http://10.0.0.1:80/", "http://10.0.0.1"),
        ("https://ostol.example.ae/api/", "https://ostol.example.ae/api"),
    ],
)
def test_candidate_base_url(url, expected):
    assert Candidate.from_url(url).base_url == expected


def test_candidate_rejects_non_http_urls():
    with pytest.raises(ValueError):
        Candidate.from_url("10.0.0.1:5000")
