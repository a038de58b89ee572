"""
Backend Discovery

Finds a live backend among configured and derived candidate addresses.

Usage:
    from fleetlink.discovery import (
        CandidateGenerator, Discoverer, DiscoveryConfig, HTTPProbeRunner,
    )
    from fleetlink.storage import FileKV

    discoverer = Discoverer(
        CandidateGenerator(urls=["http://10.0.0.74:5000"], subnet_prefixes=["192.168.0"], scan_width=20),
        HTTPProbeRunner("/health/"),
        FileKV(".fleetlink/storage.json"),
        DiscoveryConfig(batch_size=4, probe_timeout=2.0),
    )
    address = await discoverer.resolve()
"""

from .candidates import CandidateGenerator
from .core import AddressResolver, Candidate, DiscoveryConfig, StaticResolver
from .discovery import Discoverer
from .health import HTTPProbeRunner, ProbeRunner, ProbeStats
from .results import DiscoveryResult

__all__ = [
    "AddressResolver",
    "Candidate",
    "CandidateGenerator",
    "Discoverer",
    "DiscoveryConfig",
    "DiscoveryResult",
    "HTTPProbeRunner",
    "ProbeRunner",
    "ProbeStats",
    "StaticResolver",
]
