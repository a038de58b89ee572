"""
Candidate generation for backend discovery.

Produces the ordered, finite list of addresses to probe. Order is significant:
when several candidates answer, the earliest one in this list wins.
"""

import ipaddress
import logging
from collections.abc import Iterable

from ..config import LinkSettings
from .core import Candidate

logger = logging.getLogger(__name__)


class CandidateGenerator:
    """
    Deterministic candidate list from static configuration.

    Order of emission:
    1. explicitly configured base URLs,
    2. ``prefix.1 .. prefix.<scan_width>`` for every private subnet prefix,
    3. fallback hosts such as ``localhost``.

    Duplicates keep their first position. No I/O is performed.
    """

    def __init__(
        self,
        urls: Iterable[str] = (),
        subnet_prefixes: Iterable[str] = (),
        scan_width: int = 0,
        port: int = 5000,
        scheme: str = "http",
        fallback_hosts: Iterable[str] = ("localhost",),
    ):
        self.urls = list(urls)
        self.subnet_prefixes = [p.strip().rstrip(".") for p in subnet_prefixes]
        self.scan_width = max(0, min(254, scan_width))
        self.port = port
        self.scheme = scheme
        self.fallback_hosts = list(fallback_hosts)

    @classmethod
    def from_settings(cls, settings: LinkSettings) -> "CandidateGenerator":
        return cls(
            urls=settings.candidate_urls,
            subnet_prefixes=settings.subnet_prefixes,
            scan_width=settings.scan_width,
            port=settings.backend_port,
            scheme=settings.backend_scheme,
            fallback_hosts=settings.fallback_hosts,
        )

    def _subnet_hosts(self, prefix: str) -> list[str]:
        try:
            network = ipaddress.ip_network(f"{prefix}.0/24")
        except ValueError:
            logger.warning("Skipping invalid subnet prefix %r", prefix)
            return []
        if not network.is_private:
            logger.warning("Skipping public subnet prefix %r", prefix)
            return []
        return [str(host) for host in list(network.hosts())[: self.scan_width]]

    def generate(self) -> list[Candidate]:
        """Return the ordered candidate list."""
        candidates: list[Candidate] = []
        seen: set[Candidate] = set()

        def add(candidate: Candidate) -> None:
            if candidate not in seen:
                seen.add(candidate)
                candidates.append(candidate)

        for url in self.urls:
            try:
                add(Candidate.from_url(url))
            except ValueError:
                logger.warning("Skipping invalid candidate URL %r", url)

        if self.scan_width:
            for prefix in self.subnet_prefixes:
                for host in self._subnet_hosts(prefix):
                    add(Candidate(self.scheme, host, self.port))

        for host in self.fallback_hosts:
            add(Candidate(self.scheme, host, self.port))

        return candidates
