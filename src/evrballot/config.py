"""
evrballot/config.py

Configuration constants and data classes for evrballot.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# Evrmore ElectrumX servers used for block time (SSL on port 50002)
ELECTRUMX_SERVERS: List[Tuple[str, int]] = [
    ("electrumx1.satorinet.io", 50002),
    ("electrumx2.satorinet.io", 50002),
    ("electrumx3.satorinet.io", 50002),
]

# Environment variables read by EngineConfig.from_env()
ENV_ADMIN = "EVRBALLOT_ADMIN"
ENV_CLOCK = "EVRBALLOT_CLOCK"
ENV_ELECTRUMX_SERVERS = "EVRBALLOT_ELECTRUMX_SERVERS"
ENV_ELECTRUMX_SSL = "EVRBALLOT_ELECTRUMX_SSL"


class ClockSource(Enum):
    """Where the engine reads the current time from."""
    SYSTEM = "system"     # Local wall clock (development)
    BLOCK = "block"       # Evrmore tip block timestamp via ElectrumX


@dataclass
class ElectrumXConfig:
    """Connection settings for the block time source."""
    servers: List[Tuple[str, int]] = field(default_factory=lambda: list(ELECTRUMX_SERVERS))
    use_ssl: bool = True
    timeout: float = 30.0


@dataclass
class EngineConfig:
    """
    Complete configuration for a BallotService.

    Usage:
        config = EngineConfig(admin="EAdminAddress...")
        service = BallotService.from_config(config)
    """

    # Initial holder of the administrator role
    admin: str = ""

    # Time source
    clock: ClockSource = ClockSource.SYSTEM

    # Only used when clock is BLOCK
    electrumx: ElectrumXConfig = field(default_factory=ElectrumXConfig)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "EngineConfig":
        """
        Build configuration from environment variables.

        EVRBALLOT_ELECTRUMX_SERVERS is a comma-separated list of host:port.
        """
        env = os.environ if environ is None else environ

        electrumx = ElectrumXConfig()
        servers = env.get(ENV_ELECTRUMX_SERVERS, "").strip()
        if servers:
            electrumx.servers = [_parse_server(s) for s in servers.split(",") if s.strip()]
        if ENV_ELECTRUMX_SSL in env:
            electrumx.use_ssl = env[ENV_ELECTRUMX_SSL].strip().lower() in ("1", "true", "yes")

        return cls(
            admin=env.get(ENV_ADMIN, "").strip(),
            clock=ClockSource(env.get(ENV_CLOCK, ClockSource.SYSTEM.value).strip().lower()),
            electrumx=electrumx,
        )


def _parse_server(value: str) -> Tuple[str, int]:
    host, _, port = value.strip().rpartition(":")
    if not host or not port.isdigit():
        raise ValueError(f"Invalid ElectrumX server (expected host:port): {value!r}")
    return host, int(port)
