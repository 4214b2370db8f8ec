"""
evrballot/electrumx - Minimal ElectrumX client for Evrmore block headers.

Used as the tamper-evident time source: proposal windows are evaluated
against the chain tip timestamp rather than the local wall clock.
"""

from .client import ElectrumXClient, ElectrumXError
from .connection import ElectrumXConnection

__all__ = [
    "ElectrumXClient",
    "ElectrumXConnection",
    "ElectrumXError",
]
