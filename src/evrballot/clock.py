"""
evrballot/clock.py

Pluggable time sources.

Proposal state is derived from the current time, so every operation reads
"now" exactly once from a Clock. In production the clock should be the tip
block timestamp of the Evrmore chain, which cannot be moved by the operator
the way a local wall clock can.
"""

import logging
import struct
import threading
import time
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .electrumx import ElectrumXClient

logger = logging.getLogger("evrballot.clock")

# Block header layout: version(4) | prev_hash(32) | merkle_root(32) | time(4)
HEADER_TIMESTAMP_OFFSET = 68


class Clock(Protocol):
    """Anything that returns the current unix timestamp as an int."""

    def now(self) -> int:
        ...


class SystemClock:
    """Local wall clock. Suitable for development only."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Clock that only moves when told to.

    Usage:
        clock = ManualClock(100)
        clock.advance(50)
        clock.now()  # 150
    """

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = int(timestamp)

    def advance(self, seconds: int) -> int:
        self._now += int(seconds)
        return self._now


def header_timestamp(header_hex: str) -> int:
    """
    Extract the timestamp field from a hex block header.

    Raises:
        ValueError: If the header is too short to contain a timestamp
    """
    raw = bytes.fromhex(header_hex)
    if len(raw) < HEADER_TIMESTAMP_OFFSET + 4:
        raise ValueError(f"Block header too short: {len(raw)} bytes")
    return struct.unpack_from("<I", raw, HEADER_TIMESTAMP_OFFSET)[0]


class BlockTimeClock:
    """
    Current time taken from the chain tip block header.

    Block timestamps are not strictly monotonic on proof-of-work chains, so
    the clock never reports a value lower than one it already returned.
    """

    def __init__(self, client: "ElectrumXClient"):
        self._client = client
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            tip = self._client.get_tip_header()
            timestamp = header_timestamp(tip["hex"])
            if timestamp < self._last:
                logger.debug(f"Tip timestamp {timestamp} behind last seen {self._last}")
                return self._last
            self._last = timestamp
            return timestamp
