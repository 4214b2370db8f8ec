"""
evrballot/events.py

Append-only audit log of engine events.

Each successful mutation emits exactly one event; failed operations emit
nothing. External indexers either read the log back with events() or
subscribe to a topic and receive records as they are appended.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("evrballot.events")


# ============================================================================
# TOPICS
# ============================================================================

ORGANIZATION_REGISTERED_TOPIC = "evrballot/organizations/registered"
PROPOSAL_CREATED_TOPIC = "evrballot/proposals/created"
VOTE_RECORDED_TOPIC = "evrballot/votes/recorded"
PROPOSAL_FINALIZED_TOPIC = "evrballot/proposals/finalized"
OWNERSHIP_TRANSFERRED_TOPIC = "evrballot/ownership/transferred"


@dataclass
class EventRecord:
    """A single entry in the audit log."""
    sequence: int                     # 1-based, gapless
    topic: str
    timestamp: int                    # Time the mutation was committed
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "topic": self.topic,
            "timestamp": self.timestamp,
            "payload": dict(self.payload),
        }


class EventLog:
    """
    Ordered event log with topic subscriptions.

    Usage:
        log = EventLog()
        log.subscribe(VOTE_RECORDED_TOPIC, lambda record: print(record.payload))
        log.emit(VOTE_RECORDED_TOPIC, {"signer": "E..."}, timestamp=now)
    """

    def __init__(self):
        self._records: List[EventRecord] = []
        self._subscribers: Dict[str, List[Callable[[EventRecord], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, callback: Callable[[EventRecord], None]) -> None:
        """Register a callback for every future record on a topic."""
        self._subscribers.setdefault(topic, []).append(callback)

    def unsubscribe(self, topic: str) -> None:
        self._subscribers.pop(topic, None)

    def emit(self, topic: str, payload: Dict[str, Any], timestamp: int) -> EventRecord:
        """
        Append a record and notify subscribers.

        timestamp is the time the emitting operation read before it
        committed; the log itself never reads a clock.

        A failing subscriber is logged and skipped; the record stays in the
        log because the mutation it describes has already been committed.
        """
        with self._lock:
            record = EventRecord(
                sequence=len(self._records) + 1,
                topic=topic,
                timestamp=timestamp,
                payload=payload,
            )
            self._records.append(record)

        logger.debug(f"Event #{record.sequence} {topic}")

        for callback in list(self._subscribers.get(topic, [])):
            try:
                callback(record)
            except Exception as e:
                logger.error(f"Subscriber failed on {topic}: {e}")

        return record

    def events(self, topic: Optional[str] = None) -> List[EventRecord]:
        """All records, or only those on one topic, in emission order."""
        if topic is None:
            return list(self._records)
        return [r for r in self._records if r.topic == topic]

    def __len__(self) -> int:
        return len(self._records)
