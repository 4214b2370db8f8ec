"""
evrballot/ownership.py

Transferable administrator capability.

A single identity holds the administrator role at any time. Privileged
operations present the caller identity, which is compared against the
current holder at call time. The role can be transferred or renounced by
its holder but never shared.
"""

import logging
import threading
from typing import Optional

from .clock import Clock, SystemClock
from .errors import Unauthorized, InvalidIdentity
from .events import EventLog, OWNERSHIP_TRANSFERRED_TOPIC

logger = logging.getLogger("evrballot.ownership")


class Ownership:
    """
    The administrator role.

    Usage:
        ownership = Ownership("EAdminAddress...")
        ownership.require("EAdminAddress...")        # ok
        ownership.transfer("EAdminAddress...", "ENewAdmin...")
    """

    def __init__(
        self,
        owner: str,
        events: Optional[EventLog] = None,
        clock: Optional[Clock] = None,
    ):
        if not owner:
            raise InvalidIdentity("Owner must not be the null identity")
        self._owner: Optional[str] = owner
        self._events = events
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()

    @property
    def owner(self) -> Optional[str]:
        """Current holder, or None once renounced."""
        return self._owner

    def is_owner(self, caller: Optional[str]) -> bool:
        return bool(caller) and caller == self._owner

    def require(self, caller: Optional[str]) -> None:
        """
        Raise Unauthorized unless caller holds the role.

        Raises:
            Unauthorized: Caller is not the current owner
        """
        if not self.is_owner(caller):
            logger.warning(f"Unauthorized caller: {caller}")
            raise Unauthorized(f"{caller} does not hold the administrator role")

    def transfer(self, caller: str, new_owner: str) -> None:
        """
        Hand the role to a new identity.

        Raises:
            Unauthorized: Caller is not the current owner
            InvalidIdentity: new_owner is the null identity
        """
        now = self._clock.now()
        with self._lock:
            self.require(caller)
            if not new_owner:
                raise InvalidIdentity("New owner must not be the null identity")
            previous, self._owner = self._owner, new_owner

        logger.info(f"Ownership transferred: {previous} -> {new_owner}")
        self._emit(previous, new_owner, now)

    def renounce(self, caller: str) -> None:
        """Give up the role. No privileged operation succeeds afterwards."""
        now = self._clock.now()
        with self._lock:
            self.require(caller)
            previous, self._owner = self._owner, None

        logger.info(f"Ownership renounced by {previous}")
        self._emit(previous, None, now)

    def _emit(self, previous: Optional[str], new_owner: Optional[str], now: int) -> None:
        if self._events is None:
            return
        self._events.emit(
            OWNERSHIP_TRANSFERRED_TOPIC,
            {"previous_owner": previous, "new_owner": new_owner},
            timestamp=now,
        )
