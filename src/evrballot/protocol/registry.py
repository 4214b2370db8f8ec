"""
evrballot/protocol/registry.py

Organization registry.

Organizations are the governance entities proposals are opened under.
Each is registered once by the administrator and never mutated or deleted.
"""

import logging
import threading
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

from ..clock import Clock, SystemClock
from ..errors import AlreadyExists, InvalidIdentity
from ..events import EventLog, ORGANIZATION_REGISTERED_TOPIC
from ..ownership import Ownership

logger = logging.getLogger("evrballot.protocol.registry")


@dataclass(frozen=True)
class Organization:
    """A registered governance entity."""
    org_id: str
    controller: str                   # Controlling Evrmore address
    name: str
    description: str
    metadata_ref: str                 # Content hash of extended metadata (e.g. IPFS CID)
    registered_at: int

    def to_dict(self) -> dict:
        return asdict(self)


class OrganizationRegistry:
    """
    Keyed store of organization records.

    Usage:
        registry = OrganizationRegistry(ownership, events)
        registry.register(admin, "org-1", "EController...", "Name", "About", "Qm...")
        org = registry.lookup("org-1")
    """

    def __init__(
        self,
        ownership: Ownership,
        events: EventLog,
        clock: Optional[Clock] = None,
    ):
        self._ownership = ownership
        self._events = events
        self._clock = clock or SystemClock()
        self._organizations: Dict[str, Organization] = {}
        self._lock = threading.Lock()

    def register(
        self,
        caller: str,
        org_id: str,
        controller: str,
        name: str,
        description: str = "",
        metadata_ref: str = "",
    ) -> Organization:
        """
        Register a new organization.

        Args:
            caller: Identity performing the registration (must be admin)
            org_id: Unique organization identifier
            controller: Controlling identity of the organization
            name: Display name
            description: Human-readable description
            metadata_ref: Reference to external metadata

        Returns:
            The stored record

        Raises:
            Unauthorized: Caller is not the administrator
            AlreadyExists: org_id is already registered
            InvalidIdentity: controller is the null identity
        """
        self._ownership.require(caller)
        now = self._clock.now()

        with self._lock:
            if org_id in self._organizations:
                raise AlreadyExists(f"Organization already registered: {org_id}")
            if not controller:
                raise InvalidIdentity("Organization controller must not be the null identity")

            organization = Organization(
                org_id=org_id,
                controller=controller,
                name=name,
                description=description,
                metadata_ref=metadata_ref,
                registered_at=now,
            )
            self._organizations[org_id] = organization

        logger.info(f"Registered organization {org_id} ({name}) controlled by {controller}")
        self._events.emit(ORGANIZATION_REGISTERED_TOPIC, organization.to_dict(), timestamp=now)
        return organization

    def lookup(self, org_id: str) -> Optional[Organization]:
        """Get an organization by ID, or None."""
        return self._organizations.get(org_id)

    def exists(self, org_id: str) -> bool:
        return org_id in self._organizations

    def list_organizations(self) -> List[Organization]:
        return list(self._organizations.values())

    def __len__(self) -> int:
        return len(self._organizations)
