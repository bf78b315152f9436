"""In-memory table of known Circles and the Stick identity."""

import logging
from typing import Any

from .models import BridgeIdentity, Circle

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Circles keyed by short address, plus the network identity.

    Only the response decoder and explicit commands mutate the registry.
    """

    def __init__(self) -> None:
        self.identity = BridgeIdentity()
        self._circles: dict[str, Circle] = {}

    def __contains__(self, address: str) -> bool:
        return address in self._circles

    def __len__(self) -> int:
        return len(self._circles)

    @property
    def addresses(self) -> list[str]:
        """Short addresses of all known Circles."""
        return list(self._circles)

    def get(self, address: str) -> Circle | None:
        """Get a Circle by short address."""
        return self._circles.get(address)

    def get_or_create(self, address: str) -> Circle:
        """Get a Circle, registering an empty one on first sight."""
        circle = self._circles.get(address)
        if circle is None:
            circle = Circle(address=address)
            self._circles[address] = circle
            logger.debug("Registered Circle %s", address)
        return circle

    def remove(self, address: str) -> bool:
        """Remove a Circle. Returns True if removed, False if not found."""
        if address in self._circles:
            del self._circles[address]
            logger.info("Circle %s removed from registry", address)
            return True
        return False

    def set_identity(self, mac: str, network_key: str, short_key: str) -> BridgeIdentity:
        """Record the Stick identity from an init response."""
        self.identity = BridgeIdentity(mac=mac, network_key=network_key, short_key=short_key, connected=True)
        return self.identity

    def as_dict(self) -> dict[str, Any]:
        """Snapshot of the registry as plain data."""
        return {
            "stick": self.identity.model_dump(),
            "circles": {address: circle.model_dump(exclude={"address"}) for address, circle in self._circles.items()},
        }
