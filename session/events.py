"""
UI Trigger Events

Events emitted by the navigation state machine for the presentation layer.
Every event carries the page identity it was produced for so a consumer can
ignore triggers that no longer apply to what is on screen.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from core.models import PageIdentity

SHOW_ALTERNATIVES = "show_alternatives"
DISMISS = "dismiss"
RECLASSIFIED = "reclassified"
BADGE_START_FLASHING = "badge.start_flashing"
BADGE_STOP_FLASHING = "badge.stop_flashing"
BADGE_CLEAR = "badge.clear"
IMAGE_RESOLVED = "image_resolved"
META_RESOLVED = "meta_resolved"

SURFACE_TOAST = "toast"
SURFACE_MODAL = "modal"


class UITriggerEvent:
    """A single trigger for the presentation layer."""

    VALID_TYPES = frozenset(
        [
            SHOW_ALTERNATIVES,
            DISMISS,
            RECLASSIFIED,
            BADGE_START_FLASHING,
            BADGE_STOP_FLASHING,
            BADGE_CLEAR,
            IMAGE_RESOLVED,
            META_RESOLVED,
        ]
    )
    VALID_SURFACES = frozenset([SURFACE_TOAST, SURFACE_MODAL])

    def __init__(
        self,
        event_type: str,
        identity: PageIdentity | None,
        surface: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        if event_type not in self.VALID_TYPES:
            raise ValueError(f"Invalid event type: {event_type}. Must be one of {sorted(self.VALID_TYPES)}")
        if surface is not None and surface not in self.VALID_SURFACES:
            raise ValueError(f"Invalid surface: {surface}. Must be one of {sorted(self.VALID_SURFACES)}")

        self.event_type = event_type
        self.identity = identity
        self.surface = surface
        self.payload = payload or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        return {
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "url": self.identity.url if self.identity else None,
            "item_id": self.identity.item_id if self.identity else None,
            "surface": self.surface,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UITriggerEvent:
        """Deserialize event from dictionary."""
        identity = None
        if data.get("url") is not None:
            identity = PageIdentity(url=data["url"], item_id=data.get("item_id"))
        event = cls(
            event_type=data["event_type"],
            identity=identity,
            surface=data.get("surface"),
            payload=data.get("payload"),
        )
        if "timestamp" in data:
            event.timestamp = datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
        return event

    def __repr__(self) -> str:
        url = self.identity.url if self.identity else None
        return f"UITriggerEvent(event_type={self.event_type}, surface={self.surface}, url={url})"
