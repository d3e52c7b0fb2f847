"""Navigation session: page identity tracking and UI trigger sequencing."""

from __future__ import annotations

from .emitter import EventEmitter
from .events import UITriggerEvent
from .state_machine import HostPage, NavigationState, NavigationStateMachine, SessionState

__all__ = [
    "EventEmitter",
    "HostPage",
    "NavigationState",
    "NavigationStateMachine",
    "SessionState",
    "UITriggerEvent",
]
