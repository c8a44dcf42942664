"""Routing tables from frame type to handler, one owner per key."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from pysynced._constants import RESERVED_EVENTS
from pysynced.exceptions import ContractViolationError

EventHandler = Callable[[Any], Awaitable[None] | None]
InitHandler = Callable[[], Awaitable[None] | None]
BinaryHandler = Callable[[bytes], Awaitable[None] | None]


class EventRegistry:
    """Event, init and catch-all binary handlers for one session.

    Every table enforces single ownership: registering an occupied key or
    deregistering an empty one raises :class:`ContractViolationError`. The
    control frames in ``RESERVED_EVENTS`` are handled by the session itself
    and cannot be registered.
    """

    def __init__(self) -> None:
        self._events: dict[str, EventHandler] = {}
        self._inits: dict[str, InitHandler] = {}
        self._binary: BinaryHandler | None = None

    def register_event(self, event: str, handler: EventHandler) -> None:
        if event in RESERVED_EVENTS:
            raise ContractViolationError(f"{event} is a reserved control frame", key=event)
        if event in self._events:
            raise ContractViolationError(f"already subscribed to {event}", key=event)
        self._events[event] = handler

    def deregister_event(self, event: str) -> None:
        if event not in self._events:
            raise ContractViolationError(f"not subscribed to {event}", key=event)
        del self._events[event]

    def get_event(self, event: str) -> EventHandler | None:
        return self._events.get(event)

    def has_event(self, event: str) -> bool:
        return event in self._events

    def register_init(self, key: str, handler: InitHandler) -> None:
        if key in self._inits:
            raise ContractViolationError(f"init handler already registered for {key}", key=key)
        self._inits[key] = handler

    def deregister_init(self, key: str) -> None:
        if key not in self._inits:
            raise ContractViolationError(f"no init handler registered for {key}", key=key)
        del self._inits[key]

    def init_handlers(self) -> list[InitHandler]:
        """Snapshot of init handlers in registration order."""
        return list(self._inits.values())

    def register_binary(self, handler: BinaryHandler) -> None:
        if self._binary is not None:
            raise ContractViolationError("binary handler already registered")
        self._binary = handler

    def deregister_binary(self) -> None:
        if self._binary is None:
            raise ContractViolationError("binary handler not registered")
        self._binary = None

    @property
    def binary_handler(self) -> BinaryHandler | None:
        return self._binary
