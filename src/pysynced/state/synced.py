"""State sync coordinator for one logical key.

Wraps a user reducer, keeps the authoritative local value and decides which
patches and actions have to travel over the session.
"""

from __future__ import annotations

import asyncio
import copy
import functools
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pysynced._constants import (
    action_event,
    get_event,
    patch_event,
    set_event,
    task_cancel_event,
    task_start_event,
)
from pysynced.exceptions import ContractViolationError
from pysynced.state.patch import PatchOperation, apply_patch, make_patch, replace_op

if TYPE_CHECKING:
    from pysynced.session import Session

_logger = logging.getLogger(__name__)

Action = Mapping[str, Any]
Sync = Callable[[], None]
Delegate = Callable[..., None]
Reducer = Callable[[Any, Action, Sync, Delegate], Any]
Effect = Callable[[], Awaitable[None]]
Listener = Callable[[Any], None]


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Next state plus the sends to perform once it is committed."""

    state: Any
    effects: tuple[Effect, ...] = ()
    patch: tuple[PatchOperation, ...] = ()


class SyncedState:
    """A value kept in sync with the peer under the key *key*.

    ``reducer(draft, action, sync, delegate)`` receives a deep copy of the
    current value. It may mutate the draft or return a replacement. Calling
    ``sync()`` sends the resulting diff as ``_PATCH:<key>``; calling
    ``delegate(action_override=None)`` forwards the action as
    ``_ACTION:<key>``. Both sends happen after the new value is committed.

    For every top-level field ``f`` of the initial value the coordinator
    exposes ``set_f(value)`` (local only) and ``sync_f(value)`` (local and
    remote) coroutines.
    """

    def __init__(
        self,
        session: Session,
        key: str,
        initial_state: Any,
        reducer: Reducer | None = None,
        *,
        send_on_init: bool = False,
    ) -> None:
        if not key:
            raise ValueError("key must be non-empty")
        self._session = session
        self._key = key
        self._state = initial_state
        self._reducer = reducer
        self._send_on_init = send_on_init
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._active = False
        self._accessors = self._build_accessors(initial_state)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def state(self) -> Any:
        return self._state

    @property
    def session(self) -> Session:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def accessors(self) -> Mapping[str, Callable[[Any], Awaitable[None]]]:
        return MappingProxyType(self._accessors)

    # ------------------------------------------------------------------
    # Field accessors
    # ------------------------------------------------------------------

    def _build_accessors(self, initial_state: Any) -> dict[str, Callable[[Any], Awaitable[None]]]:
        if not isinstance(initial_state, Mapping):
            return {}
        accessors: dict[str, Callable[[Any], Awaitable[None]]] = {}
        for attr in initial_state:
            name = str(attr)
            accessors[f"set_{name}"] = functools.partial(self._set_field, name)
            accessors[f"sync_{name}"] = functools.partial(self._sync_field, name)
        return accessors

    def __getattr__(self, name: str) -> Any:
        accessors = self.__dict__.get("_accessors")
        if accessors is not None and name in accessors:
            return accessors[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    async def _set_field(self, name: str, value: Any) -> None:
        patch = [replace_op([name], value)]
        await self.dispatch({"type": patch_event(self._key), "data": patch})

    async def _sync_field(self, name: str, value: Any) -> None:
        patch = [replace_op([name], value)]
        await self._commit(
            {"type": patch_event(self._key), "data": patch},
            extra_effects=(functools.partial(self.send_patch, patch),),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(self, action: Action, *, remote: bool = False) -> TransitionResult:
        """Compute the next state and its effects without committing.

        With *remote* set (the action came from the peer) ``sync`` and
        ``delegate`` do nothing, so the action is never echoed back.
        """
        state = self._state
        action_type = action.get("type")

        if action_type == set_event(self._key):
            return TransitionResult(action.get("data"))

        if action_type == patch_event(self._key):
            return TransitionResult(apply_patch(copy.deepcopy(state), action.get("data") or []))

        if self._reducer is None:
            return TransitionResult(state)

        requested: list[tuple[str, Action | None]] = []

        def sync() -> None:
            if not remote:
                requested.append(("sync", None))

        def delegate(action_override: Action | None = None) -> None:
            if not remote:
                requested.append(("delegate", action_override if action_override is not None else action))

        draft = copy.deepcopy(state)
        returned = self._reducer(draft, action, sync, delegate)
        new_state = draft if returned is None else returned
        patch = make_patch(state, new_state)
        if not patch:
            new_state = state

        effects: list[Effect] = []
        for kind, forwarded in requested:
            if kind == "sync":
                if patch:
                    effects.append(functools.partial(self.send_patch, patch))
            else:
                effects.append(functools.partial(self.send_action, forwarded))
        return TransitionResult(new_state, tuple(effects), tuple(patch))

    async def dispatch(self, action: Action, *, remote: bool = False) -> Any:
        """Run :meth:`transition`, commit, notify listeners, then send effects in order."""
        return await self._commit(action, remote=remote)

    async def _commit(
        self,
        action: Action,
        *,
        remote: bool = False,
        extra_effects: tuple[Effect, ...] = (),
    ) -> Any:
        # Effects of one transition are sent before the next one is computed.
        async with self._lock:
            result = self.transition(action, remote=remote)
            changed = result.state is not self._state
            self._state = result.state
            if changed:
                for listener in list(self._listeners):
                    listener(self._state)
            for effect in (*result.effects, *extra_effects):
                await effect()
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with every committed state; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Local -> remote
    # ------------------------------------------------------------------

    async def fetch_remote_state(self) -> None:
        """Ask the peer for a full snapshot (answered with ``_SET:<key>``)."""
        await self._session.send(get_event(self._key), {})

    async def send_state(self, state: Any) -> None:
        await self._session.send(set_event(self._key), state)

    async def send_patch(self, patch: Iterable[PatchOperation | Mapping[str, Any]]) -> None:
        wire = [op.to_wire() if isinstance(op, PatchOperation) else dict(op) for op in patch]
        await self._session.send(patch_event(self._key), wire)

    async def send_action(self, action: Action) -> None:
        await self._session.send(action_event(self._key), action)

    async def start_task(self, task: Action) -> None:
        await self._session.send(task_start_event(self._key), task)

    async def cancel_task(self, task: Action) -> None:
        await self._session.send(task_cancel_event(self._key), task)

    async def send_binary(self, action: Action, data: bytes) -> None:
        await self._session.send_binary(action_event(self._key), action, data)

    # ------------------------------------------------------------------
    # Remote -> local
    # ------------------------------------------------------------------

    async def _on_get(self, _data: Any) -> None:
        # Read at reply time so the peer always gets the latest commit.
        await self.send_state(self._state)

    async def _on_set(self, data: Any) -> None:
        await self.dispatch({"type": set_event(self._key), "data": data})

    async def _on_patch(self, data: Any) -> None:
        await self.dispatch({"type": patch_event(self._key), "data": data})

    async def _on_action(self, data: Any) -> None:
        if not isinstance(data, Mapping) or "type" not in data:
            _logger.warning("Dropping malformed action for %s: %r", self._key, type(data).__name__)
            return
        await self.dispatch(data, remote=True)

    async def _on_init(self) -> None:
        await self.send_state(self._state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _event_handlers(self) -> list[tuple[str, Callable[[Any], Awaitable[None]]]]:
        return [
            (get_event(self._key), self._on_get),
            (set_event(self._key), self._on_set),
            (patch_event(self._key), self._on_patch),
            (action_event(self._key), self._on_action),
        ]

    def activate(self) -> None:
        """Register this key's handlers on the session."""
        registered: list[str] = []
        try:
            for event, handler in self._event_handlers():
                self._session.register_event(event, handler)
                registered.append(event)
            if self._send_on_init:
                self._session.register_init(self._key, self._on_init)
        except ContractViolationError:
            for event in registered:
                self._session.deregister_event(event)
            raise
        self._active = True
        _logger.debug("Activated synced state %s", self._key)

    def deactivate(self) -> None:
        """Deregister everything :meth:`activate` registered."""
        for event, _handler in self._event_handlers():
            self._session.deregister_event(event)
        if self._send_on_init:
            self._session.deregister_init(self._key)
        self._active = False
        _logger.debug("Deactivated synced state %s", self._key)

    def __enter__(self) -> SyncedState:
        self.activate()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.deactivate()
