from __future__ import annotations

import pytest

from pysynced._registry import EventRegistry
from pysynced.exceptions import ContractViolationError


def _noop(_data: object = None) -> None:
    return None


def test_register_twice_fails() -> None:
    registry = EventRegistry()
    registry.register_event("_SET:counter", _noop)

    with pytest.raises(ContractViolationError) as excinfo:
        registry.register_event("_SET:counter", _noop)
    assert excinfo.value.key == "_SET:counter"


def test_deregister_without_register_fails() -> None:
    registry = EventRegistry()

    with pytest.raises(ContractViolationError):
        registry.deregister_event("_SET:counter")


def test_register_deregister_register_succeeds() -> None:
    registry = EventRegistry()

    def first(_data: object) -> None:
        return None

    def second(_data: object) -> None:
        return None

    registry.register_event("chat", first)
    registry.deregister_event("chat")
    registry.register_event("chat", second)

    assert registry.get_event("chat") is second
    assert registry.has_event("chat")
    assert registry.get_event("missing") is None


def test_init_handlers_keep_registration_order_and_uniqueness() -> None:
    registry = EventRegistry()

    def a() -> None:
        return None

    def b() -> None:
        return None

    registry.register_init("b-key", b)
    registry.register_init("a-key", a)
    assert registry.init_handlers() == [b, a]

    with pytest.raises(ContractViolationError):
        registry.register_init("a-key", a)

    registry.deregister_init("a-key")
    with pytest.raises(ContractViolationError):
        registry.deregister_init("a-key")


def test_single_binary_handler() -> None:
    registry = EventRegistry()
    assert registry.binary_handler is None

    registry.register_binary(_noop)
    with pytest.raises(ContractViolationError):
        registry.register_binary(_noop)

    registry.deregister_binary()
    assert registry.binary_handler is None
    with pytest.raises(ContractViolationError):
        registry.deregister_binary()


@pytest.mark.parametrize("event", ["_DISCONNECT", "_DOWNLOAD", "_BIN_META"])
def test_reserved_control_frames_cannot_be_registered(event: str) -> None:
    registry = EventRegistry()

    with pytest.raises(ContractViolationError) as excinfo:
        registry.register_event(event, _noop)

    assert excinfo.value.key == event
    assert not registry.has_event(event)
