"""Structural patches between JSON-like values.

A patch is an ordered list of :class:`PatchOperation` (``replace``, ``add``,
``remove``) addressed by JSON Pointer paths. :func:`make_patch` computes the
minimal per-leaf diff between two values and :func:`apply_patch` replays it.
Applying ``make_patch(a, b)`` to a deep copy of ``a`` yields a value equal to
``b``.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator

from pysynced.exceptions import FrameDecodeError, PatchError
from pysynced.models._base import SyncedBaseModel

PatchOp = Literal["replace", "add", "remove"]


def _escape(token: str | int) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def normalize_path(path: str | Sequence[str | int]) -> str:
    """Return a slash-delimited pointer that starts with ``/``.

    Token sequences are escaped and joined. The empty pointer ``""`` (the
    document root) and the empty sequence are kept as ``""``.
    """
    if not isinstance(path, str):
        tokens = list(path)
        if not tokens:
            return ""
        return "/" + "/".join(_escape(token) for token in tokens)
    if path and not path.startswith("/"):
        return "/" + path
    return path


def split_path(path: str) -> list[str]:
    """Inverse of :func:`normalize_path` for string pointers."""
    pointer = normalize_path(path)
    if not pointer:
        return []
    return [_unescape(token) for token in pointer[1:].split("/")]


class PatchOperation(SyncedBaseModel):
    """One patch step. Accepts ``op`` as an alias of ``operation`` on input."""

    operation: PatchOp = Field(validation_alias=AliasChoices("operation", "op"))
    path: str
    value: Any = None

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: Any) -> Any:
        if isinstance(value, (str, list, tuple)):
            return normalize_path(value)
        return value

    @classmethod
    def from_wire(cls, raw: Any) -> PatchOperation:
        try:
            return cls.parse(raw)
        except FrameDecodeError as exc:
            raise PatchError(f"Invalid patch operation: {raw!r}") from exc

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"operation": self.operation, "path": self.path}
        if self.operation != "remove":
            wire["value"] = self.value
        return wire


Patch = list[PatchOperation]


def patch_to_wire(patch: Iterable[PatchOperation]) -> list[dict[str, Any]]:
    return [op.to_wire() for op in patch]


def replace_op(path: str | Sequence[str | int], value: Any) -> PatchOperation:
    return PatchOperation(operation="replace", path=normalize_path(path), value=value)


# ------------------------------------------------------------------
# Diff
# ------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same_value(old: Any, new: Any) -> bool:
    # bool is an int subclass: True == 1 must still produce a replace.
    if type(old) is not type(new) and not (_is_number(old) and _is_number(new)):
        return False
    if isinstance(old, float) and isinstance(new, float) and math.isnan(old) and math.isnan(new):
        return True
    return bool(old == new)


def _diff(old: Any, new: Any, tokens: list[str | int], ops: Patch) -> None:
    if isinstance(old, Mapping) and isinstance(new, Mapping):
        for key in old:
            if key not in new:
                ops.append(PatchOperation(operation="remove", path=normalize_path([*tokens, key])))
        for key, value in new.items():
            if key not in old:
                ops.append(
                    PatchOperation(
                        operation="add",
                        path=normalize_path([*tokens, key]),
                        value=copy.deepcopy(value),
                    )
                )
            else:
                _diff(old[key], value, [*tokens, key], ops)
        return

    if isinstance(old, list) and isinstance(new, list):
        shared = min(len(old), len(new))
        for index in range(shared):
            _diff(old[index], new[index], [*tokens, index], ops)
        for index in range(shared, len(new)):
            ops.append(
                PatchOperation(
                    operation="add",
                    path=normalize_path([*tokens, index]),
                    value=copy.deepcopy(new[index]),
                )
            )
        # Highest index first so every remove addresses an existing item.
        for index in range(len(old) - 1, shared - 1, -1):
            ops.append(PatchOperation(operation="remove", path=normalize_path([*tokens, index])))
        return

    if not _same_value(old, new):
        ops.append(replace_op(tokens, copy.deepcopy(new)))


def make_patch(old: Any, new: Any) -> Patch:
    """Compute the operations that turn *old* into *new*."""
    ops: Patch = []
    _diff(old, new, [], ops)
    return ops


# ------------------------------------------------------------------
# Apply
# ------------------------------------------------------------------


def _list_index(token: str, items: list[Any], path: str, *, allow_end: bool) -> int:
    if allow_end and token == "-":
        return len(items)
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise PatchError(f"Invalid list index {token!r}", path=path)
    index = int(token)
    upper = len(items) if allow_end else len(items) - 1
    if index > upper:
        raise PatchError(f"List index {index} out of range", path=path)
    return index


def _resolve(document: Any, tokens: list[str], path: str) -> Any:
    node = document
    for token in tokens:
        if isinstance(node, Mapping):
            if token not in node:
                raise PatchError(f"Missing key {token!r}", path=path)
            node = node[token]
        elif isinstance(node, list):
            node = node[_list_index(token, node, path, allow_end=False)]
        else:
            raise PatchError(f"Cannot traverse into {type(node).__name__}", path=path)
    return node


def _apply_one(document: Any, op: PatchOperation) -> Any:
    tokens = split_path(op.path)
    value = copy.deepcopy(op.value)
    if not tokens:
        return None if op.operation == "remove" else value

    parent = _resolve(document, tokens[:-1], op.path)
    last = tokens[-1]

    if isinstance(parent, MutableMapping):
        if op.operation == "remove":
            if last not in parent:
                raise PatchError(f"Cannot remove missing key {last!r}", path=op.path)
            del parent[last]
        else:
            parent[last] = value
    elif isinstance(parent, list):
        index = _list_index(last, parent, op.path, allow_end=op.operation == "add")
        if op.operation == "add":
            parent.insert(index, value)
        elif op.operation == "replace":
            parent[index] = value
        else:
            del parent[index]
    else:
        raise PatchError(f"Cannot {op.operation} inside {type(parent).__name__}", path=op.path)
    return document


def apply_patch(document: Any, patch: Iterable[PatchOperation | Mapping[str, Any]]) -> Any:
    """Apply *patch* to *document* in place and return the resulting root.

    Callers that must keep *document* intact pass a deep copy.
    """
    for raw in patch:
        op = raw if isinstance(raw, PatchOperation) else PatchOperation.from_wire(raw)
        document = _apply_one(document, op)
    return document
