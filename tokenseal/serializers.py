"""Structured-data collaborator for the token codec.

The codec only needs ``dumps(value) -> bytes`` and ``loads(data) -> value``;
any symmetric format works. ``JSONSerializer`` is the default and writes
compact JSON so tokens stay short.
"""

from __future__ import annotations

import dataclasses
import json
import types
import typing
from collections import abc
from typing import Any, Dict, Literal, Protocol, Tuple, Union

from .errors import DeserializationError, SerializationError, ShapeMismatchError


class Serializer(Protocol):
    def dumps(self, value: Any) -> bytes: ...

    def loads(self, data: bytes) -> Any: ...


class JSONSerializer:
    def __init__(self, *, sort_keys: bool = False):
        self.sort_keys = sort_keys

    def dumps(self, value: Any) -> bytes:
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)
        try:
            text = json.dumps(
                value,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
                sort_keys=self.sort_keys,
            )
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Value is not JSON serializable: {exc}") from exc
        return text.encode("utf-8")

    def loads(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise DeserializationError(f"Payload is not valid JSON: {exc}") from exc


def _shape_name(shape: Any) -> str:
    return getattr(shape, "__name__", None) or repr(shape)


def _is_union(origin: Any) -> bool:
    if origin is Union:
        return True
    union_type = getattr(types, "UnionType", None)
    return union_type is not None and origin is union_type


def _field_hints(shape: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(shape)
    except (NameError, TypeError):
        # Unresolvable annotations: fall back to unchecked fields.
        return {}


def _coerce_dataclass(value: Any, shape: type) -> Any:
    if not isinstance(value, dict):
        raise ShapeMismatchError(f"Expected an object for {shape.__name__}, got {type(value).__name__}")
    hints = _field_hints(shape)
    fields = {f.name: f for f in dataclasses.fields(shape) if f.init}
    unknown = [k for k in value if k not in fields]
    if unknown:
        raise ShapeMismatchError(f"Payload does not match {shape.__name__}: unexpected field(s) {unknown}")
    kwargs = {}
    for name, item in value.items():
        kwargs[name] = coerce(item, hints.get(name))
    try:
        return shape(**kwargs)
    except TypeError as exc:
        raise ShapeMismatchError(f"Payload does not match {shape.__name__}: {exc}") from exc


def _coerce_generic(value: Any, shape: Any, origin: Any, args: Tuple[Any, ...]) -> Any:
    if _is_union(origin):
        errors = []
        for arm in args:
            try:
                return coerce(value, arm)
            except ShapeMismatchError as exc:
                errors.append(str(exc))
        raise ShapeMismatchError(f"Expected {shape!r}: " + "; ".join(errors))
    if origin is Literal:
        if any(type(value) is type(a) and value == a for a in args):
            return value
        raise ShapeMismatchError(f"Expected one of {list(args)!r}, got {value!r}")
    if origin in (list, abc.Sequence, abc.MutableSequence):
        if not isinstance(value, list):
            raise ShapeMismatchError(f"Expected a list, got {type(value).__name__}")
        item = args[0] if args else None
        return [coerce(v, item) for v in value]
    if origin is tuple:
        if not isinstance(value, (list, tuple)):
            raise ShapeMismatchError(f"Expected an array, got {type(value).__name__}")
        if not args:
            return tuple(value)
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(coerce(v, args[0]) for v in value)
        if len(value) != len(args):
            raise ShapeMismatchError(f"Expected {len(args)} items, got {len(value)}")
        return tuple(coerce(v, a) for v, a in zip(value, args))
    if origin in (set, frozenset, abc.Set, abc.MutableSet):
        if not isinstance(value, list):
            raise ShapeMismatchError(f"Expected an array, got {type(value).__name__}")
        item = args[0] if args else None
        try:
            items = [coerce(v, item) for v in value]
            return frozenset(items) if origin is frozenset else set(items)
        except TypeError as exc:
            raise ShapeMismatchError(f"Array items are not hashable: {exc}") from exc
    if origin in (dict, abc.Mapping, abc.MutableMapping):
        if not isinstance(value, dict):
            raise ShapeMismatchError(f"Expected an object, got {type(value).__name__}")
        key_shape, val_shape = args if len(args) == 2 else (None, None)
        return {coerce(k, key_shape): coerce(v, val_shape) for k, v in value.items()}
    raise ShapeMismatchError(f"Unsupported shape {shape!r}")


def coerce(value: Any, shape: Any) -> Any:
    """Check (or build) ``value`` against the caller's expected ``shape``.

    - ``None`` or ``typing.Any``: no check.
    - dataclass type: built from a mapping of its fields, each field
      coerced against its annotation.
    - ``List[X]``, ``Dict[K, V]``, ``Tuple[...]``, ``Set[X]`` and the
      builtin generic spellings: checked item by item. Tuples and sets are
      built from JSON arrays.
    - ``Optional[X]`` / ``Union[...]`` / ``X | Y``: first matching arm wins.
    - ``Literal[...]``: value must be one of the listed values.
    - ``float`` also accepts ints; ``bool`` never counts as a number.
    - any other class: plain ``isinstance``.

    Anything else raises ``ShapeMismatchError``.
    """
    if shape is None or shape is Any:
        return value
    if shape is type(None):
        if value is not None:
            raise ShapeMismatchError(f"Expected null, got {type(value).__name__}")
        return value
    origin = typing.get_origin(shape)
    if origin is not None:
        return _coerce_generic(value, shape, origin, typing.get_args(shape))
    if not isinstance(shape, type):
        raise ShapeMismatchError(f"Unsupported shape {shape!r}")
    if dataclasses.is_dataclass(shape):
        return _coerce_dataclass(value, shape)
    if isinstance(value, bool) and shape in (int, float):
        raise ShapeMismatchError(f"Expected {shape.__name__}, got bool")
    if shape is float and isinstance(value, int):
        return float(value)
    if shape in (tuple, set, frozenset) and isinstance(value, list):
        return _coerce_generic(value, shape, shape, ())
    try:
        ok = isinstance(value, shape)
    except TypeError as exc:
        raise ShapeMismatchError(f"Unsupported shape {_shape_name(shape)}: {exc}") from exc
    if not ok:
        raise ShapeMismatchError(f"Expected {_shape_name(shape)}, got {type(value).__name__}")
    return value
    if dataclasses.is_dataclass(shape) and isinstance(shape, type):
        if not isinstance(value, dict):
            raise ShapeMismatchError(f"Expected an object for {shape.__name__}, got {type(value).__name__}")
        try:
            return shape(**value)
        except TypeError as exc:
            raise ShapeMismatchError(f"Payload does not match {shape.__name__}: {exc}") from exc
    if isinstance(value, bool) and shape in (int, float):
        raise ShapeMismatchError(f"Expected {shape.__name__}, got bool")
    if shape is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, shape):
        raise ShapeMismatchError(f"Expected {shape.__name__}, got {type(value).__name__}")
    return value


DEFAULT_SERIALIZER = JSONSerializer()
