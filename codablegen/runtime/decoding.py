"""Decoders and keyed decoding containers over JSON-like values."""

from __future__ import annotations

import collections.abc
import json
import types
from enum import Enum
from typing import (
    Annotated,
    Any,
    ForwardRef,
    Literal,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

from codablegen.runtime.errors import (
    DataCorruptedError,
    DecodingError,
    KeyNotFoundError,
    TypeMismatchError,
    ValueNotFoundError,
)
from codablegen.runtime.keys import CodingKey, accepts

CodingPath = tuple[Any, ...]
NoneType = type(None)

_SEQUENCES = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
)
_MAPPINGS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def describe(value: Any) -> str:
    """Name of a JSON-like value's kind, used in error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "dictionary"
    return type(value).__name__


def type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


class Decoder:
    """A handle on one value of the input, at a coding path.

    Decoders never mutate or consume their input, so `snapshot()` is a
    cheap restart point: it returns a fresh handle on the same value.
    """

    __slots__ = ("value", "coding_path")

    def __init__(self, value: Any, coding_path: CodingPath = ()) -> None:
        self.value = value
        self.coding_path = tuple(coding_path)

    def container(self, keys: type[CodingKey] = CodingKey) -> KeyedDecodingContainer:
        if self.value is None:
            raise ValueNotFoundError(
                dict, self.coding_path, "Expected a keyed container but found null instead."
            )
        if not isinstance(self.value, dict):
            raise TypeMismatchError(
                dict,
                self.coding_path,
                f"Expected to decode dictionary but found {describe(self.value)} instead.",
            )
        return KeyedDecodingContainer(self.value, keys, self.coding_path)

    def decode(self, tp: Any) -> Any:
        return decode_value(tp, self.value, self.coding_path)

    def decode_if_present(self, tp: Any) -> Any:
        if self.value is None:
            return None
        return self.decode(tp)

    def decode_nil(self) -> bool:
        return self.value is None

    def snapshot(self) -> Decoder:
        """Fresh handle on the same input, for backtracking decodes."""
        return Decoder(self.value, self.coding_path)

    def __repr__(self) -> str:
        return f"Decoder(path={list(self.coding_path)})"


class KeyedDecodingContainer:
    """Read access to one object of the input, keyed by `keys`."""

    __slots__ = ("storage", "keys", "coding_path")

    def __init__(
        self,
        storage: dict[str, Any],
        keys: type[CodingKey] = CodingKey,
        coding_path: CodingPath = (),
    ) -> None:
        self.storage = storage
        self.keys = keys
        self.coding_path = tuple(coding_path)

    @property
    def all_keys(self) -> list[str]:
        """Keys present in the input that `keys` knows about."""
        return [key for key in self.storage if accepts(self.keys, key)]

    def contains(self, key: str) -> bool:
        return key in self.storage

    def _require(self, key: str) -> Any:
        if key not in self.storage:
            raise KeyNotFoundError(
                key, self.coding_path, f'No value associated with key "{key}".'
            )
        return self.storage[key]

    def decode(self, tp: Any, key: str) -> Any:
        return decode_value(tp, self._require(key), self.coding_path + (key,))

    def decode_if_present(self, tp: Any, key: str) -> Any:
        """Decoded value, or None when the key is absent or null."""
        value = self.storage.get(key)
        if value is None:
            return None
        return decode_value(tp, value, self.coding_path + (key,))

    def decode_nil(self, key: str) -> bool:
        return self._require(key) is None

    def nested_container(
        self, keys: type[CodingKey], key: str
    ) -> KeyedDecodingContainer:
        return Decoder(self._require(key), self.coding_path + (key,)).container(keys)

    def nested_container_if_present(
        self, keys: type[CodingKey], key: str
    ) -> KeyedDecodingContainer | None:
        if self.storage.get(key) is None:
            return None
        return self.nested_container(keys, key)

    def super_decoder(self, key: str) -> Decoder:
        """Decoder for the value at `key`; absent keys decode as null."""
        return Decoder(self.storage.get(key), self.coding_path + (key,))

    def select_key(self, *keys: str) -> str:
        """The one alternate key present, or the first when none is.

        Raises:
            TypeMismatchError: If more than one of the keys is present.
        """
        present = [key for key in keys if key in self.storage]
        if len(present) > 1:
            raise TypeMismatchError(
                dict, self.coding_path, "Invalid number of keys found, expected one."
            )
        return present[0] if present else keys[0]

    def __repr__(self) -> str:
        return f"KeyedDecodingContainer(keys={self.all_keys}, path={list(self.coding_path)})"


def _mismatch(tp: Any, value: Any, path: CodingPath) -> TypeMismatchError:
    return TypeMismatchError(
        tp, path, f"Expected to decode {type_name(tp)} but found {describe(value)} instead."
    )


def _decode_union(tp: Any, arms: tuple[Any, ...], value: Any, path: CodingPath) -> Any:
    if value is None:
        if NoneType in arms:
            return None
        raise ValueNotFoundError(tp, path, "Expected value but found null instead.")
    last: DecodingError | None = None
    for arm in arms:
        if arm is NoneType:
            continue
        try:
            return decode_value(arm, value, path)
        except DecodingError as e:
            last = e
    raise _mismatch(tp, value, path) from last


def _decode_sequence(origin: Any, args: tuple[Any, ...], value: Any, path: CodingPath) -> Any:
    if not isinstance(value, list):
        raise _mismatch(origin, value, path)
    element = args[0] if args else Any
    items = [decode_value(element, item, path + (index,)) for index, item in enumerate(value)]
    if origin in (set, collections.abc.Set, collections.abc.MutableSet):
        return set(items)
    if origin is frozenset:
        return frozenset(items)
    return items


def _decode_tuple(args: tuple[Any, ...], value: Any, path: CodingPath) -> tuple[Any, ...]:
    if not isinstance(value, list):
        raise _mismatch(tuple, value, path)
    if not args or (len(args) == 2 and args[1] is Ellipsis):
        element = args[0] if args else Any
        return tuple(decode_value(element, item, path + (i,)) for i, item in enumerate(value))
    if len(args) != len(value):
        raise TypeMismatchError(
            tuple, path, f"Expected {len(args)} elements but found {len(value)} instead."
        )
    return tuple(decode_value(arg, item, path + (i,)) for i, (arg, item) in enumerate(zip(args, value)))


def _decode_mapping(args: tuple[Any, ...], value: Any, path: CodingPath) -> dict[Any, Any]:
    if not isinstance(value, dict):
        raise _mismatch(dict, value, path)
    key_type, value_type = args if len(args) == 2 else (Any, Any)
    return {
        decode_value(key_type, key, path + (key,)): decode_value(value_type, item, path + (key,))
        for key, item in value.items()
    }


def _decode_scalar(tp: type, value: Any, path: CodingPath) -> Any:
    if tp is bool:
        if isinstance(value, bool):
            return value
    elif tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif tp is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif tp is str:
        if isinstance(value, str):
            return value
    elif isinstance(value, tp):
        return value
    raise _mismatch(tp, value, path)


def decode_value(tp: Any, value: Any, coding_path: CodingPath = ()) -> Any:
    """Decode a JSON-like `value` as type `tp`.

    Handles primitives, `None`, `Optional`/unions, `Literal`, lists, sets,
    tuples, dicts, `enum.Enum` and any class exposing `from_decoder`.
    Unresolvable types (`Any`, type variables, forward references) pass
    the raw value through.
    """
    path = tuple(coding_path)
    if tp is Any or tp is object or isinstance(tp, (TypeVar, str, ForwardRef)):
        return value
    if tp is None or tp is NoneType:
        if value is not None:
            raise _mismatch(NoneType, value, path)
        return None

    origin = get_origin(tp)
    args = get_args(tp)
    if origin is Annotated:
        return decode_value(args[0], value, path)
    if origin is Union or origin is types.UnionType:
        return _decode_union(tp, args, value, path)
    if value is None:
        raise ValueNotFoundError(
            tp, path, f"Expected {type_name(tp)} value but found null instead."
        )
    if origin is Literal:
        for candidate in args:
            if candidate == value and type(candidate) is type(value):
                return value
        raise DataCorruptedError(path, f"Value {value!r} is not one of {list(args)}.")

    container_type = origin or tp
    if container_type is tuple:
        return _decode_tuple(args, value, path)
    if container_type in _MAPPINGS:
        return _decode_mapping(args, value, path)
    if container_type in _SEQUENCES:
        return _decode_sequence(container_type, args, value, path)

    if isinstance(container_type, type):
        from_decoder = getattr(container_type, "from_decoder", None)
        if from_decoder is not None:
            return from_decoder(Decoder(value, path))
        if issubclass(container_type, Enum):
            try:
                return container_type(value)
            except ValueError:
                raise DataCorruptedError(
                    path,
                    f"Cannot initialize {container_type.__name__} from invalid value {value!r}.",
                ) from None
        return _decode_scalar(container_type, value, path)
    raise _mismatch(tp, value, path)


def decode(tp: Any, data: Any) -> Any:
    """Decode already parsed JSON-like data as `tp`."""
    return decode_value(tp, data, ())


def loads(tp: Any, text: str | bytes) -> Any:
    """Parse JSON text and decode it as `tp`."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataCorruptedError([], f"The given data was not valid JSON: {e}") from e
    return decode(tp, data)
