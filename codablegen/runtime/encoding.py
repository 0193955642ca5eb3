"""Encoders and keyed encoding containers producing JSON-like values."""

from __future__ import annotations

import json
import math
from enum import Enum
from typing import Any

from codablegen.runtime.errors import InvalidValueError
from codablegen.runtime.keys import CodingKey

CodingPath = tuple[Any, ...]


class Encoder:
    """Writes one value of the output.

    An encoder owns a slot (`key` in `storage`); nested encoders write
    straight into their parent object, so encoding builds the output tree
    in place.
    """

    __slots__ = ("coding_path", "_storage", "_key")

    def __init__(
        self,
        coding_path: CodingPath = (),
        storage: dict[Any, Any] | None = None,
        key: Any = None,
    ) -> None:
        self.coding_path = tuple(coding_path)
        self._storage = {} if storage is None else storage
        self._key = key

    @property
    def value(self) -> Any:
        """Everything encoded so far."""
        return self._storage.get(self._key)

    def container(self, keys: type[CodingKey] = CodingKey) -> KeyedEncodingContainer:
        """Keyed container for this slot; reuses an object already there."""
        current = self._storage.get(self._key)
        if not isinstance(current, dict):
            current = {}
            self._storage[self._key] = current
        return KeyedEncodingContainer(current, keys, self.coding_path)

    def encode(self, value: Any) -> None:
        encode_to = getattr(value, "encode_to", None)
        if encode_to is not None and not isinstance(value, type):
            encode_to(self)
            return
        self._storage[self._key] = encode_value(value, self.coding_path)

    def encode_if_present(self, value: Any) -> None:
        if value is not None:
            self.encode(value)

    def encode_nil(self) -> None:
        self._storage[self._key] = None

    def __repr__(self) -> str:
        return f"Encoder(path={list(self.coding_path)})"


class KeyedEncodingContainer:
    """Write access to one object of the output, keyed by `keys`."""

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

    def encode(self, value: Any, key: str) -> None:
        Encoder(self.coding_path + (key,), self.storage, key).encode(value)

    def encode_if_present(self, value: Any, key: str) -> None:
        """Encode unless `value` is None; absent values leave no key."""
        if value is not None:
            self.encode(value, key)

    def encode_nil(self, key: str) -> None:
        self.storage[key] = None

    def nested_container(self, keys: type[CodingKey], key: str) -> KeyedEncodingContainer:
        existing = self.storage.get(key)
        if not isinstance(existing, dict):
            existing = {}
            self.storage[key] = existing
        return KeyedEncodingContainer(existing, keys, self.coding_path + (key,))

    def super_encoder(self, key: str) -> Encoder:
        """Encoder for the value at `key`, which holds `{}` until written."""
        self.storage.setdefault(key, {})
        return Encoder(self.coding_path + (key,), self.storage, key)

    def __repr__(self) -> str:
        return f"KeyedEncodingContainer(keys={list(self.storage)}, path={list(self.coding_path)})"


def encode_value(value: Any, coding_path: CodingPath = ()) -> Any:
    """Convert `value` to JSON-like data.

    Objects exposing `encode_to` encode themselves; enums encode their
    value; sequences become lists and mappings dicts.
    """
    path = tuple(coding_path)
    if hasattr(value, "encode_to") and not isinstance(value, type):
        encoder = Encoder(path)
        encoder.encode(value)
        return encoder.value
    if isinstance(value, Enum):
        return encode_value(value.value, path)
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidValueError(value, path, f"Unable to encode {value} directly in JSON.")
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [encode_value(item, path + (index,)) for index, item in enumerate(value)]
    if isinstance(value, dict):
        encoded = {}
        for key, item in value.items():
            encoded_key = encode_value(key, path)
            if not isinstance(encoded_key, (str, int)):
                raise InvalidValueError(key, path, f"Unable to use {key!r} as an object key.")
            encoded[encoded_key] = encode_value(item, path + (encoded_key,))
        return encoded
    raise InvalidValueError(
        value, path, f"Unable to encode value of type {type(value).__name__}."
    )


def encode(value: Any) -> Any:
    """Encode `value` to JSON-like data."""
    return encode_value(value, ())


def dumps(value: Any, **kwargs: Any) -> str:
    """Encode `value` and serialize it as JSON text."""
    return json.dumps(encode(value), **kwargs)
