"""Helper coders: replacements for the default value codec of a member.

A helper coder works on a whole decoder/encoder. The keyed variants
(`decode_from`, `encode_to`, ...) adapt it to a value stored under a key of
a container, which is how generated code calls it for keyed members.
"""

from __future__ import annotations

import base64
import binascii
import math
import numbers
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from codablegen.runtime.decoding import Decoder, KeyedDecodingContainer
from codablegen.runtime.encoding import Encoder, KeyedEncodingContainer
from codablegen.runtime.enums import MISSING
from codablegen.runtime.errors import (
    DataCorruptedError,
    DecodingError,
    KeyNotFoundError,
    TypeMismatchError,
)


class HelperCoder:
    """Base helper coder. Subclasses implement `decode` and usually `encode`."""

    def decode(self, decoder: Decoder) -> Any:
        raise NotImplementedError

    def decode_if_present(self, decoder: Decoder) -> Any:
        if decoder.decode_nil():
            return None
        return self.decode(decoder)

    def encode(self, value: Any, encoder: Encoder) -> None:
        encoder.encode(value)

    def encode_if_present(self, value: Any, encoder: Encoder) -> None:
        if value is not None:
            self.encode(value, encoder)

    def decode_from(self, container: KeyedDecodingContainer, key: str) -> Any:
        if not container.contains(key):
            raise KeyNotFoundError(
                key, container.coding_path, f'No value associated with key "{key}".'
            )
        return self.decode(container.super_decoder(key))

    def decode_if_present_from(self, container: KeyedDecodingContainer, key: str) -> Any:
        if not container.contains(key):
            return None
        return self.decode_if_present(container.super_decoder(key))

    def encode_to(self, container: KeyedEncodingContainer, value: Any, key: str) -> None:
        self.encode(value, container.super_encoder(key))

    def encode_if_present_to(
        self, container: KeyedEncodingContainer, value: Any, key: str
    ) -> None:
        if value is not None:
            self.encode_to(container, value, key)


_TRUE = ("1", "y", "t", "yes", "true")
_FALSE = ("0", "n", "f", "no", "false")


class ValueCoder(HelperCoder):
    """Decodes a primitive leniently from any JSON scalar.

    `"yes"`, `1` and `"1.0"` all decode as `True` for `bool`; numbers decode
    from numeric strings and booleans; strings from numbers and booleans.
    Other types are built by calling the type with the raw scalar.
    """

    def __init__(self, tp: Any) -> None:
        self.tp = tp

    def decode(self, decoder: Decoder) -> Any:
        try:
            return decoder.decode(self.tp)
        except TypeMismatchError as e:
            value = decoder.value
            converted = self._convert(value, decoder)
            if converted is None:
                raise e
            return converted

    def _convert(self, value: Any, decoder: Decoder) -> Any:
        if self.tp is bool:
            return self._bool(value, decoder)
        if self.tp is int:
            return self._int(value)
        if self.tp is float:
            return self._float(value)
        if self.tp is str:
            if isinstance(value, bool):
                return "true" if value else "false"
            if isinstance(value, (int, float)):
                return str(value)
            return None
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            try:
                return self.tp(value)
            except (ValueError, TypeError, ArithmeticError):
                return None
        return None

    def _bool(self, value: Any, decoder: Decoder) -> bool | None:
        number: float | None = None
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            try:
                number = float(text)
            except ValueError:
                return None
        elif isinstance(value, (int, float)):
            number = value
        if number is None:
            return None
        if number in (0, 1):
            return number == 1
        raise TypeMismatchError(
            bool, decoder.coding_path, f'"{value}" can\'t be represented as Boolean'
        )

    @staticmethod
    def _int(value: Any) -> int | None:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
            try:
                number = float(value)
            except ValueError:
                return None
            return int(number) if number.is_integer() else None
        return None

    @staticmethod
    def _float(value: Any) -> float | None:
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return None
        return None

    def encode(self, value: Any, encoder: Encoder) -> None:
        if self.tp in (bool, int, float, str) or isinstance(value, (bool, str)):
            encoder.encode(value)
        elif isinstance(value, numbers.Number):
            encoder.encode(float(value))  # type: ignore[arg-type]
        else:
            encoder.encode(str(value))

    def __repr__(self) -> str:
        return f"ValueCoder({getattr(self.tp, '__name__', self.tp)})"


@dataclass(frozen=True)
class SequenceConfiguration:
    """How a `SequenceCoder` treats bad input.

    `lossy` skips elements that fail to decode. `invalid_default` replaces
    a value that is not a sequence at all, `empty_default` a sequence that
    decodes to no elements. Configurations combine with `|`.
    """

    lossy: bool = False
    invalid_default: Any = MISSING
    empty_default: Any = MISSING

    @classmethod
    def default(cls, value: Any) -> SequenceConfiguration:
        return cls(invalid_default=value, empty_default=value)

    @classmethod
    def default_when_invalid(cls, value: Any) -> SequenceConfiguration:
        return cls(invalid_default=value)

    @classmethod
    def default_when_empty(cls, value: Any) -> SequenceConfiguration:
        return cls(empty_default=value)

    def __or__(self, other: SequenceConfiguration) -> SequenceConfiguration:
        return SequenceConfiguration(
            lossy=self.lossy or other.lossy,
            invalid_default=(
                other.invalid_default if other.invalid_default is not MISSING else self.invalid_default
            ),
            empty_default=(
                other.empty_default if other.empty_default is not MISSING else self.empty_default
            ),
        )


LOSSY = SequenceConfiguration(lossy=True)


class DefaultElementCoder(HelperCoder):
    """Codes a sequence element with the default value codec."""

    def __init__(self, tp: Any = Any) -> None:
        self.tp = tp

    def decode(self, decoder: Decoder) -> Any:
        return decoder.decode(self.tp)


class SequenceCoder(HelperCoder):
    """Codes a sequence element by element through `element_coder`.

    Without an element coder, elements use the default codec for
    `element_type`. The decoded elements are passed to `sequence_type`.
    """

    def __init__(
        self,
        element_type: Any = Any,
        element_coder: HelperCoder | None = None,
        configuration: SequenceConfiguration | None = None,
        sequence_type: Any = list,
    ) -> None:
        self.element_coder = element_coder or DefaultElementCoder(element_type)
        self.configuration = configuration or SequenceConfiguration()
        self.sequence_type = sequence_type

    def decode(self, decoder: Decoder) -> Any:
        config = self.configuration
        try:
            items = decoder.decode(list)
        except DecodingError:
            if config.invalid_default is MISSING:
                raise
            return config.invalid_default

        values = []
        for index, item in enumerate(items):
            try:
                values.append(
                    self.element_coder.decode(Decoder(item, decoder.coding_path + (index,)))
                )
            except DecodingError:
                if not config.lossy:
                    raise
        if not values and config.empty_default is not MISSING:
            return config.empty_default
        return self.sequence_type(values)

    def encode(self, value: Any, encoder: Encoder) -> None:
        slots: dict[int, Any] = {}
        count = 0
        for index, element in enumerate(value):
            self.element_coder.encode(
                element, Encoder(encoder.coding_path + (index,), slots, index)
            )
            count = index + 1
        encoder.encode([slots.get(index) for index in range(count)])


class LossySequenceCoder(SequenceCoder):
    """Decodes a sequence, skipping elements that fail to decode.

    An empty result decodes as `default` when one is given.
    """

    def __init__(
        self, element_type: Any = Any, default: Any = None, sequence_type: Any = list
    ) -> None:
        configuration = LOSSY
        if default is not None:
            configuration |= SequenceConfiguration.default_when_empty(default)
        super().__init__(element_type, configuration=configuration, sequence_type=sequence_type)


class Base64Coder(HelperCoder):
    """`bytes` coded as base64 text."""

    def __init__(self, url_safe: bool = False) -> None:
        self.url_safe = url_safe

    def decode(self, decoder: Decoder) -> bytes:
        text = decoder.decode(str)
        try:
            if self.url_safe:
                return base64.urlsafe_b64decode(text)
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DataCorruptedError(
                decoder.coding_path, f'Invalid base64 string "{text}": {e}'
            ) from e

    def encode(self, value: bytes, encoder: Encoder) -> None:
        encoded = base64.urlsafe_b64encode(value) if self.url_safe else base64.b64encode(value)
        encoder.encode(encoded.decode("ascii"))


class IntervalType(Enum):
    """Units of a timestamp, as divisors of one second."""

    SECONDS = 1
    MILLISECONDS = 1_000
    MICROSECONDS = 1_000_000
    NANOSECONDS = 1_000_000_000


class Since1970DateCoder(HelperCoder):
    """`datetime` coded as a number of units since the Unix epoch (UTC)."""

    def __init__(self, interval_type: IntervalType = IntervalType.SECONDS) -> None:
        self.interval_type = interval_type

    def decode(self, decoder: Decoder) -> datetime:
        interval = decoder.decode(float)
        try:
            return datetime.fromtimestamp(interval / self.interval_type.value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise DataCorruptedError(
                decoder.coding_path, f"Timestamp {interval} is out of range"
            ) from e

    def encode(self, value: datetime, encoder: Encoder) -> None:
        encoder.encode(value.timestamp() * self.interval_type.value)


class ISO8601DateCoder(HelperCoder):
    """`datetime` coded as ISO 8601 text; a trailing `Z` means UTC."""

    def decode(self, decoder: Decoder) -> datetime:
        text = decoder.decode(str)
        normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            return datetime.fromisoformat(normalized)
        except ValueError as e:
            raise DataCorruptedError(
                decoder.coding_path, f'Expected date string to be ISO8601-formatted, got "{text}"'
            ) from e

    def encode(self, value: datetime, encoder: Encoder) -> None:
        text = value.isoformat()
        if text.endswith("+00:00"):
            text = text[: -len("+00:00")] + "Z"
        encoder.encode(text)


class NonConformingCoder(HelperCoder):
    """Floats whose infinities and NaN are coded as chosen strings."""

    def __init__(self, positive_infinity: str, negative_infinity: str, nan: str) -> None:
        self.positive_infinity = positive_infinity
        self.negative_infinity = negative_infinity
        self.nan = nan

    def decode(self, decoder: Decoder) -> float:
        if not isinstance(decoder.value, str):
            return decoder.decode(float)
        text = decoder.value
        if text == self.positive_infinity:
            return math.inf
        if text == self.negative_infinity:
            return -math.inf
        if text == self.nan:
            return math.nan
        try:
            return float(text)
        except ValueError:
            raise TypeMismatchError(
                str, decoder.coding_path, f'"{text}" couldn\'t convert to float'
            ) from None

    def encode(self, value: float, encoder: Encoder) -> None:
        if math.isnan(value):
            encoder.encode(self.nan)
        elif value == math.inf:
            encoder.encode(self.positive_infinity)
        elif value == -math.inf:
            encoder.encode(self.negative_infinity)
        else:
            encoder.encode(value)


class ConditionalCoder(HelperCoder):
    """Uses one helper coder for decoding and another for encoding."""

    def __init__(self, decoder: HelperCoder, encoder: HelperCoder) -> None:
        self.decoder = decoder
        self.encoder = encoder

    def decode(self, decoder: Decoder) -> Any:
        return self.decoder.decode(decoder)

    def decode_if_present(self, decoder: Decoder) -> Any:
        return self.decoder.decode_if_present(decoder)

    def encode(self, value: Any, encoder: Encoder) -> None:
        self.encoder.encode(value, encoder)

    def encode_if_present(self, value: Any, encoder: Encoder) -> None:
        self.encoder.encode_if_present(value, encoder)


__all__ = [
    "HelperCoder",
    "ValueCoder",
    "SequenceConfiguration",
    "LOSSY",
    "DefaultElementCoder",
    "SequenceCoder",
    "LossySequenceCoder",
    "Base64Coder",
    "IntervalType",
    "Since1970DateCoder",
    "ISO8601DateCoder",
    "NonConformingCoder",
    "ConditionalCoder",
]
