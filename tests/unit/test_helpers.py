"""Tests for the helper coders."""

import math
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from codablegen.runtime import (
    Base64Coder,
    ConditionalCoder,
    DataCorruptedError,
    Decoder,
    Encoder,
    IntervalType,
    ISO8601DateCoder,
    LOSSY,
    KeyNotFoundError,
    LossySequenceCoder,
    NonConformingCoder,
    SequenceCoder,
    SequenceConfiguration,
    Since1970DateCoder,
    TypeMismatchError,
    ValueCoder,
)


def encoded(coder, value) -> object:
    encoder = Encoder()
    coder.encode(value, encoder)
    return encoder.value


class TestValueCoder:
    """Tests for lenient primitive decoding."""

    @pytest.mark.parametrize(
        ("tp", "raw", "expected"),
        [
            (bool, "yes", True),
            (bool, "0", False),
            (bool, 1, True),
            (bool, "1.0", True),
            (int, "42", 42),
            (int, "3.0", 3),
            (int, True, 1),
            (int, 7.0, 7),
            (float, "2.5", 2.5),
            (float, False, 0.0),
            (str, 12, "12"),
            (str, True, "true"),
            (Decimal, "1.10", Decimal("1.10")),
        ],
    )
    def test_lenient_decode(self, tp: type, raw: object, expected: object) -> None:
        assert ValueCoder(tp).decode(Decoder(raw)) == expected

    def test_exact_values_pass_through(self) -> None:
        assert ValueCoder(int).decode(Decoder(5)) == 5

    def test_unconvertible(self) -> None:
        with pytest.raises(TypeMismatchError):
            ValueCoder(int).decode(Decoder("abc"))
        with pytest.raises(TypeMismatchError):
            ValueCoder(int).decode(Decoder(2.5))

    def test_bool_out_of_range(self) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            ValueCoder(bool).decode(Decoder(2))

        assert exc_info.value.debug_description == '"2" can\'t be represented as Boolean'

    def test_encode(self) -> None:
        assert encoded(ValueCoder(int), 3) == 3
        assert encoded(ValueCoder(Decimal), Decimal("1.5")) == 1.5

    def test_keyed_variants(self) -> None:
        """Test that keyed helpers respect presence."""
        container = Decoder({"a": "1"}).container()
        coder = ValueCoder(int)

        assert coder.decode_from(container, "a") == 1
        assert coder.decode_if_present_from(container, "b") is None
        with pytest.raises(KeyNotFoundError):
            coder.decode_from(container, "b")


class TestLossySequenceCoder:
    """Tests for lossy sequence decoding."""

    def test_skips_invalid(self) -> None:
        coder = LossySequenceCoder(int)
        assert coder.decode(Decoder([1, "x", 3])) == [1, 3]

    def test_empty_default(self) -> None:
        coder = LossySequenceCoder(int, default=[0])
        assert coder.decode(Decoder(["x"])) == [0]

    def test_not_a_list(self) -> None:
        with pytest.raises(TypeMismatchError):
            LossySequenceCoder(int).decode(Decoder({}))


class TestSequenceCoder:
    """Tests for element-wise sequence coding and its configuration."""

    def test_element_coder(self) -> None:
        coder = SequenceCoder(element_coder=ValueCoder(int))
        assert coder.decode(Decoder(["1", 2, True])) == [1, 2, 1]

    def test_element_coder_encodes(self) -> None:
        coder = SequenceCoder(element_coder=Base64Coder())
        assert encoded(coder, [b"hi", b""]) == ["aGk=", ""]

    def test_default_element_coding(self) -> None:
        coder = SequenceCoder(int, sequence_type=tuple)
        assert coder.decode(Decoder([1, 2])) == (1, 2)
        assert encoded(coder, (1, 2)) == [1, 2]

    def test_strict_by_default(self) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            SequenceCoder(int).decode(Decoder([1, "x"]))
        assert exc_info.value.coding_path == [1]

    def test_default_when_invalid(self) -> None:
        coder = SequenceCoder(int, configuration=SequenceConfiguration.default_when_invalid([9]))
        assert coder.decode(Decoder({})) == [9]
        assert coder.decode(Decoder([])) == []

    def test_default_when_empty(self) -> None:
        coder = SequenceCoder(int, configuration=SequenceConfiguration.default_when_empty([9]))
        assert coder.decode(Decoder([])) == [9]
        with pytest.raises(TypeMismatchError):
            coder.decode(Decoder({}))

    def test_lossy_with_default(self) -> None:
        """Test that skipping every element falls back to the empty default."""
        configuration = LOSSY | SequenceConfiguration.default([0])
        coder = SequenceCoder(int, configuration=configuration)

        assert configuration == SequenceConfiguration(True, [0], [0])
        assert coder.decode(Decoder(["x", "y"])) == [0]
        assert coder.decode(Decoder("x")) == [0]
        assert coder.decode(Decoder([1, "x"])) == [1]

    def test_union_keeps_existing_defaults(self) -> None:
        combined = SequenceConfiguration.default_when_invalid([1]) | LOSSY
        assert combined == SequenceConfiguration(lossy=True, invalid_default=[1])


class TestBase64Coder:
    """Tests for base64 data coding."""

    def test_round_trip(self) -> None:
        coder = Base64Coder()
        assert encoded(coder, b"hi") == "aGk="
        assert coder.decode(Decoder("aGk=")) == b"hi"

    def test_invalid(self) -> None:
        with pytest.raises(DataCorruptedError):
            Base64Coder().decode(Decoder("not base64!"))


class TestDateCoders:
    """Tests for date coders."""

    def test_since_1970(self) -> None:
        coder = Since1970DateCoder(IntervalType.MILLISECONDS)
        value = coder.decode(Decoder(1_500))

        assert value == datetime(1970, 1, 1, 0, 0, 1, 500_000, tzinfo=timezone.utc)
        assert encoded(coder, value) == 1_500.0

    def test_iso8601(self) -> None:
        coder = ISO8601DateCoder()
        value = coder.decode(Decoder("2024-05-01T12:30:00Z"))

        assert value == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        assert encoded(coder, value) == "2024-05-01T12:30:00Z"

    def test_iso8601_invalid(self) -> None:
        with pytest.raises(DataCorruptedError) as exc_info:
            ISO8601DateCoder().decode(Decoder("yesterday"))

        assert "ISO8601" in exc_info.value.debug_description


class TestNonConformingCoder:
    """Tests for non-finite float coding."""

    def test_special_values(self) -> None:
        coder = NonConformingCoder("+inf", "-inf", "nan")

        assert coder.decode(Decoder("+inf")) == math.inf
        assert coder.decode(Decoder("-inf")) == -math.inf
        assert math.isnan(coder.decode(Decoder("nan")))
        assert coder.decode(Decoder("1.5")) == 1.5
        assert coder.decode(Decoder(2)) == 2.0
        assert encoded(coder, -math.inf) == "-inf"
        assert encoded(coder, math.nan) == "nan"
        assert encoded(coder, 1.0) == 1.0


class TestConditionalCoder:
    def test_directions(self) -> None:
        coder = ConditionalCoder(ValueCoder(int), Base64Coder())

        assert coder.decode(Decoder("7")) == 7
        assert encoded(coder, b"hi") == "aGk="
