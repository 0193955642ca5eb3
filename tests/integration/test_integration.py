"""Integration tests: expand annotated modules, run them, round-trip JSON."""

import inspect
import json
import tempfile
import textwrap
import typing
from pathlib import Path
from typing import Any

import pytest

from codablegen.core.generator import GeneratorOptions
from codablegen.languages.python import PythonParser
from codablegen.render import expand
from codablegen.runtime import (
    DecodingError,
    KeyNotFoundError,
    TypeMismatchError,
    dumps,
    encode,
    loads,
)

HEADER = """
from datetime import datetime
from enum import Enum
from typing import Annotated

from codablegen.runtime import (
    Codable,
    CodableEnum,
    CodedAs,
    CodedAt,
    CodedBy,
    CodedIn,
    ContentAt,
    DecodedAt,
    Default,
    EncodedAt,
    Grouped,
    GroupedDefault,
    IgnoreCoding,
    IgnoreEncoding,
    Inherits,
    ISO8601DateCoder,
    MemberInit,
    UnTagged,
    value_coder,
)
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


def load_module(body: str, name: str) -> dict[str, Any]:
    """Expand `body` and execute the result as module `name`."""
    source = HEADER + textwrap.dedent(body)
    expansion = expand(PythonParser().parse_source(source))
    assert not expansion.has_errors, [str(d) for d in expansion.diagnostics]
    namespace: dict[str, Any] = {"__name__": name}
    exec(compile(expansion.source, f"<{name}>", "exec"), namespace)
    return namespace


@pytest.fixture(scope="module")
def people() -> dict[str, Any]:
    return load_module(
        """
        @Codable
        @MemberInit
        class Person:
            name: Annotated[str, CodedAt("personal_info", "full_name")]
            email: Annotated[str | None, CodedIn("contact")]
            age: int = 0
            next_step: Annotated[str, CodedAt("continue"), Default("wait")]
            token: Annotated[str | None, IgnoreCoding]
        """,
        "expanded_people",
    )


class TestStructs:
    """Tests for generated struct coding."""

    def test_decode_nested_paths(self, people: dict[str, Any]) -> None:
        person = loads(
            people["Person"],
            '{"personal_info": {"full_name": "Ann"}, "contact": {"email": "a@b.c"},'
            ' "age": 30, "continue": "go", "token": "secret"}',
        )

        assert person.name == "Ann"
        assert person.email == "a@b.c"
        assert person.age == 30
        assert person.next_step == "go"
        assert person.token is None

    def test_missing_optional_and_defaults(self, people: dict[str, Any]) -> None:
        """Test fallbacks for absent containers and invalid values."""
        person = loads(people["Person"], '{"personal_info": {"full_name": "Ann"}, "age": "old"}')

        assert person.email is None
        assert person.age == 0
        assert person.next_step == "wait"

    def test_missing_required(self, people: dict[str, Any]) -> None:
        with pytest.raises(KeyNotFoundError) as exc_info:
            loads(people["Person"], '{"personal_info": {}}')

        assert exc_info.value.key == "full_name"
        assert exc_info.value.coding_path == ["personal_info"]

    def test_encode(self, people: dict[str, Any]) -> None:
        person = people["Person"]("Ann", email="a@b.c", age=30, next_step="go")

        assert encode(person) == {
            "personal_info": {"full_name": "Ann"},
            "contact": {"email": "a@b.c"},
            "age": 30,
            "continue": "go",
        }

    def test_memberwise_defaults(self, people: dict[str, Any]) -> None:
        person = people["Person"]("Bob")

        assert person.email is None
        assert person.age == 0
        assert person.next_step == "wait"
        assert person.token is None

    def test_round_trip(self, people: dict[str, Any]) -> None:
        person = people["Person"]("Ann", age=5)
        again = loads(people["Person"], dumps(person))

        assert (again.name, again.email, again.age) == ("Ann", None, 5)

    def test_divergent_paths(self) -> None:
        """Test that a decoded value is re-encoded at its encode path only."""
        module = load_module(
            """
            @Codable
            class Profile:
                name: Annotated[str, DecodedAt("personal_info", "name"), EncodedAt("full_name")]
            """,
            "expanded_profile",
        )
        profile = loads(module["Profile"], '{"personal_info": {"name": "Ann"}}')

        assert profile.name == "Ann"
        assert encode(profile) == {"full_name": "Ann"}
        with pytest.raises(KeyNotFoundError):
            loads(module["Profile"], '{"full_name": "Ann"}')

    def test_computed_properties(self) -> None:
        """Test that read-only properties are encoded but never decoded or initialized."""
        module = load_module(
            """
            @Codable
            @MemberInit
            class Account:
                first: str
                last: str

                @property
                @CodedIn
                def full_name(self) -> str:
                    return f"{self.first} {self.last}"

                @property
                @CodedAt("meta", "initials")
                def initials(self) -> str:
                    return self.first[0] + self.last[0]
            """,
            "expanded_account",
        )
        account_type = module["Account"]
        account = loads(account_type, '{"first": "Ann", "last": "Lee", "full_name": "X Y"}')

        assert account.full_name == "Ann Lee"
        assert list(inspect.signature(account_type.__init__).parameters) == [
            "self",
            "first",
            "last",
        ]
        assert encode(account_type("Bo", "Ng")) == {
            "first": "Bo",
            "last": "Ng",
            "full_name": "Bo Ng",
            "meta": {"initials": "BN"},
        }

    def test_grouped_overloads(self) -> None:
        """Test that grouped defaults give one overload per subset."""
        module = load_module(
            """
            @Codable
            @MemberInit
            class Size:
                width, height = Grouped(int, GroupedDefault(1, 2))
            """,
            "expanded_size",
        )
        size_type = module["Size"]

        assert len(typing.get_overloads(size_type.__init__)) == 4
        size = size_type(height=5)
        assert (size.width, size.height) == (1, 5)
        assert encode(size_type()) == {"width": 1, "height": 2}

    def test_inheritance(self) -> None:
        module = load_module(
            """
            @Codable
            class Base:
                id: int

            @Codable
            @Inherits
            class Child(Base):
                name: str
            """,
            "expanded_inheritance",
        )
        child = loads(module["Child"], '{"id": 7, "name": "x"}')

        assert (child.id, child.name) == (7, "x")
        assert encode(child) == {"id": 7, "name": "x"}

    def test_helper_coders(self) -> None:
        module = load_module(
            """
            @Codable(common_strategies=[value_coder()])
            class Reading:
                count: int
                valid: bool
                at: Annotated[datetime, CodedBy(ISO8601DateCoder())]
                note: Annotated[str, IgnoreEncoding(lambda value: not value)] = ""
            """,
            "expanded_helpers",
        )
        reading = loads(
            module["Reading"], '{"count": "3", "valid": "yes", "at": "2024-01-02T03:04:05Z"}'
        )

        assert reading.count == 3
        assert reading.valid is True
        assert reading.at.year == 2024
        assert encode(reading) == {"count": 3, "valid": True, "at": "2024-01-02T03:04:05Z"}


@pytest.fixture(scope="module")
def enums() -> dict[str, Any]:
    return load_module(
        """
        @Codable
        class Command(CodableEnum):
            def load(key: str): ...
            @CodedAs("remove", "delete")
            def remove(key: str): ...
            def reset(): ...


        @Codable
        @CodedAt("type")
        class Shape(CodableEnum):
            @CodedAs("circle", "round")
            def circle(radius: float): ...
            def square(side: float): ...


        @Codable
        @CodedAt("kind")
        @CodedAs(int | None)
        class Sensor(CodableEnum):
            @CodedAs(1)
            def scalar(value: float): ...
            @CodedAs(None)
            def blank(): ...


        @Codable
        @CodedAt("t")
        @ContentAt("c")
        class Event(CodableEnum):
            def click(x: int, y: int): ...
            def close(): ...


        @Codable
        @UnTagged
        class Value(CodableEnum):
            def number(value: float, /): ...
            def text(value: str, /): ...
            def null(): ...


        @Codable
        class Status(str, Enum):
            ACTIVE = "active"
            BLOCKED: Annotated[str, CodedAs("banned")] = "blocked"
        """,
        "expanded_enums",
    )


class TestEnums:
    """Tests for generated enum coding."""

    def test_external(self, enums: dict[str, Any]) -> None:
        command = enums["Command"]

        assert loads(command, '{"load": {"key": "a"}}') == command.load(key="a")
        assert loads(command, '{"delete": {"key": "b"}}') == command.remove(key="b")
        assert loads(command, '{"reset": {}}') == command.reset()
        assert encode(command.remove(key="b")) == {"remove": {"key": "b"}}
        assert encode(command.reset()) == {"reset": {}}

    def test_external_needs_one_key(self, enums: dict[str, Any]) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            loads(enums["Command"], '{"load": {"key": "a"}, "reset": {}}')

        assert exc_info.value.debug_description == "Invalid number of keys found, expected one."

    def test_external_unknown_case(self, enums: dict[str, Any]) -> None:
        with pytest.raises(TypeMismatchError):
            loads(enums["Command"], '{"restart": {}}')

    def test_internal(self, enums: dict[str, Any]) -> None:
        shape = enums["Shape"]

        assert loads(shape, '{"type": "round", "radius": 2}') == shape.circle(radius=2.0)
        assert encode(shape.circle(radius=1.5)) == {"type": "circle", "radius": 1.5}
        assert encode(shape.square(side=2.0)) == {"type": "square", "side": 2.0}

    def test_optional_tag(self, enums: dict[str, Any]) -> None:
        """Test that an absent discriminator selects the case tagged None."""
        sensor = enums["Sensor"]

        assert loads(sensor, '{"kind": 1, "value": 2.5}') == sensor.scalar(value=2.5)
        assert loads(sensor, "{}") == sensor.blank()
        assert encode(sensor.scalar(value=2.5)) == {"kind": 1, "value": 2.5}
        assert encode(sensor.blank()) == {}

    def test_adjacent(self, enums: dict[str, Any]) -> None:
        event = enums["Event"]

        assert loads(event, '{"t": "click", "c": {"x": 1, "y": 2}}') == event.click(x=1, y=2)
        assert encode(event.click(x=1, y=2)) == {"t": "click", "c": {"x": 1, "y": 2}}
        assert encode(event.close()) == {"t": "close"}

    def test_untagged(self, enums: dict[str, Any]) -> None:
        """Test that cases are tried in order and the empty case is the fallback."""
        value = enums["Value"]

        assert loads(value, "3") == value.number(3.0)
        assert loads(value, '"hi"') == value.text("hi")
        assert loads(value, "null") == value.null()
        assert json.loads(dumps(value.text("hi"))) == "hi"
        for case in (value.number(3.0), value.text("hi"), value.null()):
            assert loads(value, dumps(case)) == case

    def test_raw_value(self, enums: dict[str, Any]) -> None:
        status = enums["Status"]

        assert loads(status, '"active"') is status.ACTIVE
        assert loads(status, '"BLOCKED"') is status.BLOCKED
        assert loads(status, '"banned"') is status.BLOCKED
        assert dumps(status.BLOCKED) == '"blocked"'
        with pytest.raises(DecodingError):
            loads(status, '"unknown"')


class TestDiagnostics:
    """Tests for diagnostics in expanded modules."""

    def test_errors_suppress_artifacts(self, temp_dir: Path) -> None:
        """Test that a misused attribute blocks generation for its type only."""
        path = temp_dir / "models.py"
        path.write_text(
            textwrap.dedent(
                """
                @Codable
                class Good:
                    x: int

                @Codable
                class Bad:
                    a: Annotated[int, CodedAt("a")]
                    b: Annotated[int, CodedAt("a", "b")]
                """
            )
        )

        expansion = expand(PythonParser().parse(path), GeneratorOptions())
        good, bad = expansion.types

        assert expansion.has_errors
        assert good.decode and not good.has_errors
        assert bad.decode == [] and bad.encode == []
        location = expansion.diagnostics[0].location
        assert location is not None
        assert location.file == str(path)
