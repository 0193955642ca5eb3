"""Base class of generated coding keys."""

from __future__ import annotations

from typing import ClassVar


class CodingKey:
    """Namespace of key strings.

    Subclasses declare one class attribute per key, mapping an identifier
    to the literal key string. `__keys__` lists the key strings a container
    created with the subclass will report; the base class accepts any key.
    """

    __keys__: ClassVar[tuple[str, ...] | None] = None

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls.__keys__ = tuple(
            value
            for name, value in vars(cls).items()
            if not name.startswith("__") and isinstance(value, str)
        )


def accepts(keys: type[CodingKey], key: str) -> bool:
    # key namespaces can't carry methods: any identifier may be a key
    return keys.__keys__ is None or key in keys.__keys__
