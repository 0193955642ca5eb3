"""CodableGen custom exceptions."""


class CodableGenError(Exception):
    """Base exception for CodableGen errors."""


class ParseError(CodableGenError):
    """Error parsing a source file."""


class DeclarationNotFoundError(CodableGenError):
    """Declaration not found in the parsed source."""


class AttributeParseError(CodableGenError):
    """Attribute arguments could not be parsed into a typed attribute."""

    def __init__(self, attribute: str, reason: str) -> None:
        super().__init__(f"@{attribute} has invalid arguments: {reason}")
        self.attribute = attribute
        self.reason = reason
