"""
Runtime support library imported by generated code.

Containers (decoding.py, encoding.py):
    - Decoder / KeyedDecodingContainer: read JSON-like values by key path
    - Encoder / KeyedEncodingContainer: build JSON-like values in place
    - decode, encode, loads, dumps: top-level entry points

Errors (errors.py):
    - CodingError: base, carrying coding_path and debug_description
    - DecodingError: TypeMismatchError, KeyNotFoundError,
      ValueNotFoundError, DataCorruptedError
    - EncodingError: InvalidValueError

Types (keys.py, enums.py):
    - CodingKey: base of generated key namespaces
    - CodableEnum: base of enums with associated values
    - match_tag: discriminator matching with ranges

Attributes (markers.py) and helper coders (helpers.py).
"""

from codablegen.runtime.decoding import Decoder, KeyedDecodingContainer, decode, loads
from codablegen.runtime.encoding import Encoder, KeyedEncodingContainer, dumps, encode
from codablegen.runtime.enums import MISSING, CodableEnum, match_tag
from codablegen.runtime.errors import (
    CodingError,
    DataCorruptedError,
    DecodingError,
    EncodingError,
    InvalidValueError,
    KeyNotFoundError,
    TypeMismatchError,
    ValueNotFoundError,
)
from codablegen.runtime.helpers import (
    Base64Coder,
    ConditionalCoder,
    DefaultElementCoder,
    HelperCoder,
    IntervalType,
    ISO8601DateCoder,
    LOSSY,
    LossySequenceCoder,
    NonConformingCoder,
    SequenceCoder,
    SequenceConfiguration,
    Since1970DateCoder,
    ValueCoder,
)
from codablegen.runtime.keys import CodingKey
from codablegen.runtime.markers import (
    Codable,
    CodedAs,
    CodedAt,
    CodedBy,
    CodedIn,
    CodingKeys,
    ContentAt,
    Decodable,
    DecodedAt,
    Default,
    Encodable,
    EncodedAt,
    Grouped,
    GroupedDefault,
    IgnoreCoding,
    IgnoreCodingInitialized,
    IgnoreDecoding,
    IgnoreEncoding,
    Inherits,
    KeyStrategy,
    MemberInit,
    UnTagged,
    value_coder,
)

__all__ = [
    # Containers
    "Decoder",
    "KeyedDecodingContainer",
    "Encoder",
    "KeyedEncodingContainer",
    "decode",
    "encode",
    "loads",
    "dumps",
    # Errors
    "CodingError",
    "DecodingError",
    "TypeMismatchError",
    "KeyNotFoundError",
    "ValueNotFoundError",
    "DataCorruptedError",
    "EncodingError",
    "InvalidValueError",
    # Types
    "CodingKey",
    "CodableEnum",
    "MISSING",
    "match_tag",
    # Attributes
    "Codable",
    "Decodable",
    "Encodable",
    "MemberInit",
    "Inherits",
    "CodingKeys",
    "IgnoreCodingInitialized",
    "UnTagged",
    "CodedAt",
    "DecodedAt",
    "EncodedAt",
    "CodedIn",
    "ContentAt",
    "CodedAs",
    "CodedBy",
    "Default",
    "GroupedDefault",
    "IgnoreCoding",
    "IgnoreDecoding",
    "IgnoreEncoding",
    "Grouped",
    "KeyStrategy",
    "value_coder",
    # Helper coders
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
