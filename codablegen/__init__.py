"""
CodableGen: Compile-time coding code generation for annotated Python classes.

CodableGen reads class declarations annotated with declarative attributes
(`@Codable`, `CodedAt`, `Default`, ...) and writes the code that encodes
and decodes them through keyed containers:
- Nested coding paths, divergent between decode and encode
- Defaults, helper coders and ignore rules per member
- Externally, internally, adjacently tagged and untagged enums
- Memberwise initializers with overloads for defaulted members

Usage:
    from pathlib import Path
    from codablegen.languages import PythonParser
    from codablegen.render import expand

    result = PythonParser().parse(Path("models.py"))
    print(expand(result).source)
"""

__version__ = "0.1.0"
