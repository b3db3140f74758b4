"""Reading and writing of PLY files: header parsing and per-element records."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterable, Mapping, Union

__all__ = [
    "Encoding",
    "ScalarType",
    "PlyProperty",
    "PlyElement",
    "PlyHeader",
    "read_header",
    "read_element",
    "write_ply",
]

Value = Union[int, float, tuple]


class Encoding(enum.Enum):
    """How the element data after the header is stored."""

    ASCII = "ascii"
    BINARY_LITTLE_ENDIAN = "binary_little_endian"
    BINARY_BIG_ENDIAN = "binary_big_endian"

    @property
    def struct_prefix(self) -> str:
        return ">" if self is Encoding.BINARY_BIG_ENDIAN else "<"


class ScalarType(enum.Enum):
    """A PLY scalar type, named by its canonical header keyword."""

    CHAR = "char"
    UCHAR = "uchar"
    SHORT = "short"
    USHORT = "ushort"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    DOUBLE = "double"

    @classmethod
    def parse(cls, name: str) -> ScalarType:
        """Look up a type by its canonical name or its sized alias."""
        try:
            return _SCALAR_ALIASES[name]
        except KeyError:
            raise ValueError(f"Unknown PLY scalar type: {name!r}") from None

    @property
    def struct_code(self) -> str:
        return _STRUCT_CODES[self]

    @property
    def is_float(self) -> bool:
        return self in (ScalarType.FLOAT, ScalarType.DOUBLE)

    def coerce(self, value: Any) -> int | float:
        return float(value) if self.is_float else int(value)


_STRUCT_CODES = {
    ScalarType.CHAR: "b",
    ScalarType.UCHAR: "B",
    ScalarType.SHORT: "h",
    ScalarType.USHORT: "H",
    ScalarType.INT: "i",
    ScalarType.UINT: "I",
    ScalarType.FLOAT: "f",
    ScalarType.DOUBLE: "d",
}

_SCALAR_ALIASES = {
    **{member.value: member for member in ScalarType},
    "int8": ScalarType.CHAR,
    "uint8": ScalarType.UCHAR,
    "int16": ScalarType.SHORT,
    "uint16": ScalarType.USHORT,
    "int32": ScalarType.INT,
    "uint32": ScalarType.UINT,
    "float32": ScalarType.FLOAT,
    "float64": ScalarType.DOUBLE,
}


@dataclass
class PlyProperty:
    """A property of an element; a list property when ``count_type`` is set."""

    name: str
    scalar_type: ScalarType = ScalarType.FLOAT
    count_type: ScalarType | None = None

    @property
    def is_list(self) -> bool:
        return self.count_type is not None

    def header_line(self) -> str:
        if self.count_type is None:
            return f"property {self.scalar_type.value} {self.name}"
        return f"property list {self.count_type.value} {self.scalar_type.value} {self.name}"


@dataclass
class PlyElement:
    """An element declaration: its name, record count and properties."""

    name: str
    count: int = 0
    properties: list[PlyProperty] = field(default_factory=list)

    def property_names(self) -> list[str]:
        return [prop.name for prop in self.properties]


@dataclass
class PlyHeader:
    """Everything declared between ``ply`` and ``end_header``."""

    encoding: Encoding = Encoding.BINARY_LITTLE_ENDIAN
    version: str = "1.0"
    elements: list[PlyElement] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    obj_info: list[str] = field(default_factory=list)


def _line_text(stream: BinaryIO) -> str:
    raw = stream.readline()
    if not raw:
        raise ValueError("Unexpected end of PLY header")
    return raw.decode("latin-1").rstrip("\r\n")


def _rest_of_line(line: str, keyword: str) -> str:
    return line[len(keyword):].lstrip(" \t").rstrip()


def read_header(stream: BinaryIO) -> PlyHeader:
    """Parse a PLY header, leaving ``stream`` at the start of the element data."""
    if _line_text(stream).strip() != "ply":
        raise ValueError("Not a PLY file: missing 'ply' magic")

    header = PlyHeader()
    seen_format = False
    while True:
        line = _line_text(stream)
        words = line.split()
        if not words:
            continue
        keyword = words[0]
        if keyword == "end_header":
            break
        if keyword == "format":
            if len(words) != 3:
                raise ValueError(f"Invalid PLY format line: {line!r}")
            try:
                header.encoding = Encoding(words[1])
            except ValueError:
                raise ValueError(f"Unknown PLY encoding: {words[1]!r}") from None
            header.version = words[2]
            seen_format = True
        elif keyword == "comment":
            header.comments.append(_rest_of_line(line.lstrip(), "comment"))
        elif keyword == "obj_info":
            header.obj_info.append(_rest_of_line(line.lstrip(), "obj_info"))
        elif keyword == "element":
            if len(words) != 3:
                raise ValueError(f"Invalid PLY element line: {line!r}")
            try:
                count = int(words[2])
            except ValueError:
                raise ValueError(f"Invalid PLY element count: {words[2]!r}") from None
            header.elements.append(PlyElement(words[1], count))
        elif keyword == "property":
            if not header.elements:
                raise ValueError("PLY property declared before any element")
            if len(words) == 3:
                prop = PlyProperty(words[2], ScalarType.parse(words[1]))
            elif len(words) == 5 and words[1] == "list":
                prop = PlyProperty(
                    words[4], ScalarType.parse(words[3]), ScalarType.parse(words[2])
                )
            else:
                raise ValueError(f"Invalid PLY property line: {line!r}")
            header.elements[-1].properties.append(prop)
        else:
            raise ValueError(f"Unexpected line in PLY header: {line!r}")

    if not seen_format:
        raise ValueError("PLY header has no format line")
    return header


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("Unexpected end of PLY data")
    return data


def _read_binary_scalar(stream: BinaryIO, prefix: str, scalar: ScalarType) -> int | float:
    layout = struct.Struct(prefix + scalar.struct_code)
    (value,) = layout.unpack(_read_exact(stream, layout.size))
    return value


def _read_binary(stream: BinaryIO, prefix: str, element: PlyElement) -> dict[str, Value]:
    if not any(prop.is_list for prop in element.properties):
        layout = struct.Struct(
            prefix + "".join(prop.scalar_type.struct_code for prop in element.properties)
        )
        values = layout.unpack(_read_exact(stream, layout.size))
        return dict(zip(element.property_names(), values))

    record: dict[str, Value] = {}
    for prop in element.properties:
        if prop.count_type is None:
            record[prop.name] = _read_binary_scalar(stream, prefix, prop.scalar_type)
        else:
            count = int(_read_binary_scalar(stream, prefix, prop.count_type))
            layout = struct.Struct(prefix + prop.scalar_type.struct_code * count)
            record[prop.name] = layout.unpack(_read_exact(stream, layout.size))
    return record


def _parse_token(token: str, scalar: ScalarType) -> int | float:
    try:
        return float(token) if scalar.is_float else int(token)
    except ValueError:
        raise ValueError(f"Invalid {scalar.value} value in PLY data: {token!r}") from None


def _read_ascii(stream: BinaryIO, element: PlyElement) -> dict[str, Value]:
    raw = stream.readline()
    if not raw:
        raise EOFError("Unexpected end of PLY data")
    tokens = iter(raw.decode("latin-1").split())

    def take(scalar: ScalarType) -> int | float:
        token = next(tokens, None)
        if token is None:
            raise ValueError(f"Too few values for PLY element {element.name!r}")
        return _parse_token(token, scalar)

    record: dict[str, Value] = {}
    for prop in element.properties:
        if prop.count_type is None:
            record[prop.name] = take(prop.scalar_type)
        else:
            count = int(take(prop.count_type))
            record[prop.name] = tuple(take(prop.scalar_type) for _ in range(count))
    return record


def read_element(stream: BinaryIO, encoding: Encoding, element: PlyElement) -> dict[str, Value]:
    """Read one record of ``element``, mapping property names to values."""
    if encoding is Encoding.ASCII:
        return _read_ascii(stream, element)
    return _read_binary(stream, encoding.struct_prefix, element)


def _ascii_token(scalar: ScalarType, value: Any) -> str:
    return repr(float(value)) if scalar.is_float else str(int(value))


def _lookup(row: Mapping[str, Any], element: PlyElement, prop: PlyProperty) -> Any:
    try:
        return row[prop.name]
    except KeyError:
        raise ValueError(
            f"Missing value for property {prop.name!r} of element {element.name!r}"
        ) from None


def _encode_row(
    encoding: Encoding, element: PlyElement, row: Mapping[str, Any]
) -> bytes:
    if encoding is Encoding.ASCII:
        tokens: list[str] = []
        for prop in element.properties:
            value = _lookup(row, element, prop)
            if prop.count_type is None:
                tokens.append(_ascii_token(prop.scalar_type, value))
            else:
                items = list(value)
                tokens.append(str(len(items)))
                tokens.extend(_ascii_token(prop.scalar_type, item) for item in items)
        return (" ".join(tokens) + "\n").encode("ascii")

    prefix = encoding.struct_prefix
    codes: list[str] = []
    values: list[int | float] = []
    for prop in element.properties:
        value = _lookup(row, element, prop)
        if prop.count_type is None:
            codes.append(prop.scalar_type.struct_code)
            values.append(prop.scalar_type.coerce(value))
        else:
            items = [prop.scalar_type.coerce(item) for item in value]
            codes.append(prop.count_type.struct_code)
            values.append(len(items))
            codes.append(prop.scalar_type.struct_code * len(items))
            values.extend(items)
    return struct.pack(prefix + "".join(codes), *values)


def write_ply(header: PlyHeader, rows: Mapping[str, Iterable[Mapping[str, Any]]]) -> bytes:
    """Serialise a PLY file.

    ``rows`` maps element names to their records; each element's count in
    the written header is the number of records given for it.
    """
    bodies: list[tuple[PlyElement, list[Mapping[str, Any]]]] = [
        (element, list(rows.get(element.name, ()))) for element in header.elements
    ]

    lines = ["ply", f"format {header.encoding.value} {header.version}"]
    lines.extend(f"comment {comment}" for comment in header.comments)
    lines.extend(f"obj_info {info}" for info in header.obj_info)
    for element, element_rows in bodies:
        lines.append(f"element {element.name} {len(element_rows)}")
        lines.extend(prop.header_line() for prop in element.properties)
    lines.append("end_header")

    out = bytearray(("\n".join(lines) + "\n").encode("latin-1"))
    for element, element_rows in bodies:
        for row in element_rows:
            out += _encode_row(header.encoding, element, row)
    return bytes(out)