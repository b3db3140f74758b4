import io
import struct

import pytest

from brushsplat.ply import (
    Encoding,
    PlyElement,
    PlyHeader,
    PlyProperty,
    ScalarType,
    read_element,
    read_header,
    write_ply,
)


def _vertex_header(encoding):
    vertex = PlyElement(
        "vertex",
        properties=[
            PlyProperty("x", ScalarType.FLOAT),
            PlyProperty("y", ScalarType.FLOAT),
            PlyProperty("red", ScalarType.UCHAR),
            PlyProperty("level", ScalarType.USHORT),
            PlyProperty("weight", ScalarType.DOUBLE),
        ],
    )
    return PlyHeader(
        encoding=encoding,
        elements=[vertex],
        comments=["Generated splats", "Vertical axis: y"],
    )


ROWS = [
    {"x": 0.5, "y": -2.25, "red": 255, "level": 1000, "weight": 0.125},
    {"x": 3.0, "y": 0.0, "red": 0, "level": 65535, "weight": -7.5},
]


def _read_all(data):
    stream = io.BytesIO(data)
    header = read_header(stream)
    records = {
        element.name: [read_element(stream, header.encoding, element) for _ in range(element.count)]
        for element in header.elements
    }
    return header, records, stream


@pytest.mark.parametrize("encoding", list(Encoding))
def test_round_trip_every_encoding(encoding):
    data = write_ply(_vertex_header(encoding), {"vertex": ROWS})
    header, records, stream = _read_all(data)
    assert header.encoding is encoding
    assert header.comments == ["Generated splats", "Vertical axis: y"]
    assert header.elements[0].count == len(ROWS)
    assert records["vertex"] == ROWS
    assert stream.read() == b""


def test_header_text_is_canonical():
    data = write_ply(_vertex_header(Encoding.BINARY_LITTLE_ENDIAN), {"vertex": ROWS})
    assert data.startswith(b"ply\nformat binary_little_endian 1.0\ncomment Generated splats\n")
    assert b"element vertex 2\nproperty float x\n" in data
    assert b"property uchar red\n" in data


@pytest.mark.parametrize(
    "encoding, expected",
    [
        (Encoding.BINARY_LITTLE_ENDIAN, b"\x00\x00\x80\x3f"),
        (Encoding.BINARY_BIG_ENDIAN, b"\x3f\x80\x00\x00"),
    ],
)
def test_binary_float_layout(encoding, expected):
    header = PlyHeader(encoding=encoding, elements=[PlyElement("v", properties=[PlyProperty("x")])])
    data = write_ply(header, {"v": [{"x": 1.0}]})
    assert data.endswith(b"end_header\n" + expected)


def test_list_property_round_trip():
    face = PlyElement(
        "face",
        properties=[PlyProperty("vertex_indices", ScalarType.INT, ScalarType.UCHAR)],
    )
    rows = [{"vertex_indices": (0, 1, 2)}, {"vertex_indices": (3, 4, 5, 6)}]
    for encoding in Encoding:
        header = PlyHeader(encoding=encoding, elements=[face])
        data = write_ply(header, {"face": rows})
        assert b"property list uchar int vertex_indices" in data
        _, records, _ = _read_all(data)
        assert records["face"] == rows


def test_read_ascii_document():
    text = (
        b"ply\r\n"
        b"format ascii 1.0\r\n"
        b"comment Vertical axis: z\r\n"
        b"obj_info made up\r\n"
        b"element vertex 2\r\n"
        b"property float32 x\r\n"
        b"property uint8 red\r\n"
        b"end_header\r\n"
        b"1.5 7\r\n"
        b"-4 200\r\n"
    )
    header, records, _ = _read_all(text)
    assert header.comments == ["Vertical axis: z"]
    assert header.obj_info == ["made up"]
    assert header.elements[0].properties[0].scalar_type is ScalarType.FLOAT
    assert header.elements[0].properties[1].scalar_type is ScalarType.UCHAR
    assert records["vertex"] == [{"x": 1.5, "red": 7}, {"x": -4.0, "red": 200}]


def test_multiple_elements_keep_order():
    header = PlyHeader(
        encoding=Encoding.BINARY_LITTLE_ENDIAN,
        elements=[
            PlyElement("vertex", properties=[PlyProperty("x")]),
            PlyElement("meta_delta_min_0", properties=[PlyProperty("x")]),
        ],
    )
    data = write_ply(header, {"vertex": [{"x": 1.0}, {"x": 2.0}], "meta_delta_min_0": [{"x": -1.0}]})
    parsed, records, _ = _read_all(data)
    assert [e.name for e in parsed.elements] == ["vertex", "meta_delta_min_0"]
    assert records["meta_delta_min_0"] == [{"x": -1.0}]


def test_missing_rows_give_zero_count():
    header = _vertex_header(Encoding.ASCII)
    parsed, records, _ = _read_all(write_ply(header, {}))
    assert parsed.elements[0].count == 0
    assert records["vertex"] == []


def test_bad_magic_rejected():
    with pytest.raises(ValueError):
        read_header(io.BytesIO(b"notply\nend_header\n"))


def test_unknown_encoding_rejected():
    with pytest.raises(ValueError):
        read_header(io.BytesIO(b"ply\nformat binary_middle_endian 1.0\nend_header\n"))


def test_missing_format_rejected():
    with pytest.raises(ValueError):
        read_header(io.BytesIO(b"ply\nelement vertex 1\nproperty float x\nend_header\n"))


def test_property_before_element_rejected():
    with pytest.raises(ValueError):
        read_header(io.BytesIO(b"ply\nformat ascii 1.0\nproperty float x\nend_header\n"))


def test_unknown_scalar_rejected():
    with pytest.raises(ValueError):
        ScalarType.parse("quad")


def test_truncated_header_rejected():
    with pytest.raises(ValueError):
        read_header(io.BytesIO(b"ply\nformat ascii 1.0\nelement vertex 1\n"))


def test_truncated_binary_data():
    element = PlyElement("v", properties=[PlyProperty("x"), PlyProperty("y")])
    with pytest.raises(EOFError):
        read_element(io.BytesIO(struct.pack("<f", 1.0)), Encoding.BINARY_LITTLE_ENDIAN, element)


def test_ascii_too_few_values():
    element = PlyElement("v", properties=[PlyProperty("x"), PlyProperty("y")])
    with pytest.raises(ValueError):
        read_element(io.BytesIO(b"1.0\n"), Encoding.ASCII, element)


def test_ascii_end_of_data():
    element = PlyElement("v", properties=[PlyProperty("x")])
    with pytest.raises(EOFError):
        read_element(io.BytesIO(b""), Encoding.ASCII, element)


def test_write_missing_property_rejected():
    header = PlyHeader(elements=[PlyElement("v", properties=[PlyProperty("x"), PlyProperty("y")])])
    with pytest.raises(ValueError):
        write_ply(header, {"v": [{"x": 1.0}]})