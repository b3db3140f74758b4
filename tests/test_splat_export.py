import io

import numpy as np
import pytest

from brushsplat.ply import read_element, read_header
from brushsplat.splat_export import splat_to_ply
from brushsplat.splat_import import SplatData, load_splat_from_ply


def _splats(count=2, coeffs=4):
    rng = np.random.default_rng(7)
    return SplatData(
        means=rng.normal(size=(count, 3)).astype(np.float32),
        rotation=rng.normal(size=(count, 4)).astype(np.float32),
        log_scales=rng.normal(size=(count, 3)).astype(np.float32),
        sh_coeffs=rng.normal(size=(count, coeffs, 3)).astype(np.float32),
        raw_opacity=rng.normal(size=(count,)).astype(np.float32),
    )


def test_header_prefix():
    data = splat_to_ply(_splats())
    assert data.startswith(
        b"ply\nformat binary_little_endian 1.0\n"
        b"comment Generated splats\ncomment Vertical axis: y\n"
        b"element vertex 2\nproperty float x\n"
    )


def test_property_names_and_size():
    data = splat_to_ply(_splats(count=3, coeffs=4))
    stream = io.BytesIO(data)
    header = read_header(stream)
    names = header.elements[0].property_names()
    assert names[:3] == ["x", "y", "z"]
    assert names[-1] == "f_rest_8"
    assert "f_rest_9" not in names
    remaining = stream.read()
    assert len(remaining) == 3 * len(names) * 4


def test_rotation_normalised_in_output():
    splats = _splats(count=1, coeffs=1)
    splats.rotation = np.array([[2.0, 0.0, 0.0, 0.0]], np.float32)
    stream = io.BytesIO(splat_to_ply(splats))
    header = read_header(stream)
    record = read_element(stream, header.encoding, header.elements[0])
    assert record["rot_0"] == 1.0
    assert record["rot_1"] == 0.0


def test_roundtrip_through_import():
    splats = _splats(count=5, coeffs=9)
    messages = list(load_splat_from_ply(io.BytesIO(splat_to_ply(splats))))
    loaded = messages[-1].splats
    normed = splats.with_normed_rotations()
    np.testing.assert_allclose(loaded.means, splats.means, rtol=1e-6)
    np.testing.assert_allclose(loaded.log_scales, splats.log_scales, rtol=1e-6)
    np.testing.assert_allclose(loaded.raw_opacity, splats.raw_opacity, rtol=1e-6)
    np.testing.assert_allclose(loaded.rotation, normed.rotation, rtol=1e-5, atol=1e-6)
    np.testing.assert_allclose(loaded.sh_coeffs, splats.sh_coeffs, rtol=1e-6)
    assert messages[-1].meta.up_axis == (0.0, -1.0, 0.0)


def test_missing_attributes_rejected():
    splats = SplatData(means=np.zeros((1, 3), np.float32))
    with pytest.raises(ValueError, match="missing"):
        splat_to_ply(splats)


def test_empty_splats():
    data = splat_to_ply(_splats(count=0, coeffs=1))
    header = read_header(io.BytesIO(data))
    assert header.elements[0].count == 0
    assert len(header.elements[0].properties) == 14