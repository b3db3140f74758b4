"""Serialising splats to a binary PLY file."""

from __future__ import annotations

from typing import Iterator

import numpy as np

from brushsplat.ply import Encoding, PlyElement, PlyHeader, PlyProperty, ScalarType, write_ply
from brushsplat.splat_import import GaussianData, SplatData

__all__ = ["splat_to_ply"]

_BASE_PROPERTIES = [
    "x", "y", "z", "scale_0", "scale_1", "scale_2", "opacity",
    "rot_0", "rot_1", "rot_2", "rot_3", "f_dc_0", "f_dc_1", "f_dc_2",
]

_COMMENTS = ["Generated splats", "Vertical axis: y"]


def _gaussians(splats: SplatData) -> Iterator[GaussianData]:
    # Inria layout: [splat, channel, coeff].
    per_channel = np.asarray(splats.sh_coeffs, dtype=np.float32).transpose(0, 2, 1)
    for i in range(splats.num_splats):
        channels = per_channel[i]
        yield GaussianData(
            means=[float(v) for v in splats.means[i]],
            log_scale=[float(v) for v in splats.log_scales[i]],
            opacity=float(splats.raw_opacity[i]),
            rotation=[float(v) for v in splats.rotation[i]],
            sh_dc=[float(channels[c, 0]) for c in range(3)],
            sh_coeffs_rest=[float(v) for c in range(3) for v in channels[c, 1:]],
        )


def splat_to_ply(splats: SplatData) -> bytes:
    """Encode splats as a binary little-endian PLY file."""
    missing = [
        name
        for name in ("rotation", "log_scales", "sh_coeffs", "raw_opacity")
        if getattr(splats, name) is None
    ]
    if missing:
        raise ValueError(f"Failed to read data from splat: missing {', '.join(missing)}")

    splats = splats.with_normed_rotations()
    sh_coeffs_rest = (int(np.asarray(splats.sh_coeffs).shape[1]) - 1) * 3
    names = _BASE_PROPERTIES + [f"f_rest_{i}" for i in range(sh_coeffs_rest)]

    vertex = PlyElement(
        "vertex",
        splats.num_splats,
        [PlyProperty(name, ScalarType.FLOAT) for name in names],
    )
    header = PlyHeader(
        encoding=Encoding.BINARY_LITTLE_ENDIAN,
        elements=[vertex],
        comments=list(_COMMENTS),
    )
    rows = [{name: g.get_float(name) for name in names} for g in _gaussians(splats)]
    return write_ply(header, {"vertex": rows})