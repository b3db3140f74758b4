"""Loading Gaussian splats, including animated delta frames, from PLY data."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Optional, Sequence

import numpy as np

from brushsplat.ply import Encoding, PlyElement, PlyHeader, ScalarType, read_element, read_header

__all__ = [
    "GaussianData",
    "SplatData",
    "SplatMetadata",
    "SplatMessage",
    "interleave_coeffs",
    "load_splat_from_ply",
]

log = logging.getLogger(__name__)

_SH_C0 = 0.28209479177387814
_REST_PREFIX = "f_rest_"

# Property name -> (attribute, index). Rotations are stored as (w, x, y, z).
_SLOTS: dict[str, tuple[str, int]] = {
    "x": ("means", 0),
    "y": ("means", 1),
    "z": ("means", 2),
    "scale_0": ("log_scale", 0),
    "scale_1": ("log_scale", 1),
    "scale_2": ("log_scale", 2),
    "rot_0": ("rotation", 0),
    "rot_1": ("rotation", 1),
    "rot_2": ("rotation", 2),
    "rot_3": ("rotation", 3),
    "f_dc_0": ("sh_dc", 0),
    "f_dc_1": ("sh_dc", 1),
    "f_dc_2": ("sh_dc", 2),
}
_COLOR_CHANNELS = {"red": 0, "green": 1, "blue": 2}

_AXES = {
    "x": (1.0, 0.0, 0.0),
    "y": (0.0, -1.0, 0.0),
    "z": (0.0, 0.0, 1.0),
}


def _rgb_to_sh(value: float) -> float:
    return (value - 0.5) / _SH_C0


def _rest_index(key: str) -> Optional[int]:
    if not key.startswith(_REST_PREFIX):
        return None
    digits = key[len(_REST_PREFIX):]
    unsigned = digits[1:] if digits.startswith("+") else digits
    if not unsigned or not (unsigned.isascii() and unsigned.isdigit()):
        return None
    return int(unsigned)


@dataclass
class GaussianData:
    """A single splat as stored in a PLY record.

    ``sh_coeffs_rest`` is channel-major: all red coefficients, then green, then blue.
    """

    means: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    log_scale: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    opacity: float = 0.0
    rotation: list[float] = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    sh_dc: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    sh_coeffs_rest: list[float] = field(default_factory=list)

    def set_property(self, key: str, value: float) -> None:
        """Store a normalised property value under its PLY name."""
        value = float(value)
        if not math.isfinite(value):
            log.warning("Invalid numbers in imported splat, defaulting to 0")
            value = 0.0

        if key == "opacity":
            self.opacity = value
        elif key in _SLOTS:
            attr, index = _SLOTS[key]
            getattr(self, attr)[index] = value
        elif key in _COLOR_CHANNELS:
            self.sh_dc[_COLOR_CHANNELS[key]] = _rgb_to_sh(value)
        else:
            index = _rest_index(key)
            if index is None:
                return
            if index >= len(self.sh_coeffs_rest):
                self.sh_coeffs_rest.extend([0.0] * (index + 1 - len(self.sh_coeffs_rest)))
            self.sh_coeffs_rest[index] = value

    def get_float(self, key: str) -> Optional[float]:
        """The value of a PLY property, or None if this splat has no such property."""
        if key == "opacity":
            return self.opacity
        if key in _SLOTS:
            attr, index = _SLOTS[key]
            return getattr(self, attr)[index]
        index = _rest_index(key)
        if index is None or index >= len(self.sh_coeffs_rest):
            return None
        return self.sh_coeffs_rest[index]


@dataclass(eq=False)
class SplatData:
    """A set of splats as arrays; optional attributes are None when not provided.

    Shapes: means (N, 3), rotation (N, 4) as (w, x, y, z), log_scales (N, 3),
    sh_coeffs (N, coeffs, 3), raw_opacity (N,).
    """

    means: np.ndarray
    rotation: Optional[np.ndarray] = None
    log_scales: Optional[np.ndarray] = None
    sh_coeffs: Optional[np.ndarray] = None
    raw_opacity: Optional[np.ndarray] = None

    @property
    def num_splats(self) -> int:
        return int(self.means.shape[0])

    @property
    def sh_degree(self) -> int:
        if self.sh_coeffs is None:
            return 0
        return math.isqrt(int(self.sh_coeffs.shape[1])) - 1

    def with_normed_rotations(self) -> SplatData:
        """A copy whose rotation quaternions have unit length."""
        if self.rotation is None:
            return self
        rotation = np.asarray(self.rotation, dtype=np.float32)
        norms = np.linalg.norm(rotation, axis=1, keepdims=True)
        norms = np.where(norms == 0.0, 1.0, norms)
        return SplatData(
            means=self.means,
            rotation=(rotation / norms).astype(np.float32),
            log_scales=self.log_scales,
            sh_coeffs=self.sh_coeffs,
            raw_opacity=self.raw_opacity,
        )


@dataclass(frozen=True)
class SplatMetadata:
    """Progress information accompanying a loaded splat."""

    up_axis: Optional[tuple[float, float, float]]
    total_splats: int
    frame_count: int
    current_frame: int


@dataclass(frozen=True)
class SplatMessage:
    """A (possibly partial) splat together with its metadata."""

    meta: SplatMetadata
    splats: SplatData


@dataclass
class _QuantMeta:
    mean: np.ndarray
    rotation: np.ndarray
    scale: np.ndarray


def interleave_coeffs(sh_dc: Sequence[float], sh_rest: Sequence[float]) -> list[float]:
    """Turn channel-major coefficients into coefficient-major (r, g, b) triples."""
    channels = 3
    per_channel = len(sh_rest) // channels
    result = list(sh_dc)
    for i in range(per_channel):
        result.extend(sh_rest[j * per_channel + i] for j in range(channels))
    return result


def _property_value(scalar: ScalarType, raw) -> Optional[float]:
    if scalar is ScalarType.FLOAT:
        return float(raw)
    if scalar is ScalarType.UCHAR:
        return raw / 255.0
    if scalar is ScalarType.USHORT:
        return raw / 65535.0
    return None


def _decode_splat(stream: BinaryIO, encoding: Encoding, element: PlyElement) -> GaussianData:
    record = read_element(stream, encoding, element)
    splat = GaussianData()
    for prop in element.properties:
        if prop.is_list:
            continue
        value = _property_value(prop.scalar_type, record[prop.name])
        if value is not None:
            splat.set_property(prop.name, value)
    return splat


def _stack(rows: Optional[list], width: int) -> Optional[np.ndarray]:
    if rows is None:
        return None
    return np.asarray(rows, dtype=np.float32).reshape(len(rows), width)


def _build_splats(means, rotations, log_scales, sh_coeffs, opacity) -> SplatData:
    if sh_coeffs is None:
        sh = None
    elif not sh_coeffs:
        sh = np.zeros((0, 1, 3), dtype=np.float32)
    else:
        sh = np.stack([np.asarray(row, dtype=np.float32).reshape(-1, 3) for row in sh_coeffs])
    return SplatData(
        means=_stack(means, 3),
        rotation=_stack(rotations, 4),
        log_scales=_stack(log_scales, 3),
        sh_coeffs=sh,
        raw_opacity=None if opacity is None else np.asarray(opacity, dtype=np.float32).reshape(-1),
    )


def _normalized_rotation(rotation: Sequence[float]) -> list[float]:
    vec = np.asarray(rotation, dtype=np.float64)
    length = float(np.linalg.norm(vec))
    if length == 0.0 or not math.isfinite(length) or not math.isfinite(1.0 / length):
        return [1.0, 0.0, 0.0, 0.0]
    return list(vec / length)


def _add_delta(delta: Optional[list], base: Optional[np.ndarray], count: int, width: int):
    if delta is None:
        return base
    values = np.asarray(delta, dtype=np.float32).reshape(count, width)
    if base is None:
        return values
    return values + base


def _up_axis(header: PlyHeader) -> Optional[tuple[float, float, float]]:
    up = None
    prefix = "vertical axis: "
    for comment in header.comments:
        lowered = comment.lower()
        if lowered.startswith(prefix) and lowered[len(prefix):] in _AXES:
            up = _AXES[lowered[len(prefix):]]
    return up


def load_splat_from_ply(
    stream: BinaryIO, subsample_points: Optional[int] = None
) -> Iterator[SplatMessage]:
    """Yield splats read from a PLY stream.

    Partial splats are yielded while the base vertices load, then the full
    splat, then one animated splat per ``delta_vertex_*`` element.
    """
    if subsample_points is not None and subsample_points <= 0:
        raise ValueError("subsample_points must be positive")

    header = read_header(stream)
    encoding = header.encoding
    up_axis = _up_axis(header)
    frame_count = sum(1 for e in header.elements if e.name.startswith("delta_vertex_"))

    final_splat: Optional[SplatData] = None
    frame = 0
    meta_min = _QuantMeta(np.zeros(3), np.zeros(4), np.zeros(3))
    meta_max = _QuantMeta(np.ones(3), np.ones(4), np.ones(3))

    def message(total: int, splats: SplatData) -> SplatMessage:
        meta = SplatMetadata(up_axis, total, frame_count, frame)
        return SplatMessage(meta, splats)

    for element in header.elements:
        names = set(element.property_names())
        means: list = []
        log_scales: Optional[list] = [] if "scale_0" in names else None
        rotations: Optional[list] = [] if "rot_0" in names else None
        sh_coeffs: Optional[list] = [] if ("f_dc_0" in names or "red" in names) else None
        opacity: Optional[list] = [] if "opacity" in names else None

        if element.name == "vertex":
            if any(p not in names for p in ("x", "y", "z")):
                raise ValueError("Invalid splat ply. Missing properties!")

            update_every = -(-element.count // 25)
            for i in range(element.count):
                if i % update_every == update_every - 1:
                    partial = _build_splats(means, rotations, log_scales, sh_coeffs, opacity)
                    yield message(element.count, partial)

                splat = _decode_splat(stream, encoding, element)
                if subsample_points is not None and i % subsample_points != 0:
                    continue

                means.append(splat.means)
                if log_scales is not None:
                    log_scales.append(splat.log_scale)
                if rotations is not None:
                    rotations.append(_normalized_rotation(splat.rotation))
                if opacity is not None:
                    opacity.append(splat.opacity)
                if sh_coeffs is not None:
                    sh_coeffs.append(interleave_coeffs(splat.sh_dc, splat.sh_coeffs_rest))

            final_splat = _build_splats(means, rotations, log_scales, sh_coeffs, opacity)
            yield message(element.count, final_splat)
        elif element.name.startswith("meta_delta_min_"):
            splat = _decode_splat(stream, encoding, element)
            meta_min = _QuantMeta(
                np.asarray(splat.means), np.asarray(splat.rotation), np.asarray(splat.log_scale)
            )
        elif element.name.startswith("meta_delta_max_"):
            splat = _decode_splat(stream, encoding, element)
            meta_max = _QuantMeta(
                np.asarray(splat.means), np.asarray(splat.rotation), np.asarray(splat.log_scale)
            )
        elif element.name.startswith("delta_vertex_"):
            if final_splat is None:
                raise ValueError("Need to read base splat first.")

            for _ in range(element.count):
                enc = _decode_splat(stream, encoding, element)
                means.append(
                    np.asarray(enc.means) * (meta_max.mean - meta_min.mean) + meta_min.mean
                )
                if rotations is not None:
                    rotations.append(
                        np.asarray(enc.rotation) * (meta_max.rotation - meta_min.rotation)
                        + meta_min.rotation
                    )
                if log_scales is not None:
                    log_scales.append(
                        np.asarray(enc.log_scale) * (meta_max.scale - meta_min.scale)
                        + meta_min.scale
                    )

            count = final_splat.num_splats
            animated = SplatData(
                means=np.asarray(means, dtype=np.float32).reshape(count, 3) + final_splat.means,
                rotation=_add_delta(rotations, final_splat.rotation, count, 4),
                log_scales=_add_delta(log_scales, final_splat.log_scales, count, 3),
                sh_coeffs=final_splat.sh_coeffs,
                raw_opacity=final_splat.raw_opacity,
            ).with_normed_rotations()
            yield message(element.count, animated)
            frame += 1
        else:
            for _ in range(element.count):
                read_element(stream, encoding, element)