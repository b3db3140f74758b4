"""Orbit, pan, fly and roll controls for a viewer camera."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

__all__ = ["ControlInput", "CameraController", "smooth_orbit", "exp_lerp"]

# Quaternions are numpy arrays ordered (w, x, y, z).
_IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])
_X = np.array([1.0, 0.0, 0.0])
_Y = np.array([0.0, 1.0, 0.0])
_Z = np.array([0.0, 0.0, 1.0])

_MOUSELOOK_SPEED = 0.002
_FLY_MOMENT_LAMBDA = 0.8
_SCROLL_SPEED = 0.001
_MIN_FOCUS_DISTANCE = 0.01


def _qmul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    w1, x1, y1, z1 = a
    w2, x2, y2, z2 = b
    return np.array(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ]
    )


def _rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    w = q[0]
    u = q[1:]
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def _axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    half = 0.5 * angle
    return np.concatenate(([math.cos(half)], np.asarray(axis, dtype=float) * math.sin(half)))


def _inverse(q: np.ndarray) -> np.ndarray:
    return np.array([q[0], -q[1], -q[2], -q[3]])


def _normalize(q: np.ndarray) -> np.ndarray:
    return q / np.linalg.norm(q)


def _to_matrix(q: np.ndarray) -> np.ndarray:
    w, x, y, z = q
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def smooth_orbit(position, rotation, base_roll, delta_yaw, delta_pitch, distance):
    """Orbit around the point ``distance`` in front of the camera.

    Yaw turns about the rolled world up axis, pitch about the camera's own
    right axis. Returns the new ``(position, rotation)``.
    """
    position = np.asarray(position, dtype=float)
    rotation = np.asarray(rotation, dtype=float)
    base_roll = np.asarray(base_roll, dtype=float)

    focal_point = position + _rotate(rotation, _Z) * distance
    pitch = _axis_angle(_rotate(rotation, _X), -delta_pitch)
    yaw = _axis_angle(_rotate(base_roll, -_Y), -delta_yaw)
    new_rotation = _normalize(_qmul(_qmul(yaw, pitch), rotation))
    new_position = focal_point - _rotate(new_rotation, _Z) * distance
    return new_position, new_rotation


def exp_lerp(a, b, dt, lam):
    """Move ``a`` towards ``b`` with exponential decay rate ``lam`` over ``dt``."""
    factor = math.exp(-lam * dt)
    return np.asarray(a, dtype=float) * factor + np.asarray(b, dtype=float) * (1.0 - factor)


@dataclass(frozen=True)
class ControlInput:
    """The input state of one frame.

    ``keys_down`` holds lower-case key names: letters such as ``"w"``,
    ``"space"`` and the arrows ``"arrow_up"``, ``"arrow_down"``,
    ``"arrow_left"``, ``"arrow_right"``.
    """

    predicted_dt: float = 0.0
    drag_delta: tuple[float, float] = (0.0, 0.0)
    rect_size: tuple[float, float] = (1.0, 1.0)
    primary_dragged: bool = False
    secondary_dragged: bool = False
    middle_dragged: bool = False
    hovered: bool = False
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    keys_down: frozenset = field(default_factory=frozenset)
    scroll_delta: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys_down", frozenset(k.lower() for k in self.keys_down))

    def pressed(self, *keys: str) -> bool:
        return any(key in self.keys_down for key in keys)


class CameraController:
    """A camera that can orbit, pan, look around, fly and roll."""

    def __init__(self, start_focus_distance: float) -> None:
        self.position = -_Z * start_focus_distance
        self.rotation = _IDENTITY.copy()
        self.focus_distance = float(start_focus_distance)
        self._roll = _IDENTITY.copy()
        self._fly_velocity = np.zeros(3)
        self._orbit_velocity = np.zeros(2)

    def _fly_towards(self, direction: np.ndarray, speed: float, dt: float) -> None:
        self._fly_velocity = exp_lerp(
            self._fly_velocity, direction * speed, dt, _FLY_MOMENT_LAMBDA
        )

    def tick(self, controls: ControlInput) -> Optional[str]:
        """Advance the camera by one frame.

        Returns the cursor to show: ``"move"``, ``"crosshair"``,
        ``"pointing_hand"``, or None when the pointer is elsewhere.
        """
        dt = controls.predicted_dt
        lmb = controls.primary_dragged
        look_pan = controls.middle_dragged or (lmb and controls.ctrl)
        look_fps = controls.secondary_dragged or (lmb and controls.pressed("space"))
        look_orbit = lmb

        right = _rotate(self.rotation, _X)
        up = _rotate(self.rotation, -_Y)
        forward = _rotate(self.rotation, _Z)

        cursor: Optional[str] = None
        if controls.hovered:
            if controls.ctrl:
                cursor = "move"
            elif controls.pressed("space"):
                cursor = "crosshair"
            else:
                cursor = "pointing_hand"

        dx, dy = controls.drag_delta
        if look_pan:
            drag_mult = self.focus_distance / max(controls.rect_size)
            self.position = self.position - right * dx * drag_mult + up * dy * drag_mult
            cursor = "move"
        elif look_fps:
            yaw = _axis_angle(_rotate(self._roll, -_Y), -dx * _MOUSELOOK_SPEED)
            pitch = _axis_angle(_X, -dy * _MOUSELOOK_SPEED)
            self.rotation = _qmul(_qmul(yaw, self.rotation), pitch)
            cursor = "crosshair"
        elif look_orbit:
            self._orbit_velocity = np.array([dx * _MOUSELOOK_SPEED, dy * _MOUSELOOK_SPEED])
            cursor = "pointing_hand"

        self.position, self.rotation = smooth_orbit(
            self.position,
            self.rotation,
            self._roll,
            self._orbit_velocity[0],
            self._orbit_velocity[1],
            self.focus_distance,
        )

        move_speed = 30.0 * (4.0 if controls.shift else 1.0)

        if controls.pressed("w", "arrow_up"):
            self._fly_towards(_Z, move_speed, dt)
        if controls.pressed("a", "arrow_left"):
            self._fly_towards(-_X, move_speed, dt)
        if controls.pressed("s", "arrow_down"):
            self._fly_towards(-_Z, move_speed, dt)
        if controls.pressed("d", "arrow_right"):
            self._fly_towards(_X, move_speed, dt)

        if not controls.alt:
            if controls.pressed("q"):
                self._fly_towards(-_Y, move_speed, dt)
            if controls.pressed("e"):
                self._fly_towards(_Y, move_speed, dt)

        if controls.pressed("z"):
            roll = _axis_angle(forward, move_speed * 0.025 * dt)
            self.rotation = _qmul(roll, self.rotation)
            self._roll = _qmul(roll, self._roll)
        if controls.pressed("x"):
            self.rotation = _qmul(_inverse(self._roll), self.rotation)
            self._roll = _IDENTITY.copy()
        if controls.pressed("c"):
            roll = _axis_angle(forward, -move_speed * 0.025 * dt)
            self.rotation = _qmul(roll, self.rotation)
            self._roll = _qmul(roll, self._roll)

        delta = self._fly_velocity * dt
        self.position = self.position + delta[0] * right + delta[1] * up + delta[2] * forward

        self._orbit_velocity = exp_lerp(self._orbit_velocity, np.zeros(2), dt, 8.0)
        self._fly_velocity = exp_lerp(self._fly_velocity, np.zeros(3), dt, 7.0)

        view_dir = _rotate(self.rotation, _Z)
        old_pivot = self.position + view_dir * self.focus_distance
        self.focus_distance -= controls.scroll_delta * _SCROLL_SPEED * self.focus_distance
        self.focus_distance = max(self.focus_distance, _MIN_FOCUS_DISTANCE)
        self.position = old_pivot - view_dir * self.focus_distance

        return cursor

    def local_to_world(self) -> np.ndarray:
        """The camera transform as a 4x4 matrix."""
        matrix = np.eye(4)
        matrix[:3, :3] = _to_matrix(self.rotation)
        matrix[:3, 3] = self.position
        return matrix

    def stop_movement(self) -> None:
        """Cancel any remaining orbit or fly momentum."""
        self._orbit_velocity = np.zeros(2)
        self._fly_velocity = np.zeros(3)