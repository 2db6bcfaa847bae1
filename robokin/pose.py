"""Rigid-body pose representation and rotation helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


def rot_x(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def rot_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def rot_z(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def orientation_matrix(yaw: float, pitch: float, roll: float) -> np.ndarray:
    """Rotation from yaw (Z), pitch (Y), roll (X), composed as ``Rz @ Ry @ Rx``."""

    return rot_z(yaw) @ rot_y(pitch) @ rot_x(roll)


def euler_from_matrix(R: np.ndarray, tol: float = 1e-9) -> Tuple[float, float, float]:
    """Inverse of :func:`orientation_matrix`: return ``(yaw, pitch, roll)``.

    Entries smaller than ``tol`` are snapped to zero first so that exact
    axis-aligned rotations come back without ``-0.0`` sign flips.
    """

    R = np.where(np.abs(R) < tol, 0.0, np.asarray(R, dtype=float))
    pitch = float(np.arcsin(np.clip(-R[2, 0], -1.0, 1.0)))
    roll = float(np.arctan2(R[2, 1], R[2, 2]))
    yaw = float(np.arctan2(R[1, 0], R[0, 0]))
    return yaw, pitch, roll


def skew(w: np.ndarray) -> np.ndarray:
    """Cross-product matrix ``[w]x``."""

    wx, wy, wz = np.asarray(w, dtype=float)
    return np.array([[0.0, -wz, wy], [wz, 0.0, -wx], [-wy, wx, 0.0]])


def integrate_rotation(R: np.ndarray, w: np.ndarray, dt: float) -> np.ndarray:
    """First-order world-frame update ``(I + [w]x dt) R``.

    The result drifts away from SO(3); callers re-project periodically with
    :func:`orthonormalize`.
    """

    return (np.eye(3) + skew(w) * dt) @ R


def orthonormalize(R: np.ndarray) -> np.ndarray:
    """Project a near-rotation onto the closest orthonormal matrix (``U @ Vt``)."""

    U, _, Vt = np.linalg.svd(R)
    return U @ Vt


def orthonormality_error(R: np.ndarray) -> float:
    """Frobenius norm of ``R^T R - I``."""

    return float(np.linalg.norm(R.T @ R - np.eye(3)))


def orientation_error(R_current: np.ndarray, R_ref: np.ndarray) -> np.ndarray:
    """Cross-product orientation error ``0.5 * sum(axis_cur x axis_ref)``."""

    return 0.5 * (
        np.cross(R_current[:, 0], R_ref[:, 0])
        + np.cross(R_current[:, 1], R_ref[:, 1])
        + np.cross(R_current[:, 2], R_ref[:, 2])
    )


@dataclass
class Pose:
    """Position plus 3x3 rotation. Orthonormality is not enforced here."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=float).reshape(3)
        self.rotation = np.array(self.rotation, dtype=float).reshape(3, 3)

    @classmethod
    def identity(cls) -> "Pose":
        return cls()

    @classmethod
    def from_homogeneous(cls, T: np.ndarray) -> "Pose":
        return cls(position=T[:3, 3], rotation=T[:3, :3])

    @classmethod
    def from_components(
        cls, x: float, y: float, z: float, yaw: float, pitch: float, roll: float
    ) -> "Pose":
        return cls(position=np.array([x, y, z], dtype=float), rotation=orientation_matrix(yaw, pitch, roll))

    def to_homogeneous(self) -> np.ndarray:
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.position
        return T

    @property
    def x_axis(self) -> np.ndarray:
        return self.rotation[:, 0].copy()

    @property
    def y_axis(self) -> np.ndarray:
        return self.rotation[:, 1].copy()

    @property
    def z_axis(self) -> np.ndarray:
        """Approach axis; for joint frames this is the joint axis."""
        return self.rotation[:, 2].copy()

    def euler(self) -> Tuple[float, float, float]:
        return euler_from_matrix(self.rotation)

    def copy(self) -> "Pose":
        return Pose(self.position.copy(), self.rotation.copy())

    def error_to(self, reference: "Pose") -> np.ndarray:
        """6-vector ``[reference.position - position, orientation error]``."""

        return np.concatenate(
            [reference.position - self.position, orientation_error(self.rotation, reference.rotation)]
        )
