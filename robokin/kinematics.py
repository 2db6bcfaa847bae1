"""Kinematic chain evaluation: DH transforms, poses, Jacobians."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

import numpy as np

from .errors import ConfigurationError
from .pose import Pose
from .types import DHRow, FrameType

logger = logging.getLogger(__name__)

DEFAULT_DAMPING = 1e-4


class SerialKinematics(Protocol):
    """Protocol for serial chains that expose forward kinematics."""

    @property
    def dof(self) -> int:
        """Number of movable joints of the chain."""

    def fk_Ts(self, q: np.ndarray) -> List[np.ndarray]:
        """Return homogeneous transforms for the base and every frame."""

    def jacobian(self, q: np.ndarray) -> np.ndarray:
        """Return the 6xJ geometric Jacobian of the tip frame."""


@dataclass(frozen=True)
class FKOptions:
    with_base: bool = True
    return_jacobian: bool = False


@dataclass
class FKResult:
    Ts: List[np.ndarray]
    points: np.ndarray
    jacobian: Optional[np.ndarray] = None


def dh_matrix(a: float, alpha: float, d: float, theta: float) -> np.ndarray:
    """``Tx(a) @ Rx(alpha) @ Tz(d) @ Rz(theta)`` as a single 4x4 matrix."""

    ca = np.cos(alpha)
    sa = np.sin(alpha)
    ct = np.cos(theta)
    st = np.sin(theta)
    return np.array(
        [
            [ct, -st, 0.0, a],
            [ca * st, ca * ct, -sa, -d * sa],
            [sa * st, sa * ct, ca, d * ca],
            [0.0, 0.0, 0.0, 1.0],
        ],
        dtype=float,
    )


def _row_matrix(row: DHRow, q_i: float) -> np.ndarray:
    d, theta = row.variables(q_i)
    return dh_matrix(row.a, row.alpha, d, theta)


class DHTable:
    """Ordered modified-DH rows describing a chain with ``dof`` movable joints.

    Rows are evaluated base to tip. Joint-bearing rows reference the joint
    vector by ``joint_index``; fixed rows (tool offsets and the like) carry
    constants only. Every method taking ``q`` expects a vector of length
    :attr:`dof` in internal units.
    """

    def __init__(self, rows: Sequence[DHRow]):
        rows = tuple(rows)
        if not rows:
            raise ConfigurationError("A DH table needs at least one row")
        indices = [row.joint_index for row in rows if not row.is_fixed]
        if sorted(indices) != list(range(len(indices))):
            raise ConfigurationError(
                f"Joint indices {indices} must cover 0..{len(indices) - 1} exactly once"
            )
        self._rows = rows
        self._dof = len(indices)

    @property
    def rows(self) -> tuple[DHRow, ...]:
        return self._rows

    @property
    def dof(self) -> int:
        return self._dof

    @property
    def num_frames(self) -> int:
        return len(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def _check_q(self, q: np.ndarray) -> np.ndarray:
        q = np.asarray(q, dtype=float)
        if q.shape != (self._dof,):
            raise ConfigurationError(f"Expected q of shape ({self._dof},), got {q.shape}")
        return q

    def _row_q(self, row: DHRow, q: np.ndarray) -> float:
        return 0.0 if row.is_fixed else float(q[row.joint_index])

    def row_transform(self, index: int, q: np.ndarray) -> np.ndarray:
        row = self._rows[index]
        return _row_matrix(row, self._row_q(row, self._check_q(q)))

    def transform_between(self, j: int, i: int, q: np.ndarray) -> np.ndarray:
        """Product of rows ``j .. i-1``: frame ``j`` to frame ``i``."""

        if not 0 <= j < i <= len(self._rows):
            raise IndexError(
                f"Invalid frame range: require 0 <= j < i <= {len(self._rows)}, got j={j}, i={i}"
            )
        q = self._check_q(q)
        T = np.eye(4)
        for row in self._rows[j:i]:
            T = T @ _row_matrix(row, self._row_q(row, q))
        return T

    def pose_between(self, j: int, i: int, q: np.ndarray) -> Pose:
        return Pose.from_homogeneous(self.transform_between(j, i, q))

    def fk_Ts(self, q: np.ndarray) -> List[np.ndarray]:
        """Base transform followed by the cumulative transform after each row."""

        q = self._check_q(q)
        T = np.eye(4)
        Ts = [T.copy()]
        for row in self._rows:
            T = T @ _row_matrix(row, self._row_q(row, q))
            Ts.append(T.copy())
        return Ts

    def all_poses(self, q: np.ndarray) -> List[Pose]:
        """Pose of the frame after every row, relative to the base."""

        return [Pose.from_homogeneous(T) for T in self.fk_Ts(q)[1:]]

    def frame_pose(self, frame_index: int, q: np.ndarray) -> Pose:
        """Pose of frame ``frame_index``; frame 0 is the base, frame F the tip."""

        if not 0 <= frame_index <= len(self._rows):
            raise IndexError(f"Frame index {frame_index} outside 0..{len(self._rows)}")
        if frame_index == 0:
            self._check_q(q)
            return Pose.identity()
        return self.pose_between(0, frame_index, q)

    def end_effector_pose(self, q: np.ndarray) -> Pose:
        return self.pose_between(0, len(self._rows), q)

    def frame_points(self, q: np.ndarray) -> np.ndarray:
        """XYZ of the base and every frame origin, shape ``(F + 1, 3)``."""

        return np.array([T[:3, 3] for T in self.fk_Ts(q)], dtype=float)

    def jacobian(self, q: np.ndarray) -> np.ndarray:
        """Geometric Jacobian (6 x dof) of the tip frame."""

        poses = self.all_poses(q)
        p_end = poses[-1].position
        J = np.zeros((6, self._dof))
        for row, pose in zip(self._rows, poses):
            if row.is_fixed:
                continue
            z_i = pose.rotation[:, 2]
            if row.frame_type is FrameType.REVOLUTE:
                J[:3, row.joint_index] = np.cross(z_i, p_end - pose.position)
                J[3:, row.joint_index] = z_i
            else:
                J[:3, row.joint_index] = z_i
        return J

    def describe(self, q: Optional[np.ndarray] = None) -> str:
        q = np.zeros(self._dof) if q is None else self._check_q(q)
        lines = ["================ DH TABLE ================"]
        for i, row in enumerate(self._rows):
            params = (
                f"a={row.a:.2f}, alpha={np.rad2deg(row.alpha):.2f}, "
                f"d={row.d:.2f}, theta={np.rad2deg(row.theta):.2f}"
            )
            if row.is_fixed:
                lines.append(f"Frame {i}: Fixed Frame | {params}")
            elif row.frame_type is FrameType.REVOLUTE:
                angle = np.rad2deg(q[row.joint_index])
                lines.append(f"Frame {i}: Revolute Joint {row.joint_index + 1} | angle={angle:.2f} deg | {params}")
            else:
                ext = q[row.joint_index]
                lines.append(f"Frame {i}: Prismatic Joint {row.joint_index + 1} | extension={ext:.2f} | {params}")
        lines.append("==========================================")
        text = "\n".join(lines)
        logger.debug("%s", text)
        return text


def fk(robot: SerialKinematics, q: np.ndarray, opts: FKOptions | None = None) -> FKResult:
    """Evaluate forward kinematics with configurable output options."""

    if opts is None:
        opts = FKOptions()
    Ts = list(robot.fk_Ts(q))
    if not opts.with_base and len(Ts) > 0:
        Ts = Ts[1:]
    points = np.array([T[:3, 3] for T in Ts], dtype=float)
    J = robot.jacobian(q) if opts.return_jacobian else None
    return FKResult(Ts=Ts, points=points, jacobian=J)


def damped_pseudo_inverse(J: np.ndarray, damping: float = DEFAULT_DAMPING) -> np.ndarray:
    """Damped Moore-Penrose pseudo-inverse of a 6xN Jacobian.

    For N >= 6 the right inverse ``J^T (J J^T + l^2 I)^-1`` is used, which
    minimises joint velocity norm; for N < 6 the left inverse
    ``(J^T J + l^2 I)^-1 J^T``, which minimises task error. Either way the
    smaller matrix is the one inverted.

    If the damped matrix still cannot be inverted (non-finite input, for
    example) a zero matrix is returned and a warning is logged. Callers must
    treat an all-zero result as "no safe motion command available".
    """

    J = np.asarray(J, dtype=float)
    if J.ndim != 2 or J.shape[0] != 6:
        raise ConfigurationError(f"Expected a 6xN Jacobian, got shape {J.shape}")
    n = J.shape[1]
    zeros = np.zeros((n, 6))
    if not np.all(np.isfinite(J)):
        logger.warning("Pseudo-inverse skipped: Jacobian has non-finite entries, returning zeros")
        return zeros
    Jt = J.T
    l2 = float(damping) ** 2
    try:
        if n >= 6:
            inv = Jt @ np.linalg.inv(J @ Jt + l2 * np.eye(6))
        else:
            inv = np.linalg.inv(Jt @ J + l2 * np.eye(n)) @ Jt
    except np.linalg.LinAlgError:
        side = "Right" if n >= 6 else "Left"
        logger.warning("%s inverse failed, returning zeros", side)
        return zeros
    if not np.all(np.isfinite(inv)):
        logger.warning("Pseudo-inverse produced non-finite values, returning zeros")
        return zeros
    return inv


def is_degenerate(pinv: np.ndarray) -> bool:
    """True for the all-zero pseudo-inverse returned on failure."""

    return not np.any(pinv)


def numerical_jacobian(fun: Callable[[np.ndarray], np.ndarray], q: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """Central finite-difference Jacobian of a vector-valued function."""

    q = np.asarray(q, dtype=float)
    m = np.asarray(fun(q)).size
    J = np.zeros((m, q.size), dtype=float)
    for i in range(q.size):
        dq = np.zeros_like(q)
        dq[i] = eps
        J[:, i] = (np.asarray(fun(q + dq)) - np.asarray(fun(q - dq))).ravel() / (2.0 * eps)
    return J


def numerical_geometric_jacobian(table: DHTable, q: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """Finite-difference counterpart of :meth:`DHTable.jacobian`.

    The linear block differentiates the tip position; the angular block
    extracts ``w`` from the skew-symmetric part of ``dR/dq @ R^T``.
    """

    q = np.asarray(q, dtype=float)
    R0 = table.end_effector_pose(q).rotation
    J = np.zeros((6, q.size))
    J[:3] = numerical_jacobian(lambda x: table.end_effector_pose(x).position, q, eps)
    for i in range(q.size):
        dq = np.zeros_like(q)
        dq[i] = eps
        dR = (table.end_effector_pose(q + dq).rotation - table.end_effector_pose(q - dq).rotation) / (2.0 * eps)
        S = dR @ R0.T
        S = 0.5 * (S - S.T)
        J[3:, i] = [S[2, 1], S[0, 2], S[1, 0]]
    return J
