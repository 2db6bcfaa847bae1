"""Inverse kinematics solvers.

Two solvers share the :class:`IkSolver` interface:

* :class:`SphericalWristIkSolver` - closed form for the reference six-joint
  arm (base yaw, shoulder, elbow, ZYZ spherical wrist).
* :class:`DampedLeastSquaresIkSolver` - iterative damped least squares on
  the full pose error, usable with any :class:`~robokin.kinematics.DHTable`.

Each concrete solver validates its own link-parameter count.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import numpy as np

from .errors import ConfigurationError, DegenerateOrientationError, IKConvergenceError, WorkspaceError
from .kinematics import DHTable
from .pose import Pose
from .types import Limits

logger = logging.getLogger(__name__)


class IkSolver(Protocol):
    """Capability "solve IK": target pose components to joint values."""

    def solve_ik(
        self,
        x: float,
        y: float,
        z: float,
        R: np.ndarray,
        link_lengths: Sequence[float],
    ) -> np.ndarray:
        """Return joint values or raise :class:`~robokin.errors.IKError`."""


class SphericalWristIkSolver:
    """Closed-form IK by wrist-centre decoupling.

    Link parameters are ``[l1, l2, l3, l4, l5]``: base height, upper arm,
    forearm, wrist-to-flange and flange-to-tool lengths. Joint angles are
    measured from the configuration where the arm points straight up,
    matching :func:`robokin.presets.urt.urt_config`. Only the elbow branch
    with ``sin(theta3) >= 0`` and the wrist branch with ``sin(theta5) >= 0``
    are returned. When ``sin(theta5)`` falls below ``wrist_singular_tol``
    joints 4 and 6 are collinear and theta4 is reported as zero.
    """

    num_link_parameters = 5
    wrist_singular_tol = 1e-9

    def solve_ik(
        self,
        x: float,
        y: float,
        z: float,
        R: np.ndarray,
        link_lengths: Sequence[float],
    ) -> np.ndarray:
        if len(link_lengths) != self.num_link_parameters:
            raise ConfigurationError(
                f"Spherical-wrist IK requires {self.num_link_parameters} link parameters, "
                f"but {len(link_lengths)} were provided"
            )
        R = np.asarray(R, dtype=float)
        if R.shape != (3, 3):
            raise ConfigurationError(f"Expected a 3x3 rotation, got shape {R.shape}")
        l1, l2, l3, l4, l5 = (float(v) for v in link_lengths)

        # wrist centre: step back along the approach axis
        d = l4 + l5
        wx = x - d * R[0, 2]
        wy = y - d * R[1, 2]
        wz = z - d * R[2, 2]

        theta1 = np.arctan2(wy, wx)

        r = np.hypot(wx, wy)
        s = wz - l1

        cos_theta3 = (r**2 + s**2 - l2**2 - l3**2) / (2.0 * l2 * l3)
        if abs(cos_theta3) > 1.0:
            raise WorkspaceError(
                f"Target out of workspace: cos(theta3)={cos_theta3:.4f} (wrist centre "
                f"{np.hypot(r, s):.3f} from the shoulder, reach {l2 + l3:.3f})"
            )
        sin_theta3 = np.sqrt(1.0 - cos_theta3**2)
        theta3 = np.arctan2(sin_theta3, cos_theta3)
        # angles are measured from vertical, so the planar pair is (s, r)
        theta2 = np.arctan2(r, s) - np.arctan2(l3 * sin_theta3, l2 + l3 * cos_theta3)

        if not np.all(np.isfinite([theta1, theta2, theta3])):
            raise DegenerateOrientationError("Base joint angles are not finite")

        c1, s1 = np.cos(theta1), np.sin(theta1)
        c23, s23 = np.cos(theta2 + theta3), np.sin(theta2 + theta3)

        # W = Ry(theta2 + theta3)^T Rz(theta1)^T R = Rz(theta4) Ry(theta5) Rz(theta6)
        M = np.array([c1 * R[0] + s1 * R[1], c1 * R[1] - s1 * R[0], R[2]])
        W = np.array([c23 * M[0] - s23 * M[2], M[1], s23 * M[0] + c23 * M[2]])

        sin_theta5 = np.hypot(W[0, 2], W[1, 2])
        theta5 = np.arctan2(sin_theta5, W[2, 2])
        if sin_theta5 < self.wrist_singular_tol:
            # straight wrist: only theta4 + theta6 is determined, put it all on theta6
            theta4 = 0.0
            theta6 = np.arctan2(W[1, 0], W[1, 1])
        else:
            theta4 = np.arctan2(W[1, 2], W[0, 2])
            theta6 = np.arctan2(W[2, 1], -W[2, 0])

        thetas = np.array([theta1, theta2, theta3, theta4, theta5, theta6], dtype=float)
        if not np.all(np.isfinite(thetas)):
            raise DegenerateOrientationError(f"One or more joint angles are invalid: {thetas}")
        return thetas


@dataclass(frozen=True)
class IKStop:
    pos_tol: float = 1e-4
    ori_tol: float = 1e-3
    max_iters: int = 150


class DampedLeastSquaresIkSolver:
    """Iterative IK on a DH table.

    Each iteration takes a damped least-squares step on the 6-D pose error
    and clamps to ``limits`` when given. Takes no link parameters: the
    geometry comes from ``table``.
    """

    num_link_parameters = 0

    def __init__(
        self,
        table: DHTable,
        q_seed: Optional[np.ndarray] = None,
        limits: Optional[Limits] = None,
        damp: float = 2e-2,
        stop: IKStop = IKStop(),
    ):
        self.table = table
        self.q_seed = np.zeros(table.dof) if q_seed is None else np.asarray(q_seed, dtype=float).copy()
        if self.q_seed.shape != (table.dof,):
            raise ConfigurationError(f"Expected q_seed of shape ({table.dof},), got {self.q_seed.shape}")
        if limits is not None and limits.dof != table.dof:
            raise ConfigurationError(f"{limits.dof} limit pairs for a {table.dof}-joint table")
        self.limits = limits
        self.damp = damp
        self.stop = stop

    def solve_ik(
        self,
        x: float,
        y: float,
        z: float,
        R: np.ndarray,
        link_lengths: Sequence[float] = (),
    ) -> np.ndarray:
        if len(link_lengths) != self.num_link_parameters:
            raise ConfigurationError(
                f"Damped least-squares IK takes no link parameters, but {len(link_lengths)} were provided"
            )
        target = Pose(np.array([x, y, z], dtype=float), R)
        q = self.q_seed.copy()
        stop = self.stop
        lam2 = self.damp**2

        for iteration in range(stop.max_iters):
            err = self.table.end_effector_pose(q).error_to(target)
            if np.linalg.norm(err[:3]) <= stop.pos_tol and np.linalg.norm(err[3:]) <= stop.ori_tol:
                logger.debug("IK converged in %d iterations", iteration)
                return q
            J = self.table.jacobian(q)
            dq = J.T @ np.linalg.solve(J @ J.T + lam2 * np.eye(6), err)
            q = q + dq
            if self.limits is not None:
                q = self.limits.clamp(q)

        err = self.table.end_effector_pose(q).error_to(target)
        if np.linalg.norm(err[:3]) <= stop.pos_tol and np.linalg.norm(err[3:]) <= stop.ori_tol:
            return q
        logger.warning("IK did not converge after %d iterations", stop.max_iters)
        raise IKConvergenceError(
            f"IK did not converge after {stop.max_iters} iterations "
            f"(position error {np.linalg.norm(err[:3]):.3g}, orientation error {np.linalg.norm(err[3:]):.3g})",
            q_last=q,
        )
