"""Arm model: DH table, joint state, IK solver and a memoised Jacobian cache."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from .errors import ConfigurationError
from .ik import IkSolver
from .kinematics import DEFAULT_DAMPING, DHTable, FKOptions, FKResult, damped_pseudo_inverse, fk, is_degenerate
from .pose import Pose, orientation_matrix
from .types import ArmConfig, Joint

logger = logging.getLogger(__name__)


class DHArmModel:
    """Central model coordinating kinematics, joint state and IK.

    The geometric Jacobian and its damped pseudo-inverse are computed on
    demand and memoised until a joint setter invalidates them. Not
    thread-safe: callers sharing a model across threads must serialise
    access to the setters and :meth:`update`.
    """

    def __init__(
        self,
        dh_table: DHTable,
        joints: Sequence[Joint],
        damping: Optional[float] = None,
        ik_solver: Optional[IkSolver] = None,
        ik_link_parameters: Sequence[float] = (),
        name: str = "arm",
    ):
        joints = list(joints)
        if len(joints) != dh_table.dof:
            raise ConfigurationError(
                f"DH table has {dh_table.dof} joint rows but {len(joints)} joints were given"
            )
        for row in dh_table.rows:
            if row.is_fixed:
                continue
            if joints[row.joint_index].joint_type is not row.frame_type.joint_type:
                raise ConfigurationError(
                    f"Row for joint {row.joint_index} is {row.frame_type.value} but the joint is "
                    f"{joints[row.joint_index].joint_type.value}"
                )
        self.name = name
        self._table = dh_table
        self._joints = joints
        self.damping = DEFAULT_DAMPING if damping is None else float(damping)
        self.ik_solver = ik_solver
        self.ik_link_parameters = tuple(float(v) for v in ik_link_parameters)

        self._jacobian: Optional[np.ndarray] = None
        self._inv_jacobian: Optional[np.ndarray] = None
        self._dirty = True

    @classmethod
    def from_config(cls, config: ArmConfig) -> "DHArmModel":
        return cls(
            DHTable(config.rows),
            config.make_joints(),
            damping=config.damping,
            ik_solver=config.ik_solver,
            ik_link_parameters=config.ik_link_parameters,
            name=config.name,
        )

    # ------------------------------------------------------------------
    # Joint state
    # ------------------------------------------------------------------
    @property
    def dh_table(self) -> DHTable:
        return self._table

    @property
    def joints(self) -> List[Joint]:
        return self._joints

    @property
    def dof(self) -> int:
        return len(self._joints)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def _check_length(self, values: Sequence[float], what: str) -> None:
        if len(values) != len(self._joints):
            raise ConfigurationError(
                f"{what} vector length mismatch: expected {len(self._joints)}, got {len(values)}"
            )

    def set_joint_positions(self, positions: Sequence[float], *, degrees: bool = False) -> None:
        """Set every joint position (clamped to limits) and invalidate the cache."""

        positions = np.asarray(positions, dtype=float).ravel()
        self._check_length(positions, "Position")
        for joint, pos in zip(self._joints, positions):
            joint.set_position(pos, degrees=degrees)
        self._dirty = True

    def set_joint_velocities(self, velocities: Sequence[float], *, degrees: bool = False) -> None:
        velocities = np.asarray(velocities, dtype=float).ravel()
        self._check_length(velocities, "Velocity")
        for joint, vel in zip(self._joints, velocities):
            joint.set_velocity(vel, degrees=degrees)
        self._dirty = True

    def joint_positions(self) -> np.ndarray:
        return np.array([j.position for j in self._joints], dtype=float)

    def joint_velocities(self) -> np.ndarray:
        return np.array([j.velocity for j in self._joints], dtype=float)

    # ------------------------------------------------------------------
    # Kinematics
    # ------------------------------------------------------------------
    def update(self) -> None:
        """Recompute the cached Jacobian and pseudo-inverse if joints changed."""

        if not self._dirty:
            return
        J = self._table.jacobian(self.joint_positions())
        self._jacobian = J
        self._inv_jacobian = damped_pseudo_inverse(J, self.damping)
        self._dirty = False

    def jacobian(self) -> np.ndarray:
        self.update()
        return self._jacobian

    def inv_jacobian(self) -> np.ndarray:
        self.update()
        return self._inv_jacobian

    @property
    def pseudo_inverse_degenerate(self) -> bool:
        """True when the current pseudo-inverse is the all-zero fallback."""

        return is_degenerate(self.inv_jacobian())

    def frame_pose(self, frame_index: int) -> Pose:
        return self._table.frame_pose(frame_index, self.joint_positions())

    def frame_poses(self) -> List[Pose]:
        return self._table.all_poses(self.joint_positions())

    def ee_pose(self) -> Pose:
        return self._table.end_effector_pose(self.joint_positions())

    def fk(self, opts: FKOptions | None = None) -> FKResult:
        return fk(self._table, self.joint_positions(), opts)

    def fk_points(self) -> np.ndarray:
        """XYZ coordinates for base, every frame and the tool."""

        return self._table.frame_points(self.joint_positions())

    # ------------------------------------------------------------------
    # Inverse kinematics
    # ------------------------------------------------------------------
    def _require_solver(self) -> IkSolver:
        if self.ik_solver is None:
            raise ConfigurationError(f"{self.name} has no IK solver configured")
        return self.ik_solver

    def solve_ik_from_pose(self, target: Pose) -> np.ndarray:
        """Joint values reaching ``target``; raises :class:`~robokin.errors.IKError`."""

        solver = self._require_solver()
        x, y, z = target.position
        return solver.solve_ik(x, y, z, target.rotation, self.ik_link_parameters)

    def solve_ik_from_components(
        self, x: float, y: float, z: float, yaw: float, pitch: float, roll: float
    ) -> np.ndarray:
        """Same as :meth:`solve_ik_from_pose` with a yaw/pitch/roll orientation (radians)."""

        solver = self._require_solver()
        R = orientation_matrix(yaw, pitch, roll)
        return solver.solve_ik(x, y, z, R, self.ik_link_parameters)

    def describe(self) -> str:
        lines = [f"{self.name}: {self._table.num_frames} frames, {self.dof} joints"]
        lines.append(self._table.describe(self.joint_positions()))
        for i, joint in enumerate(self._joints):
            lines.append(f"Joint {i + 1}: {joint.describe()}")
        return "\n".join(lines)


def build_arm(config: ArmConfig) -> DHArmModel:
    """Instantiate an arm model from its configuration."""

    arm = DHArmModel.from_config(config)
    logger.debug("Built %s with %d joints over %d frames", config.name, arm.dof, arm.dh_table.num_frames)
    return arm
