"""Task-space and joint-space velocity controllers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .arm import DHArmModel
from .errors import ConfigurationError
from .kinematics import is_degenerate
from .pose import Pose, integrate_rotation, orientation_error, orthonormalize

logger = logging.getLogger(__name__)

ANGULAR_UNITS = ("deg", "rad")
ANGULAR_FRAMES = ("world", "tool")


def _gain_matrix(gain: float | np.ndarray, dim: int) -> np.ndarray:
    if np.isscalar(gain):
        return float(gain) * np.eye(dim)
    g = np.asarray(gain, dtype=float)
    if g.shape == (dim,):
        return np.diag(g)
    if g.shape == (dim, dim):
        return g
    raise ConfigurationError(f"Invalid gain shape {g.shape} for dimension {dim}")


def _gain_vector(gain: float | Sequence[float], name: str) -> np.ndarray:
    if np.isscalar(gain):
        return np.full(6, float(gain))
    g = np.asarray(gain, dtype=float)
    if g.shape != (6,):
        raise ConfigurationError(f"{name} must be a scalar or a 6-vector, got shape {g.shape}")
    return g


def _check_dt(dt: float) -> float:
    dt = float(dt)
    if not dt > 0.0:
        raise ConfigurationError(f"Time step must be positive, got {dt}")
    return dt


def _is_finite_pose(pose: Pose) -> bool:
    return bool(np.all(np.isfinite(pose.position)) and np.all(np.isfinite(pose.rotation)))


@dataclass(frozen=True)
class ControllerConfig:
    """Gains and conventions for :class:`TaskSpacePidController`.

    ``angular_units`` declares how the angular half of the commanded
    velocity is expressed (``"deg"`` for deg/s, ``"rad"`` for rad/s) and
    ``angular_frame`` whether it is given in the world frame or in the
    end-effector (``"tool"``) frame. Internally everything is rad/s in the
    world frame. ``vel_eps`` is compared against the converted norms.
    """

    kp: np.ndarray = field(default_factory=lambda: np.ones(6))
    ki: np.ndarray = field(default_factory=lambda: np.zeros(6))
    kd: np.ndarray = field(default_factory=lambda: np.zeros(6))
    vel_eps: float = 1e-4
    orthonorm_interval: int = 50
    angular_units: str = "deg"
    angular_frame: str = "world"

    def __post_init__(self) -> None:
        for name in ("kp", "ki", "kd"):
            object.__setattr__(self, name, _gain_vector(getattr(self, name), name))
        if self.angular_units not in ANGULAR_UNITS:
            raise ConfigurationError(f"angular_units must be one of {ANGULAR_UNITS}, got {self.angular_units!r}")
        if self.angular_frame not in ANGULAR_FRAMES:
            raise ConfigurationError(f"angular_frame must be one of {ANGULAR_FRAMES}, got {self.angular_frame!r}")
        if self.orthonorm_interval < 1:
            raise ConfigurationError("orthonorm_interval must be at least 1")
        if self.vel_eps < 0.0:
            raise ConfigurationError("vel_eps must be non-negative")


class ControllerMode(Enum):
    TRACKING = "tracking"
    HOLDING = "holding"


class TaskSpacePidController:
    """Task-space PID velocity tracking with a hold/track state machine.

    While the operator commands a non-zero velocity the reference pose is
    integrated forward (Euler for position, first-order small-angle update
    for orientation) and the rotation is re-projected onto SO(3) every
    ``orthonorm_interval`` tracking cycles. When the command drops to zero
    the current end-effector pose is captured once and held; the PID terms
    then correct any drift away from it.

    The reference is seeded from the arm's current pose on the first call
    to :meth:`compute` (or by :meth:`reset`).
    """

    def __init__(self, config: Optional[ControllerConfig] = None, log: Optional[logging.Logger] = None):
        self.config = config or ControllerConfig()
        self.kp = self.config.kp.copy()
        self.ki = self.config.ki.copy()
        self.kd = self.config.kd.copy()
        self.orthonorm_interval = self.config.orthonorm_interval
        self.log = log or logger

        self._integral_error = np.zeros(6)
        self._prev_error = np.zeros(6)
        self._x_ref = np.zeros(3)
        self._r_ref = np.eye(3)
        self._holding = False
        self._seeded = False
        self._cycle_count = 0

    @property
    def holding(self) -> bool:
        return self._holding

    @property
    def mode(self) -> ControllerMode:
        return ControllerMode.HOLDING if self._holding else ControllerMode.TRACKING

    @property
    def x_ref(self) -> np.ndarray:
        return self._x_ref.copy()

    @property
    def r_ref(self) -> np.ndarray:
        return self._r_ref.copy()

    @property
    def reference(self) -> Pose:
        return Pose(self._x_ref, self._r_ref)

    @property
    def cycle_count(self) -> int:
        """Number of tracking cycles since construction or the last reset."""
        return self._cycle_count

    @property
    def integral_error(self) -> np.ndarray:
        return self._integral_error.copy()

    @property
    def prev_error(self) -> np.ndarray:
        return self._prev_error.copy()

    def reset(self, arm: Optional[DHArmModel] = None) -> None:
        """Clear PID state; with ``arm`` also snap the reference to its pose."""

        self._integral_error = np.zeros(6)
        self._prev_error = np.zeros(6)
        self._holding = False
        self._cycle_count = 0
        if arm is None:
            self._x_ref = np.zeros(3)
            self._r_ref = np.eye(3)
            self._seeded = False
        else:
            pose = arm.ee_pose()
            self._seeded = False
            if _is_finite_pose(pose):
                self._seed(pose)

    def _seed(self, pose: Pose) -> None:
        pose = pose.copy()
        self._x_ref = pose.position
        self._r_ref = pose.rotation
        self._seeded = True

    def angular_to_world(self, w: np.ndarray, rotation: np.ndarray) -> np.ndarray:
        """Convert a commanded angular rate to rad/s in the world frame."""

        w = np.asarray(w, dtype=float)
        if self.config.angular_units == "deg":
            w = np.deg2rad(w)
        if self.config.angular_frame == "tool":
            w = rotation @ w
        return w

    def compute(
        self,
        arm: DHArmModel,
        xd_des: Sequence[float],
        joint_positions: Sequence[float],
        joint_velocities: Sequence[float],
        dt: float,
    ) -> np.ndarray:
        """Run one control cycle and return joint velocity commands (rad/s).

        ``joint_positions``/``joint_velocities`` are the measured joint state
        in internal units; ``xd_des`` is ``[vx, vy, vz, wx, wy, wz]`` with the
        angular half in the configured units and frame.
        """

        dt = _check_dt(dt)
        xd_des = np.asarray(xd_des, dtype=float).ravel()
        if xd_des.shape != (6,):
            raise ConfigurationError(f"Desired task velocity must have 6 elements, got {xd_des.shape[0]}")

        arm.set_joint_positions(joint_positions)
        arm.set_joint_velocities(joint_velocities)
        ee_pose = arm.ee_pose()
        if not _is_finite_pose(ee_pose):
            # PID state and reference are left untouched
            self.log.warning("End-effector pose is not finite, commanding zero joint velocity")
            return np.zeros(arm.dof)
        if not np.all(np.isfinite(xd_des)):
            self.log.warning("Commanded task velocity is not finite, commanding zero joint velocity")
            return np.zeros(arm.dof)
        if not self._seeded:
            self._seed(ee_pose)

        v_des = xd_des[:3]
        w_des = self.angular_to_world(xd_des[3:], ee_pose.rotation)
        xd_world = np.concatenate([v_des, w_des])

        eps = self.config.vel_eps
        active = np.linalg.norm(v_des) > eps or np.linalg.norm(w_des) > eps

        if active:
            if self._holding:
                self.log.info("Command active, tracking (|v|=%.4f, |w|=%.4f)", np.linalg.norm(v_des), np.linalg.norm(w_des))
            self._holding = False
            self._x_ref = self._x_ref + v_des * dt
            self._r_ref = integrate_rotation(self._r_ref, w_des, dt)
            self._cycle_count += 1
            if self._cycle_count % self.orthonorm_interval == 0:
                self._r_ref = orthonormalize(self._r_ref)
        elif not self._holding:
            self._x_ref = ee_pose.position.copy()
            self._r_ref = ee_pose.rotation.copy()
            self._holding = True
            self.log.info("Command released, holding position %s", np.round(self._x_ref, 4))

        e_pos = self._x_ref - ee_pose.position
        e_ori = orientation_error(ee_pose.rotation, self._r_ref)
        error = np.concatenate([e_pos, e_ori])

        self._integral_error = self._integral_error + error * dt
        d_error = (error - self._prev_error) / dt
        u_task = xd_world + self.kp * error + self.ki * self._integral_error + self.kd * d_error
        self._prev_error = error

        self.log.debug(
            "mode=%s ee=%s ref=%s pos_err=%s ori_err=%s",
            self.mode.value,
            np.round(ee_pose.position, 4),
            np.round(self._x_ref, 4),
            np.round(e_pos, 4),
            np.round(e_ori, 4),
        )

        inv_j = arm.inv_jacobian()
        if is_degenerate(inv_j):
            self.log.warning("No safe motion command available, commanding zero joint velocity")
            return np.zeros(arm.dof)
        return inv_j @ u_task


class MatrixPid:
    """PID with full gain matrices; scalar or vector gains become diagonal."""

    def __init__(self, kp, ki, kd, dim: int = 6):
        self.dim = dim
        self.kp = _gain_matrix(kp, dim)
        self.ki = _gain_matrix(ki, dim)
        self.kd = _gain_matrix(kd, dim)
        self.integral = np.zeros(dim)
        self.prev_error = np.zeros(dim)

    def reset(self) -> None:
        self.integral = np.zeros(self.dim)
        self.prev_error = np.zeros(self.dim)

    def update(self, error: np.ndarray, dt: float) -> np.ndarray:
        dt = _check_dt(dt)
        error = np.asarray(error, dtype=float)
        if error.shape != (self.dim,):
            raise ConfigurationError(f"Expected error of shape ({self.dim},), got {error.shape}")
        self.integral = self.integral + error * dt
        derivative = (error - self.prev_error) / dt
        self.prev_error = error
        return self.kp @ error + self.ki @ self.integral + self.kd @ derivative


class TaskSpaceVelocityController:
    """Closes a PID loop on end-effector velocity ``J @ qdot``."""

    def __init__(self, pid: MatrixPid):
        if pid.dim != 6:
            raise ConfigurationError("Task-space velocity PID must be 6-dimensional")
        self.pid = pid

    def step(self, arm: DHArmModel, xdot_ref: Sequence[float], dt: float) -> np.ndarray:
        xdot_ref = np.asarray(xdot_ref, dtype=float)
        if xdot_ref.shape != (6,):
            raise ConfigurationError(f"Expected a 6-element task velocity, got shape {xdot_ref.shape}")
        xdot = arm.jacobian() @ arm.joint_velocities()
        ux = self.pid.update(xdot_ref - xdot, dt)
        return arm.inv_jacobian() @ ux


class JointSpaceVelocityController:
    """Closes a PID loop directly on joint velocities."""

    def __init__(self, pid: MatrixPid):
        self.pid = pid

    def step(self, arm: DHArmModel, qdot_ref: Sequence[float], dt: float) -> np.ndarray:
        qdot_ref = np.asarray(qdot_ref, dtype=float)
        if qdot_ref.shape != (arm.dof,) or self.pid.dim != arm.dof:
            raise ConfigurationError(
                f"Joint velocity reference must have {arm.dof} elements for a {self.pid.dim}-D PID"
            )
        return self.pid.update(qdot_ref - arm.joint_velocities(), dt)
