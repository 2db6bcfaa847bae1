"""Shared dataclasses and enums for the kinematics core."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .ik import IkSolver


class JointType(Enum):
    """Mechanical classification of a joint."""

    REVOLUTE = "revolute"
    PRISMATIC = "prismatic"


class FrameType(Enum):
    """Classification of a DH row: a fixed offset or a joint-bearing frame."""

    FIXED = "fixed"
    REVOLUTE = "revolute"
    PRISMATIC = "prismatic"

    @property
    def joint_type(self) -> Optional[JointType]:
        if self is FrameType.REVOLUTE:
            return JointType.REVOLUTE
        if self is FrameType.PRISMATIC:
            return JointType.PRISMATIC
        return None


@dataclass
class Joint:
    """State and limits of a single joint.

    Positions and velocities are kept in internal units: radians and rad/s
    for revolute joints, model length units for prismatic joints. Setters
    take ``degrees=True`` to convert user-facing revolute values; the flag
    has no effect on prismatic joints.
    """

    joint_type: JointType = JointType.REVOLUTE
    limit_min: Optional[float] = None
    limit_max: Optional[float] = None
    position: float = 0.0
    velocity: float = 0.0

    def __post_init__(self) -> None:
        if (
            self.limit_min is not None
            and self.limit_max is not None
            and self.limit_min > self.limit_max
        ):
            raise ConfigurationError(
                f"Joint limit_min ({self.limit_min}) exceeds limit_max ({self.limit_max})"
            )
        self.position = self._clamp(float(self.position))
        self.velocity = float(self.velocity)

    @classmethod
    def revolute(cls, min_deg: Optional[float] = None, max_deg: Optional[float] = None) -> "Joint":
        """Revolute joint with limits given in degrees."""

        return cls(
            JointType.REVOLUTE,
            limit_min=None if min_deg is None else float(np.deg2rad(min_deg)),
            limit_max=None if max_deg is None else float(np.deg2rad(max_deg)),
        )

    @classmethod
    def prismatic(cls, min_pos: Optional[float] = None, max_pos: Optional[float] = None) -> "Joint":
        return cls(JointType.PRISMATIC, limit_min=min_pos, limit_max=max_pos)

    @property
    def is_revolute(self) -> bool:
        return self.joint_type is JointType.REVOLUTE

    def _to_internal(self, value: float, degrees: bool) -> float:
        value = float(value)
        if degrees and self.is_revolute:
            return float(np.deg2rad(value))
        return value

    def _clamp(self, value: float) -> float:
        if self.limit_min is not None and value < self.limit_min:
            value = self.limit_min
        if self.limit_max is not None and value > self.limit_max:
            value = self.limit_max
        return value

    def set_position(self, value: float, *, degrees: bool = False) -> float:
        """Set the position, clamped to the limits. Returns the stored value."""

        self.position = self._clamp(self._to_internal(value, degrees))
        return self.position

    def set_velocity(self, value: float, *, degrees: bool = False) -> float:
        self.velocity = self._to_internal(value, degrees)
        return self.velocity

    def describe(self) -> str:
        if self.is_revolute:
            text = (
                f"Revolute | position={self.position:.3f} rad ({np.rad2deg(self.position):.2f} deg)"
                f" | velocity={self.velocity:.3f} rad/s"
            )
            if self.limit_min is not None and self.limit_max is not None:
                text += (
                    f" | limits=[{np.rad2deg(self.limit_min):.1f}, "
                    f"{np.rad2deg(self.limit_max):.1f}] deg"
                )
            return text
        text = f"Prismatic | position={self.position:.4f} | velocity={self.velocity:.4f}"
        if self.limit_min is not None and self.limit_max is not None:
            text += f" | limits=[{self.limit_min:.4f}, {self.limit_max:.4f}]"
        return text


@dataclass(frozen=True)
class DHRow:
    """Modified (Craig) Denavit–Hartenberg row. Angles are stored in radians."""

    a: float
    alpha: float
    d: float
    theta: float
    frame_type: FrameType = FrameType.REVOLUTE
    joint_index: Optional[int] = None

    def __post_init__(self) -> None:
        if self.frame_type is FrameType.FIXED:
            if self.joint_index is not None:
                raise ConfigurationError("Fixed DH rows must not reference a joint")
        elif self.joint_index is None or self.joint_index < 0:
            raise ConfigurationError(
                f"{self.frame_type.value} DH row requires a non-negative joint_index"
            )

    @classmethod
    def from_degrees(
        cls,
        a: float,
        alpha_deg: float,
        d: float,
        theta_deg: float,
        frame_type: FrameType = FrameType.REVOLUTE,
        joint_index: Optional[int] = None,
    ) -> "DHRow":
        return cls(
            float(a),
            float(np.deg2rad(alpha_deg)),
            float(d),
            float(np.deg2rad(theta_deg)),
            frame_type,
            joint_index,
        )

    @property
    def is_fixed(self) -> bool:
        return self.frame_type is FrameType.FIXED

    def variables(self, q_i: float = 0.0) -> Tuple[float, float]:
        """Effective ``(d, theta)`` for joint value ``q_i``."""

        if self.frame_type is FrameType.REVOLUTE:
            return self.d, self.theta + q_i
        if self.frame_type is FrameType.PRISMATIC:
            return self.d + q_i, self.theta
        return self.d, self.theta


@dataclass(frozen=True)
class Limits:
    """Joint limits for a serial manipulator, in internal units.

    Non-finite entries mean "unbounded" on that side.
    """

    q_min: np.ndarray
    q_max: np.ndarray

    def __post_init__(self) -> None:
        q_min = np.asarray(self.q_min, dtype=float)
        q_max = np.asarray(self.q_max, dtype=float)
        if q_min.shape != q_max.shape or q_min.ndim != 1:
            raise ConfigurationError(
                f"Limits require two 1-D arrays of equal length, got {q_min.shape} and {q_max.shape}"
            )
        if np.any(q_min > q_max):
            raise ConfigurationError("Limits contain q_min > q_max")
        object.__setattr__(self, "q_min", q_min)
        object.__setattr__(self, "q_max", q_max)

    @classmethod
    def from_degrees(cls, pairs: Iterable[Sequence[float]]) -> "Limits":
        q_limits = np.deg2rad(np.array(list(pairs), dtype=float))
        return cls(q_min=q_limits[:, 0], q_max=q_limits[:, 1])

    @property
    def dof(self) -> int:
        return int(self.q_min.shape[0])

    def clamp(self, q: np.ndarray) -> np.ndarray:
        return np.minimum(np.maximum(q, self.q_min), self.q_max)


@dataclass(frozen=True)
class ArmConfig:
    """Configuration describing an arm in modified DH form."""

    rows: Tuple[DHRow, ...]
    joint_types: Tuple[JointType, ...]
    name: str
    limits: Optional[Limits] = None
    damping: float = 1e-4
    ik_solver: Optional["IkSolver"] = None
    ik_link_parameters: Tuple[float, ...] = field(default_factory=tuple)

    def make_joints(self) -> list[Joint]:
        """Instantiate fresh joint state objects for this configuration."""

        if self.limits is not None and self.limits.dof != len(self.joint_types):
            raise ConfigurationError(
                f"{self.name}: {self.limits.dof} limit pairs for {len(self.joint_types)} joints"
            )
        joints = []
        for i, joint_type in enumerate(self.joint_types):
            lo = hi = None
            if self.limits is not None:
                lo = float(self.limits.q_min[i]) if np.isfinite(self.limits.q_min[i]) else None
                hi = float(self.limits.q_max[i]) if np.isfinite(self.limits.q_max[i]) else None
            joints.append(Joint(joint_type, limit_min=lo, limit_max=hi))
        return joints
