"""URT six-joint desk arm preset: DH config, IK link lengths and helpers."""
from __future__ import annotations

from ..arm import DHArmModel, build_arm
from ..ik import SphericalWristIkSolver
from ..types import ArmConfig, DHRow, FrameType, JointType, Limits

LINK_LENGTHS = (9.0, 34.0, 32.0, 15.0, 15.0)


def urt_config(damping: float = 1e-4) -> ArmConfig:
    l1, l2, l3, l4, l5 = LINK_LENGTHS
    rev = FrameType.REVOLUTE
    rows = (
        DHRow.from_degrees(0.0, 0.0, l1, 0.0, rev, 0),     # J1 base yaw
        DHRow.from_degrees(0.0, -90.0, 0.0, -90.0, rev, 1),  # J2 shoulder
        DHRow.from_degrees(l2, 0.0, 0.0, 90.0, rev, 2),    # J3 elbow
        DHRow.from_degrees(0.0, 90.0, l3, 0.0, rev, 3),    # J4 forearm roll
        DHRow.from_degrees(0.0, -90.0, 0.0, 0.0, rev, 4),  # J5 wrist pitch
        DHRow.from_degrees(0.0, 90.0, l4, 0.0, rev, 5),    # J6 flange roll
        DHRow.from_degrees(0.0, 0.0, l5, 0.0, FrameType.FIXED),  # tool tip
    )
    limits = Limits.from_degrees(
        [
            [-180, 180],
            [-165, 165],
            [-165, 165],
            [-180, 180],
            [-90, 90],
            [-180, 180],
        ]
    )
    return ArmConfig(
        rows=rows,
        joint_types=(JointType.REVOLUTE,) * 6,
        name="URT 6-DOF arm",
        limits=limits,
        damping=damping,
        ik_solver=SphericalWristIkSolver(),
        ik_link_parameters=LINK_LENGTHS,
    )


def create_arm(damping: float = 1e-4) -> DHArmModel:
    """Instantiate the URT arm from its configuration."""

    return build_arm(urt_config(damping))
