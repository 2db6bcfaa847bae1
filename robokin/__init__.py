"""Kinematics and task-space velocity control for DH-described serial arms."""
from .arm import DHArmModel, build_arm
from .control import (
    ControllerConfig,
    ControllerMode,
    JointSpaceVelocityController,
    MatrixPid,
    TaskSpacePidController,
    TaskSpaceVelocityController,
)
from .errors import (
    ConfigurationError,
    DegenerateOrientationError,
    IKConvergenceError,
    IKError,
    KinematicsError,
    WorkspaceError,
)
from .ik import DampedLeastSquaresIkSolver, IKStop, IkSolver, SphericalWristIkSolver
from .kinematics import (
    DHTable,
    FKOptions,
    FKResult,
    damped_pseudo_inverse,
    dh_matrix,
    fk,
    is_degenerate,
    numerical_geometric_jacobian,
    numerical_jacobian,
)
from .pose import Pose, euler_from_matrix, orientation_matrix
from .presets import TeleopResult, UrtDemo
from .types import ArmConfig, DHRow, FrameType, Joint, JointType, Limits

__all__ = [
    "ArmConfig",
    "DHRow",
    "FrameType",
    "Joint",
    "JointType",
    "Limits",
    "Pose",
    "orientation_matrix",
    "euler_from_matrix",
    "DHTable",
    "FKOptions",
    "FKResult",
    "fk",
    "dh_matrix",
    "damped_pseudo_inverse",
    "is_degenerate",
    "numerical_jacobian",
    "numerical_geometric_jacobian",
    "IkSolver",
    "IKStop",
    "SphericalWristIkSolver",
    "DampedLeastSquaresIkSolver",
    "DHArmModel",
    "build_arm",
    "ControllerConfig",
    "ControllerMode",
    "TaskSpacePidController",
    "MatrixPid",
    "TaskSpaceVelocityController",
    "JointSpaceVelocityController",
    "KinematicsError",
    "ConfigurationError",
    "IKError",
    "WorkspaceError",
    "DegenerateOrientationError",
    "IKConvergenceError",
    "UrtDemo",
    "TeleopResult",
]
