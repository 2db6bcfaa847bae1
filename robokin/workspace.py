"""Reachable-workspace sampling and plotting."""
from __future__ import annotations

import itertools
import logging
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from .arm import DHArmModel
from .errors import ConfigurationError, IKError
from .pose import Pose
from .types import Limits

logger = logging.getLogger(__name__)

_DEFAULT_REVOLUTE_SPAN = np.deg2rad(180.0)


def _joint_range(arm: DHArmModel, index: int, limits: Optional[Limits]) -> tuple[float, float]:
    if limits is not None:
        lo, hi = float(limits.q_min[index]), float(limits.q_max[index])
    else:
        joint = arm.joints[index]
        lo = -np.inf if joint.limit_min is None else joint.limit_min
        hi = np.inf if joint.limit_max is None else joint.limit_max
    if arm.joints[index].is_revolute:
        lo = max(lo, -_DEFAULT_REVOLUTE_SPAN)
        hi = min(hi, _DEFAULT_REVOLUTE_SPAN)
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise ConfigurationError(f"Joint {index} needs finite limits to be sampled")
    return lo, hi


def sample_workspace(
    arm: DHArmModel,
    free_joints: Sequence[int],
    resolution_deg: float = 20.0,
    limits: Optional[Limits] = None,
) -> np.ndarray:
    """End-effector positions over a grid of the ``free_joints``.

    Joints not listed stay at their current positions. Revolute joints are
    stepped every ``resolution_deg`` degrees within their limits (at most
    +-180 deg); prismatic joints step by ``resolution_deg`` model units.
    The arm's own joint state is not modified. Returns ``(N, 3)``.
    """

    if resolution_deg <= 0.0:
        raise ConfigurationError("resolution_deg must be positive")
    if limits is not None and limits.dof != arm.dof:
        raise ConfigurationError(f"{limits.dof} limit pairs for a {arm.dof}-joint arm")
    free_joints = list(free_joints)
    for index in free_joints:
        if not 0 <= index < arm.dof:
            raise ConfigurationError(f"Free joint {index} outside 0..{arm.dof - 1}")

    grids = []
    for index in free_joints:
        lo, hi = _joint_range(arm, index, limits)
        step = np.deg2rad(resolution_deg) if arm.joints[index].is_revolute else resolution_deg
        count = int(np.floor((hi - lo) / step + 1e-9)) + 1
        grids.append(lo + step * np.arange(count))

    q = arm.joint_positions()
    table = arm.dh_table
    points = []
    for combo in itertools.product(*grids):
        q[free_joints] = combo
        points.append(table.end_effector_pose(q).position)
    logger.debug("Sampled %d workspace points over joints %s", len(points), free_joints)
    return np.array(points, dtype=float).reshape(-1, 3)


def check_reachability(
    arm: DHArmModel,
    targets: np.ndarray,
    rotation: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Boolean mask of targets for which the arm's IK solver finds a solution.

    ``rotation`` is the tool orientation requested at every target
    (defaults to the tool pointing straight down).
    """

    targets = np.atleast_2d(np.asarray(targets, dtype=float))
    if targets.shape[1] != 3:
        raise ConfigurationError(f"Targets must have shape (N, 3), got {targets.shape}")
    R = np.diag([1.0, -1.0, -1.0]) if rotation is None else np.asarray(rotation, dtype=float)
    mask = np.zeros(len(targets), dtype=bool)
    for i, target in enumerate(targets):
        try:
            arm.solve_ik_from_pose(Pose(target, R))
        except IKError as exc:
            logger.debug("Target %s unreachable: %s", target, exc)
            continue
        mask[i] = True
    return mask


def plot_workspace(points: np.ndarray, ax=None, title: str | None = None, **scatter_kwargs):
    """3-D scatter of workspace points; returns the axes."""

    points = np.asarray(points, dtype=float)
    if ax is None:
        fig = plt.figure(figsize=(8, 6))
        ax = fig.add_subplot(111, projection="3d")
    scatter_kwargs.setdefault("s", 4)
    scatter_kwargs.setdefault("alpha", 0.5)
    ax.scatter(points[:, 0], points[:, 1], points[:, 2], **scatter_kwargs)
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")
    ax.set_title(title or "Reachable workspace")
    return ax
