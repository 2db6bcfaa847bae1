"""High-level URT demo utilities built on top of the kinematics core."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import matplotlib.pyplot as plt
import numpy as np

from ..control import ControllerConfig, TaskSpacePidController
from ..types import ArmConfig
from ..workspace import plot_workspace, sample_workspace
from .urt import create_arm, urt_config

logger = logging.getLogger(__name__)

READY_POSE_DEG = (0.0, 30.0, 60.0, 0.0, 45.0, 0.0)

CommandFn = Callable[[float], np.ndarray]


@dataclass(slots=True)
class TeleopResult:
    """Container returned by :meth:`UrtDemo.teleop_demo`."""

    tgrid: np.ndarray
    q: np.ndarray
    dq: np.ndarray
    ee: np.ndarray
    ref: np.ndarray
    holding: np.ndarray


def default_command(t: float) -> np.ndarray:
    """Operator profile: move +x, release, yaw the tool at 20 deg/s, release."""

    cmd = np.zeros(6)
    if t < 1.0:
        cmd[0] = 5.0
    elif 2.0 <= t < 3.0:
        cmd[5] = 20.0
    return cmd


class UrtDemo:
    """Convenience wrapper running a headless teleoperation loop on the URT arm."""

    def __init__(self, controller_config: Optional[ControllerConfig] = None) -> None:
        self.config: ArmConfig = urt_config()
        self.arm = create_arm()
        self.controller_config = controller_config or ControllerConfig(kp=np.full(6, 2.0), ki=np.full(6, 0.1))

    def reset(self, q_deg: Iterable[float] = READY_POSE_DEG) -> None:
        self.arm.set_joint_positions(list(q_deg), degrees=True)
        self.arm.set_joint_velocities(np.zeros(self.arm.dof))

    def teleop_demo(
        self,
        command: CommandFn = default_command,
        T_final: float = 4.0,
        dt: float = 0.01,
    ) -> TeleopResult:
        """Integrate joint velocities from the task-space controller.

        ``command(t)`` returns ``[vx, vy, vz, wx, wy, wz]`` with the angular
        half in deg/s, world frame.
        """

        self.reset()
        controller = TaskSpacePidController(self.controller_config)
        steps = int(round(T_final / dt))
        tgrid = np.arange(steps) * dt
        q = self.arm.joint_positions()
        qd = np.zeros(self.arm.dof)
        qs, dqs, ees, refs, holding = [], [], [], [], []
        for t in tgrid:
            qd = controller.compute(self.arm, command(float(t)), q, qd, dt)
            qs.append(q.copy())
            dqs.append(qd.copy())
            ees.append(self.arm.ee_pose().position)
            refs.append(controller.x_ref)
            holding.append(controller.holding)
            q = q + qd * dt
        logger.info("Teleop demo finished after %d cycles", steps)
        return TeleopResult(
            tgrid=tgrid,
            q=np.array(qs),
            dq=np.array(dqs),
            ee=np.array(ees),
            ref=np.array(refs),
            holding=np.array(holding, dtype=bool),
        )

    def workspace_demo(self, resolution_deg: float = 30.0) -> np.ndarray:
        """Sample the reachable workspace with the three base joints free."""

        self.reset()
        return sample_workspace(self.arm, free_joints=(0, 1, 2), resolution_deg=resolution_deg)

    # ------------------------------------------------------------------
    # Plotting
    # ------------------------------------------------------------------
    def plot_arm(self, q: Optional[np.ndarray] = None, ax=None, title: str | None = None):
        if q is not None:
            self.arm.set_joint_positions(q)
        pts = self.arm.fk_points()
        if ax is None:
            fig = plt.figure(figsize=(7, 6))
            ax = fig.add_subplot(111, projection="3d")
        ax.plot(pts[:, 0], pts[:, 1], pts[:, 2], "-o", lw=3)
        ax.set_xlabel("X")
        ax.set_ylabel("Y")
        ax.set_zlabel("Z")
        ax.set_title(title or self.config.name)
        return ax

    def plot_workspace(self, points: np.ndarray, ax=None):
        return plot_workspace(points, ax=ax, title=f"{self.config.name} workspace")

    def plot_trajectory(self, tgrid: np.ndarray, q: np.ndarray, dq: np.ndarray | None = None):
        fig, axs = plt.subplots(2, 1, figsize=(10, 6), sharex=True)
        axs[0].plot(tgrid, np.rad2deg(q))
        axs[0].set_ylabel("q [deg]")
        if dq is not None:
            axs[1].plot(tgrid, np.rad2deg(dq))
            axs[1].set_ylabel("dq [deg/s]")
        axs[1].set_xlabel("t [s]")
        for ax in axs:
            ax.grid(True)
        fig.tight_layout()
        return fig

    def plot_tracking(self, result: TeleopResult):
        fig, axs = plt.subplots(3, 1, figsize=(10, 8), sharex=True)
        for i, label in enumerate("xyz"):
            axs[i].plot(result.tgrid, result.ee[:, i], label="end effector")
            axs[i].plot(result.tgrid, result.ref[:, i], "--", label="reference")
            axs[i].set_ylabel(label)
            axs[i].grid(True)
        axs[0].legend(loc="best")
        axs[-1].set_xlabel("t [s]")
        fig.tight_layout()
        return fig
