"""URT demos executed directly without a command-line parser."""

from __future__ import annotations

import logging

import matplotlib.pyplot as plt
import numpy as np

from robokin import UrtDemo, WorkspaceError


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    demo = UrtDemo()
    print(demo.arm.describe())

    # Teleoperation: move, release, rotate, release.
    result = demo.teleop_demo(T_final=4.0, dt=0.01)
    demo.plot_trajectory(result.tgrid, result.q, result.dq)
    demo.plot_tracking(result)

    # Closed-form IK for the pose the arm ended the teleop run in.
    target = demo.arm.ee_pose()
    try:
        q_ik = demo.arm.solve_ik_from_pose(target)
    except WorkspaceError as exc:
        print(exc)
    else:
        print("IK solution [deg]:", np.round(np.rad2deg(q_ik), 2))
        demo.plot_arm(q_ik, title="IK solution")

    points = demo.workspace_demo(resolution_deg=30.0)
    demo.plot_workspace(points)
    plt.show()


if __name__ == "__main__":
    main()
