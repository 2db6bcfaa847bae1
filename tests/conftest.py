import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from robokin import DHArmModel, DHRow, DHTable, FrameType, Joint
from robokin.presets import create_arm

READY_Q = np.deg2rad([0.0, 30.0, 60.0, 0.0, 45.0, 0.0])
GENERIC_Q = np.array([0.3, 0.4, 0.9, 0.2, 0.7, -0.5])


@pytest.fixture
def urt_arm():
    arm = create_arm()
    arm.set_joint_positions(READY_Q)
    return arm


@pytest.fixture
def urt_table():
    return create_arm().dh_table


@pytest.fixture
def planar_table():
    """Three revolute joints about parallel z axes with 10/8/5 links."""

    rev = FrameType.REVOLUTE
    return DHTable(
        [
            DHRow(0.0, 0.0, 0.0, 0.0, rev, 0),
            DHRow(10.0, 0.0, 0.0, 0.0, rev, 1),
            DHRow(8.0, 0.0, 0.0, 0.0, rev, 2),
            DHRow(5.0, 0.0, 0.0, 0.0, FrameType.FIXED),
        ]
    )


@pytest.fixture
def planar_arm(planar_table):
    return DHArmModel(planar_table, [Joint() for _ in range(3)], name="planar")
