import logging

import numpy as np
import pytest

from robokin import (
    ConfigurationError,
    DHRow,
    DHTable,
    FKOptions,
    FrameType,
    damped_pseudo_inverse,
    dh_matrix,
    fk,
    is_degenerate,
    numerical_geometric_jacobian,
    numerical_jacobian,
)

GENERIC_Q = np.array([0.3, 0.4, 0.9, 0.2, 0.7, -0.5])


def _translate(x, y, z):
    T = np.eye(4)
    T[:3, 3] = [x, y, z]
    return T


def _rot(axis, angle):
    c, s = np.cos(angle), np.sin(angle)
    T = np.eye(4)
    if axis == "x":
        T[1:3, 1:3] = [[c, -s], [s, c]]
    else:
        T[0:2, 0:2] = [[c, -s], [s, c]]
    return T


def test_dh_matrix_is_tx_rx_tz_rz():
    a, alpha, d, theta = 1.5, -0.7, 2.5, 0.3
    expected = _translate(a, 0, 0) @ _rot("x", alpha) @ _translate(0, 0, d) @ _rot("z", theta)
    np.testing.assert_allclose(dh_matrix(a, alpha, d, theta), expected, atol=1e-15)


def test_fixed_offsets_compose_to_translation_chain():
    table = DHTable(
        [
            DHRow(1.0, 0.0, 2.0, 0.0, FrameType.FIXED),
            DHRow(0.5, 0.0, 0.0, 0.0, FrameType.FIXED),
            DHRow(0.0, 0.0, 3.0, 0.0, FrameType.FIXED),
        ]
    )
    assert table.dof == 0
    pose = table.end_effector_pose(np.zeros(0))
    np.testing.assert_allclose(pose.position, [1.5, 0.0, 5.0])
    np.testing.assert_allclose(pose.rotation, np.eye(3))
    assert table.jacobian(np.zeros(0)).shape == (6, 0)


def test_zero_joint_chain_of_translations():
    rev = FrameType.REVOLUTE
    table = DHTable(
        [
            DHRow(0.0, 0.0, 4.0, 0.0, rev, 0),
            DHRow(2.0, 0.0, 1.0, 0.0, rev, 1),
            DHRow(0.0, 0.0, 7.0, 0.0, FrameType.FIXED),
        ]
    )
    pose = table.end_effector_pose(np.zeros(2))
    np.testing.assert_allclose(pose.position, [2.0, 0.0, 12.0])
    np.testing.assert_allclose(pose.rotation, np.eye(3))


def test_empty_table_rejected():
    with pytest.raises(ConfigurationError):
        DHTable([])


@pytest.mark.parametrize("indices", [(0, 0), (0, 2), (1, 2)])
def test_joint_indices_must_cover_range(indices):
    rows = [DHRow(0.0, 0.0, 1.0, 0.0, FrameType.REVOLUTE, i) for i in indices]
    with pytest.raises(ConfigurationError):
        DHTable(rows)


def test_joint_indices_may_be_out_of_row_order():
    rev = FrameType.REVOLUTE
    table = DHTable([DHRow(0.0, 0.0, 1.0, 0.0, rev, 1), DHRow(1.0, 0.0, 0.0, 0.0, rev, 0)])
    T = table.transform_between(0, 2, np.array([0.0, np.pi / 2]))
    # the first row carries joint 1
    np.testing.assert_allclose(T[:3, 3], [0.0, 1.0, 1.0], atol=1e-12)


def test_prismatic_row_extends_d():
    table = DHTable([DHRow(0.0, 0.0, 1.0, 0.0, FrameType.PRISMATIC, 0)])
    pose = table.end_effector_pose(np.array([2.5]))
    np.testing.assert_allclose(pose.position, [0.0, 0.0, 3.5])


@pytest.mark.parametrize("j,i", [(2, 2), (3, 1), (-1, 2), (0, 8)])
def test_invalid_frame_range_is_fault(urt_table, j, i):
    with pytest.raises(IndexError):
        urt_table.transform_between(j, i, np.zeros(6))


def test_wrong_q_length_rejected(urt_table):
    with pytest.raises(ConfigurationError):
        urt_table.all_poses(np.zeros(5))


def test_transform_between_composes(urt_table):
    q = GENERIC_Q
    full = urt_table.transform_between(0, 7, q)
    split = urt_table.transform_between(0, 3, q) @ urt_table.transform_between(3, 7, q)
    np.testing.assert_allclose(full, split, atol=1e-12)
    pose = urt_table.pose_between(2, 5, q)
    np.testing.assert_allclose(pose.to_homogeneous(), urt_table.transform_between(2, 5, q), atol=1e-12)


def test_all_poses_match_frame_poses(urt_table):
    q = GENERIC_Q
    poses = urt_table.all_poses(q)
    assert len(poses) == urt_table.num_frames == 7
    for k, pose in enumerate(poses):
        expected = urt_table.frame_pose(k + 1, q)
        np.testing.assert_allclose(pose.position, expected.position, atol=1e-12)
        np.testing.assert_allclose(pose.rotation, expected.rotation, atol=1e-12)
    base = urt_table.frame_pose(0, q)
    np.testing.assert_allclose(base.to_homogeneous(), np.eye(4))
    with pytest.raises(IndexError):
        urt_table.frame_pose(8, q)


def test_frame_points_include_base(urt_table):
    pts = urt_table.frame_points(GENERIC_Q)
    assert pts.shape == (8, 3)
    np.testing.assert_allclose(pts[0], 0.0)
    np.testing.assert_allclose(pts[-1], urt_table.end_effector_pose(GENERIC_Q).position)


def test_fk_options(urt_table):
    res = fk(urt_table, GENERIC_Q)
    assert len(res.Ts) == 8 and res.points.shape == (8, 3) and res.jacobian is None
    res = fk(urt_table, GENERIC_Q, FKOptions(with_base=False, return_jacobian=True))
    assert len(res.Ts) == 7
    np.testing.assert_allclose(res.jacobian, urt_table.jacobian(GENERIC_Q))


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_jacobian_matches_finite_differences(urt_table, seed):
    rng = np.random.default_rng(seed)
    q = rng.uniform(-np.pi, np.pi, size=6)
    np.testing.assert_allclose(urt_table.jacobian(q), numerical_geometric_jacobian(urt_table, q), atol=1e-6)


def test_mixed_chain_jacobian_matches_finite_differences():
    table = DHTable(
        [
            DHRow(0.0, 0.0, 2.0, 0.0, FrameType.REVOLUTE, 0),
            DHRow(1.0, -np.pi / 2, 0.5, 0.0, FrameType.PRISMATIC, 1),
            DHRow(3.0, np.pi / 2, 0.0, 0.3, FrameType.REVOLUTE, 2),
            DHRow(0.0, 0.0, 1.0, 0.0, FrameType.FIXED),
        ]
    )
    q = np.array([0.4, 1.2, -0.8])
    J = table.jacobian(q)
    np.testing.assert_allclose(J, numerical_geometric_jacobian(table, q), atol=1e-6)
    np.testing.assert_allclose(J[3:, 1], 0.0)


def test_revolute_angular_column_is_joint_axis(urt_table):
    q = GENERIC_Q
    J = urt_table.jacobian(q)
    poses = urt_table.all_poses(q)
    for row, pose in zip(urt_table.rows, poses):
        if row.is_fixed:
            continue
        z_i = pose.z_axis
        np.testing.assert_allclose(J[3:, row.joint_index], z_i)
        assert z_i @ J[3:, row.joint_index] == pytest.approx(1.0)
        assert z_i @ J[:3, row.joint_index] == pytest.approx(0.0, abs=1e-9)


def test_numerical_jacobian_of_linear_map():
    A = np.array([[1.0, 2.0], [3.0, -1.0], [0.5, 0.0]])
    np.testing.assert_allclose(numerical_jacobian(lambda x: A @ x, np.array([0.2, -0.1])), A, atol=1e-8)


def test_right_pseudo_inverse_recovers_jacobian(urt_table):
    J = urt_table.jacobian(GENERIC_Q)
    P = damped_pseudo_inverse(J, damping=1e-8)
    assert P.shape == (6, 6)
    np.testing.assert_allclose(J @ P @ J, J, atol=1e-6)


def test_left_pseudo_inverse_for_underactuated_chain(planar_table):
    J = planar_table.jacobian(np.array([0.3, 0.8, -0.5]))
    P = damped_pseudo_inverse(J, damping=1e-8)
    assert P.shape == (3, 6)
    np.testing.assert_allclose(J @ P @ J, J, atol=1e-6)
    np.testing.assert_allclose(P @ J, np.eye(3), atol=1e-6)


def test_redundant_chain_uses_right_inverse():
    rev = FrameType.REVOLUTE
    rows = [DHRow(1.0, (-1) ** i * np.pi / 2, 0.5, 0.2 * i, rev, i) for i in range(7)]
    table = DHTable(rows)
    J = table.jacobian(np.linspace(-0.6, 0.6, 7))
    P = damped_pseudo_inverse(J, damping=1e-8)
    assert P.shape == (7, 6)
    np.testing.assert_allclose(J @ P, np.eye(6), atol=1e-6)


def test_damped_inverse_bounded_at_singularity(urt_table):
    J = urt_table.jacobian(np.zeros(6))
    assert np.linalg.matrix_rank(J) < 6
    assert np.linalg.cond(J @ J.T) > 1e10
    lam = 1e-2
    P = damped_pseudo_inverse(J, damping=lam)
    assert np.all(np.isfinite(P))
    assert np.linalg.norm(P, 2) <= 1.0 / (2.0 * lam) * (1.0 + 1e-6)
    assert not is_degenerate(P)


def test_non_finite_jacobian_returns_zeros_and_warns(caplog):
    J = np.ones((6, 6))
    J[2, 3] = np.nan
    with caplog.at_level(logging.WARNING, logger="robokin.kinematics"):
        P = damped_pseudo_inverse(J)
    assert P.shape == (6, 6)
    assert is_degenerate(P)
    assert "returning zeros" in caplog.text


def test_pseudo_inverse_rejects_wrong_shape():
    with pytest.raises(ConfigurationError):
        damped_pseudo_inverse(np.ones((5, 6)))


def test_describe_lists_frames(urt_table):
    text = urt_table.describe(GENERIC_Q)
    assert text.count("Revolute Joint") == 6
    assert "Fixed Frame" in text


def test_row_transforms_multiply_to_chain(urt_table):
    T = np.eye(4)
    for k in range(urt_table.num_frames):
        T = T @ urt_table.row_transform(k, GENERIC_Q)
    np.testing.assert_allclose(T, urt_table.transform_between(0, 7, GENERIC_Q), atol=1e-12)
