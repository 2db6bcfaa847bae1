import numpy as np
import pytest

from robokin import Pose, euler_from_matrix, orientation_matrix
from robokin.pose import (
    integrate_rotation,
    orientation_error,
    orthonormality_error,
    orthonormalize,
    rot_x,
    rot_y,
    rot_z,
    skew,
)


def test_orientation_matrix_order_is_zyx():
    yaw, pitch, roll = 0.3, -0.4, 0.5
    expected = rot_z(yaw) @ rot_y(pitch) @ rot_x(roll)
    np.testing.assert_allclose(orientation_matrix(yaw, pitch, roll), expected)
    np.testing.assert_allclose(orientation_matrix(0.0, 0.0, 0.0), np.eye(3))


def test_yaw_rotates_x_onto_y():
    R = orientation_matrix(np.pi / 2, 0.0, 0.0)
    np.testing.assert_allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)


def test_euler_round_trip():
    angles = (0.3, -0.4, 0.5)
    assert euler_from_matrix(orientation_matrix(*angles)) == pytest.approx(angles)


def test_homogeneous_round_trip_and_axes():
    R = orientation_matrix(0.2, 0.1, -0.3)
    pose = Pose([1.0, 2.0, 3.0], R)
    T = pose.to_homogeneous()
    back = Pose.from_homogeneous(T)
    np.testing.assert_allclose(back.position, [1.0, 2.0, 3.0])
    np.testing.assert_allclose(back.rotation, R)
    np.testing.assert_allclose(pose.z_axis, R[:, 2])
    np.testing.assert_allclose(pose.x_axis, R[:, 0])


def test_from_components_matches_orientation_matrix():
    pose = Pose.from_components(1.0, 0.0, -1.0, 0.1, 0.2, 0.3)
    np.testing.assert_allclose(pose.rotation, orientation_matrix(0.1, 0.2, 0.3))
    np.testing.assert_allclose(pose.position, [1.0, 0.0, -1.0])


def test_skew_matches_cross_product():
    w = np.array([0.1, -0.2, 0.3])
    v = np.array([1.0, 2.0, 3.0])
    np.testing.assert_allclose(skew(w) @ v, np.cross(w, v))


def test_small_angle_update_drifts_and_svd_restores():
    R = np.eye(3)
    for _ in range(20):
        R = integrate_rotation(R, np.array([0.0, 0.0, 3.0]), 0.05)
    assert orthonormality_error(R) > 1e-3
    fixed = orthonormalize(R)
    assert orthonormality_error(fixed) < 1e-12
    assert np.linalg.det(fixed) == pytest.approx(1.0)


def test_orientation_error_small_rotation():
    delta = 1e-3
    err = orientation_error(np.eye(3), rot_z(delta))
    np.testing.assert_allclose(err, [0.0, 0.0, np.sin(delta)], atol=1e-15)
    np.testing.assert_allclose(orientation_error(rot_x(0.4), rot_x(0.4)), np.zeros(3), atol=1e-15)


def test_pose_error_to_reference():
    current = Pose([1.0, 1.0, 1.0])
    reference = Pose([2.0, 0.0, 1.0])
    np.testing.assert_allclose(current.error_to(reference), [1.0, -1.0, 0.0, 0.0, 0.0, 0.0])


def test_axes_and_copy_are_independent():
    pose = Pose([1.0, 2.0, 3.0], rot_z(np.pi / 2))
    np.testing.assert_allclose(pose.y_axis, [-1.0, 0.0, 0.0], atol=1e-12)
    dup = pose.copy()
    dup.position[0] = 9.0
    dup.rotation[0, 0] = 5.0
    assert pose.position[0] == 1.0
    assert pose.rotation[0, 0] == pytest.approx(0.0, abs=1e-12)
