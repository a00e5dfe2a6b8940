import numpy as np
import pytest

from ik_chain.utils import (
    angle_to,
    orthonormal_axes_from_forward,
    project_onto_plane,
    quaternion_to_rotation_matrix,
    rotation_axes,
    rotation_between_vectors,
    rotation_from_forward,
    rotation_matrix_from_right_up_fwd,
    rotation_matrix_to_quaternion,
    quaternion_multiply,
    axis_angle_to_quaternion,
    quaternion_angle,
    invert_transform,
    make_transform,
    transform_rotation,
    transform_translation
)

rng = np.random.default_rng(7)
RANDOM_VECTORS = [rng.normal(size=3) for _ in range(20)]


@pytest.mark.parametrize("v", RANDOM_VECTORS[:10])
@pytest.mark.parametrize("n", RANDOM_VECTORS[10:13])
def test_project_onto_plane_is_orthogonal_to_normal(v, n):
    projected = project_onto_plane(v, n * 3.5)
    assert np.dot(projected, n) == pytest.approx(0.0, abs=1e-12)


def test_project_onto_plane_keeps_in_plane_component():
    projected = project_onto_plane(np.array([1.0, 2.0, 3.0]), np.array([0.0, 0.0, 2.0]))
    np.testing.assert_allclose(projected, [1.0, 2.0, 0.0])


def test_angle_to_sign_follows_right_hand_rule():
    x, y, z = np.eye(3)
    assert angle_to(x, y, z) == pytest.approx(np.pi / 2)
    assert angle_to(x, -y, z) == pytest.approx(-np.pi / 2)
    assert angle_to(x, y, -z) == pytest.approx(-np.pi / 2)


@pytest.mark.parametrize("i", range(8))
def test_angle_to_is_antisymmetric(i):
    n = RANDOM_VECTORS[i]
    a = project_onto_plane(RANDOM_VECTORS[i + 8], n)
    b = project_onto_plane(RANDOM_VECTORS[i + 9], n)
    assert angle_to(a, b, n) == pytest.approx(-angle_to(b, a, n))


@pytest.mark.parametrize("i", range(6))
def test_rotation_between_vectors_maps_a_onto_b(i):
    a, b = RANDOM_VECTORS[i], RANDOM_VECTORS[i + 6] * 2.0
    quat = rotation_between_vectors(a, b)
    assert np.linalg.norm(quat) == pytest.approx(1.0)
    rotated = quaternion_to_rotation_matrix(quat) @ (a / np.linalg.norm(a))
    np.testing.assert_allclose(rotated, b / np.linalg.norm(b), atol=1e-9)


def test_rotation_between_antiparallel_vectors_is_half_turn():
    a = np.array([0.3, -1.0, 2.0])
    quat = rotation_between_vectors(a, -a)
    assert np.linalg.norm(quat) == pytest.approx(1.0)
    assert quat[0] == pytest.approx(0.0)
    np.testing.assert_allclose(quaternion_to_rotation_matrix(quat) @ a, -a, atol=1e-9)


@pytest.mark.parametrize("length", [1e-7, 1e-3, 1e4])
def test_rotation_between_vectors_ignores_length(length):
    x, y = np.array([length, 0.0, 0.0]), np.array([0.0, length, 0.0])
    quat = rotation_between_vectors(x, y)
    np.testing.assert_allclose(quaternion_to_rotation_matrix(quat) @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-9)

    half_turn = rotation_between_vectors(x, -x)
    assert half_turn[0] == pytest.approx(0.0)
    np.testing.assert_allclose(quaternion_to_rotation_matrix(half_turn) @ [1.0, 0.0, 0.0], [-1.0, 0.0, 0.0],
                               atol=1e-9)


@pytest.mark.parametrize("fwd", [
    [0.0, 0.0, 1.0],
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [0.0, -1.0, 0.0],
    [0.2, 0.95, 0.1],
    [-0.5, 0.2, -0.8],
])
def test_orthonormal_axes_from_forward_is_right_handed(fwd):
    fwd = np.asarray(fwd) / np.linalg.norm(fwd)
    right, up, forward = orthonormal_axes_from_forward(fwd)
    basis = np.array([right, up, forward])
    np.testing.assert_allclose(basis @ basis.T, np.eye(3), atol=1e-12)
    np.testing.assert_allclose(np.cross(right, up), forward, atol=1e-12)
    np.testing.assert_allclose(forward, fwd)


@pytest.mark.parametrize("fwd", [[0.2, 0.95, 0.1], [0.2, -0.95, 0.1]])
def test_orthonormal_axes_near_y_use_x_as_temporary_up(fwd):
    fwd = np.asarray(fwd) / np.linalg.norm(fwd)
    right, _, _ = orthonormal_axes_from_forward(fwd)
    # right = X × fwd，与 X 正交
    assert right[0] == pytest.approx(0.0, abs=1e-12)


def test_right_up_fwd_rows_and_rotation_from_forward():
    fwd = np.array([1.0, 1.0, 0.0]) / np.sqrt(2.0)
    right, up, forward = orthonormal_axes_from_forward(fwd)
    mat = rotation_matrix_from_right_up_fwd(right, up, forward)
    np.testing.assert_allclose(mat[2], fwd)

    quat = rotation_from_forward(fwd)
    _, _, local_z = rotation_axes(quat)
    np.testing.assert_allclose(local_z, fwd, atol=1e-12)


def test_quaternion_helpers_agree():
    q1 = axis_angle_to_quaternion(np.array([0.0, 0.0, 1.0]), np.pi / 2)
    q2 = axis_angle_to_quaternion(np.array([1.0, 0.0, 0.0]), np.pi / 2)
    combined = quaternion_multiply(q1, q2)
    np.testing.assert_allclose(
        quaternion_to_rotation_matrix(combined),
        quaternion_to_rotation_matrix(q1) @ quaternion_to_rotation_matrix(q2),
        atol=1e-12
    )
    np.testing.assert_allclose(rotation_matrix_to_quaternion(quaternion_to_rotation_matrix(q1)), q1, atol=1e-12)
    assert quaternion_angle(q1) == pytest.approx(np.pi / 2)


def test_invert_transform():
    transform = make_transform([1.0, 2.0, 3.0], axis_angle_to_quaternion(np.array([0.0, 1.0, 0.0]), 0.4))
    np.testing.assert_allclose(transform @ invert_transform(transform), np.eye(4), atol=1e-12)


def test_zero_quaternion_rejected():
    with pytest.raises(ValueError):
        quaternion_to_rotation_matrix([0.0, 0.0, 0.0, 0.0])


def test_non_unit_quaternion_is_normalised():
    quat = axis_angle_to_quaternion(np.array([0.0, 0.0, 1.0]), 0.8)
    np.testing.assert_allclose(quaternion_to_rotation_matrix(3.0 * quat), quaternion_to_rotation_matrix(quat),
                               atol=1e-12)
    with pytest.raises(ValueError):
        quaternion_to_rotation_matrix([1.0, 0.0, 0.0])


def test_transform_parts():
    quat = axis_angle_to_quaternion(np.array([1.0, 0.0, 0.0]), -0.6)
    transform = make_transform([0.2, -0.4, 1.5], quat)
    translation = transform_translation(transform)
    np.testing.assert_allclose(translation, [0.2, -0.4, 1.5])
    translation[0] = 9.0
    assert transform[0, 3] == pytest.approx(0.2)

    # w 取非负，-q 与 q 表示同一旋转
    np.testing.assert_allclose(transform_rotation(transform), quat, atol=1e-12)
    np.testing.assert_allclose(transform_rotation(make_transform(None, -quat)), quat, atol=1e-12)
