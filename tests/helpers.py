import numpy as np
from scipy.spatial.transform import Rotation as R

from ik_chain.utils import make_transform


def rotation_about(axis, angle):
    """绕 axis 旋转 angle 的 3x3 矩阵"""
    axis = np.asarray(axis, dtype=np.float64)
    return R.from_rotvec(axis / np.linalg.norm(axis) * angle).as_matrix()


def wrap_angle(angle):
    return (angle + np.pi) % (2 * np.pi) - np.pi


def hinge_target(theta):
    """把 hinge 末端绕 Y 转 theta 后的位姿"""
    rot = rotation_about((0, 1, 0), theta)
    return make_transform(rot @ np.array([1.0, 0.0, 0.0]), rot)
