"""
几何工具函数：平面投影、有向夹角、最短弧四元数、由前向量构造正交基
所有函数无状态，CCD 求解器和极向量(pole)偏置直接依赖这里的数值约定
"""
import numpy as np
from typing import Tuple

from .quaternion_utils import rotation_matrix_to_quaternion, quaternion_to_rotation_matrix

FRAC_PI_12 = np.pi / 12.0


def project_onto_plane(vector: np.ndarray, plane_normal: np.ndarray) -> np.ndarray:
    """
    将向量投影到法向量为 plane_normal 的平面上：v - n * (v·n)/(n·n)

    plane_normal 不要求为单位向量（内部用 n·n 归一化）。
    零法向量属于前置条件违例，这里不做检查，调用方负责避免。

    :param vector: 待投影向量 (Vec3)
    :param plane_normal: 平面法向量 (Vec3)
    :return: 投影后的向量
    """
    normsq = np.dot(plane_normal, plane_normal)
    return vector - plane_normal * (np.dot(vector, plane_normal) / normsq)


def angle_to(a: np.ndarray, b: np.ndarray, n: np.ndarray) -> float:
    """
    计算平面（法向量 n）内从向量 a 到向量 b 的有向最短夹角

    绕 n 右手螺旋方向（逆时针）为正，范围 (-π, π]。
    a 和 b 需已经位于同一平面内（调用方先做 project_onto_plane）。
    """
    return float(np.arctan2(np.dot(np.cross(a, b), n), np.dot(a, b)))


def orthonormal_vector(vector: np.ndarray) -> np.ndarray:
    """返回一个与 vector 正交的单位向量"""
    vector = np.asarray(vector, dtype=np.float64)
    # 选取与 vector 最不平行的坐标轴做叉乘
    reference = np.zeros(3, dtype=np.float64)
    reference[int(np.argmin(np.abs(vector)))] = 1.0
    ortho = np.cross(vector, reference)
    return ortho / np.linalg.norm(ortho)


def rotation_between_vectors(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    计算把向量 a 旋转到向量 b 的最短弧四元数 [w, x, y, z]

    由 (|a||b| + a·b, a×b) 构造后归一化。
    a、b 恰好反向平行时该构造退化为零四元数，此时取与 a 正交的任意轴旋转 π。
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    axis = np.cross(a, b)
    scale = np.sqrt(np.dot(a, a) * np.dot(b, b))
    quat = np.array([scale + np.dot(a, b), axis[0], axis[1], axis[2]], dtype=np.float64)
    norm = np.linalg.norm(quat)
    # 四元数的模与 |a||b| 同量级，阈值需按其缩放
    if norm < 1e-12 * scale:
        ortho = orthonormal_vector(a)
        return np.array([0.0, ortho[0], ortho[1], ortho[2]], dtype=np.float64)
    return quat / norm


def orthonormal_axes_from_forward(fwd: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    由单位前向量构造右手正交基，返回 (right, up, fwd)

    临时的世界 up 取 +Y；当 fwd 与 ±Y 夹角小于约 26°（|cos| > 0.9）时改用 +X，
    避免叉乘退化。
    """
    fwd = np.asarray(fwd, dtype=np.float64)
    temp_up = np.array([0.0, 1.0, 0.0])
    # 取绝对值：fwd 接近 -Y 时叉乘同样退化
    if abs(np.dot(fwd, temp_up)) > 0.9:
        temp_up = np.array([1.0, 0.0, 0.0])

    right = np.cross(temp_up, fwd)
    right = right / np.linalg.norm(right)
    up = np.cross(fwd, right)
    up = up / np.linalg.norm(up)
    return right, up, fwd.copy()


def rotation_matrix_from_right_up_fwd(right: np.ndarray, up: np.ndarray, fwd: np.ndarray) -> np.ndarray:
    """
    以 right、up、fwd 为行向量拼出 3x3 矩阵，不做正交化
    """
    return np.array([right, up, fwd], dtype=np.float64)


def rotation_from_forward(fwd: np.ndarray) -> np.ndarray:
    """
    构造一个让物体局部 z 轴指向 fwd 的旋转，返回 [w, x, y, z]
    """
    right, up, fwd = orthonormal_axes_from_forward(fwd)
    # 列向量依次为局部 x、y、z 在世界系下的方向
    mat = np.column_stack([right, up, fwd])
    return rotation_matrix_to_quaternion(mat)


def rotation_axes(quaternion: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """返回旋转后的局部 x、y、z 轴（世界坐标系）"""
    mat = quaternion_to_rotation_matrix(quaternion)
    return mat[:, 0].copy(), mat[:, 1].copy(), mat[:, 2].copy()
