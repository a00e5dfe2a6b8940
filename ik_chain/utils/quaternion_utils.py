"""
四元数与齐次变换工具函数
四元数统一使用 [w, x, y, z] 格式；scipy 使用 [x, y, z, w]，转换时注意顺序
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Optional, Union


def quaternion_to_rotation_matrix(quaternion: Union[np.ndarray, list, tuple]) -> np.ndarray:
    """
    [w, x, y, z] 四元数 -> 3x3 旋转矩阵，非单位四元数先归一化

    :raises ValueError: 形状不是 (4,) 或模接近 0
    """
    w, x, y, z = _checked_quaternion(quaternion)
    return R.from_quat([x, y, z, w]).as_matrix()


def _checked_quaternion(quaternion) -> np.ndarray:
    quaternion = np.asarray(quaternion, dtype=np.float64)
    if quaternion.shape != (4,):
        raise ValueError(f"Quaternion must be a 4-element array, got shape {quaternion.shape}")
    norm = np.linalg.norm(quaternion)
    if norm < 1e-10:
        raise ValueError(f"Quaternion norm too small: {norm}, cannot normalize")
    return quaternion / norm


def rotation_matrix_to_quaternion(rotation_matrix: np.ndarray) -> np.ndarray:
    """旋转矩阵 -> [w, x, y, z]，w 取非负"""
    x, y, z, w = R.from_matrix(np.asarray(rotation_matrix, dtype=np.float64)).as_quat()
    quat = np.array([w, x, y, z], dtype=np.float64)
    if quat[0] < 0.0:
        quat = -quat
    return quat


def quaternion_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """四元数乘法：q1 * q2（先应用 q2，再应用 q1）"""
    w1, x1, y1, z1 = q1[0], q1[1], q1[2], q1[3]
    w2, x2, y2, z2 = q2[0], q2[1], q2[2], q2[3]
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + w2*x1 + y1*z2 - z1*y2,
        w1*y2 + w2*y1 + z1*x2 - x1*z2,
        w1*z2 + w2*z1 + x1*y2 - y1*x2
    ], dtype=np.float64)


def axis_angle_to_quaternion(axis: np.ndarray, angle: float) -> np.ndarray:
    """
    绕单位轴 axis 旋转 angle 弧度的四元数

    :param axis: 旋转轴，需为单位向量
    :param angle: 旋转角（弧度）
    """
    half_theta = angle / 2.0
    xyz = np.asarray(axis, dtype=np.float64) * np.sin(half_theta)
    return np.array([np.cos(half_theta), xyz[0], xyz[1], xyz[2]], dtype=np.float64)


def quaternion_angle(quaternion: np.ndarray) -> float:
    """四元数表示的旋转角，范围 [0, π]"""
    w = min(abs(float(quaternion[0])), 1.0)
    return 2.0 * float(np.arccos(w))


def make_transform(translation: Optional[np.ndarray] = None,
                   rotation: Optional[np.ndarray] = None) -> np.ndarray:
    """
    组装 4x4 齐次变换矩阵

    :param translation: 平移 (Vec3)，None 表示零平移
    :param rotation: 3x3 旋转矩阵或 [w, x, y, z] 四元数，None 表示无旋转
    :return: 4x4 变换矩阵
    """
    transform = np.identity(4, dtype=np.float64)
    if rotation is not None:
        rotation = np.asarray(rotation, dtype=np.float64)
        if rotation.shape == (4,):
            rotation = quaternion_to_rotation_matrix(rotation)
        transform[:3, :3] = rotation
    if translation is not None:
        transform[:3, 3] = translation
    return transform


def transform_translation(transform: np.ndarray) -> np.ndarray:
    """取出平移部分 (Vec3)"""
    return np.array(transform[:3, 3], dtype=np.float64)


def transform_rotation(transform: np.ndarray) -> np.ndarray:
    """取出旋转部分，返回 [w, x, y, z]"""
    return rotation_matrix_to_quaternion(transform[:3, :3])


def invert_transform(transform: np.ndarray) -> np.ndarray:
    """刚体变换求逆：[R^T | -R^T t]"""
    rot_t = transform[:3, :3].T
    inverse = np.identity(4, dtype=np.float64)
    inverse[:3, :3] = rot_t
    inverse[:3, 3] = -rot_t @ transform[:3, 3]
    return inverse
