"""
IK核心算法实现：误差向量、雅可比矩阵、阻尼最小二乘、pole 零空间修正
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Tuple

from ..model.chain import Chain
from ..utils.geometry import angle_to, project_onto_plane


def compute_error_vector(current_transform: np.ndarray,
                         target_transform: np.ndarray) -> np.ndarray:
    """
    计算当前末端姿态和目标姿态之间的 6x1 误差向量 (delta_x)

    :param current_transform: 末端执行器当前的 4x4 全局变换矩阵
    :param target_transform: 目标 4x4 全局变换矩阵
    :return: 6x1 的误差向量 [delta_p (3x1), delta_r (3x1)]
    """
    # 位置误差 (delta_p)
    delta_p = target_transform[:3, 3] - current_transform[:3, 3]

    # 姿态误差 (delta_r)：R_error = R_target * R_current^(-1)
    # 轴-角向量即最短弧四元数的向量部分按转角缩放
    R_error_mat = target_transform[:3, :3] @ current_transform[:3, :3].T
    delta_r = R.from_matrix(R_error_mat).as_rotvec()

    return np.concatenate([delta_p, delta_r])


def error_norms(delta_x: np.ndarray) -> Tuple[float, float]:
    """返回 (位置误差, 姿态误差)"""
    return float(np.linalg.norm(delta_x[:3])), float(np.linalg.norm(delta_x[3:]))


def compute_jacobian(chain: Chain, transforms: np.ndarray) -> np.ndarray:
    """
    构建雅可比矩阵 J (6xN)，N 为链上转动关节数

    第 i 列为 [z_i x (p_end - p_i), z_i]，所有量都在世界坐标系下。

    :param chain: 运动链
    :param transforms: chain.path_transforms() 得到的工作副本
    :return: 6xN 雅可比矩阵
    """
    jacobian = np.zeros((6, chain.dof), dtype=np.float64)
    end_effector_pos = transforms[-1][:3, 3]

    for col_idx, position in enumerate(chain.rotational_indices):
        node = chain.node_at(position)
        # 局部 axis 经过世界旋转得到世界系下的转轴
        z_i = transforms[position][:3, :3] @ node.kind.axis_vector
        p_i = transforms[position][:3, 3]
        jacobian[:3, col_idx] = np.cross(z_i, end_effector_pos - p_i)
        jacobian[3:, col_idx] = z_i

    return jacobian


def compute_point_jacobian(chain: Chain, transforms: np.ndarray, position_index: int) -> np.ndarray:
    """
    路径上第 position_index 个节点原点的线速度雅可比 (3xN)，只有其上游关节有贡献
    """
    jacobian = np.zeros((3, chain.dof), dtype=np.float64)
    point = transforms[position_index][:3, 3]
    for col_idx, position in enumerate(chain.rotational_indices):
        if position >= position_index:
            break
        z_i = transforms[position][:3, :3] @ chain.node_at(position).kind.axis_vector
        jacobian[:, col_idx] = np.cross(z_i, point - transforms[position][:3, 3])
    return jacobian


def damped_least_squares(jacobian: np.ndarray, error: np.ndarray, damping: float) -> np.ndarray:
    """
    阻尼最小二乘：Δθ = J^T (J J^T + λI)^(-1) e

    :param jacobian: MxN 矩阵
    :param error: M 维误差
    :param damping: 阻尼系数 λ
    :return: N 维关节增量
    """
    rows = jacobian.shape[0]
    A = jacobian @ jacobian.T + damping * np.identity(rows, dtype=np.float64)
    try:
        beta = np.linalg.solve(A, error)
    except np.linalg.LinAlgError:
        # 矩阵奇异（λ=0 且处于奇异位形），退回最小二乘
        beta = np.linalg.lstsq(A, error, rcond=None)[0]
    return jacobian.T @ beta


def clamp_step(delta_q: np.ndarray, max_step: float) -> np.ndarray:
    """任一分量超过 max_step 时整体等比缩放，保持步进方向不变"""
    largest = float(np.max(np.abs(delta_q))) if delta_q.size else 0.0
    if largest > max_step:
        return delta_q * (max_step / largest)
    return delta_q


def pole_swing_angle(chain: Chain, transforms: np.ndarray, pole_index: int,
                     pole_position: np.ndarray) -> float:
    """
    中间关节（如手肘）绕“肩-腕”轴的摆动方向与 pole 方向之间的有向夹角

    肩取链上第一个转动关节，腕取末端执行器。
    任一方向退化（手肘或 pole 落在肩-腕轴上）时返回 0。
    """
    shoulder = transforms[chain.rotational_indices[0]][:3, 3]
    wrist = transforms[-1][:3, 3]
    axis = wrist - shoulder
    axis_norm = np.linalg.norm(axis)
    if axis_norm < 1e-9:
        return 0.0
    axis = axis / axis_norm

    current = project_onto_plane(transforms[pole_index][:3, 3] - shoulder, axis)
    desired = project_onto_plane(pole_position - shoulder, axis)
    if np.linalg.norm(current) < 1e-9 or np.linalg.norm(desired) < 1e-9:
        return 0.0
    return angle_to(current, desired, axis)


def pole_null_space_step(chain: Chain, transforms: np.ndarray, jacobian: np.ndarray,
                         pole_index: int, pole_position: np.ndarray,
                         gain: float, damping: float, max_step: float,
                         tolerance: float) -> np.ndarray:
    """
    计算 pole 偏置的次级关节增量

    期望手肘绕肩-腕轴摆动 gain * phi，用手肘点雅可比求出关节增量后
    投影到末端雅可比的零空间，使其对末端 6 维速度的扰动不超过 tolerance。

    :param jacobian: 当前位形下的末端雅可比 (6xN)
    :param pole_index: 被偏置的中间节点在串联路径中的位置
    :param pole_position: pole 目标的世界坐标
    :return: N 维关节增量（无法计算时为零向量）
    """
    zero = np.zeros(chain.dof, dtype=np.float64)
    phi = pole_swing_angle(chain, transforms, pole_index, pole_position)
    if abs(phi) < 1e-9:
        return zero

    shoulder = transforms[chain.rotational_indices[0]][:3, 3]
    axis = transforms[-1][:3, 3] - shoulder
    axis = axis / np.linalg.norm(axis)
    lever = project_onto_plane(transforms[pole_index][:3, 3] - shoulder, axis)
    desired_velocity = gain * phi * np.cross(axis, lever)

    point_jacobian = compute_point_jacobian(chain, transforms, pole_index)
    z = damped_least_squares(point_jacobian, desired_velocity, damping)

    # 零空间投影 N = I - J^+ J
    null_projector = np.identity(chain.dof) - np.linalg.pinv(jacobian, rcond=1e-6) @ jacobian
    step = clamp_step(null_projector @ z, max_step)

    disturbance = float(np.linalg.norm(jacobian @ step))
    if disturbance > tolerance:
        step = step * (tolerance / disturbance)
    return step
