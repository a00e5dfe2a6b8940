"""
循环坐标下降 (Cyclic Coordinate Descent, CCD) 求解器
每轮从末端向根逐个调整关节，使末端沿该关节转轴所在平面转向目标
"""
import logging
import numpy as np
from typing_extensions import override

from ..model.chain import Chain
from ..utils.geometry import angle_to, project_onto_plane
from .base import IKSolver
from .config import CCDSolverConfig
from .ik_core import compute_error_vector, error_norms
from .report import SolveReport, SolveStatus

logger = logging.getLogger(__name__)

# 投影后长度小于该值的向量视为退化（末端或目标落在转轴上），跳过该关节
_DEGENERATE_LENGTH = 1e-9


class CyclicIKSolver(IKSolver):
    """
    CCD 求解器

    每轮扫描后与雅可比求解器一样同时检查位置与姿态误差。
    orientation_weight 只影响每个关节转角的计算：为 0 时只按位置项转动，
    大于 0 时在位置项与姿态项（姿态误差在转轴上的分量）之间加权。
    """

    def __init__(self, config: CCDSolverConfig):
        super().__init__(config)
        self.config: CCDSolverConfig = config

    @override
    def solve(self, chain: Chain, target_transform: np.ndarray) -> SolveReport:
        config = self.config
        config.validate()
        target = self.check_target(target_transform)
        target_pos = target[:3, 3]

        values = chain.joint_values()
        transforms = chain.path_transforms(values)
        iteration = 0

        while True:
            delta_x = compute_error_vector(transforms[-1], target)
            if self.is_converged(*error_norms(delta_x)):
                return self.make_report(SolveStatus.CONVERGED, iteration, delta_x)
            if iteration >= config.max_iterations:
                return self.make_report(SolveStatus.MAX_ITERATIONS, iteration, delta_x)
            if chain.dof == 0:
                return self.make_report(SolveStatus.STALLED, iteration, delta_x)

            # 从末端向根扫一遍
            for slot in reversed(range(chain.dof)):
                position = chain.rotational_indices[slot]
                node = chain.node_at(position)
                axis = transforms[position][:3, :3] @ node.kind.axis_vector
                pivot = transforms[position][:3, 3]

                theta = self._position_angle(axis, pivot, transforms[-1][:3, 3], target_pos)
                if config.tracks_orientation:
                    rotation_error = compute_error_vector(transforms[-1], target)[3:]
                    theta = ((1.0 - config.orientation_weight) * theta
                             + config.orientation_weight * float(np.dot(rotation_error, axis)))
                theta *= config.step_fraction

                new_value = node.clamp(values[slot] + theta)
                if new_value == values[slot]:
                    continue
                values[slot] = new_value
                # 只刷新被调整关节的下游
                chain.update_path_transforms(transforms, values, position)

            chain.set_joint_values(values)
            iteration += 1

    @staticmethod
    def _position_angle(axis: np.ndarray, pivot: np.ndarray,
                        end_pos: np.ndarray, target_pos: np.ndarray) -> float:
        """把末端绕 axis 转向目标所需的有向角；退化时为 0"""
        to_end = project_onto_plane(end_pos - pivot, axis)
        to_target = project_onto_plane(target_pos - pivot, axis)
        if np.linalg.norm(to_end) < _DEGENERATE_LENGTH or np.linalg.norm(to_target) < _DEGENERATE_LENGTH:
            return 0.0
        return angle_to(to_end, to_target, axis)
