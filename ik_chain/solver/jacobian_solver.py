"""
IK求解器实现
使用阻尼最小二乘法 (Damped Least Squares, DLS)，可选 pole 目标偏置中间关节
"""
import logging
import numpy as np
from typing import Optional
from typing_extensions import override

from ..model.chain import Chain
from ..model.pole import PoleHandle, PoleRegistry
from .base import IKSolver
from .config import JacobianSolverConfig
from .ik_core import (
    compute_error_vector,
    compute_jacobian,
    damped_least_squares,
    clamp_step,
    error_norms,
    pole_null_space_step
)
from .report import SolveReport, SolveStatus

logger = logging.getLogger(__name__)


class JacobianIKSolver(IKSolver):
    """
    雅可比 DLS 求解器

    每轮迭代：计算误差 -> 收敛检查 -> 构建 J -> DLS 求 Δθ -> 单步限幅 ->
    （可选）pole 零空间修正 ->（可选）回溯线搜索 -> 写回关节值。
    达到 max_iterations 时保留最后一步的结果，不回滚。
    """

    def __init__(self, config: JacobianSolverConfig):
        super().__init__(config)
        self.config: JacobianSolverConfig = config
        self._pole_registry: Optional[PoleRegistry] = None
        self._pole_handle: Optional[PoleHandle] = None
        self._pole_joint: Optional[int] = None

    def set_pole_target(self, registry: PoleRegistry, handle: PoleHandle, joint: int):
        """
        设置 pole 目标

        :param registry: pole 目标所在的登记表（只做只读查询）
        :param handle: 目标的弱引用 handle
        :param joint: 被偏置的中间关节 handle（如手肘），必须位于链的串联路径中部
        """
        self._pole_registry = registry
        self._pole_handle = handle
        self._pole_joint = joint

    def clear_pole_target(self):
        self._pole_registry = None
        self._pole_handle = None
        self._pole_joint = None

    @property
    def has_pole_target(self) -> bool:
        return self._pole_handle is not None

    def _resolve_pole(self, chain: Chain):
        """返回 (路径位置, pole 坐标)；目标已被移除或关节不在链中部时返回 None"""
        if self._pole_handle is None:
            return None
        position = self._pole_registry.resolve(self._pole_handle)
        if position is None:
            logger.debug("Pole target %s no longer exists, solving without pole bias", self._pole_handle)
            return None
        if self._pole_joint not in chain.serial_path:
            logger.debug("Pole joint %s is not on the serial path, ignoring pole", self._pole_joint)
            return None
        pole_index = chain.serial_path.index(self._pole_joint)
        if pole_index == 0 or pole_index == len(chain.serial_path) - 1 or chain.dof == 0:
            return None
        return pole_index, position

    @override
    def solve(self, chain: Chain, target_transform: np.ndarray) -> SolveReport:
        config = self.config
        config.validate()
        target = self.check_target(target_transform)
        pole = self._resolve_pole(chain)

        values = chain.joint_values()
        transforms = chain.path_transforms(values)
        iteration = 0

        while True:
            # 计算误差 ΔX
            delta_x = compute_error_vector(transforms[-1], target)
            pos_error_norm, ori_error_norm = error_norms(delta_x)

            # 收敛检查
            if self.is_converged(pos_error_norm, ori_error_norm):
                return self.make_report(SolveStatus.CONVERGED, iteration, delta_x)
            if iteration >= config.max_iterations:
                return self.make_report(SolveStatus.MAX_ITERATIONS, iteration, delta_x)
            if chain.dof == 0:
                return self.make_report(SolveStatus.STALLED, iteration, delta_x)

            # 构建雅可比矩阵 J 并求解 Δq
            J = compute_jacobian(chain, transforms)
            delta_q = clamp_step(damped_least_squares(J, delta_x, config.damping), config.max_step)

            if pole is not None:
                pole_index, pole_position = pole
                delta_q = delta_q + pole_null_space_step(
                    chain, transforms, J, pole_index, pole_position,
                    gain=config.pole_gain,
                    damping=config.damping,
                    max_step=config.max_step,
                    tolerance=config.pole_tolerance
                )

            if config.line_search:
                # 线搜索：不断缩小步长，直到局部线性化的假设在误差意义上成立
                current_error_norm = float(np.linalg.norm(delta_x))
                alpha = 1.0
                accepted = False
                while alpha >= config.line_search_alpha_min:
                    trial_values = self._clamped(chain, values + alpha * delta_q)
                    trial_transforms = chain.path_transforms(trial_values)
                    new_error_norm = float(np.linalg.norm(
                        compute_error_vector(trial_transforms[-1], target)))
                    if new_error_norm < current_error_norm:
                        accepted = True
                        break
                    alpha = alpha / 2.0
                if not accepted:
                    # 即使很小的步长也无法改进：目标不可达或已处于局部最优
                    logger.debug("Line search failed at iteration %d", iteration)
                    return self.make_report(SolveStatus.STALLED, iteration, delta_x)
                values, transforms = trial_values, trial_transforms
            else:
                values = self._clamped(chain, values + delta_q)
                transforms = chain.path_transforms(values)

            # 每轮迭代写回一次
            chain.set_joint_values(values)
            iteration += 1
            logger.debug("Iteration %d: position error %.6g, orientation error %.6g",
                         iteration, pos_error_norm, ori_error_norm)

    @staticmethod
    def _clamped(chain: Chain, values: np.ndarray) -> np.ndarray:
        """按各关节 limits 截断"""
        return np.array([node.clamp(value) for node, value in zip(chain.rotational_joints(), values)],
                        dtype=np.float64)
