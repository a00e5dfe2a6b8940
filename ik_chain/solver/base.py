"""
求解器公共基类
"""
import logging
import numpy as np
from abc import ABC, abstractmethod

from ..errors import SolveError
from ..model.chain import Chain
from .config import SolverConfig
from .ik_core import error_norms
from .report import SolveReport, SolveStatus

logger = logging.getLogger(__name__)


class IKSolver(ABC):
    """
    所有 IK 求解器的抽象基类

    求解器只持有配置，不保存任何单次求解的状态，
    因此一个求解器实例可以依次服务多条链。
    """

    def __init__(self, config: SolverConfig):
        self.config = config

    @abstractmethod
    def solve(self, chain: Chain, target_transform: np.ndarray) -> SolveReport:
        """
        把链的末端执行器驱动到目标位姿，原地修改关节值

        求解结束后调用方需自行 chain.recompute_world_transforms() 再读取位姿。

        :param chain: 运动链
        :param target_transform: 4x4 目标位姿（与链根同一坐标系）
        :return: 求解报告；目标不可达时返回未收敛报告而不抛异常
        """

    @staticmethod
    def check_target(target_transform) -> np.ndarray:
        target = np.asarray(target_transform, dtype=np.float64)
        if target.shape != (4, 4):
            raise SolveError(f"Target must be a 4x4 transform, got shape {target.shape}")
        if not np.all(np.isfinite(target)):
            raise SolveError("Target transform contains non-finite values")
        return target

    def is_converged(self, position_error: float, orientation_error: float) -> bool:
        return (position_error < self.config.allowable_target_distance
                and orientation_error < self.config.allowable_target_angle)

    def make_report(self, status: SolveStatus, iterations: int, delta_x: np.ndarray) -> SolveReport:
        position_error, orientation_error = error_norms(delta_x)
        report = SolveReport(status, iterations, position_error, orientation_error)
        logger.debug("%s finished: %s", type(self).__name__, report)
        return report
