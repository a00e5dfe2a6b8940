"""
求解入口：按方法名创建求解器并求解
"""
import numpy as np
from typing import Any, Mapping, Union

from ..errors import ConfigurationError
from ..model.chain import Chain
from .base import IKSolver
from .ccd_solver import CyclicIKSolver
from .config import CCDSolverConfig, JacobianSolverConfig
from .jacobian_solver import JacobianIKSolver
from .report import SolveReport

SOLVERS = {
    'jacobian': (JacobianIKSolver, JacobianSolverConfig),
    'ccd': (CyclicIKSolver, CCDSolverConfig),
}


def make_solver(method: str, config: Union[Mapping[str, Any], JacobianSolverConfig, CCDSolverConfig]) -> IKSolver:
    """
    创建求解器

    :param method: 'jacobian' 或 'ccd'
    :param config: 对应的配置对象，或包含配置字段的字典（未知键被忽略）
    """
    if method not in SOLVERS:
        raise ConfigurationError(f"Unknown solve method: {method!r}, expected one of {sorted(SOLVERS)}")
    solver_cls, config_cls = SOLVERS[method]
    if isinstance(config, Mapping):
        config = config_cls.from_dict(config)
    elif not isinstance(config, config_cls):
        raise ConfigurationError(f"{solver_cls.__name__} needs a {config_cls.__name__}, got {type(config).__name__}")
    return solver_cls(config)


def solve_ik(
    chain: Chain,
    target_transform: np.ndarray,
    method: str = 'jacobian',
    allowable_target_distance: float = 1e-3,
    allowable_target_angle: float = 1e-2,
    max_iterations: int = 100,
    **options
) -> SolveReport:
    """
    一次性求解的便捷函数，求解后顺带刷新链的世界变换

    :param chain: 运动链
    :param target_transform: 目标变换矩阵（4x4），包含目标位置和姿态
    :param method: 'jacobian'（DLS）或 'ccd'
    :param allowable_target_distance: 位置收敛容差，默认值1e-3
    :param allowable_target_angle: 姿态收敛容差（弧度），默认值1e-2
    :param max_iterations: 最大迭代次数，默认值100
    :param options: 对应求解器配置的其余字段（damping、step_fraction 等）
    :return: 求解报告
    """
    solver = make_solver(method, dict(
        options,
        allowable_target_distance=allowable_target_distance,
        allowable_target_angle=allowable_target_angle,
        max_iterations=max_iterations
    ))
    report = solver.solve(chain, target_transform)
    chain.recompute_world_transforms()
    return report
