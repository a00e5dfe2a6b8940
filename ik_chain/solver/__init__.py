"""
求解层 (Solver Layer)
纯数学计算，负责误差与雅可比矩阵构建、DLS / CCD 迭代及关节值写回
"""

from .config import SolverConfig, JacobianSolverConfig, CCDSolverConfig
from .report import SolveReport, SolveStatus
from .ik_core import (
    compute_error_vector,
    compute_jacobian,
    damped_least_squares,
    error_norms
)
from .base import IKSolver
from .jacobian_solver import JacobianIKSolver
from .ccd_solver import CyclicIKSolver
from .solve_ik import make_solver, solve_ik

__all__ = [
    'SolverConfig',
    'JacobianSolverConfig',
    'CCDSolverConfig',
    'SolveReport',
    'SolveStatus',
    'compute_error_vector',
    'compute_jacobian',
    'damped_least_squares',
    'error_norms',
    'IKSolver',
    'JacobianIKSolver',
    'CyclicIKSolver',
    'make_solver',
    'solve_ik'
]
