"""
ik_chain: 串联运动链的正向运动学与逆运动学求解（雅可比 DLS / CCD）
"""

from .errors import (
    IKError,
    TopologyError,
    ConfigurationError,
    StaleTransformError,
    SolveError,
    NonConvergenceError
)
from .model import (
    JointKind,
    JointNode,
    JointType,
    JointTree,
    Chain,
    build_chain,
    PoleHandle,
    PoleRegistry
)
from .solver import (
    SolverConfig,
    JacobianSolverConfig,
    CCDSolverConfig,
    SolveReport,
    SolveStatus,
    IKSolver,
    JacobianIKSolver,
    CyclicIKSolver,
    make_solver,
    solve_ik
)
from .arms import ArmRig, planar_arm, reference_arm

__version__ = "0.1.0"

__all__ = [
    'IKError',
    'TopologyError',
    'ConfigurationError',
    'StaleTransformError',
    'SolveError',
    'NonConvergenceError',
    'JointKind',
    'JointNode',
    'JointType',
    'JointTree',
    'Chain',
    'build_chain',
    'PoleHandle',
    'PoleRegistry',
    'SolverConfig',
    'JacobianSolverConfig',
    'CCDSolverConfig',
    'SolveReport',
    'SolveStatus',
    'IKSolver',
    'JacobianIKSolver',
    'CyclicIKSolver',
    'make_solver',
    'solve_ik',
    'ArmRig',
    'planar_arm',
    'reference_arm'
]
