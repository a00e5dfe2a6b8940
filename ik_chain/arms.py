"""
预置机械臂与宿主侧的“链 + 求解器”组合
"""
import logging
import numpy as np
from typing import List, Optional

from .model.chain import Chain
from .model.joint import JointKind
from .model.pole import PoleHandle, PoleRegistry
from .model.tree import JointTree
from .solver.base import IKSolver
from .solver.jacobian_solver import JacobianIKSolver
from .solver.report import SolveReport

logger = logging.getLogger(__name__)

X_AXIS = (1.0, 0.0, 0.0)
Y_AXIS = (0.0, 1.0, 0.0)
Z_AXIS = (0.0, 0.0, 1.0)


def reference_arm(upper: float = 0.3, fore: float = 0.25, hand: float = 0.1) -> Chain:
    """
    7 自由度手臂：固定根 + 肩(y, x, z) + 肘(y) + 腕(z, y, x) + 固定手端

    静止姿态沿 +X 伸直，自然臂展为 upper + fore + hand。

    :param upper: 肩到肘的长度
    :param fore: 肘到腕的长度
    :param hand: 腕到末端执行器的长度
    """
    tree = JointTree()
    handles = [
        tree.add("fixed", JointKind.fixed()),
        tree.add("shoulder_y", JointKind.rotational(Y_AXIS)),
        tree.add("shoulder_x", JointKind.rotational(X_AXIS)),
        tree.add("shoulder_z", JointKind.rotational(Z_AXIS)),
        tree.add("elbow_y", JointKind.rotational(Y_AXIS), (upper, 0.0, 0.0)),
        tree.add("wrist_z", JointKind.rotational(Z_AXIS), (fore, 0.0, 0.0)),
        tree.add("wrist_y", JointKind.rotational(Y_AXIS)),
        tree.add("wrist_x", JointKind.rotational(X_AXIS)),
        tree.add("hand", JointKind.fixed(), (hand, 0.0, 0.0)),
    ]
    tree.connect(*handles)
    chain = Chain.from_root(tree, handles[0])
    chain.recompute_world_transforms()
    return chain


def planar_arm(segments: int = 5, length: float = 1.0) -> Chain:
    """
    平面手臂：绕 Y 的底座 + segments 个绕 X 的关节，每节沿 -Y 偏移 length

    末端执行器即最后一个关节，静止姿态竖直向下。
    """
    if segments < 1:
        raise ValueError(f"segments must be >= 1, got {segments}")
    tree = JointTree()
    handles = [tree.add("base", JointKind.rotational(Y_AXIS))]
    for i in range(segments):
        handles.append(tree.add(f"link_{i + 1}", JointKind.rotational(X_AXIS), (0.0, -length, 0.0)))
    tree.connect(*handles)
    chain = Chain.from_root(tree, handles[0])
    chain.recompute_world_transforms()
    return chain


class ArmRig:
    """
    宿主实体持有的一条链及其求解器

    宿主每帧调用 solve(target)，随后用 joint_world_transforms() 绘制或约束物理。

    :param chain: 运动链（由本对象独占）
    :param solver: 求解器，默认使用雅可比 DLS
    """

    def __init__(self, chain: Chain, solver: IKSolver):
        self.chain = chain
        self.solver = solver
        self.last_report: Optional[SolveReport] = None

    def set_pole(self, registry: PoleRegistry, handle: PoleHandle, joint_name: str):
        """给雅可比求解器设置 pole 目标，joint_name 为被偏置的中间关节"""
        if not isinstance(self.solver, JacobianIKSolver):
            raise TypeError("Pole targets are only supported by the Jacobian solver")
        joint = self.chain.tree.find(joint_name)
        if joint is None or joint not in self.chain.serial_path:
            raise ValueError(f"Joint '{joint_name}' is not on the chain's serial path")
        self.solver.set_pole_target(registry, handle, joint)

    def solve(self, target_transform: np.ndarray) -> SolveReport:
        """求解并刷新世界变换，未收敛时仍保留部分修正后的姿态"""
        report = self.solver.solve(self.chain, target_transform)
        self.chain.recompute_world_transforms()
        if not report.converged:
            logger.debug("Arm did not converge: %s", report)
        self.last_report = report
        return report

    def joint_world_transforms(self) -> List[np.ndarray]:
        """串联路径上每个节点的世界变换，根到末端顺序"""
        return [self.chain.world_transform(i) for i in range(len(self.chain))]

    def joint_positions(self) -> np.ndarray:
        """串联路径上每个节点的世界坐标 (n, 3)"""
        return np.array([transform[:3, 3] for transform in self.joint_world_transforms()])
