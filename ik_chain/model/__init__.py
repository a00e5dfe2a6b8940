"""
模型层 (Model Layer)
关节树的构建与拓扑维护、串联路径、正向运动学与世界变换缓存

- JointKind / JointType: 关节类型标签，FIXED 无自由度，ROTATIONAL 绕固定轴旋转
- JointNode: 单个关节节点（局部偏移、关节值、父子下标）
- JointTree: 节点竞技场，负责 connect 与拓扑查询
- Chain: 从根到末端执行器的串联链，负责正向运动学
- PoleRegistry / PoleHandle: pole 目标的弱引用登记表
"""

from .joint import JointKind, JointNode, JointType
from .tree import JointTree
from .chain import Chain, build_chain
from .pole import PoleHandle, PoleRegistry

__all__ = [
    'JointKind',
    'JointNode',
    'JointType',
    'JointTree',
    'Chain',
    'build_chain',
    'PoleHandle',
    'PoleRegistry'
]
