"""
关节节点实现

关节类型用带标签的取值 JointKind {FIXED, ROTATIONAL(axis)} 表示，
链与求解器都针对标签分支，不依赖子类多态。
父子关系只保存竞技场(arena)下标，节点的所有权属于 JointTree。
"""
import enum
import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Tuple, List

from ..utils.quaternion_utils import axis_angle_to_quaternion, quaternion_to_rotation_matrix


class JointType(enum.Enum):
    FIXED = "fixed"
    ROTATIONAL = "rotational"


@dataclass(frozen=True)
class JointKind:
    """
    关节类型标签

    :param type: FIXED 不贡献自由度；ROTATIONAL 贡献一个绕 axis 的转角
    :param axis: 局部坐标系下的单位旋转轴（仅 ROTATIONAL）
    """
    type: JointType
    axis: Optional[Tuple[float, float, float]] = None

    @classmethod
    def fixed(cls) -> 'JointKind':
        return cls(JointType.FIXED)

    @classmethod
    def rotational(cls, axis) -> 'JointKind':
        """
        :param axis: 旋转轴（不能为零向量，程序自动归一化）
        """
        axis = np.asarray(axis, dtype=np.float64)
        axis_norm = np.linalg.norm(axis)
        if axis_norm < 1e-6:
            raise ValueError(f"Axis vector is too small to be normalized: {axis}")
        axis = axis / axis_norm
        return cls(JointType.ROTATIONAL, (float(axis[0]), float(axis[1]), float(axis[2])))

    @property
    def is_rotational(self) -> bool:
        return self.type is JointType.ROTATIONAL

    @property
    def axis_vector(self) -> np.ndarray:
        """旋转轴的 numpy 形式；FIXED 返回零向量"""
        if self.axis is None:
            return np.zeros(3, dtype=np.float64)
        return np.array(self.axis, dtype=np.float64)


@dataclass(eq=False)
class JointNode:
    """
    单自由度关节节点

    :param name: 关节名称
    :param kind: 关节类型
    :param local_offset: 相对父级的静态位移 (Vec3)，构造后只读
    :param limits: 约束范围 [min, max]（弧度），None 表示无约束
    """
    name: str
    kind: JointKind
    local_offset: np.ndarray
    limits: Optional[Tuple[float, float]] = None
    joint_value: float = 0.0
    index: int = -1
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    def __post_init__(self):
        offset = np.array(self.local_offset, dtype=np.float64).reshape(3)
        offset.setflags(write=False)
        self.local_offset = offset
        if self.limits is not None:
            min_val, max_val = self.limits
            if min_val > max_val:
                raise ValueError(f"Invalid limits for joint '{self.name}': {self.limits}")
            self.limits = (float(min_val), float(max_val))

    @property
    def dof(self) -> int:
        """自由度数量 (0 或 1)"""
        return 1 if self.kind.is_rotational else 0

    def clamp(self, value: float) -> float:
        """按 limits 截断关节值；FIXED 恒为 0"""
        if not self.kind.is_rotational:
            return 0.0
        if self.limits is not None:
            min_val, max_val = self.limits
            return float(np.clip(value, min_val, max_val))
        return float(value)

    def apply_delta(self, delta_q: float):
        """更新角度，执行约束检查"""
        self.joint_value = self.clamp(self.joint_value + delta_q)

    def get_local_matrix(self, value: Optional[float] = None) -> np.ndarray:
        """
        局部变换：先平移 local_offset，再绕 axis 旋转 value

        :param value: 关节值，None 时使用当前 joint_value（求解器用工作副本时传入）
        :return: 4x4 局部变换矩阵
        """
        local_transform = np.identity(4, dtype=np.float64)
        local_transform[:3, 3] = self.local_offset
        if self.kind.is_rotational:
            theta = self.joint_value if value is None else value
            quat = axis_angle_to_quaternion(self.kind.axis_vector, theta)
            local_transform[:3, :3] = quaternion_to_rotation_matrix(quat)
        return local_transform

    def __repr__(self):
        return f"<JointNode {self.kind.type.value}: {self.name}>"
