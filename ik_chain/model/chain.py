"""
运动链：关节树 + 从根到末端执行器的串联路径 + 世界变换缓存

世界变换缓存用逐节点脏标记管理：修改 joint_value 会把该节点及其全部后代标脏，
调用方在读取位姿前必须先调用 recompute_world_transforms()。
求解器不读缓存，而是通过 path_transforms()/update_path_transforms() 维护自己的工作副本。
"""
import itertools
import logging
import numpy as np
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set

from ..errors import StaleTransformError, TopologyError
from .joint import JointKind, JointNode
from .tree import JointTree

logger = logging.getLogger(__name__)

_chain_ids = itertools.count()

NAMED_AXES = {
    'x': (1.0, 0.0, 0.0), '-x': (-1.0, 0.0, 0.0),
    'y': (0.0, 1.0, 0.0), '-y': (0.0, -1.0, 0.0),
    'z': (0.0, 0.0, 1.0), '-z': (0.0, 0.0, -1.0),
}


class Chain:
    """
    串联运动链

    :param tree: 节点所属的关节树
    :param root: 链的根节点 handle（其父变换视为单位阵）
    :param serial_path: 从 root 到末端执行器的节点 handle 列表
    """

    def __init__(self, tree: JointTree, root: int, serial_path: List[int]):
        self.tree = tree
        self.root = root
        self.serial_path: List[int] = list(serial_path)
        self.id = next(_chain_ids)

        if not self.serial_path or self.serial_path[0] != root:
            raise TopologyError("Serial path must start at the chain root")
        if len(set(self.serial_path)) != len(self.serial_path):
            raise TopologyError("Serial path contains repeated nodes")
        for parent, child in zip(self.serial_path[:-1], self.serial_path[1:]):
            if tree.node(child).parent != parent:
                raise TopologyError(
                    f"'{tree.node(child).name}' is not a child of '{tree.node(parent).name}'"
                )

        self._subtree: List[int] = tree.descendants(root)
        self._members: Set[int] = set(self._subtree)
        tree.claim(self._subtree, self.id)

        # 路径位置 -> 关节值向量中的下标（FIXED 为 None）
        self._value_slot: List[Optional[int]] = []
        self.rotational_indices: List[int] = []
        for position, handle in enumerate(self.serial_path):
            if tree.node(handle).kind.is_rotational:
                self._value_slot.append(len(self.rotational_indices))
                self.rotational_indices.append(position)
            else:
                self._value_slot.append(None)

        self._world: Dict[int, np.ndarray] = {}
        self._dirty: Set[int] = set(self._subtree)

    @classmethod
    def from_root(cls, tree: JointTree, root: int, tip: Optional[int] = None) -> 'Chain':
        """
        从根节点构建运动链

        线性树沿第一个孩子一路走到叶子；分叉的树必须显式给出 tip。

        :param tree: 关节树
        :param root: 根节点 handle
        :param tip: 末端执行器 handle，None 表示自动沿唯一孩子查找
        """
        if tip is not None:
            path = tree.path_between(root, tip)
        else:
            path = [root]
            current = tree.node(root)
            while current.children:
                if len(current.children) > 1:
                    raise TopologyError(
                        f"Node '{current.name}' has {len(current.children)} children; "
                        f"an explicit tip is required for branching trees"
                    )
                current = tree.node(current.children[0])
                path.append(current.index)
        chain = cls(tree, root, path)
        logger.debug("Built chain %d with %d nodes (%d dof)", chain.id, len(path), chain.dof)
        return chain

    def __len__(self) -> int:
        return len(self.serial_path)

    @property
    def dof(self) -> int:
        return len(self.rotational_indices)

    @property
    def effector(self) -> JointNode:
        return self.tree.node(self.serial_path[-1])

    def node_at(self, joint_index: int) -> JointNode:
        """串联路径上第 joint_index 个节点"""
        return self.tree.node(self.serial_path[joint_index])

    def iter_joints(self) -> Iterator[JointNode]:
        """按根到末端的顺序遍历串联路径上的节点"""
        for handle in self.serial_path:
            yield self.tree.node(handle)

    def rotational_joints(self) -> List[JointNode]:
        return [self.node_at(position) for position in self.rotational_indices]

    def reach(self) -> float:
        """沿路径各段偏移长度之和（根节点自身偏移不计）"""
        return float(sum(np.linalg.norm(node.local_offset) for node in list(self.iter_joints())[1:]))

    # ---------------- 关节值 ----------------

    def joint_values(self) -> np.ndarray:
        """路径上所有转动关节的当前值（根到末端顺序）"""
        return np.array([node.joint_value for node in self.rotational_joints()], dtype=np.float64)

    def set_joint_values(self, values: Sequence[float]):
        """
        按路径顺序写入所有转动关节的值（越界时按 limits 截断）
        """
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.dof,):
            raise ValueError(f"Expected {self.dof} joint values, got shape {values.shape}")
        for position, value in zip(self.rotational_indices, values):
            self.set_joint_value(self.serial_path[position], float(value))

    def set_joint_value(self, handle: int, value: float):
        """写入单个关节值，并把该节点及其子树标脏"""
        node = self.tree.node(handle)
        if handle not in self._members:
            raise TopologyError(f"Node '{node.name}' does not belong to this chain")
        new_value = node.clamp(value)
        if new_value == node.joint_value:
            return
        node.joint_value = new_value
        self._dirty.update(self.tree.descendants(handle))

    def is_dirty(self, handle: int) -> bool:
        return handle in self._dirty

    # ---------------- 正向运动学 ----------------

    def recompute_world_transforms(self):
        """
        深度优先重算世界变换：world(node) = world(parent) @ local(node)

        只重算脏节点所在的子树，重算后清除脏标记。
        """
        if not self._dirty:
            return
        stack = [(self.root, np.identity(4, dtype=np.float64), False)]
        while stack:
            handle, parent_world, force = stack.pop()
            node = self.tree.node(handle)
            recompute = force or handle in self._dirty
            if recompute:
                self._world[handle] = parent_world @ node.get_local_matrix()
            world = self._world[handle]
            for child in reversed(node.children):
                stack.append((child, world, recompute))
        self._dirty.clear()

    def node_world_transform(self, handle: int) -> np.ndarray:
        """
        读取任意节点的世界变换（4x4 拷贝）

        :raise StaleTransformError: 节点值被修改后尚未重算
        """
        if handle in self._dirty:
            raise StaleTransformError(self.tree.node(handle).name)
        if handle not in self._world:
            raise TopologyError(f"Node '{self.tree.node(handle).name}' does not belong to this chain")
        return self._world[handle].copy()

    def world_transform(self, joint_index: int) -> np.ndarray:
        """串联路径上第 joint_index 个节点的世界变换"""
        return self.node_world_transform(self.serial_path[joint_index])

    def end_effector_transform(self) -> np.ndarray:
        return self.node_world_transform(self.serial_path[-1])

    def path_transforms(self, values: Optional[np.ndarray] = None) -> np.ndarray:
        """
        计算串联路径上所有节点的世界变换工作副本，不读写缓存

        :param values: 转动关节值（长度为 dof），None 表示使用当前 joint_value
        :return: (n, 4, 4) 数组
        """
        transforms = np.empty((len(self.serial_path), 4, 4), dtype=np.float64)
        self.update_path_transforms(transforms, values, 0)
        return transforms

    def update_path_transforms(self, transforms: np.ndarray, values: Optional[np.ndarray], start: int):
        """
        从路径位置 start 开始向末端原地更新工作副本（只刷新被调整关节的下游）

        :param transforms: path_transforms() 返回的数组
        :param values: 转动关节值，None 表示使用当前 joint_value
        :param start: 第一个需要刷新的路径位置
        """
        parent = np.identity(4, dtype=np.float64) if start == 0 else transforms[start - 1]
        for position in range(start, len(self.serial_path)):
            node = self.node_at(position)
            slot = self._value_slot[position]
            value = None if (values is None or slot is None) else values[slot]
            transforms[position] = parent @ node.get_local_matrix(value)
            parent = transforms[position]

    def release(self):
        """解除对节点的占用，使同一批节点可以重新组成新链"""
        self.tree.release(self.id)

    def __repr__(self):
        names = " -> ".join(node.name for node in self.iter_joints())
        return f"<Chain {self.id}: {names}>"


def _parse_axis(axis) -> np.ndarray:
    if isinstance(axis, str):
        if axis.lower() not in NAMED_AXES:
            raise ValueError(f"Unknown axis name: {axis}")
        return np.array(NAMED_AXES[axis.lower()])
    return np.asarray(axis, dtype=np.float64)


def _spec_kind(spec: Mapping) -> JointKind:
    kind = spec.get('kind', spec.get('type', 'fixed'))
    if isinstance(kind, JointKind):
        return kind
    if kind == 'fixed':
        return JointKind.fixed()
    if kind in ('rotational', 'revolute'):
        if spec.get('axis') is None:
            raise ValueError(f"Rotational joint '{spec.get('name')}' needs an axis")
        return JointKind.rotational(_parse_axis(spec['axis']))
    raise ValueError(f"Unknown joint type: {kind}")


def build_chain(joint_specs: Sequence[Mapping], tip: Optional[str] = None,
                tree: Optional[JointTree] = None) -> Chain:
    """
    由关节描述构建运动链

    每个描述为 {name?, kind|type, axis?, local_offset|offset, parent?, limits?}。
    所有描述都不带 parent 时按顺序串联；否则按 parent 名称建树，要求恰好一个根。

    :param joint_specs: 关节描述序列
    :param tip: 末端执行器名称（分叉树必填）
    :param tree: 写入的关节树，None 时新建
    :raise TopologyError: 出现环、重复名称、未知父节点或多个根
    """
    if not joint_specs:
        raise TopologyError("Cannot build a chain from zero joints")
    tree = JointTree() if tree is None else tree

    handles: Dict[str, int] = {}
    ordered: List[int] = []
    for i, spec in enumerate(joint_specs):
        name = spec.get('name', f"joint_{i}")
        if name in handles:
            raise TopologyError(f"Duplicate joint name: {name}")
        offset = spec.get('local_offset', spec.get('offset', (0.0, 0.0, 0.0)))
        limits = spec.get('limits')
        handle = tree.add(name, _spec_kind(spec), offset, tuple(limits) if limits is not None else None)
        handles[name] = handle
        ordered.append(handle)

    if not any('parent' in spec for spec in joint_specs):
        if len(ordered) > 1:
            tree.connect(*ordered)
        root = ordered[0]
    else:
        roots = []
        for spec, handle in zip(joint_specs, ordered):
            parent_name = spec.get('parent')
            if parent_name is None:
                roots.append(handle)
                continue
            if parent_name not in handles:
                raise TopologyError(f"Parent '{parent_name}' not found for joint '{tree.node(handle).name}'")
            tree.connect(handles[parent_name], handle)
        if len(roots) != 1:
            raise TopologyError(f"Expected exactly one root joint, found {len(roots)}")
        root = roots[0]

    tip_handle = None
    if tip is not None:
        if tip not in handles:
            raise TopologyError(f"Tip '{tip}' not found")
        tip_handle = handles[tip]
    return Chain.from_root(tree, root, tip_handle)
