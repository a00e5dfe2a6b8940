"""
关节树（竞技场存储）

所有节点保存在 JointTree.nodes 中，用整数下标（handle）互相引用：
children 是有序下标列表，parent 是单个下标，不存在第二个强引用。
"""
import logging
import numpy as np
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import TopologyError
from .joint import JointKind, JointNode

logger = logging.getLogger(__name__)


class JointTree:
    """关节节点竞技场，负责构建与拓扑查询"""

    def __init__(self):
        self.nodes: List[JointNode] = []
        # 节点下标 -> 占用它的链的 id
        self._claimed_by: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[JointNode]:
        return iter(self.nodes)

    def add(self, name: str, kind: JointKind, offset=(0.0, 0.0, 0.0),
            limits: Optional[Tuple[float, float]] = None) -> int:
        """
        创建关节节点

        :param name: 关节名称
        :param kind: 关节类型
        :param offset: 相对父级的静态位移 (Vec3)
        :param limits: 约束范围（弧度）
        :return: 节点 handle
        """
        node = JointNode(name=name, kind=kind, local_offset=np.asarray(offset), limits=limits)
        node.index = len(self.nodes)
        self.nodes.append(node)
        return node.index

    def node(self, handle: int) -> JointNode:
        self._check_handle(handle)
        return self.nodes[handle]

    def find(self, name: str) -> Optional[int]:
        """按名称查找节点，找不到返回 None"""
        for node in self.nodes:
            if node.name == name:
                return node.index
        return None

    def connect(self, *handles: int):
        """
        按顺序建立父子关系：connect(a, b, c) 即 a -> b -> c

        先整体校验再修改，校验失败时树保持不变。
        """
        if len(handles) < 2:
            raise TopologyError("connect() needs at least two nodes")
        for handle in handles:
            self._check_handle(handle)

        # 本次调用新增的父子关系也要参与环检测
        pending_parent: Dict[int, int] = {}
        for parent, child in zip(handles[:-1], handles[1:]):
            child_node = self.nodes[child]
            if child_node.parent is not None or child in pending_parent:
                raise TopologyError(
                    f"Node '{child_node.name}' already has a parent"
                )
            if parent == child or child in self._ancestors_with(parent, pending_parent):
                raise TopologyError(
                    f"Connecting '{self.nodes[parent].name}' -> '{child_node.name}' would create a cycle"
                )
            if child in self._claimed_by or parent in self._claimed_by:
                raise TopologyError(
                    f"Cannot connect '{self.nodes[parent].name}' -> '{child_node.name}': node belongs to a chain"
                )
            pending_parent[child] = parent

        for child, parent in pending_parent.items():
            self.nodes[child].parent = parent
            self.nodes[parent].children.append(child)

    def ancestors(self, handle: int) -> List[int]:
        """从父节点开始向上直到根的下标列表"""
        self._check_handle(handle)
        return self._ancestors_with(handle, {})

    def descendants(self, handle: int) -> List[int]:
        """深度优先（先序）遍历 handle 的子树，包含 handle 本身"""
        self._check_handle(handle)
        order: List[int] = []
        stack = [handle]
        while stack:
            current = stack.pop()
            order.append(current)
            # 逆序压栈，保证先访问第一个孩子
            stack.extend(reversed(self.nodes[current].children))
        return order

    def path_between(self, root: int, tip: int) -> List[int]:
        """
        从 root 到 tip 的节点下标路径（包含两端）

        :raise TopologyError: tip 不在 root 的子树中
        """
        self._check_handle(root)
        self._check_handle(tip)
        path = [tip]
        current = tip
        while current != root:
            parent = self.nodes[current].parent
            if parent is None:
                raise TopologyError(
                    f"Cannot find path from {self.nodes[root].name} to {self.nodes[tip].name}"
                )
            path.append(parent)
            current = parent
        path.reverse()
        return path

    def claim(self, handles: List[int], owner: int):
        """把节点登记给某条链；已被其他链占用时报错且不做任何修改"""
        for handle in handles:
            holder = self._claimed_by.get(handle)
            if holder is not None and holder != owner:
                raise TopologyError(
                    f"Node '{self.nodes[handle].name}' is already used by another chain"
                )
        for handle in handles:
            self._claimed_by[handle] = owner

    def release(self, owner: int):
        """释放某条链占用的全部节点"""
        self._claimed_by = {h: o for h, o in self._claimed_by.items() if o != owner}

    def _ancestors_with(self, handle: int, pending_parent: Dict[int, int]) -> List[int]:
        result = []
        current = handle
        while True:
            parent = self.nodes[current].parent
            if parent is None:
                parent = pending_parent.get(current)
            if parent is None:
                return result
            result.append(parent)
            current = parent

    def _check_handle(self, handle: int):
        if not isinstance(handle, (int, np.integer)) or not 0 <= handle < len(self.nodes):
            raise TopologyError(f"Unknown node handle: {handle!r}")
