"""
极向量(pole)目标注册表

求解器只持有 PoleHandle(index, generation)，不持有目标本身。
目标被移除后槽位的 generation 递增，旧 handle 解析得到 None，
求解器据此静默放弃本次的 pole 偏置，而不是报错。
"""
import numpy as np
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class PoleHandle:
    index: int
    generation: int


class PoleRegistry:
    """外部实体（如手肘提示点）的位置登记表"""

    def __init__(self):
        self._positions: List[Optional[np.ndarray]] = []
        self._generations: List[int] = []
        self._free: List[int] = []

    def __len__(self) -> int:
        return sum(1 for position in self._positions if position is not None)

    def register(self, position) -> PoleHandle:
        """
        登记一个 pole 目标

        :param position: 世界坐标系下的位置 (Vec3)，与链根同一坐标系
        :return: 弱引用 handle
        """
        position = np.array(position, dtype=np.float64).reshape(3)
        if self._free:
            index = self._free.pop()
            self._positions[index] = position
        else:
            index = len(self._positions)
            self._positions.append(position)
            self._generations.append(0)
        return PoleHandle(index, self._generations[index])

    def update(self, handle: PoleHandle, position) -> bool:
        """更新目标位置；handle 已失效时返回 False"""
        if not self.is_alive(handle):
            return False
        self._positions[handle.index] = np.array(position, dtype=np.float64).reshape(3)
        return True

    def remove(self, handle: PoleHandle) -> bool:
        """移除目标，旧 handle 全部失效；重复移除返回 False"""
        if not self.is_alive(handle):
            return False
        self._positions[handle.index] = None
        self._generations[handle.index] += 1
        self._free.append(handle.index)
        return True

    def is_alive(self, handle: PoleHandle) -> bool:
        return (0 <= handle.index < len(self._positions)
                and self._generations[handle.index] == handle.generation
                and self._positions[handle.index] is not None)

    def resolve(self, handle: PoleHandle) -> Optional[np.ndarray]:
        """解析 handle；目标已被移除时返回 None"""
        if not self.is_alive(handle):
            return None
        return self._positions[handle.index].copy()
