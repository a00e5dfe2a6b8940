"""
求解器配置

三个收敛参数必填且必须为正；求解器在每次 solve 开始时重新校验，
因此两次求解之间可以直接修改字段而无需重建链或求解器。
"""
from dataclasses import dataclass, fields
from typing import Any, Mapping

from ..errors import ConfigurationError


@dataclass
class SolverConfig:
    """
    :param allowable_target_distance: 位置收敛容差（与链偏移同单位）
    :param allowable_target_angle: 姿态收敛容差（弧度）
    :param max_iterations: 最大迭代次数，达到后返回未收敛报告
    """
    allowable_target_distance: float
    allowable_target_angle: float
    max_iterations: int

    def __post_init__(self):
        self.validate()

    def validate(self):
        if not self.allowable_target_distance > 0:
            raise ConfigurationError(
                f"allowable_target_distance must be > 0, got {self.allowable_target_distance}"
            )
        if not self.allowable_target_angle > 0:
            raise ConfigurationError(
                f"allowable_target_angle must be > 0, got {self.allowable_target_angle}"
            )
        if isinstance(self.max_iterations, bool) or int(self.max_iterations) != self.max_iterations \
                or self.max_iterations <= 0:
            raise ConfigurationError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """
        从字典构建配置，忽略未知键；缺少必填项时报错

        :param data: 例如 run_solver 读入的 JSON 配置
        """
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigurationError(f"Incomplete solver configuration: {e}") from e


@dataclass
class JacobianSolverConfig(SolverConfig):
    """
    :param damping: 阻尼系数 λ，A = J J^T + λ I
    :param max_step: 单次迭代中任一关节的最大转角（弧度），超出时整体等比缩放
    :param line_search: 是否启用回溯线搜索
    :param line_search_alpha_min: 线搜索最小步长，小于该值仍无法改进则停止
    :param pole_gain: pole 偏置的增益
    :param pole_tolerance: pole 修正对末端 6 维速度允许的最大扰动
    """
    damping: float = 1e-3
    max_step: float = 0.3
    line_search: bool = True
    line_search_alpha_min: float = 1e-2
    pole_gain: float = 0.5
    pole_tolerance: float = 1e-3

    def validate(self):
        super().validate()
        if self.damping < 0:
            raise ConfigurationError(f"damping must be >= 0, got {self.damping}")
        if not self.max_step > 0:
            raise ConfigurationError(f"max_step must be > 0, got {self.max_step}")
        if not 0 < self.line_search_alpha_min <= 1:
            raise ConfigurationError(
                f"line_search_alpha_min must be in (0, 1], got {self.line_search_alpha_min}"
            )
        if self.pole_gain < 0 or self.pole_tolerance < 0:
            raise ConfigurationError("pole_gain and pole_tolerance must be >= 0")


@dataclass
class CCDSolverConfig(SolverConfig):
    """
    :param step_fraction: 每个关节实际转动的比例，1.0 表示不阻尼
    :param orientation_weight: 转角中姿态项的权重，0 表示只按位置项转动（收敛仍检查姿态）
    """
    step_fraction: float = 1.0
    orientation_weight: float = 0.0

    def validate(self):
        super().validate()
        if not 0 < self.step_fraction <= 1:
            raise ConfigurationError(f"step_fraction must be in (0, 1], got {self.step_fraction}")
        if not 0 <= self.orientation_weight <= 1:
            raise ConfigurationError(
                f"orientation_weight must be in [0, 1], got {self.orientation_weight}"
            )

    @property
    def tracks_orientation(self) -> bool:
        return self.orientation_weight > 0
