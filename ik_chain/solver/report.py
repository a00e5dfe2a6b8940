"""
求解结果报告
"""
import enum
from dataclasses import dataclass

from ..errors import NonConvergenceError


class SolveStatus(enum.Enum):
    CONVERGED = "converged"
    # 达到 max_iterations，保留最后一步的关节值
    MAX_ITERATIONS = "max_iterations"
    # 无法继续改进（无自由度，或线搜索步长降到下限仍不能减小误差）
    STALLED = "stalled"


@dataclass(frozen=True)
class SolveReport:
    status: SolveStatus
    iterations_used: int
    final_position_error: float
    final_orientation_error: float

    @property
    def converged(self) -> bool:
        return self.status is SolveStatus.CONVERGED

    def raise_for_status(self) -> 'SolveReport':
        """未收敛时抛出 NonConvergenceError，收敛时返回自身"""
        if not self.converged:
            raise NonConvergenceError(self)
        return self
