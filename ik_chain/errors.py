"""
异常类型定义

- TopologyError: 构建期错误（环、重复父节点、节点被多条链占用），链不会被返回
- ConfigurationError: 求解器参数非法
- StaleTransformError: 在 joint_value 修改后、重算之前读取世界变换
- SolveError: 求解调用本身非法（目标格式错误等）
- NonConvergenceError: 达到最大迭代次数仍未收敛（可恢复，仅在调用方主动要求时抛出）

数值退化（零法向量、反向平行向量）属于调用方的前置条件，不做运行时检查。
"""


class IKError(Exception):
    """ik_chain 所有异常的基类"""


class TopologyError(IKError):
    """关节树拓扑非法"""


class ConfigurationError(IKError, ValueError):
    """求解器配置非法"""


class StaleTransformError(IKError):
    """世界变换缓存已失效"""

    def __init__(self, node_name: str):
        super().__init__(
            f"World transform of '{node_name}' is stale; "
            f"call recompute_world_transforms() first"
        )
        self.node_name = node_name


class SolveError(IKError):
    """求解调用本身非法"""


class NonConvergenceError(SolveError):
    """求解未收敛，携带最后一次的求解报告"""

    def __init__(self, report):
        super().__init__(
            f"IK did not converge ({report.status.value}) after {report.iterations_used} iterations: "
            f"position error {report.final_position_error:.6g}, "
            f"orientation error {report.final_orientation_error:.6g}"
        )
        self.report = report
