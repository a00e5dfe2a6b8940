"""
无界面批量求解：读取配置 -> 加载骨骼与目标轨迹 -> 逐帧求解 -> 导出动画 JSON

用法: ik-chain-solve [config.json]
"""
import json
import logging
import os
import sys
import time
from typing import Dict, List, Optional

from .data_io import (
    capture_frame,
    export_animation,
    interpolate_joint_values,
    interpolate_targets,
    load_skeleton,
    load_targets
)
from .errors import IKError
from .model.chain import Chain
from .model.pole import PoleRegistry
from .solver.base import IKSolver
from .solver.jacobian_solver import JacobianIKSolver
from .solver.solve_ik import make_solver
from .utils.logger import setup_logger
from .utils.resource_path import get_data_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = get_data_path('config.json')


def _resolve(path: Optional[str], base_dir: str) -> Optional[str]:
    """配置中的输入路径相对于配置文件所在目录"""
    if path is None or os.path.isabs(path):
        return path
    return os.path.join(base_dir, path)


def run_solver(config_path: str = DEFAULT_CONFIG) -> bool:
    # 1. 加载配置
    if not os.path.exists(config_path):
        print(f"❌ 找不到配置文件: {config_path}")
        return False

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)
    base_dir = os.path.dirname(os.path.abspath(config_path))

    setup_logger("ik_chain", level=logging.DEBUG if config.get('debug', False) else logging.INFO,
                 log_dir=_resolve(config.get('log_dir'), base_dir))

    print("----------- IK Solver Headless -----------")
    print(f"配置加载: {config_path}")

    skeleton_path = _resolve(config.get('skeleton_path'), base_dir)
    targets_path = _resolve(config.get('targets_path'), base_dir)
    # 输出路径相对于当前工作目录
    output_path = config.get('output_path', 'animation.json')
    solve_mode = config.get('solve_mode', 1)  # 默认模式2 (逐帧)
    method = config.get('method', 'jacobian')

    # 求解参数
    params = {
        'allowable_target_distance': config.get('allowable_target_distance', 1e-3),
        'allowable_target_angle': config.get('allowable_target_angle', 1e-2),
        'max_iterations': config.get('max_iterations', 100),
    }
    params.update(config.get('solver', {}))

    # 2. 加载骨骼
    print(f"正在加载骨骼: {skeleton_path} ...")
    try:
        chain = load_skeleton(skeleton_path)
    except (OSError, ValueError, KeyError, IKError) as e:
        print(f"❌ 骨骼加载失败: {e}")
        return False
    print(f"运动链构建成功，末端执行器: {chain.effector.name}，自由度 {chain.dof}")

    # 3. 创建求解器
    try:
        solver = make_solver(method, params)
    except IKError as e:
        print(f"❌ 求解器配置错误: {e}")
        return False

    pole_config = config.get('pole')
    if pole_config is not None:
        if not isinstance(solver, JacobianIKSolver):
            print("⚠️ pole 目标仅对 jacobian 方法生效，已忽略")
        else:
            joint = chain.tree.find(pole_config['joint'])
            if joint is None:
                print(f"❌ 找不到 pole 关节: {pole_config['joint']}")
                return False
            registry = PoleRegistry()
            solver.set_pole_target(registry, registry.register(pole_config['position']), joint)

    # 4. 加载目标轨迹
    print(f"正在加载目标轨迹: {targets_path} ...")
    try:
        keyframes = load_targets(targets_path)
    except (OSError, ValueError, KeyError) as e:
        print(f"❌ 目标轨迹加载失败: {e}")
        return False
    total_frames = keyframes[-1]['frame']
    print(f"轨迹加载成功，共 {len(keyframes)} 个关键帧，总长 {total_frames} 帧")

    # 5. 开始求解
    start_time = time.time()
    if solve_mode == 0:
        print(">>> 模式 1: 关键帧求解 + 关节插值")
        frames = solve_mode_1(chain, solver, keyframes, total_frames)
    else:
        print(">>> 模式 2: 目标插值 + 逐帧求解")
        frames = solve_mode_2(chain, solver, keyframes, total_frames)
    print(f"求解完成，耗时: {time.time() - start_time:.2f} 秒")

    failed = sum(1 for frame in frames if frame.get('converged') is False)
    if failed:
        logger.warning("%d of %d frames did not converge", failed, len(frames))

    # 6. 导出结果
    print(f"正在导出到: {output_path} ...")
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    export_animation(frames, output_path, metadata={'method': method, 'solver': params})
    print("✅ 任务完成！")
    return True


def solve_mode_2(chain: Chain, solver: IKSolver, keyframes: List[Dict], total_frames: int) -> List[Dict]:
    """模式2：逐帧求解，上一帧的解作为下一帧的初值"""
    frames = []
    for frame in range(total_frames + 1):
        if frame % 10 == 0:
            sys.stdout.write(f"\r进度: {frame}/{total_frames}")
            sys.stdout.flush()

        report = solver.solve(chain, interpolate_targets(keyframes, frame))
        chain.recompute_world_transforms()
        frames.append(capture_frame(chain, frame, report))

    print()
    return frames


def solve_mode_1(chain: Chain, solver: IKSolver, keyframes: List[Dict], total_frames: int) -> List[Dict]:
    """模式1：只求解关键帧，中间帧对关节值线性插值"""
    solutions = {}
    reports = {}

    # 1. 求解关键帧（warm start：沿用上一关键帧的解）
    for kf in keyframes:
        frame = kf['frame']
        sys.stdout.write(f"\r正在求解关键帧: {frame}")
        sys.stdout.flush()
        reports[frame] = solver.solve(chain, interpolate_targets(keyframes, frame))
        solutions[frame] = chain.joint_values()

    print("\n正在进行插值...")

    # 2. 插值中间帧
    keyframe_indices = [kf['frame'] for kf in keyframes]
    frames = []
    for frame in range(total_frames + 1):
        start_frame, end_frame = keyframe_indices[0], keyframe_indices[-1]
        if frame <= start_frame:
            end_frame = start_frame
        elif frame >= end_frame:
            start_frame = end_frame
        else:
            for i in range(len(keyframe_indices) - 1):
                if keyframe_indices[i] <= frame < keyframe_indices[i + 1]:
                    start_frame, end_frame = keyframe_indices[i], keyframe_indices[i + 1]
                    break

        chain.set_joint_values(interpolate_joint_values(
            solutions[start_frame], solutions[end_frame], start_frame, end_frame, frame))
        chain.recompute_world_transforms()
        frames.append(capture_frame(chain, frame, reports.get(frame)))

    return frames


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    ok = run_solver(argv[0]) if argv else run_solver()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
