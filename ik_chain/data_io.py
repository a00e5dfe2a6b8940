"""
数据交换功能实现：骨骼/目标轨迹读取、目标插值、动画导出
"""
import bisect
import json
import numpy as np
from typing import Dict, List, Optional
from scipy.spatial.transform import Rotation as R, Slerp

from .errors import TopologyError
from .model.chain import Chain, build_chain
from .utils import make_transform, transform_rotation, transform_translation


def load_skeleton(json_path: str) -> Chain:
    """
    从skeleton.json加载骨骼定义，构建运动链

    格式：{"root_name": str, "tip_name": str?, "joints": [{name, type, offset, parent?, axis?, limits?}]}
    type 为 'fixed' 或 'revolute'（'rotational' 同义）。

    :param json_path: skeleton.json文件路径
    :return: 运动链（关节值为 0，世界变换已计算）
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    joints_data = data['joints']
    root_name = data.get('root_name')
    if root_name is not None:
        roots = [joint['name'] for joint in joints_data if joint.get('parent') is None]
        if roots != [root_name]:
            raise TopologyError(f"Root node '{root_name}' not found or not unique: {roots}")

    # 带 parent 键时 build_chain 按名称建树
    specs = []
    for joint_data in joints_data:
        spec = dict(joint_data)
        spec.setdefault('parent', None)
        specs.append(spec)

    chain = build_chain(specs, tip=data.get('tip_name'))
    chain.recompute_world_transforms()
    return chain


def _parse_keyframe(item: Dict) -> Dict:
    # euler 单位为度，缺省为零姿态
    return {
        'frame': int(item['frame']),
        'pos': np.array(item['pos'], dtype=np.float64),
        'euler': np.array(item.get('euler', (0.0, 0.0, 0.0)), dtype=np.float64)
    }


def load_targets(json_path: str) -> List[Dict]:
    """
    读取 targets.json 中的关键帧，按帧号升序返回

    每个关键帧为 {"frame": int, "pos": ndarray(3), "euler": ndarray(3)}。
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        keyframes = sorted((_parse_keyframe(item) for item in json.load(f)),
                           key=lambda kf: kf['frame'])
    if not keyframes:
        raise ValueError(f"No keyframes in {json_path}")
    return keyframes


def _keyframe_rotation(keyframe: Dict) -> R:
    return R.from_euler('XYZ', keyframe['euler'], degrees=True)


def euler_to_transform(pos: np.ndarray, euler_deg: np.ndarray) -> np.ndarray:
    """位置 + 内旋 XYZ 欧拉角（度） -> 4x4 变换矩阵"""
    return make_transform(pos, R.from_euler('XYZ', euler_deg, degrees=True).as_matrix())


def interpolate_targets(keyframes: List[Dict], frame: int) -> np.ndarray:
    """
    取第 frame 帧的目标位姿

    相邻两个关键帧之间位置线性插值、姿态 Slerp；
    落在首尾关键帧之外时保持首/尾关键帧。

    :param keyframes: load_targets() 的结果
    """
    frames = [kf['frame'] for kf in keyframes]
    upper = bisect.bisect_right(frames, frame)
    if upper == 0 or upper == len(frames):
        kf = keyframes[0] if upper == 0 else keyframes[-1]
        return euler_to_transform(kf['pos'], kf['euler'])

    before, after = keyframes[upper - 1], keyframes[upper]
    alpha = (frame - before['frame']) / (after['frame'] - before['frame'])
    slerp = Slerp([0.0, 1.0], R.concatenate([_keyframe_rotation(before), _keyframe_rotation(after)]))
    position = before['pos'] + alpha * (after['pos'] - before['pos'])
    return make_transform(position, slerp(alpha).as_matrix())


def interpolate_joint_values(start_values: np.ndarray, end_values: np.ndarray,
                             start_frame: int, end_frame: int, frame: int) -> np.ndarray:
    """
    在两组关键帧解之间线性插值关节值

    :return: 插值后的关节值
    """
    if end_frame == start_frame:
        alpha = 0.0
    else:
        alpha = (frame - start_frame) / (end_frame - start_frame)
    alpha = max(0.0, min(1.0, alpha))
    return (1.0 - alpha) * np.asarray(start_values) + alpha * np.asarray(end_values)


def capture_frame(chain: Chain, frame: int, report=None) -> Dict:
    """
    记录当前帧：转动关节值、串联路径上每个节点的世界变换以及末端位姿

    调用前链的世界变换必须是最新的。
    """
    frame_data = {
        'frame': frame,
        'joints': {},
        'world_transforms': {}
    }
    for node in chain.rotational_joints():
        frame_data['joints'][node.name] = {'type': 'revolute', 'angle': float(node.joint_value)}
    for i, node in enumerate(chain.iter_joints()):
        frame_data['world_transforms'][node.name] = chain.world_transform(i).tolist()
    end_effector = chain.end_effector_transform()
    frame_data['end_effector'] = {
        'position': transform_translation(end_effector).tolist(),
        'rotation': transform_rotation(end_effector).tolist()  # [w, x, y, z]
    }
    if report is not None:
        frame_data['converged'] = report.converged
        frame_data['position_error'] = report.final_position_error
        frame_data['orientation_error'] = report.final_orientation_error
    return frame_data


def export_animation(frames: List[Dict], output_path: str, metadata: Optional[Dict] = None):
    """
    导出动画数据到animation.json

    :param frames: capture_frame() 生成的帧列表
    :param output_path: 输出文件路径
    :param metadata: 附加信息（求解方法、参数等）
    """
    output = {'frames': frames}
    if metadata:
        output['metadata'] = metadata
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
