"""
工具层 (Utils Layer)
无状态的几何与四元数工具、日志配置、资源路径
"""

from .quaternion_utils import (
    quaternion_to_rotation_matrix,
    rotation_matrix_to_quaternion,
    quaternion_multiply,
    axis_angle_to_quaternion,
    quaternion_angle,
    make_transform,
    transform_translation,
    transform_rotation,
    invert_transform
)
from .geometry import (
    FRAC_PI_12,
    project_onto_plane,
    angle_to,
    orthonormal_vector,
    rotation_between_vectors,
    orthonormal_axes_from_forward,
    rotation_matrix_from_right_up_fwd,
    rotation_from_forward,
    rotation_axes
)

__all__ = [
    'quaternion_to_rotation_matrix',
    'rotation_matrix_to_quaternion',
    'quaternion_multiply',
    'axis_angle_to_quaternion',
    'quaternion_angle',
    'make_transform',
    'transform_translation',
    'transform_rotation',
    'invert_transform',
    'FRAC_PI_12',
    'project_onto_plane',
    'angle_to',
    'orthonormal_vector',
    'rotation_between_vectors',
    'orthonormal_axes_from_forward',
    'rotation_matrix_from_right_up_fwd',
    'rotation_from_forward',
    'rotation_axes'
]
