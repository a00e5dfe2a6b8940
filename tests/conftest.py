import pytest

from ik_chain import build_chain, planar_arm, reference_arm


@pytest.fixture
def arm():
    return reference_arm()


@pytest.fixture
def planar():
    return planar_arm(5, 1.0)


@pytest.fixture
def hinge():
    """单个绕 Y 的转动关节 + 沿 X 偏移 1 的固定末端"""
    chain = build_chain([
        {'name': 'hinge', 'type': 'revolute', 'axis': 'y'},
        {'name': 'tip', 'type': 'fixed', 'offset': (1.0, 0.0, 0.0)},
    ])
    chain.recompute_world_transforms()
    return chain


@pytest.fixture
def rigid():
    """只有固定关节的链，末端在 (1, 0, 0)"""
    chain = build_chain([
        {'name': 'base', 'type': 'fixed'},
        {'name': 'tip', 'type': 'fixed', 'offset': (1.0, 0.0, 0.0)},
    ])
    chain.recompute_world_transforms()
    return chain
