import numpy as np
import pytest

from ik_chain import (
    CCDSolverConfig,
    ConfigurationError,
    CyclicIKSolver,
    SolveStatus,
    build_chain
)
from ik_chain.utils import make_transform

from .helpers import hinge_target, wrap_angle


def _solver(distance=1e-4, angle=1e-3, iterations=50, **kwargs):
    return CyclicIKSolver(CCDSolverConfig(distance, angle, iterations, **kwargs))


def test_hinge_single_sweep(hinge):
    report = _solver().solve(hinge, hinge_target(0.7))
    assert report.status is SolveStatus.CONVERGED
    assert report.iterations_used == 1
    assert hinge.joint_values()[0] == pytest.approx(0.7)


def test_hinge_rotates_the_short_way(hinge):
    report = _solver().solve(hinge, hinge_target(-2.5))
    assert report.converged
    assert wrap_angle(hinge.joint_values()[0]) == pytest.approx(-2.5)


def test_step_fraction_damps_each_sweep(hinge):
    report = _solver(step_fraction=0.5).solve(hinge, hinge_target(0.7))
    assert report.converged
    assert report.iterations_used > 1
    assert hinge.joint_values()[0] == pytest.approx(0.7, abs=1e-4)


def test_orientation_weight_checks_both_errors(hinge):
    solver = _solver(orientation_weight=0.5)
    assert solver.config.tracks_orientation
    report = solver.solve(hinge, hinge_target(0.9))
    assert report.converged
    assert report.final_orientation_error < 1e-3


def test_orientation_threshold_applies_without_weight(hinge):
    # 位置可达但姿态不符：只按位置转动也不能视为收敛
    target = hinge_target(0.7)
    target[:3, :3] = np.identity(3)
    solver = _solver()
    assert not solver.config.tracks_orientation
    report = solver.solve(hinge, target)
    assert report.status is SolveStatus.MAX_ITERATIONS
    assert not report.converged
    assert report.final_position_error < 1e-4
    assert report.final_orientation_error == pytest.approx(0.7, abs=1e-6)


def test_reachable_target(planar):
    target = make_transform([0.0, -2.0, 2.5])
    # 姿态容差大于 π，只考察位置
    report = _solver(1e-3, 4.0, 500).solve(planar, target)
    assert report.converged, report
    planar.recompute_world_transforms()
    np.testing.assert_allclose(planar.end_effector_transform()[:3, 3], [0.0, -2.0, 2.5], atol=1e-3)


def test_unreachable_target_stretches_toward_it(planar):
    target = make_transform([0.0, -1.0, 10.0])
    solver = _solver(0.1, np.radians(1.0), 200)
    report = solver.solve(planar, target)
    assert report.status is SolveStatus.MAX_ITERATIONS
    assert report.final_position_error == pytest.approx(6.0, abs=1e-2)

    planar.recompute_world_transforms()
    np.testing.assert_allclose(planar.end_effector_transform()[:3, 3], [0.0, -1.0, 4.0], atol=1e-2)

    # 重复求解不会发散
    values = planar.joint_values()
    again = solver.solve(planar, target)
    assert again.final_position_error == pytest.approx(report.final_position_error, abs=1e-3)
    assert np.all(np.isfinite(planar.joint_values()))
    np.testing.assert_allclose(np.cos(planar.joint_values()), np.cos(values), atol=1e-2)


def test_limits_are_respected():
    chain = build_chain([
        {'name': 'hinge', 'type': 'revolute', 'axis': 'y', 'limits': [-0.4, 0.4]},
        {'name': 'tip', 'type': 'fixed', 'offset': [1.0, 0.0, 0.0]},
    ])
    report = _solver(iterations=5).solve(chain, hinge_target(1.0))
    assert report.status is SolveStatus.MAX_ITERATIONS
    assert chain.joint_values()[0] == pytest.approx(0.4)


def test_rigid_chain(rigid):
    assert _solver().solve(rigid, make_transform([1.0, 0.0, 0.0])).iterations_used == 0
    report = _solver().solve(rigid, make_transform([0.0, 1.0, 0.0]))
    assert report.status is SolveStatus.STALLED


def test_target_on_axis_is_skipped(hinge):
    # 目标落在转轴上，投影退化，关节不动
    report = _solver(iterations=3).solve(hinge, make_transform([0.0, 2.0, 0.0]))
    assert not report.converged
    assert hinge.joint_values()[0] == 0.0


@pytest.mark.parametrize("kwargs", [
    dict(step_fraction=0.0),
    dict(step_fraction=1.5),
    dict(orientation_weight=-0.1),
    dict(orientation_weight=2.0),
])
def test_invalid_config(kwargs):
    with pytest.raises(ConfigurationError):
        CCDSolverConfig(1e-3, 1e-2, 10, **kwargs)
