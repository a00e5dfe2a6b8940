import numpy as np
import pytest

from ik_chain import (
    ArmRig,
    CCDSolverConfig,
    CyclicIKSolver,
    JacobianIKSolver,
    JacobianSolverConfig,
    PoleHandle,
    PoleRegistry,
    reference_arm
)
from ik_chain.solver.ik_core import compute_jacobian, pole_null_space_step, pole_swing_angle
from ik_chain.utils import make_transform

POLE = np.array([0.3, 0.5, 0.0])


class TestPoleRegistry:
    def test_register_and_resolve(self):
        registry = PoleRegistry()
        handle = registry.register([1.0, 2.0, 3.0])
        assert registry.is_alive(handle)
        assert len(registry) == 1
        np.testing.assert_allclose(registry.resolve(handle), [1.0, 2.0, 3.0])

        # resolve 返回拷贝
        registry.resolve(handle)[0] = 9.0
        assert registry.resolve(handle)[0] == 1.0

        assert registry.update(handle, [4.0, 5.0, 6.0])
        np.testing.assert_allclose(registry.resolve(handle), [4.0, 5.0, 6.0])

    def test_removed_handle_is_stale(self):
        registry = PoleRegistry()
        handle = registry.register([1.0, 0.0, 0.0])
        assert registry.remove(handle)
        assert not registry.remove(handle)
        assert registry.resolve(handle) is None
        assert not registry.update(handle, [0.0, 0.0, 0.0])
        assert len(registry) == 0

        # 槽位被复用，但旧 handle 的 generation 不再匹配
        reused = registry.register([2.0, 0.0, 0.0])
        assert reused.index == handle.index
        assert reused.generation == handle.generation + 1
        assert registry.resolve(handle) is None
        np.testing.assert_allclose(registry.resolve(reused), [2.0, 0.0, 0.0])

    def test_unknown_handle(self):
        assert PoleRegistry().resolve(PoleHandle(3, 0)) is None


def _bent_arm():
    arm = reference_arm()
    arm.set_joint_values([0.0, 0.0, 0.0, -1.2, 0.0, 0.0, 0.0])
    arm.recompute_world_transforms()
    return arm


class TestNullSpaceStep:
    def test_step_keeps_end_effector_and_swings_elbow(self):
        arm = _bent_arm()
        elbow = arm.serial_path.index(arm.tree.find("elbow_y"))
        values = arm.joint_values()
        transforms = arm.path_transforms(values)
        jacobian = compute_jacobian(arm, transforms)

        before = pole_swing_angle(arm, transforms, elbow, POLE)
        assert abs(before) > 0.5

        step = pole_null_space_step(arm, transforms, jacobian, elbow, POLE,
                                    gain=0.5, damping=1e-3, max_step=0.3, tolerance=1e-3)
        assert np.max(np.abs(step)) <= 0.3 + 1e-12
        assert np.linalg.norm(jacobian @ step) <= 1e-3 + 1e-12

        after = pole_swing_angle(arm, arm.path_transforms(values + step), elbow, POLE)
        assert abs(after) < abs(before)

    def test_no_step_when_aligned(self):
        arm = _bent_arm()
        elbow = arm.serial_path.index(arm.tree.find("elbow_y"))
        transforms = arm.path_transforms()
        # pole 正好位于手肘所在的一侧
        aligned_pole = transforms[elbow][:3, 3] * 2.0
        step = pole_null_space_step(arm, transforms, compute_jacobian(arm, transforms), elbow,
                                    aligned_pole, gain=0.5, damping=1e-3, max_step=0.3, tolerance=1e-3)
        np.testing.assert_allclose(step, np.zeros(arm.dof), atol=1e-12)

    def test_degenerate_pole_direction(self):
        arm = reference_arm()
        elbow = arm.serial_path.index(arm.tree.find("elbow_y"))
        # 伸直时手肘落在肩-腕轴上
        assert pole_swing_angle(arm, arm.path_transforms(), elbow, POLE) == 0.0


def _config(**kwargs):
    return JacobianSolverConfig(1e-3, 1e-2, 500, **kwargs)


class TestSolverWithPole:
    def test_converges_with_pole(self):
        arm = _bent_arm()
        registry = PoleRegistry()
        solver = JacobianIKSolver(_config(pole_gain=0.2))
        solver.set_pole_target(registry, registry.register(POLE), arm.tree.find("elbow_y"))
        assert solver.has_pole_target

        target = make_transform([0.45, 0.1, 0.1])
        report = solver.solve(arm, target)
        assert report.converged, report

    def test_removed_pole_matches_no_pole(self):
        target = make_transform([0.4, -0.1, 0.2])

        free_arm = _bent_arm()
        JacobianIKSolver(_config()).solve(free_arm, target)

        arm = _bent_arm()
        registry = PoleRegistry()
        handle = registry.register(POLE)
        solver = JacobianIKSolver(_config())
        solver.set_pole_target(registry, handle, arm.tree.find("elbow_y"))
        registry.remove(handle)
        solver.solve(arm, target)

        np.testing.assert_array_equal(arm.joint_values(), free_arm.joint_values())

    def test_pole_on_end_effector_is_ignored(self):
        target = make_transform([0.4, -0.1, 0.2])

        free_arm = _bent_arm()
        JacobianIKSolver(_config()).solve(free_arm, target)

        arm = _bent_arm()
        registry = PoleRegistry()
        solver = JacobianIKSolver(_config())
        solver.set_pole_target(registry, registry.register(POLE), arm.tree.find("hand"))
        solver.solve(arm, target)

        np.testing.assert_array_equal(arm.joint_values(), free_arm.joint_values())

    def test_clear_pole_target(self):
        solver = JacobianIKSolver(_config())
        registry = PoleRegistry()
        solver.set_pole_target(registry, registry.register(POLE), 4)
        solver.clear_pole_target()
        assert not solver.has_pole_target


class TestArmRig:
    def test_solve_refreshes_transforms(self):
        rig = ArmRig(reference_arm(), JacobianIKSolver(_config()))
        report = rig.solve(make_transform([0.45, 0.1, 0.1]))
        assert rig.last_report is report
        assert report.converged

        positions = rig.joint_positions()
        assert positions.shape == (9, 3)
        np.testing.assert_allclose(positions[-1], [0.45, 0.1, 0.1], atol=1e-3)
        assert len(rig.joint_world_transforms()) == 9

    def test_set_pole(self):
        registry = PoleRegistry()
        handle = registry.register(POLE)
        rig = ArmRig(reference_arm(), JacobianIKSolver(_config()))
        rig.set_pole(registry, handle, "elbow_y")
        assert rig.solver.has_pole_target

        with pytest.raises(ValueError):
            rig.set_pole(registry, handle, "missing")

        ccd_rig = ArmRig(reference_arm(), CyclicIKSolver(CCDSolverConfig(1e-3, 1e-2, 10)))
        with pytest.raises(TypeError):
            ccd_rig.set_pole(registry, handle, "elbow_y")
