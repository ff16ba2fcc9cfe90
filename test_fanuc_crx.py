"""Tests for the FanucCRX facade."""

import numpy as np

from FanucCRX import FanucCRX
from ik_6r_spherical_solver import AnalyticalIKSolver
from ik_crx_geometric_solver import GeometricIKSolver
from joint_conventions import UNITY_METRES
from orientation import transform_to_pose
from robot_model import crx_10ia_l, crx_10ia_l_spherical
from solution_selection import SelectionMode
from utilities import angle_difference_deg, make_transform


SEED = np.array([30.0, 20.0, -40.0, 50.0, 60.0, -70.0])


def test_solver_choice_follows_wrist_type():
    assert isinstance(FanucCRX(crx_10ia_l()).solver, GeometricIKSolver)
    assert isinstance(FanucCRX(crx_10ia_l_spherical()).solver, AnalyticalIKSolver)


def test_ik_returns_solution_arrays():
    robot = FanucCRX(crx_10ia_l(), scan_steps=360)
    TBW = robot.FK(SEED)
    solutions, wrongSolutions = robot.IK(TBW)
    assert solutions.ndim == 2 and solutions.shape[1] == 6
    assert wrongSolutions.shape[1] == 6
    assert any(np.all(angle_difference_deg(s, SEED) < 0.1) for s in solutions)


def test_ik_pose_and_selection():
    robot = FanucCRX(crx_10ia_l_spherical())
    xyz, wpr = transform_to_pose(robot.FK(SEED))
    solutions, _ = robot.IK_pose(xyz, wpr)
    assert len(solutions) == 8
    best = robot.select(solutions, SEED + 1.0)
    assert np.all(angle_difference_deg(best, SEED) < 1e-6)
    manual = robot.select(solutions, SEED, SelectionMode.MANUAL, 3)
    assert np.all(angle_difference_deg(manual, solutions[3]) < 1e-9)
    assert robot.model.within_limits(manual)


def test_move_to_stays_on_the_current_joint_turn():
    # J3 = 200 and J6 = 210 are inside the limits; the solver reports -160 and -150
    robot = FanucCRX(crx_10ia_l_spherical())
    current = np.array([30.0, 20.0, 200.0, 50.0, 60.0, 210.0])
    q = robot.move_to(robot.FK(current), current + 1.0)
    assert np.allclose(q, current, atol=1e-6)
    assert robot.model.within_limits(q)


def test_move_to_keeps_pose_when_unreachable():
    robot = FanucCRX(crx_10ia_l_spherical())
    current = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    q = robot.move_to(make_transform(p=[5000.0, 0.0, 0.0]), current)
    assert np.array_equal(q, current)

    target = robot.FK(SEED)
    q = robot.move_to(target, SEED + 2.0)
    assert np.all(angle_difference_deg(q, SEED) < 1e-6)


def test_tick_moves_toward_target():
    robot = FanucCRX(crx_10ia_l())
    target = robot.FK(SEED)
    start = SEED + 4.0
    q = robot.tick(target, start)
    before = np.linalg.norm(robot.FK(start)[:3, 3] - target[:3, 3])
    after = np.linalg.norm(robot.FK(q)[:3, 3] - target[:3, 3])
    assert after < before


def test_native_joint_conversion():
    robot = FanucCRX(crx_10ia_l(), conventions=UNITY_METRES)
    native = robot.to_native(SEED)
    assert native[2] == SEED[2] - SEED[1]
    assert np.allclose(robot.from_native(native), SEED)


def test_verbose_banner(capsys):
    FanucCRX(crx_10ia_l(), verbose=True)
    out = capsys.readouterr().out
    assert 'CRX-10iA/L' in out
    assert 'GeometricIKSolver' in out
