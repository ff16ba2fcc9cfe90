"""Tests for picking one IK solution."""

import numpy as np
import pytest

from ik_6r_spherical_solver import AnalyticalIKSolver
from ik_solution import IKSolution
from robot_model import crx_10ia_l_spherical
from solution_selection import SelectionMode, joint_distance, select_best
from utilities import angle_difference_deg, make_transform


CANDIDATES = [
    np.array([0.0, 10.0, 20.0, 0.0, 30.0, 0.0]),
    np.array([90.0, 10.0, 20.0, 0.0, 30.0, 0.0]),
    np.array([180.0, -10.0, 20.0, 180.0, -30.0, 180.0]),
]


def test_joint_distance_wraps_each_side():
    assert joint_distance([370.0, 0, 0, 0, 0, 0], [10.0, 0, 0, 0, 0, 0]) == pytest.approx(0.0)
    assert joint_distance([10.0, -20.0, 0, 0, 0, 0], [0.0] * 6) == pytest.approx(30.0)


def test_auto_picks_nearest():
    best = select_best(CANDIDATES, [85.0, 10.0, 20.0, 0.0, 30.0, 0.0])
    assert np.array_equal(best, CANDIDATES[1])
    best = select_best(CANDIDATES, [0.0] * 6, SelectionMode.AUTO)
    assert np.array_equal(best, CANDIDATES[0])


def test_manual_index_is_clamped():
    current = [0.0] * 6
    assert np.array_equal(select_best(CANDIDATES, current, SelectionMode.MANUAL, 1), CANDIDATES[1])
    assert np.array_equal(select_best(CANDIDATES, current, SelectionMode.MANUAL, 99), CANDIDATES[2])
    assert np.array_equal(select_best(CANDIDATES, current, SelectionMode.MANUAL, -5), CANDIDATES[0])


def test_no_candidates():
    assert select_best([], [0.0] * 6) is None
    invalid = [IKSolution(CANDIDATES[0], is_valid=False)]
    assert select_best(invalid, [0.0] * 6) is None
    assert select_best(invalid, [0.0] * 6, SelectionMode.MANUAL, 0) is None


def test_invalid_records_are_skipped():
    records = [IKSolution(CANDIDATES[0], is_valid=False), IKSolution(CANDIDATES[2])]
    assert np.array_equal(select_best(records, [0.0] * 6), CANDIDATES[2])


def test_continuity_along_a_straight_line():
    model = crx_10ia_l_spherical()
    solver = AnalyticalIKSolver(model)
    start = solver.solve([800.0, 0.0, 200.0], np.eye(3))
    current = next(s.joints for s in start if s.branch == 'front/up/flip/-')

    for y in np.linspace(0.0, 200.0, 21)[1:]:
        solutions = solver.solve_transform(make_transform(p=[800.0, y, 200.0]))
        best = select_best(solutions, current)
        assert best is not None
        assert np.all(angle_difference_deg(best, current) < 5.0)
        current = best
