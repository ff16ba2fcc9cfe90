"""
TEST SUITE FOR THE FANUC CRX IK SOLVERS

This script runs round-trip sweeps over the CRX solvers:
1. Test every robot from the CSV table with random poses (FK -> IK -> original found)
2. Stress test with random CRX-family link dimensions, offset and spherical wrists

Run under pytest for pass/fail, or as a script for a Markdown benchmark report.

Author: CRX kinematics contributors
Date: October 17, 2026
"""

import os
import time
from datetime import datetime

import numpy as np

from FanucCRX import FanucCRX
from robot_model import RobotModel, crx_dhm, load_robot_models
from utilities import angle_difference_deg


SCAN_STEPS = 360


def _make_robot(model: RobotModel) -> FanucCRX:
    if model.has_spherical_wrist:
        return FanucCRX(model)
    return FanucCRX(model, scan_steps=SCAN_STEPS)


def _random_joints(rng) -> np.ndarray:
    # stay clear of the +-180 wrap and of J5 = 0 (J4/J6 axes aligned)
    joint_deg = rng.uniform(-170, 170, 6)
    if abs(joint_deg[4]) < 5.0:
        joint_deg[4] += 10.0
    return joint_deg


def _round_trip(robot: FanucCRX, joint_deg: np.ndarray):
    TBW_target = robot.FK(joint_deg)
    start_time = time.time()
    solutions, wrongSolutions = robot.IK(TBW_target)
    solve_time = time.time() - start_time
    found_original = any(np.all(angle_difference_deg(sol, joint_deg) < 1e-1) for sol in solutions)
    return found_original, len(solutions), solve_time


def sweep_robots_from_csv(csv_path: str = None, num_test_poses: int = 10, seed: int = 0):
    """
    Test all robots from the CSV table with random poses.

    Returns:
        dict: Test results with statistics and failed robots
    """
    rng = np.random.default_rng(seed)
    models = load_robot_models(csv_path)
    print(f"Found {len(models)} robots in CSV")

    robot_results = []
    failed_robots = []
    total_tests = 0
    total_passed = 0
    total_solutions = 0
    total_time = 0.0

    for robot_idx, (classname, model) in enumerate(models.items()):
        print(f"\nTesting Robot {robot_idx+1}/{len(models)}: {classname}")
        robot = _make_robot(model)

        passed = 0
        robot_solutions = 0
        robot_time = 0.0
        for pose_idx in range(num_test_poses):
            joint_deg = _random_joints(rng)
            found_original, n_solutions, solve_time = _round_trip(robot, joint_deg)
            robot_solutions += n_solutions
            robot_time += solve_time
            if found_original:
                passed += 1
                print(f"  ✓ Pose {pose_idx+1}: PASSED ({n_solutions} solutions)")
            else:
                print(f"  ❌ Pose {pose_idx+1}: FAILED - Original angles not found ({n_solutions} solutions)")

        total_tests += num_test_poses
        total_passed += passed
        total_solutions += robot_solutions
        total_time += robot_time

        robot_result = {
            'classname': classname,
            'solver': type(robot.solver).__name__,
            'success_rate': passed / num_test_poses * 100,
            'total_poses': num_test_poses,
            'passed_poses': passed,
            'avg_solutions_per_pose': robot_solutions / num_test_poses,
            'avg_time_per_pose_ms': robot_time / num_test_poses * 1000,
        }
        robot_results.append(robot_result)
        if passed < num_test_poses:
            failed_robots.append(robot_result)
        print(f"Robot {classname}: {robot_result['success_rate']:.1f}% success ({passed}/{num_test_poses} poses)")

    return {
        'total_robots': len(models),
        'total_poses': total_tests,
        'total_solutions': total_solutions,
        'avg_time_per_pose_ms': total_time / total_tests * 1000 if total_tests > 0 else 0,
        'overall_success_rate': total_passed / total_tests * 100 if total_tests > 0 else 0,
        'robot_results': robot_results,
        'failed_robots': failed_robots,
    }


def stress_test_crx_dimensions(num_tests: int = 30, seed: int = 1):
    """
    Random CRX-family link dimensions (both wrist types) with random joint angles.

    Returns:
        dict: Test results with statistics and failed cases
    """
    rng = np.random.default_rng(seed)
    print(f"\nRunning stress test with {num_tests} random configurations...")

    failed_cases = []
    passed = 0
    total_solutions = 0
    total_time = 0.0

    for test_idx in range(num_tests):
        spherical = test_idx % 2 == 1
        upper_arm = rng.uniform(300, 900)
        forearm = rng.uniform(300, 900)
        wrist_offset = 0.0 if spherical else rng.uniform(50, 200)
        tool_offset = rng.uniform(50, 250)
        shoulder_height = rng.uniform(0, 300)
        model = RobotModel(f'random-{test_idx}',
                           crx_dhm(upper_arm, forearm, wrist_offset, tool_offset, shoulder_height))

        joint_deg = _random_joints(rng)
        found_original, n_solutions, solve_time = _round_trip(_make_robot(model), joint_deg)
        total_solutions += n_solutions
        total_time += solve_time
        if found_original:
            passed += 1
        else:
            failed_cases.append({
                'test_idx': test_idx,
                'spherical': spherical,
                'solutions_found': n_solutions,
                'joint_deg': joint_deg,
            })
            print(f"  ❌ Test {test_idx}: original not found ({n_solutions} solutions), "
                  f"a2={upper_arm:.1f}, d4={forearm:.1f}, d5={wrist_offset:.1f}")

    return {
        'total_tests': num_tests,
        'passed_tests': passed,
        'failed_tests': num_tests - passed,
        'success_rate': passed / num_tests * 100 if num_tests > 0 else 0,
        'avg_solutions_per_test': total_solutions / num_tests if num_tests > 0 else 0,
        'avg_time_per_test_ms': total_time / num_tests * 1000 if num_tests > 0 else 0,
        'failed_cases': failed_cases,
    }


def generate_test_report(csv_results: dict, stress_results: dict, output_path: str = None):
    """Write a Markdown summary of both sweeps and return its path."""
    if output_path is None:
        script_dir = os.path.dirname(os.path.abspath(__file__))
        output_path = os.path.join(script_dir, 'BENCHMARK_RESULTS.md')

    report = f"""# CRX IK Solver Test Report

**Generated on:** {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}

## Key Findings
- **CSV Robot Test:** {csv_results['overall_success_rate']:.1f}% success rate across {csv_results['total_robots']} robots
- **Stress Test:** {stress_results['success_rate']:.1f}% success rate across {stress_results['total_tests']} random configurations

## Test 1: Robots from CSV

| Robot Class | Solver | Success Rate | Poses Passed | Avg Solutions/Pose | Avg Time/Pose (ms) |
|-------------|--------|-------------|--------------|-------------------|-------------------|
"""
    for robot in csv_results['robot_results']:
        report += (f"| {robot['classname']} | {robot['solver']} | {robot['success_rate']:.1f}% | "
                   f"{robot['passed_poses']}/{robot['total_poses']} | {robot['avg_solutions_per_pose']:.1f} | "
                   f"{robot['avg_time_per_pose_ms']:.2f} |\n")

    report += f"""
## Test 2: Random CRX Dimensions

- **Configurations Tested:** {stress_results['total_tests']}
- **Passed Tests:** {stress_results['passed_tests']}
- **Average Solutions per Test:** {stress_results['avg_solutions_per_test']:.1f}
- **Average Time per Test:** {stress_results['avg_time_per_test_ms']:.2f} ms

"""
    if stress_results['failed_cases']:
        report += "| Test # | Wrist | Solutions |\n|--------|-------|-----------|\n"
        for case in stress_results['failed_cases'][:20]:
            wrist = 'spherical' if case['spherical'] else 'offset'
            report += f"| {case['test_idx']} | {wrist} | {case['solutions_found']} |\n"
    else:
        report += "### ✅ All Tests Passed\n"

    with open(output_path, 'w') as f:
        f.write(report)

    print(f"\n📄 Test report saved to: {output_path}")
    return output_path


def run_all_tests(csv_poses: int = 10, stress_tests: int = 30, report_path: str = None):
    print("="*80)
    print("CRX IK SOLVERS - COMPREHENSIVE TEST SUITE")
    print("="*80)

    print("\n" + "="*60)
    print("TEST 1: ROBOTS FROM CSV")
    print("="*60)
    csv_results = sweep_robots_from_csv(num_test_poses=csv_poses)

    print("\n" + "="*60)
    print("TEST 2: STRESS TEST WITH RANDOM DIMENSIONS")
    print("="*60)
    stress_results = stress_test_crx_dimensions(num_tests=stress_tests)

    report_path = generate_test_report(csv_results, stress_results, report_path)

    print("\n" + "="*80)
    print("FINAL TEST SUMMARY")
    print("="*80)
    print(f"CSV Robots Test: {csv_results['overall_success_rate']:.1f}% success")
    print(f"Stress Test:     {stress_results['success_rate']:.1f}% success")
    return csv_results, stress_results, report_path


# ---------------------------------------------------------------------------
# pytest entry points
# ---------------------------------------------------------------------------

def test_csv_robots_round_trip():
    results = sweep_robots_from_csv(num_test_poses=5)
    assert results['total_robots'] == 5
    assert results['overall_success_rate'] >= 80.0


def test_random_crx_dimensions():
    results = stress_test_crx_dimensions(num_tests=10)
    assert results['success_rate'] >= 70.0


def test_report_is_written(tmp_path):
    csv_results = sweep_robots_from_csv(num_test_poses=1)
    stress_results = stress_test_crx_dimensions(num_tests=2)
    path = generate_test_report(csv_results, stress_results, str(tmp_path / 'report.md'))
    with open(path) as f:
        text = f.read()
    assert 'CRX-10iA/L' in text
    assert 'Random CRX Dimensions' in text


if __name__ == "__main__":
    csv_results, stress_results, report_path = run_all_tests(csv_poses=10, stress_tests=30)
    print(f"\nTest completed! Report saved to: {report_path}")
