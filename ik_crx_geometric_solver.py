"""
Geometric Inverse Kinematics for the FANUC CRX (offset wrist)

The CRX wrist is not spherical: the joint 5 axis sits d5 = 150 mm off the joint 4 axis,
so position and orientation do not decouple. The solver follows the geometric approach
of Abbes & Poisson (2024) and reduces the problem to a 1-D root search:

1. Wrist center O5 = O6 - d6 * z6 is fixed by the target pose.
2. O4 lies on a circle of radius |d5| about O5, in the plane perpendicular to z6.
   Sweep the circle angle q over [0, 360] deg.
3. For every q and every shoulder (front/back) / elbow (up/down) branch, solve the
   planar upper-arm / forearm triangle for J1..J3 with O4 as the target.
4. Residual r(q) = z4 . z5, where z4 = (O4 - O3) / d4 and z5 = (O5 - O4) / d5. The
   kinematic chain closes where joint 4 and joint 5 axes are perpendicular, r = 0.
5. Sign changes of r between consecutive reachable samples are refined by bisection.
6. Each root gives J1..J3 directly, J4 from z5 expressed in frame 3, and J5, J6 from
   R46 = R04^T R06. A root is kept only if |r| < residual_tol and FK reproduces the
   target.

A generic reachable pose has up to 16 configurations (4 branches x up to 4 roots).
Joint angles follow the same turn policy as the closed-form solver: the in-limits
value nearest to zero, with every other in-limits turn listed when expand_turns is set.

Author: CRX kinematics contributors
Date: October 17, 2026
"""

import math
from typing import List, Optional, Tuple

import numpy as np

from crx_arm_geometry import (
    arm_frame,
    check_crx_structure,
    elbow_point,
    shoulder_headings,
    solve_arm_plane,
    wrist_frame,
    wrist_pitch_roll,
    wrist_roll_from_axis,
)
from ik_solution import IKSolution, IKSolver, verify_solution, with_turn_equivalents
from robot_model import RobotModel
from utilities import deduplicate_joint_sets, normalized


UNREACHABLE_RESIDUAL = 100.0

BRANCHES = [(0, 1), (0, -1), (1, 1), (1, -1)]   # (shoulder index, elbow sign)


def _branch_name(shoulder: int, elbow: int) -> str:
    return f"{'front' if shoulder == 0 else 'back'}/{'up' if elbow > 0 else 'down'}"


class GeometricIKSolver(IKSolver):
    """
    Redundancy-scan IK for CRX models with a non-zero wrist offset.

    Args:
        model: RobotModel with the CRX joint layout and d5 != 0
        scan_steps: samples of the O4 circle over 360 deg
        bisection_steps: fixed bisection iterations per bracketed root
        residual_tol: largest |z4 . z5| accepted at a refined root
        expand_turns: also list the +/-360 deg turns of each solution that fit the limits
        verbose: print scan and verification diagnostics
    """

    def __init__(self, model: RobotModel, scan_steps: int = 72, bisection_steps: int = 40,
                 residual_tol: float = 1e-6, expand_turns: bool = False, verbose: bool = False):
        check_crx_structure(model, spherical=False)
        if scan_steps < 3:
            raise ValueError(f"scan_steps must be at least 3, got {scan_steps}")
        if bisection_steps < 1:
            raise ValueError(f"bisection_steps must be positive, got {bisection_steps}")
        super().__init__(model)
        self.scan_steps = scan_steps
        self.bisection_steps = bisection_steps
        self.residual_tol = residual_tol
        self.expand_turns = expand_turns
        self.verbose = verbose

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def solve_transform(self, TBW: np.ndarray) -> List[IKSolution]:
        """All valid joint configurations (degrees) reaching the tool pose TBW."""
        solutions, _ = self.solve_with_rejects(TBW)
        return solutions

    def solve_with_rejects(self, TBW: np.ndarray) -> Tuple[List[IKSolution], List[IKSolution]]:
        """
        Valid solutions plus the refined roots that failed the FK or joint-limit check.

        Brackets that straddle a branch discontinuity instead of a true root are
        dropped by the residual test and appear in neither list.
        """
        TBW = np.asarray(TBW, dtype=float)
        T06 = self.model.target_to_flange(TBW)
        R06 = T06[:3, :3]
        O5 = T06[:3, 3] - self.model.tool_offset * R06[:, 2]
        circle = self._o4_circle_frame(R06[:, 2])

        if self.verbose:
            print(f"Wrist center O5: [{O5[0]:.3f}, {O5[1]:.3f}, {O5[2]:.3f}] mm")

        valid: List[IKSolution] = []
        rejects: List[IKSolution] = []
        for shoulder, elbow in BRANCHES:
            for q in self._find_roots(O5, circle, shoulder, elbow):
                sol = self._build_solution(q, O5, circle, shoulder, elbow, R06, TBW)
                if sol is None:
                    continue
                (valid if sol.is_valid else rejects).append(sol)

        valid = deduplicate_joint_sets(valid, tol_deg=1e-3, key=lambda s: s.joints)
        if self.expand_turns:
            valid = with_turn_equivalents(self.model, valid)
        if self.verbose:
            print(f"Found {len(valid)} valid solutions, {len(rejects)} rejected")
        return valid, rejects

    def residual(self, q: float, O5, circle, shoulder: int, elbow: int) -> float:
        """z4 . z5 at circle angle q (radians), or UNREACHABLE_RESIDUAL."""
        return self._evaluate(q, O5, circle, shoulder, elbow)[0]

    # ------------------------------------------------------------------
    # Scan and refinement
    # ------------------------------------------------------------------

    @staticmethod
    def _o4_circle_frame(z6) -> Tuple[np.ndarray, np.ndarray]:
        """Two unit vectors spanning the plane perpendicular to z6."""
        ref = np.array([0.0, 1.0, 0.0])
        if abs(np.dot(ref, z6)) > 0.9:
            ref = np.array([1.0, 0.0, 0.0])
        x_axis = normalized(np.cross(ref, z6))
        y_axis = np.cross(z6, x_axis)
        return x_axis, y_axis

    def _o4(self, q: float, O5, circle) -> np.ndarray:
        x_axis, y_axis = circle
        return O5 + abs(self.model.wrist_offset) * (math.cos(q) * x_axis + math.sin(q) * y_axis)

    def _evaluate(self, q, O5, circle, shoulder, elbow):
        O4 = self._o4(q, O5, circle)
        theta1 = shoulder_headings(O4)[shoulder]
        arm = solve_arm_plane(self.model, O4, theta1, elbow)
        if arm is None:
            return UNREACHABLE_RESIDUAL, None
        theta2, theta3 = arm
        O3 = elbow_point(self.model, theta1, theta2)
        z4 = (O4 - O3) / self.model.forearm_length
        z5 = (O5 - O4) / self.model.wrist_offset
        return float(np.dot(z4, z5)), (theta1, theta2, theta3, z5)

    def _find_roots(self, O5, circle, shoulder, elbow) -> List[float]:
        step = 2.0 * math.pi / self.scan_steps
        roots = []
        prev_q, prev_res = None, UNREACHABLE_RESIDUAL
        for i in range(self.scan_steps + 1):
            q = i * step
            res = self.residual(q, O5, circle, shoulder, elbow)
            if prev_q is not None and res != UNREACHABLE_RESIDUAL and prev_res != UNREACHABLE_RESIDUAL:
                if res == 0.0:
                    roots.append(q)
                elif prev_res * res < 0.0:
                    root = self._bisect(prev_q, q, prev_res, O5, circle, shoulder, elbow)
                    if root is not None:
                        roots.append(root)
            prev_q, prev_res = q, res

        if self.verbose and roots:
            print(f"  {_branch_name(shoulder, elbow)}: {len(roots)} sign change(s) at "
                  f"{[round(math.degrees(r), 3) for r in roots]} deg")
        return roots

    def _bisect(self, lo, hi, f_lo, O5, circle, shoulder, elbow) -> Optional[float]:
        for _ in range(self.bisection_steps):
            mid = 0.5 * (lo + hi)
            f_mid = self.residual(mid, O5, circle, shoulder, elbow)
            if f_mid == UNREACHABLE_RESIDUAL:
                return None
            if f_mid == 0.0:
                return mid
            if (f_mid > 0.0) == (f_lo > 0.0):
                lo, f_lo = mid, f_mid
            else:
                hi = mid
        return 0.5 * (lo + hi)

    # ------------------------------------------------------------------
    # Joint reconstruction
    # ------------------------------------------------------------------

    def _build_solution(self, q, O5, circle, shoulder, elbow, R06, TBW) -> Optional[IKSolution]:
        res, arm = self._evaluate(q, O5, circle, shoulder, elbow)
        branch = _branch_name(shoulder, elbow)
        if arm is None or abs(res) >= self.residual_tol:
            if self.verbose:
                print(f"  {branch} root at {math.degrees(q):.3f} deg rejected: residual={res:.2e}")
            return None

        theta1, theta2, theta3, z5 = arm
        T03 = arm_frame(self.model, theta1, theta2, theta3)
        theta4 = wrist_roll_from_axis(T03, z5)
        T04 = wrist_frame(self.model, T03, theta4)
        theta5, theta6 = wrist_pitch_roll(T04, R06)

        joints = self.model.theta_to_joints([theta1, theta2, theta3, theta4, theta5, theta6])
        ok, pos_err, rot_err = verify_solution(self.model, joints, TBW)
        if not ok:
            if self.verbose:
                print(f"  {branch} FAILED: pos_err={pos_err:.2e}, rot_err={rot_err:.2e}")
            return IKSolution(joints, False, branch, res)
        turns = self.model.turn_equivalents(joints)
        if not turns:
            if self.verbose:
                print(f"  {branch} outside joint limits: {np.round(joints, 3)}")
            return IKSolution(joints, False, branch, res)
        if self.verbose:
            print(f"  {branch} verified at q={math.degrees(q):.3f} deg: {np.round(turns[0], 3)}")
        return IKSolution(turns[0], True, branch, res)
