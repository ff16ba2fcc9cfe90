"""
Closed-Form Inverse Kinematics for the CRX Arm with a Spherical Wrist

Applies when the wrist offset d5 is zero, so the joint 4/5/6 axes meet in the wrist
center W and position and orientation decouple:

1. W = p - d6 * z  (flange position backed off along the target approach axis)
2. J1 from the heading of W, plus its 180 deg twin (arm reaching over the shoulder)
3. J2, J3 from the planar upper-arm / forearm triangle (two elbow branches)
4. J4 from the approach vector expressed in frame 3 (two wrist-flip candidates)
5. J5, J6 from R46 = R04^T R06 (both signs of sin J5 are tried)

That gives up to 2 x 2 x 2 x 2 = 16 raw candidates. Each is checked against the joint
limits and, by default, against forward kinematics; candidates failing either check are
returned as rejects. A generic reachable pose yields 8 valid configurations.

Joint angles come back as the in-limits turn nearest to zero, which is the (-180, 180]
value whenever the limits allow it. With expand_turns=True every other in-limits
+/-360 deg turn of a configuration is listed after it.
"""

import math
from typing import List, Tuple

import numpy as np

from crx_arm_geometry import (
    arm_frame,
    check_crx_structure,
    shoulder_headings,
    solve_arm_plane,
    wrist_frame,
)
from ik_solution import IKSolution, IKSolver, verify_solution, with_turn_equivalents
from robot_model import RobotModel
from utilities import deduplicate_joint_sets


class AnalyticalIKSolver(IKSolver):
    """
    Closed-form IK for spherical-wrist CRX models (d5 == 0).

    Args:
        model: RobotModel with the CRX joint layout and d5 == 0
        reach_tol: slack (mm) on the planar triangle reach check
        verify: check every candidate with forward kinematics
        expand_turns: also list the +/-360 deg turns of each solution that fit the limits
        verbose: print per-branch diagnostics
    """

    def __init__(self, model: RobotModel, reach_tol: float = 1e-6, verify: bool = True,
                 expand_turns: bool = False, verbose: bool = False):
        check_crx_structure(model, spherical=True)
        super().__init__(model)
        self.reach_tol = reach_tol
        self.verify = verify
        self.expand_turns = expand_turns
        self.verbose = verbose

    def solve_transform(self, TBW: np.ndarray) -> List[IKSolution]:
        """All valid joint configurations (degrees) reaching the tool pose TBW."""
        solutions, _ = self.solve_with_rejects(TBW)
        return solutions

    def solve_with_rejects(self, TBW: np.ndarray) -> Tuple[List[IKSolution], List[IKSolution]]:
        """Like solve_transform, but also returns the candidates that failed a check."""
        TBW = np.asarray(TBW, dtype=float)
        T06 = self.model.target_to_flange(TBW)
        R06 = T06[:3, :3]
        W = T06[:3, 3] - self.model.tool_offset * R06[:, 2]

        if self.verbose:
            print(f"Wrist center: [{W[0]:.3f}, {W[1]:.3f}, {W[2]:.3f}] mm")

        valid: List[IKSolution] = []
        rejects: List[IKSolution] = []

        for shoulder, theta1 in zip(('front', 'back'), shoulder_headings(W)):
            for elbow in (1, -1):
                arm = solve_arm_plane(self.model, W, theta1, elbow, self.reach_tol)
                if arm is None:
                    if self.verbose:
                        print(f"  {shoulder}/{'up' if elbow > 0 else 'down'}: wrist center out of reach")
                    continue
                theta2, theta3 = arm
                T03 = arm_frame(self.model, theta1, theta2, theta3)

                for flip, theta4 in enumerate(self._wrist_roll_candidates(T03, R06)):
                    T04 = wrist_frame(self.model, T03, theta4)
                    R46 = T04[:3, :3].T @ R06
                    c5 = float(np.clip(R46[2, 2], -1.0, 1.0))
                    s5_abs = math.sqrt(max(0.0, 1.0 - c5 * c5))
                    theta6 = math.atan2(R46[1, 0], R46[1, 1])

                    for s5 in (s5_abs, -s5_abs):
                        theta5 = math.atan2(s5, c5)
                        theta = np.array([theta1, theta2, theta3, theta4, theta5, theta6])
                        branch = f"{shoulder}/{'up' if elbow > 0 else 'down'}/{'flip' if flip else 'noflip'}" \
                                 f"/{'+' if s5 >= 0 else '-'}"
                        self._classify(self.model.theta_to_joints(theta), TBW, branch, valid, rejects)

        valid = deduplicate_joint_sets(valid, key=lambda s: s.joints)
        if self.expand_turns:
            valid = with_turn_equivalents(self.model, valid)
        if self.verbose:
            print(f"Valid solutions: {len(valid)}, rejected candidates: {len(rejects)}")
        return valid, rejects

    @staticmethod
    def _wrist_roll_candidates(T03: np.ndarray, R06: np.ndarray) -> Tuple[float, float]:
        # z5 is parallel to z4 x z6; z4 is y3, so in frame 3: z5 ~ (a_z, 0, -a_x)
        a = T03[:3, :3].T @ R06[:, 2]
        theta4 = math.atan2(a[2], -a[0])
        return theta4, theta4 + math.pi

    def _classify(self, joints, TBW, branch, valid, rejects):
        pos_err = 0.0
        if self.verify:
            ok, pos_err, rot_err = verify_solution(self.model, joints, TBW)
            if not ok:
                if self.verbose:
                    print(f"  {branch} FAILED: pos_err={pos_err:.2e}, rot_err={rot_err:.2e}")
                rejects.append(IKSolution(joints, False, branch, pos_err))
                return
        turns = self.model.turn_equivalents(joints)
        if not turns:
            if self.verbose:
                print(f"  {branch} outside joint limits: {np.round(joints, 3)}")
            rejects.append(IKSolution(joints, False, branch, pos_err))
            return
        joints = turns[0]
        if self.verbose:
            print(f"  {branch} verified: {np.round(joints, 3)}")
        valid.append(IKSolution(joints, True, branch, pos_err))

