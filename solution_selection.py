"""Choosing one IK solution from a candidate set."""

from enum import Enum
from typing import Optional, Sequence

import numpy as np

from ik_solution import IKSolution
from utilities import wrap_to_pi


class SelectionMode(Enum):
    AUTO = "auto"       # closest to the current joint state
    MANUAL = "manual"   # operator-chosen index


def joint_distance(a, b) -> float:
    """Sum of absolute joint differences (deg), both sides wrapped to (-180, 180] first."""
    wa = wrap_to_pi(np.radians(np.asarray(a, dtype=float)))
    wb = wrap_to_pi(np.radians(np.asarray(b, dtype=float)))
    return float(np.degrees(np.sum(np.abs(wa - wb))))


def select_best(candidates: Sequence, current_joints, mode: SelectionMode = SelectionMode.AUTO,
                manual_index: int = 0) -> Optional[np.ndarray]:
    """
    Pick one joint vector (deg) from candidates.

    Candidates may be IKSolution records (invalid ones are ignored) or plain joint
    vectors. Returns None when nothing valid is left, so the caller keeps its last
    known good pose.
    """
    joints = []
    for c in candidates:
        if isinstance(c, IKSolution):
            if c.is_valid:
                joints.append(np.array(c.joints))
        else:
            joints.append(np.asarray(c, dtype=float))
    if not joints:
        return None

    if mode == SelectionMode.MANUAL:
        index = min(max(int(manual_index), 0), len(joints) - 1)
        return joints[index]

    distances = [joint_distance(q, current_joints) for q in joints]
    return joints[int(np.argmin(distances))]
