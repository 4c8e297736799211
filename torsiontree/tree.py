"""Kinematic trees of rigid atom groups joined by rotatable bonds.

Atom coordinates passed as ``atoms`` are local to the frame owning each
atom; ``coords`` and ``forces`` are ``(n, 3)`` arrays in lab coordinates.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

EPSILON = sys.float_info.epsilon
_NORMALIZE_TOLERANCE = 1e-6
IDENTITY_QUATERNION = np.array([1.0, 0.0, 0.0, 0.0])

ForceTorque = Tuple[np.ndarray, np.ndarray]


def _vec(value) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {arr.shape}")
    return arr


def _quat(value) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != (4,):
        raise ValueError(f"expected a quaternion of 4 components, got shape {arr.shape}")
    return arr


def _quaternion_multiply(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    a1, b1, c1, d1 = p
    a2, b2, c2, d2 = q
    return np.array(
        [
            a1 * a2 - b1 * b2 - c1 * c2 - d1 * d2,
            a1 * b2 + b1 * a2 + c1 * d2 - d1 * c2,
            a1 * c2 - b1 * d2 + c1 * a2 + d1 * b2,
            a1 * d2 + b1 * c2 - c1 * b2 + d1 * a2,
        ]
    )


def _normalize_approx(q: np.ndarray) -> np.ndarray:
    s = float(q @ q)
    if abs(s - 1.0) < _NORMALIZE_TOLERANCE:
        return q
    return q / math.sqrt(s)


def angle_to_quaternion(axis, angle: float) -> np.ndarray:
    """Quaternion for a rotation by ``angle`` about the unit vector ``axis``."""
    axis = _vec(axis)
    angle = math.remainder(angle, 2 * math.pi)
    c = math.cos(angle / 2)
    s = math.sin(angle / 2)
    return np.array([c, s * axis[0], s * axis[1], s * axis[2]])


def quaternion_to_matrix(q) -> np.ndarray:
    """Rotation matrix of a unit quaternion ``(a, b, c, d)``."""
    a, b, c, d = _quat(q)
    aa, ab, ac, ad = a * a, a * b, a * c, a * d
    bb, bc, bd = b * b, b * c, b * d
    cc, cd = c * c, c * d
    dd = d * d
    return np.array(
        [
            [aa + bb - cc - dd, 2 * (-ad + bc), 2 * (ac + bd)],
            [2 * (ad + bc), aa - bb + cc - dd, 2 * (-ab + cd)],
            [2 * (-ac + bd), 2 * (ab + cd), aa - bb - cc + dd],
        ]
    )


@dataclass
class RigidConf:
    position: np.ndarray
    orientation: np.ndarray = field(default_factory=lambda: IDENTITY_QUATERNION.copy())

    def __post_init__(self) -> None:
        self.position = _vec(self.position)
        self.orientation = _quat(self.orientation)


@dataclass
class LigandConf:
    rigid: RigidConf
    torsions: List[float] = field(default_factory=list)


@dataclass
class ResidueConf:
    torsions: List[float] = field(default_factory=list)


@dataclass
class RigidChange:
    position: np.ndarray
    orientation: np.ndarray


@dataclass
class LigandChange:
    rigid: RigidChange
    torsions: List[float]


@dataclass
class ResidueChange:
    torsions: List[float]


class Frame:
    """A coordinate frame: an origin and an orientation in the lab."""

    def __init__(self, origin) -> None:
        self.origin = _vec(origin)
        self._set_orientation(IDENTITY_QUATERNION)

    @property
    def orientation(self) -> np.ndarray:
        return self._orientation_q.copy()

    @property
    def orientation_matrix(self) -> np.ndarray:
        return self._orientation_m.copy()

    def _set_orientation(self, q) -> None:
        # The quaternion is stored as given, without normalization.
        self._orientation_q = _quat(q)
        self._orientation_m = quaternion_to_matrix(self._orientation_q)

    def local_to_lab(self, local_coords) -> np.ndarray:
        return self.origin + self._orientation_m @ _vec(local_coords)

    def local_to_lab_direction(self, local_direction) -> np.ndarray:
        return self._orientation_m @ _vec(local_direction)


class AtomRange:
    """A half-open range ``[begin, end)`` of atom indices."""

    def __init__(self, begin: int, end: int) -> None:
        if end < begin:
            raise ValueError(f"range end {end} precedes begin {begin}")
        self.begin = begin
        self.end = end

    def transform(self, f: Callable[[int], int]) -> None:
        """Move ``begin`` to ``f(begin)``, keeping the range length."""
        length = self.end - self.begin
        self.begin = f(self.begin)
        self.end = self.begin + length


class AtomFrame(Frame, AtomRange):
    """A frame owning a contiguous range of atoms."""

    def __init__(self, origin, begin: int, end: int) -> None:
        Frame.__init__(self, origin)
        AtomRange.__init__(self, begin, end)

    def set_coords(self, atoms, coords: np.ndarray) -> None:
        local = np.asarray(atoms, dtype=float)[self.begin:self.end]
        coords[self.begin:self.end] = local @ self._orientation_m.T + self.origin

    def sum_force_and_torque(self, coords, forces) -> ForceTorque:
        c = np.asarray(coords, dtype=float)[self.begin:self.end].reshape(-1, 3)
        f = np.asarray(forces, dtype=float)[self.begin:self.end].reshape(-1, 3)
        force = f.sum(axis=0)
        torque = np.cross(c - self.origin, f).sum(axis=0) if len(f) else np.zeros(3)
        return force, torque


class RigidBody(AtomFrame):
    """Root of a ligand, free to translate and rotate."""

    def set_conf(self, atoms, coords: np.ndarray, conf: RigidConf) -> None:
        self.origin = _vec(conf.position)
        self._set_orientation(conf.orientation)
        self.set_coords(atoms, coords)

    def count_torsions(self) -> int:
        return 0

    def set_derivative(self, force_torque: ForceTorque) -> RigidChange:
        force, torque = force_torque
        return RigidChange(position=np.array(force), orientation=np.array(torque))


class AxisFrame(AtomFrame):
    """An atom frame that rotates about an axis through its origin."""

    def __init__(self, origin, begin: int, end: int, axis_root) -> None:
        super().__init__(origin, begin, end)
        diff = self.origin - _vec(axis_root)
        norm = float(np.linalg.norm(diff))
        if norm < EPSILON:
            raise ValueError("axis root coincides with the frame origin")
        self.axis = diff / norm

    def set_derivative(self, force_torque: ForceTorque) -> float:
        return float(force_torque[1] @ self.axis)


class Segment(AxisFrame):
    """A fragment hanging off a parent frame by one rotatable bond."""

    def __init__(self, origin, begin: int, end: int, axis_root, parent: Frame) -> None:
        super().__init__(origin, begin, end, axis_root)
        if not np.all(np.abs(parent.orientation - IDENTITY_QUATERNION) < EPSILON):
            raise ValueError("parent frame must have the identity orientation")
        self._relative_axis = self.axis.copy()
        self._relative_origin = self.origin - parent.origin

    def set_conf(self, parent: Frame, atoms, coords: np.ndarray, torsions: Iterator[float]) -> None:
        torsion = next(torsions, None)
        if torsion is None:
            raise ValueError("not enough torsions for the tree")
        self.origin = parent.local_to_lab(self._relative_origin)
        self.axis = parent.local_to_lab_direction(self._relative_axis)
        q = _quaternion_multiply(angle_to_quaternion(self.axis, torsion), parent.orientation)
        self._set_orientation(_normalize_approx(q))
        self.set_coords(atoms, coords)

    def count_torsions(self) -> int:
        return 1


class FirstSegment(AxisFrame):
    """Root of a flexible residue: rotates about a fixed axis."""

    def set_conf(self, atoms, coords: np.ndarray, torsion: float) -> None:
        self._set_orientation(angle_to_quaternion(self.axis, torsion))
        self.set_coords(atoms, coords)

    def count_torsions(self) -> int:
        return 1


def _branches_set_conf(branches, parent: Frame, atoms, coords, torsions) -> None:
    for branch in branches:
        branch.set_conf(parent, atoms, coords, torsions)


def _branches_derivative(branches, origin, coords, forces, force_torque, out) -> ForceTorque:
    force, torque = force_torque
    for branch in branches:
        child_force, child_torque = branch.derivative(coords, forces, out)
        force = force + child_force
        r = branch.node.origin - origin
        torque = torque + np.cross(r, child_force) + child_torque
    return force, torque


def _ensure_exhausted(torsions: Iterator[float]) -> None:
    if next(torsions, None) is not None:
        raise ValueError("more torsions given than the tree has")


class Branch:
    """A segment with its subtree of branches."""

    def __init__(self, node: Segment, children: Optional[Sequence["Branch"]] = None) -> None:
        self.node = node
        self.children: List[Branch] = list(children or [])

    def set_conf(self, parent: Frame, atoms, coords: np.ndarray, torsions: Iterator[float]) -> None:
        self.node.set_conf(parent, atoms, coords, torsions)
        _branches_set_conf(self.children, self.node, atoms, coords, torsions)

    def derivative(self, coords, forces, out: List[float]) -> ForceTorque:
        """Append torsion derivatives in tree order; return force and torque."""
        force_torque = self.node.sum_force_and_torque(coords, forces)
        slot = len(out)
        out.append(0.0)
        force_torque = _branches_derivative(
            self.children, self.node.origin, coords, forces, force_torque, out
        )
        out[slot] = self.node.set_derivative(force_torque)
        return force_torque


class FlexibleBody:
    """A ligand: a free rigid root carrying branches."""

    def __init__(self, node: RigidBody, children: Optional[Sequence[Branch]] = None) -> None:
        self.node = node
        self.children: List[Branch] = list(children or [])

    def set_conf(self, atoms, coords: np.ndarray, conf: LigandConf) -> None:
        self.node.set_conf(atoms, coords, conf.rigid)
        torsions = iter(conf.torsions)
        _branches_set_conf(self.children, self.node, atoms, coords, torsions)
        _ensure_exhausted(torsions)

    def derivative(self, coords, forces) -> LigandChange:
        force_torque = self.node.sum_force_and_torque(coords, forces)
        torsions: List[float] = []
        force_torque = _branches_derivative(
            self.children, self.node.origin, coords, forces, force_torque, torsions
        )
        return LigandChange(rigid=self.node.set_derivative(force_torque), torsions=torsions)


class MainBranch:
    """A flexible residue: a first segment on a fixed axis carrying branches."""

    def __init__(self, node: FirstSegment, children: Optional[Sequence[Branch]] = None) -> None:
        self.node = node
        self.children: List[Branch] = list(children or [])

    def set_conf(self, atoms, coords: np.ndarray, conf: ResidueConf) -> None:
        torsions = iter(conf.torsions)
        first = next(torsions, None)
        if first is None:
            raise ValueError("not enough torsions for the tree")
        self.node.set_conf(atoms, coords, first)
        _branches_set_conf(self.children, self.node, atoms, coords, torsions)
        _ensure_exhausted(torsions)

    def derivative(self, coords, forces) -> ResidueChange:
        force_torque = self.node.sum_force_and_torque(coords, forces)
        torsions: List[float] = [0.0]
        force_torque = _branches_derivative(
            self.children, self.node.origin, coords, forces, force_torque, torsions
        )
        torsions[0] = self.node.set_derivative(force_torque)
        return ResidueChange(torsions=torsions)


def count_torsions(tree) -> int:
    """Number of torsions in a tree-like structure."""
    return tree.node.count_torsions() + sum(count_torsions(child) for child in tree.children)


def transform_ranges(tree, f: Callable[[int], int]) -> None:
    """Apply ``f`` to the start of every atom range in the tree."""
    tree.node.transform(f)
    for child in tree.children:
        transform_ranges(child, f)


class TreeList(list):
    """A list of ligands or flexible residues handled together."""

    def set_conf(self, atoms, coords: np.ndarray, confs) -> None:
        for tree, conf in zip(self, confs, strict=True):
            tree.set_conf(atoms, coords, conf)

    def count_torsions(self) -> List[int]:
        return [count_torsions(tree) for tree in self]

    def derivative(self, coords, forces) -> list:
        return [tree.derivative(coords, forces) for tree in self]