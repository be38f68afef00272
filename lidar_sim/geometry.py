"""
Scene Geometry for Beam-Grid LIDAR Simulation

This module provides the geometric primitives consumed by the simulator in
lidar.py. It contains the following components:

Hyperplane: an infinite oriented plane in implicit form normal . x = offset.
ParametrizedLine: a ray origin + t * direction, with the intersection
parameter query against a Hyperplane. The direction may be a single vector
or a stacked (..., 3) array so that a whole beam grid is intersected at once.
Pose: a rigid transform (rotation + translation) from the sensor frame to
the world frame.
Scene builders that produce lists of Hyperplanes for common test setups.

Intersection parameters follow the usual parametric convention: for a unit
direction the parameter equals the distance along the ray. A ray parallel to
a plane yields an infinite or NaN parameter rather than an exception, which
callers filter out.
"""

import numpy as np
from scipy.spatial.transform import Rotation

from .math_utils import _as_homogeneous_matrix, _as_rotation_matrix, _as_vector3, eps


class Hyperplane:
    """
    Infinite oriented plane defined by a unit normal and a signed offset.

    Points x on the plane satisfy dot(normal, x) = offset. The normal given
    at construction is normalized and the offset scaled by the same factor,
    so the plane itself is unchanged.

    :param normal: Plane normal (need not be unit length) [unit].
    :param offset: Signed offset along the normal [m].
    """
    def __init__(self, normal, offset):
        normal = _as_vector3(normal, "normal")
        norm = float(np.linalg.norm(normal))
        if norm < eps:
            raise ValueError("normal must be non-zero.")
        self.normal = normal / norm                  # [unit] plane normal
        self.offset = float(offset) / norm           # [m] signed offset along normal
        self.normal.setflags(write=False)

    @classmethod
    def through(cls, point, normal):
        """Build the plane with the given normal passing through point."""
        point = _as_vector3(point, "point")
        normal = _as_vector3(normal, "normal")
        norm = float(np.linalg.norm(normal))
        if norm < eps:
            raise ValueError("normal must be non-zero.")
        unit_normal = normal / norm
        return cls(unit_normal, float(np.dot(unit_normal, point)))

    def signed_distance(self, points):
        """
        Signed distance from one point (3,) or a stack of points (..., 3) to the plane.

        Positive on the side the normal points to.
        """
        points = np.asarray(points, dtype=float)
        return points @ self.normal - self.offset

    def project(self, point):
        """Orthogonal projection of a point onto the plane."""
        point = _as_vector3(point, "point")
        return point - self.signed_distance(point) * self.normal

    def transform(self, pose):
        """
        Return this plane expressed after applying a rigid transform.

        If x lies on the plane, pose.transform_point(x) lies on the result.
        """
        normal = pose.rotation @ self.normal
        return Hyperplane(normal, self.offset + float(np.dot(normal, pose.translation)))

    def __repr__(self):
        return f"Hyperplane(normal={self.normal.tolist()}, offset={self.offset!r})"


class ParametrizedLine:
    """
    Parametric line origin + t * direction.

    The direction is not normalized, so the intersection parameter is a
    distance only for unit directions. A stack of directions (..., 3) sharing
    one origin is allowed; queries then return arrays of the leading shape.

    :param origin:    Line origin [m].
    :param direction: Direction vector (3,) or stacked directions (..., 3).
    """
    def __init__(self, origin, direction):
        self.origin = _as_vector3(origin, "origin")
        direction = np.asarray(direction, dtype=float)
        if direction.ndim < 1 or direction.shape[-1] != 3:
            raise ValueError("direction must have a trailing dimension of 3.")
        self.direction = direction

    def point_at(self, t):
        """Point(s) at parameter t along the line."""
        t = np.asarray(t, dtype=float)
        return self.origin + t[..., None] * self.direction

    def intersection_parameter(self, plane):
        """
        Parameter t at which the line meets the plane.

        Solves dot(n, origin + t * direction) = offset:
            t = (offset - dot(n, origin)) / dot(n, direction)

        If the line is parallel to the plane the denominator is zero and the
        result is +/-inf (or NaN when the line lies inside the plane).

        :param plane: Object exposing normal (3,) and offset attributes.
        :return: float for a single direction, ndarray for stacked directions.
        """
        # numpy scalars, so a zero denominator gives inf/nan instead of ZeroDivisionError
        numerator = np.float64(plane.offset) - np.dot(plane.normal, self.origin)
        denominator = self.direction @ np.asarray(plane.normal, dtype=float)
        # Parallel beams divide by zero; the caller ignores the inf/nan result.
        with np.errstate(divide="ignore", invalid="ignore"):
            t = numerator / denominator
        if np.ndim(t) == 0:
            return float(t)
        return t

    def intersection_point(self, plane):
        """World point where the line meets the plane (inf/nan components when parallel)."""
        with np.errstate(invalid="ignore"):
            return self.point_at(self.intersection_parameter(plane))


class Pose:
    """
    Rigid transform mapping sensor-frame coordinates to world coordinates.

        x_world = rotation @ x_sensor + translation

    :param rotation:    3x3 rotation matrix (sensor -> world). None = identity.
    :param translation: Sensor origin in world space [m]. None = zero.
    """
    def __init__(self, rotation=None, translation=None):
        # Copies, so freezing them never touches the caller's arrays.
        self.rotation = np.eye(3, dtype=float) if rotation is None else _as_rotation_matrix(rotation, "rotation").copy()
        self.translation = np.zeros(3, dtype=float) if translation is None else _as_vector3(translation, "translation").copy()
        self.rotation.setflags(write=False)
        self.translation.setflags(write=False)

    @classmethod
    def identity(cls):
        """
        Pose whose sensor frame coincides with the world frame.

        :return: Pose with identity rotation and zero translation.
        """
        return cls()

    @classmethod
    def from_matrix(cls, matrix):
        """Build a pose from a 4x4 homogeneous transform."""
        rotation, translation = _as_homogeneous_matrix(matrix, "matrix")
        return cls(rotation, translation)

    @classmethod
    def from_euler(cls, seq, angles, translation=None, degrees=False):
        """Build a pose from Euler angles (scipy Rotation.from_euler conventions)."""
        rotation = Rotation.from_euler(seq, angles, degrees=degrees).as_matrix()
        return cls(rotation, translation)

    @classmethod
    def from_rotvec(cls, rotvec, translation=None):
        """Build a pose from an axis-angle rotation vector [rad]."""
        rotation = Rotation.from_rotvec(_as_vector3(rotvec, "rotvec")).as_matrix()
        return cls(rotation, translation)

    @property
    def matrix(self):
        """4x4 homogeneous matrix of this pose."""
        matrix = np.eye(4, dtype=float)
        matrix[:3, :3] = self.rotation
        matrix[:3, 3] = self.translation
        return matrix

    def transform_point(self, points):
        """Map point(s) (3,) or (..., 3) from the sensor frame to the world frame."""
        points = np.asarray(points, dtype=float)
        return points @ self.rotation.T + self.translation

    def transform_direction(self, directions):
        """Rotate direction(s) (3,) or (..., 3) into the world frame (no translation)."""
        directions = np.asarray(directions, dtype=float)
        return directions @ self.rotation.T

    def inverse(self):
        """
        Inverse transform (world -> sensor).

        :return: Pose such that pose @ pose.inverse() is the identity.
        """
        # Orthonormal rotation: the transpose is the inverse
        rotation_inv = self.rotation.T
        return Pose(rotation_inv, -(rotation_inv @ self.translation))

    def __matmul__(self, other):
        """
        Compose two poses. (a @ b) applies b first, then a.

        :param other: Pose mapping frame C to frame B, when self maps B to A.
        :return: Pose mapping frame C to frame A.
        """
        if not isinstance(other, Pose):
            return NotImplemented

        # x_A = R_a (R_b x_C + t_b) + t_a
        return Pose(self.rotation @ other.rotation, self.rotation @ other.translation + self.translation)

    def __repr__(self):
        return f"Pose(rotation={self.rotation.tolist()}, translation={self.translation.tolist()})"


def axis_aligned_room(min_corner, max_corner):
    """
    Six inward-facing walls of an axis-aligned box.

    Returned in the order -x, +x, -y, +y, -z, +z. A sensor placed anywhere
    strictly inside the box sees a finite range on every beam.

    :param min_corner: Minimum (x, y, z) corner of the room [m].
    :param max_corner: Maximum (x, y, z) corner of the room [m].
    :return: list of Hyperplane.
    """
    min_corner = _as_vector3(min_corner, "min_corner")
    max_corner = _as_vector3(max_corner, "max_corner")
    if np.any(max_corner <= min_corner):
        raise ValueError("max_corner must be strictly greater than min_corner on all axes.")

    walls = []
    for axis in range(3):
        normal = np.zeros(3, dtype=float)
        normal[axis] = 1.0
        walls.append(Hyperplane(normal, min_corner[axis]))     # floor-side wall, normal points inward (+axis)
        walls.append(Hyperplane(-normal, -max_corner[axis]))   # far wall, normal points inward (-axis)
    return walls


def translate_scene(scene, offset):
    """Return a copy of the scene with every plane shifted by offset [m]."""
    shift = Pose(translation=offset)
    return [plane.transform(shift) for plane in scene]
