"""
Beam-Grid LIDAR Simulator

This module simulates a 3D laser range finder whose beams form a rectangular
grid of latitude x longitude directions in the sensor frame. Given a scene of
infinite planes and a sensor pose, every beam is cast into the scene and the
distance to the nearest plane in front of the sensor is recorded. Optionally
the matching organized point cloud is produced in the sensor frame.

The primary entry points are:
    LIDARSimulator.get_ranges()      Fill a caller-provided (or new) range grid.
    LIDARSimulator.compute_ranges()  Allocate and return a new range grid.

Beams that hit nothing report NO_HIT_RANGE; use is_no_return() to mask them.
"""

import logging

import numpy as np

from .Config import BeamGridConfig
from .geometry import ParametrizedLine, Pose
from .math_utils import _as_angle_array
from .point_cloud import PointCloud

logger = logging.getLogger(__name__)

NO_HIT_RANGE = 1e99  # [m] range reported by beams that hit no plane
ANGLE_TOLERANCE = 1e-3  # [rad] slack on the latitude/longitude limits


def is_no_return(ranges):
    """Boolean mask of range values at or above the no-hit sentinel."""
    return np.asarray(ranges, dtype=float) >= NO_HIT_RANGE


def _as_pose(pose):
    """
    Normalize the accepted pose representations into a Pose.

    :param pose: Pose instance, 4x4 homogeneous matrix (array-like), or None.
    :return: Pose mapping the sensor frame to the world frame. None gives the identity.
    :raises ValueError: If a matrix is not a valid 4x4 rigid transform.
    """
    # No pose means the sensor frame coincides with the world frame
    if pose is None:
        return Pose()

    # Already a validated Pose; reuse it as is
    if isinstance(pose, Pose):
        return pose

    # Anything else must be a homogeneous matrix
    return Pose.from_matrix(pose)


def _as_scene(scene):
    """
    Materialize a scene into a list of planes and check each one.

    Any object exposing normal and offset attributes (normal . x = offset)
    counts as a plane, so callers are not tied to Hyperplane.

    :param scene: Iterable of plane-like objects. May be empty.
    :return: list of planes in scene order.
    :raises TypeError: If an entry lacks normal or offset.
    """
    # Copy once so generators are consumed a single time and the order is fixed
    planes = list(scene)

    for index, plane in enumerate(planes):
        if not (hasattr(plane, "normal") and hasattr(plane, "offset")):
            raise TypeError(f"scene[{index}] must provide normal and offset attributes.")
    return planes


class LIDARSimulator:
    """
    Simulated 3D laser range finder with a fixed latitude x longitude beam grid.

    The angle grid is copied at construction and never modified, so one
    simulator can be reused for any number of (scene, pose) queries.
    """
    def __init__(self, latitude_range, longitude_range):
        """
        :param latitude_range:  Sequence (or scalar) of latitudes [rad], each in [-pi/2, pi/2].
                                Latitude is measured from the horizontal plane. Use (0.0,)
                                for a 2D scanner.
        :param longitude_range: Sequence (or scalar) of longitudes (azimuths) [rad], each in [-pi, pi].
        :raises ValueError: If a sequence is empty or an angle is out of range beyond ANGLE_TOLERANCE.
        """
        self._latitude_range = _as_angle_array(latitude_range, "latitude_range", 0.5 * np.pi, ANGLE_TOLERANCE)
        self._longitude_range = _as_angle_array(longitude_range, "longitude_range", np.pi, ANGLE_TOLERANCE)

        # Spherical to Cartesian beam directions in the sensor frame, shape (n_lat, n_lon, 3):
        #   x = cos(lat) * cos(lon), y = cos(lat) * sin(lon), z = sin(lat)
        cos_lat = np.cos(self._latitude_range)[:, None]
        sin_lat = np.sin(self._latitude_range)[:, None]
        cos_lon = np.cos(self._longitude_range)[None, :]
        sin_lon = np.sin(self._longitude_range)[None, :]
        self._directions = np.stack(
            np.broadcast_arrays(cos_lat * cos_lon, cos_lat * sin_lon, sin_lat),
            axis=-1,
        )
        self._directions.setflags(write=False)

        logger.debug(
            "LIDARSimulator with %d latitudes x %d longitudes (%d beams)",
            self._latitude_range.size,
            self._longitude_range.size,
            self.num_beams,
        )

    @classmethod
    def from_config(cls, config=BeamGridConfig):
        """
        Build a simulator from a BeamGridConfig (or any object exposing the same attributes).

        Latitudes come from config.latitude_angles when set, otherwise from
        linspace(latitude_min, latitude_max, latitude_samples). Longitudes come
        from linspace(longitude_min, longitude_max, longitude_samples), with the
        end point included only when config.longitude_endpoint is True.
        """
        raw_latitudes = getattr(config, "latitude_angles", None)
        if raw_latitudes is None:
            latitude_samples = int(getattr(config, "latitude_samples", 1))
            if latitude_samples < 1:
                raise ValueError("latitude_samples must be >= 1.")
            latitudes = np.linspace(float(config.latitude_min), float(config.latitude_max), latitude_samples)
        else:
            latitudes = raw_latitudes

        longitude_samples = int(getattr(config, "longitude_samples", 1))
        if longitude_samples < 1:
            raise ValueError("longitude_samples must be >= 1.")
        longitudes = np.linspace(
            float(config.longitude_min),
            float(config.longitude_max),
            longitude_samples,
            endpoint=bool(getattr(config, "longitude_endpoint", True)),
        )
        return cls(latitudes, longitudes)

    @property
    def latitude_range(self):
        """Read-only array of latitudes [rad]."""
        return self._latitude_range

    @property
    def longitude_range(self):
        """Read-only array of longitudes [rad]."""
        return self._longitude_range

    @property
    def shape(self):
        """Range grid shape: (number of latitudes, number of longitudes)."""
        return (self._latitude_range.size, self._longitude_range.size)

    @property
    def num_beams(self):
        """
        Total number of beams in the grid.

        :return: n_lat * n_lon, the number of cells in a range grid from this simulator.
        """
        return self._latitude_range.size * self._longitude_range.size

    def beam_directions(self):
        """Unit beam directions in the sensor frame, shape (n_lat, n_lon, 3)."""
        return self._directions.copy()

    def get_ranges(self, ranges, scene, pose=None, point_cloud=None):
        """
        Compute the range to the nearest plane of the scene for every beam.

        For beam (i, j) the sensor-frame direction d is rotated into the world
        frame and intersected, from the pose translation, with every plane.
        The smallest strictly positive intersection parameter wins; planes
        behind the sensor or parallel to the beam are ignored. Beams with no
        such plane record NO_HIT_RANGE.

        :param ranges:      Float array of shape self.shape to fill in place, or None
                            to allocate a new one. Narrower float dtypes store
                            NO_HIT_RANGE as inf; is_no_return() still flags it.
        :param scene:       Sequence of Hyperplane-like objects (normal, offset). May be empty.
        :param pose:        Pose, 4x4 homogeneous matrix, or None (identity). Sensor -> world.
        :param point_cloud: Optional PointCloud (other types raise TypeError). Resized to
                            width = n_lon, height = n_lat and filled with d * range
                            at (column j, row i), in the sensor frame.
        :return: The filled range array, row = latitude index, column = longitude index.
        :raises ValueError: If ranges has the wrong shape or is not a writable float array.
        :raises TypeError: If ranges is not an ndarray or point_cloud is not a PointCloud.
        """
        height, width = self.shape
        if ranges is None:
            ranges = np.empty((height, width), dtype=float)
        elif not isinstance(ranges, np.ndarray):
            raise TypeError("ranges must be a numpy array or None.")
        elif ranges.shape != (height, width):
            raise ValueError(f"ranges must have shape {(height, width)}, got {ranges.shape}.")
        elif not np.issubdtype(ranges.dtype, np.floating) or not ranges.flags.writeable:
            raise ValueError("ranges must be a writable floating point array.")

        # The cloud is filled through its storage view, so only PointCloud is accepted
        if point_cloud is not None and not isinstance(point_cloud, PointCloud):
            raise TypeError("point_cloud must be a PointCloud or None.")

        pose = _as_pose(pose)
        planes = _as_scene(scene)

        # All beams share the sensor origin; only their world directions differ.
        line = ParametrizedLine(pose.translation, pose.transform_direction(self._directions))

        min_dist = np.full((height, width), NO_HIT_RANGE, dtype=float)
        for plane in planes:
            dist = line.intersection_parameter(plane)
            # Strict "<" keeps the earlier plane on ties; NaN compares False.
            with np.errstate(invalid="ignore"):
                closer = (dist > 0.0) & (dist < min_dist)
            min_dist = np.where(closer, dist, min_dist)

        # A float32 or float16 output saturates the sentinel to inf, which is still a no-return
        with np.errstate(over="ignore"):
            ranges[...] = min_dist

        if point_cloud is not None:
            # PointCloud is addressed (column, row): width follows longitude, height latitude.
            point_cloud.resize(width, height)
            with np.errstate(over="ignore"):
                point_cloud.as_array()[...] = (self._directions * min_dist[..., None]).astype(np.float32)

        logger.debug(
            "Swept %d beams against %d planes, %d without return",
            self.num_beams,
            len(planes),
            int(np.count_nonzero(is_no_return(min_dist))),
        )
        return ranges

    def compute_ranges(self, scene, pose=None, point_cloud=None):
        """Allocate a new range grid and fill it with get_ranges()."""
        return self.get_ranges(None, scene, pose=pose, point_cloud=point_cloud)

    def no_return_mask(self, ranges):
        """
        Boolean mask of beams in a range grid from this simulator that hit nothing.

        :raises ValueError: If ranges does not have shape self.shape.
        """
        ranges = np.asarray(ranges, dtype=float)
        if ranges.shape != self.shape:
            raise ValueError(f"ranges must have shape {self.shape}, got {ranges.shape}.")
        return is_no_return(ranges)
