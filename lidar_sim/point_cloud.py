"""
Organized Point Cloud Container

A width x height grid of single-precision XYZ points, addressed as
at(column, row) with the column (width) index first. The beam-grid simulator
fills it with one point per beam: column = longitude index, row = latitude
index.
"""

import numpy as np


class PointCloud:
    """
    Organized (width x height) cloud of float32 XYZ points.

    Storage is a (height, width, 3) float32 array, row-major, so the flat
    index of (column, row) is row * width + column.

    :param width:  Number of columns.
    :param height: Number of rows.
    """
    def __init__(self, width=0, height=0):
        self.width = 0
        self.height = 0
        self._data = np.zeros((0, 0, 3), dtype=np.float32)
        self.resize(width, height)

    def resize(self, width, height):
        """
        Reshape the cloud to width x height. Existing points are discarded and
        every entry reset to zero whenever the shape changes.
        """
        width = int(width)
        height = int(height)
        if width < 0 or height < 0:
            raise ValueError("width and height must be >= 0.")
        if (width, height) != (self.width, self.height):
            self._data = np.zeros((height, width, 3), dtype=np.float32)
            self.width = width
            self.height = height

    def _check_index(self, column, row):
        if not (0 <= column < self.width and 0 <= row < self.height):
            raise IndexError(
                f"point ({column}, {row}) is outside a {self.width} x {self.height} cloud."
            )

    def at(self, column, row):
        """Copy of the point at (column, row)."""
        self._check_index(column, row)
        return self._data[row, column].copy()

    def set(self, column, row, xyz):
        """Store xyz (cast to float32) at (column, row)."""
        self._check_index(column, row)
        xyz = np.asarray(xyz, dtype=float).reshape(-1)
        if xyz.size != 3:
            raise ValueError("xyz must be a 3D vector.")
        with np.errstate(over="ignore"):
            self._data[row, column] = xyz.astype(np.float32)

    def as_array(self):
        """Writable (height, width, 3) float32 view of the storage."""
        return self._data

    @property
    def points(self):
        """Flat (width * height, 3) float32 view, row-major."""
        return self._data.reshape(-1, 3)

    def finite_mask(self):
        """(height, width) boolean mask of points whose three coordinates are finite."""
        return np.all(np.isfinite(self._data), axis=-1)

    def __len__(self):
        return self.width * self.height

    def __repr__(self):
        return f"PointCloud(width={self.width}, height={self.height})"
