"""
Shared fixtures for the LIDAR simulator tests.

Provides a small multi-channel simulator, a single-beam simulator, and an
axis-aligned room scene that every beam of a sensor placed inside it hits.
"""

import numpy as np
import pytest

from lidar_sim.geometry import axis_aligned_room
from lidar_sim.lidar import LIDARSimulator


@pytest.fixture
def grid_simulator():
    # 5 latitude channels x 36 azimuth beams, no duplicate beam at +/-pi
    latitudes = np.deg2rad([-20.0, -10.0, 0.0, 10.0, 20.0])
    longitudes = np.linspace(-np.pi, np.pi, 36, endpoint=False)
    return LIDARSimulator(latitudes, longitudes)


@pytest.fixture
def boresight_simulator():
    # One beam along the sensor +x axis
    return LIDARSimulator([0.0], [0.0])


@pytest.fixture
def room_scene():
    return axis_aligned_room([-4.0, -3.0, -1.5], [6.0, 5.0, 2.5])
