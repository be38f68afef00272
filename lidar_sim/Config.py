import numpy as np


class BeamGridConfig:
    # Latitude (elevation from the horizontal plane) channels
    latitude_min = np.deg2rad(-15.0)  # [rad]
    latitude_max = np.deg2rad(15.0)  # [rad]
    latitude_samples = 16  # number of latitude channels
    latitude_angles = None  # [rad], explicit tuple of channels; overrides min/max/samples

    # Longitude (azimuth) sweep
    longitude_min = -np.pi  # [rad]
    longitude_max = np.pi  # [rad]
    longitude_samples = 360  # number of azimuth beams per channel
    longitude_endpoint = False  # include longitude_max; False avoids a duplicate beam on a full circle


class PlanarScannerConfig(BeamGridConfig):
    # 2D scanner: a single horizontal channel
    latitude_angles = (0.0,)  # [rad]
    longitude_min = np.deg2rad(-135.0)  # [rad]
    longitude_max = np.deg2rad(135.0)  # [rad]
    longitude_samples = 1081
    longitude_endpoint = True
