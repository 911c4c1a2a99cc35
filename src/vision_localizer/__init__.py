"""Multi-camera fiducial-tag pose estimation for a ground platform."""

__version__ = "0.1.0"
