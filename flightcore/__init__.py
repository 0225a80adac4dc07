"""Quadcopter flight-core logic: matrices, RC input, motor mixing, IMU processing and EKF navigation."""

__version__ = "0.1.0"
__all__ = ["matrix", "rc", "mixer", "motors", "quaternions", "ekf", "sensors"]