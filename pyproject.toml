[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flightcore"
version = "0.1.0"
description = "Quadcopter flight-core logic: RC input conditioning, motor mixing, quaternion EKF navigation and IMU processing"
requires-python = ">=3.10"
dependencies = []
keywords = ["quadcopter", "drone", "kalman filter", "ekf", "quaternion", "motor mixer", "rc receiver"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["flightcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
