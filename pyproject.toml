[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "torsiontree"
version = "0.1.0"
description = "Torsion trees for flexible molecules: conformations to coordinates, forces to torsion derivatives"
requires-python = ">=3.10"
keywords = ["docking", "torsion", "kinematics", "molecular", "quaternion"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Chemistry",
]
dependencies = ["numpy"]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["torsiontree"]

[tool.pytest.ini_options]
addopts = "-ra"
