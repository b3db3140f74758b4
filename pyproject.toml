[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brushsplat"
version = "0.1.0"
description = "Gaussian splat PLY import/export, a symmetric 3x3 eigen-solver and orbit camera controls"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "gaussian-splatting",
    "splats",
    "ply",
    "point-cloud",
    "3d",
    "camera",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
    "Topic :: Scientific/Engineering :: Visualization",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["brushsplat"]

[tool.hatch.build.targets.sdist]
include = [
    "brushsplat",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
