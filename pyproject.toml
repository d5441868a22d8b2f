[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "advectflow"
version = "0.1.0"
description = "Work-stream scheduling strategies timed on a cell-wise advection assembly"
requires-python = ">=3.10"
keywords = ["advection", "work stream", "task parallelism", "thread pool", "benchmark"]
classifiers = [
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Intended Audience :: Science/Research",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: System :: Benchmark",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
advectflow-benchmark = "advectflow.benchmark:main"

[tool.hatch.build.targets.wheel]
packages = ["advectflow"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
