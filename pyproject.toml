[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ctrltools"
version = "0.1.0"
description = "Marker-driven code generation toolkit: deepcopy generation, generator runtime and terminal marker help"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "code-generation",
    "deepcopy",
    "markers",
    "kubernetes",
    "generators",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ctrltools"]

[tool.hatch.build.targets.sdist]
include = [
    "ctrltools",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
