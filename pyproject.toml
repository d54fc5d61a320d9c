[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "ralphx"
version = "0.1.0"
description = "Building blocks for an outer loop that keeps a coding agent working on a task until its checklist and checks say it is done"
requires-python = ">=3.10"
dependencies = []
keywords = ["agent", "codex", "automation", "checklist", "planning", "stop-guard"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ralphx-doctor = "ralphx.doctor:main"

[tool.setuptools.packages.find]
include = ["ralphx*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
