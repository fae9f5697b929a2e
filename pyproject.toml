[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kuberay"
version = "0.1.0"
description = "Ray cluster life cycle management: cluster resource models, an in-memory resource manager, request handlers and a settings command line"
requires-python = ">=3.10"
keywords = ["ray", "kubernetes", "cluster", "compute-template", "cli"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
kuberay = "kuberay.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["kuberay"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
