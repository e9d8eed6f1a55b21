[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cfexporter"
version = "0.1.0"
description = "Fetch Cloud Foundry platform objects and turn them into Prometheus-style metric samples"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["cloud foundry", "prometheus", "metrics", "monitoring"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["cfexporter"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
