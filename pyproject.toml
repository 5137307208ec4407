[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nvmediscovery"
version = "0.1.0"
description = "NVMe/TCP discovery client: configuration parsing, entry caching and host NQN management"
requires-python = ">=3.10"
keywords = ["nvme", "nvme-of", "nvme-tcp", "discovery", "storage"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]
dependencies = [
    "pyyaml",
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
discovery-client = "nvmediscovery.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["nvmediscovery"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
