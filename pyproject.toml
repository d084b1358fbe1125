[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pbcli"
version = "1.0.0"
description = "Build, test and packaging automation for PocketBase-based projects"
requires-python = ">=3.10"
dependencies = []
keywords = ["pocketbase", "build", "deployment", "automation", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pbcli = "pbcli.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pbcli"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
