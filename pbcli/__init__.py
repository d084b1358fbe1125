"""Build, test and packaging automation for Go server projects with an optional frontend."""

__version__ = "1.0.0"