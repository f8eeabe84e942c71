"""Stridetrack: device-requirement pipeline tracker with a gated lifecycle engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stridetrack")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from stridetrack.core import Requirement, StrideDB

__all__ = ["Requirement", "StrideDB", "__version__"]
