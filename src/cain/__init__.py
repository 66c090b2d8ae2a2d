"""Cain: a personal archive of web pages and tweets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cain")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
