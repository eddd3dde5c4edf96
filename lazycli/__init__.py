"""Lazy - declarative command launcher engine"""

from ._version import __version__

__all__ = ["__version__"]
