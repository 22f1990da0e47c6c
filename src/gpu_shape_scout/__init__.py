"""GPU Shape Scout."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("gpu-shape-scout")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
