"""
Version utilities - Read version from package metadata
"""

from importlib.metadata import version, PackageNotFoundError


def get_version() -> str:
    """
    Get stepwise version from package metadata

    Returns:
        Version string, or "unknown" when the package is not installed
    """
    try:
        return version('stepwise')
    except PackageNotFoundError:
        return "unknown"
