"""Version lookup for ccbmtk.

Kept apart from __init__ so that core.py can import it without
pulling in the whole package.
"""
from importlib.metadata import PackageNotFoundError, version


def get_version(distribution: str = "ccbmtk") -> str:
    """Return the installed version of `distribution`, or "unknown"
    when running from a source tree that was never installed.
    """
    try:
        return version(distribution)
    except PackageNotFoundError:
        return "unknown"
