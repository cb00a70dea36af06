"""
Version utility functions for the ChainRepo package.

This module turns the VERSION tuple into the version string used by
the package and by setup.py.
"""

from typing import Tuple

# Release level -> (separator, PEP 440 marker)
RELEASE_MARKERS = {
    "dev": (".", "dev"),
    "alpha": ("", "a"),
    "beta": ("", "b"),
    "rc": ("", "rc"),
    "post": (".", "post"),
}


def get_version(version: Tuple[int, int, int, str, int]) -> str:
    """
    Return the normalized PEP 440 version for a version tuple.

    Every non-final release carries its serial,
    so (1, 0, 0, "beta", 0) gives "1.0.0b0" rather than "1.0.0b".

    Raises:
        ValueError: If the release level is unknown
    """
    *release, level, serial = version
    public = ".".join(str(part) for part in release if part is not None)
    if level == "final":
        return public
    if level not in RELEASE_MARKERS:
        raise ValueError(f"Unknown release level: {level}")
    separator, marker = RELEASE_MARKERS[level]
    return f"{public}{separator}{marker}{serial}"
