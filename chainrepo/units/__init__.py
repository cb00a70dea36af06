"""
Units module for ChainRepo.
"""

from chainrepo.units.version import get_version

__all__ = ["get_version"]
