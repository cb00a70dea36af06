"""
Configuration module for ChainRepo.
"""

from chainrepo.config.settings import Settings, get_settings, configure_logging, settings

__all__ = ["Settings", "get_settings", "configure_logging", "settings"]
