"""
Configuration settings for the ChainRepo blockchain repository.

This module provides the configuration management for the repository layer.
It defines which backends hold the block, header, receipt and chain metadata
stores, which backend holds the secondary index, and how logging is set up.

The configuration supports multiple environments (development, production, testing)
selected through the CHAINREPO_ENV environment variable, and provides validation
so that a misconfigured deployment fails before any store is opened.
"""

import os
import logging
from typing import Dict, Any, List


STORAGE_BACKENDS = ("memory", "sql", "redis")
INDEX_BACKENDS = ("memory", "sql")


class Settings:
    """Repository configuration settings"""

    # Framework version
    VERSION = "0.1.0.dev2"
    FRAMEWORK_NAME = "chainrepo"

    # Storage settings
    STORAGE_BACKEND = os.getenv("CHAINREPO_STORAGE_BACKEND", "memory")  # memory, sql, redis
    INDEX_BACKEND = os.getenv("CHAINREPO_INDEX_BACKEND", "memory")  # memory, sql

    # Database settings (if using sql storage or index)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///chainrepo.db")
    SQL_ECHO = os.getenv("CHAINREPO_SQL_ECHO", "false").lower() == "true"

    # Redis settings (if using redis storage)
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
    REDIS_KEY_PREFIX = os.getenv("REDIS_KEY_PREFIX", "chainrepo:")

    # Logging settings
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def get_storage_config(cls) -> Dict[str, Any]:
        """Get storage configuration"""
        return {
            "backend": cls.STORAGE_BACKEND,
            "database_url": cls.DATABASE_URL,
            "redis": {
                "host": cls.REDIS_HOST,
                "port": cls.REDIS_PORT,
                "db": cls.REDIS_DB,
                "key_prefix": cls.REDIS_KEY_PREFIX
            }
        }

    @classmethod
    def get_index_config(cls) -> Dict[str, Any]:
        """Get secondary index configuration"""
        return {
            "backend": cls.INDEX_BACKEND,
            "database_url": cls.DATABASE_URL
        }

    @classmethod
    def validate_config(cls) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if cls.STORAGE_BACKEND not in STORAGE_BACKENDS:
            errors.append(f"STORAGE_BACKEND must be one of: {', '.join(STORAGE_BACKENDS)}")

        if cls.INDEX_BACKEND not in INDEX_BACKENDS:
            errors.append(f"INDEX_BACKEND must be one of: {', '.join(INDEX_BACKENDS)}")

        if "sql" in (cls.STORAGE_BACKEND, cls.INDEX_BACKEND) and not cls.DATABASE_URL:
            errors.append("DATABASE_URL is required for the sql backend")

        if cls.REDIS_PORT <= 0 or cls.REDIS_PORT > 65535:
            errors.append("REDIS_PORT must be between 1 and 65535")

        if not isinstance(logging.getLevelName(cls.LOG_LEVEL.upper()), int):
            errors.append(f"LOG_LEVEL '{cls.LOG_LEVEL}' is not a logging level")

        return errors


# Environment-specific settings
class DevelopmentSettings(Settings):
    """Development environment settings"""
    LOG_LEVEL = "DEBUG"
    STORAGE_BACKEND = os.getenv("CHAINREPO_STORAGE_BACKEND", "memory")
    INDEX_BACKEND = os.getenv("CHAINREPO_INDEX_BACKEND", "memory")


class ProductionSettings(Settings):
    """Production environment settings"""
    LOG_LEVEL = "WARNING"
    STORAGE_BACKEND = os.getenv("CHAINREPO_STORAGE_BACKEND", "redis")
    INDEX_BACKEND = os.getenv("CHAINREPO_INDEX_BACKEND", "sql")


class TestingSettings(Settings):
    """Testing environment settings"""
    LOG_LEVEL = "DEBUG"
    STORAGE_BACKEND = "memory"
    INDEX_BACKEND = "memory"
    DATABASE_URL = "sqlite://"


# Get settings based on environment
def get_settings() -> Settings:
    """Get settings based on environment variable"""
    env = os.getenv("CHAINREPO_ENV", "development").lower()

    if env == "production":
        return ProductionSettings()
    elif env == "testing":
        return TestingSettings()
    else:
        return DevelopmentSettings()


def configure_logging(config: Settings = None) -> None:
    """Apply LOG_LEVEL and LOG_FORMAT to the root logger."""
    config = config or settings
    logging.basicConfig(level=config.LOG_LEVEL.upper(), format=config.LOG_FORMAT)


# Global settings instance
settings = get_settings()
