"""
Configuration management for the subscription sync tool.
"""

from .config_manager import (
    ConfigManager, AppConfig, GitHubConfig, SyncConfig, LoggingConfig,
    MAX_PAGE_SIZE
)

__all__ = [
    "ConfigManager",
    "AppConfig",
    "GitHubConfig",
    "SyncConfig",
    "LoggingConfig",
    "MAX_PAGE_SIZE"
]
