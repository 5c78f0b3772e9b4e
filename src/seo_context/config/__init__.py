"""Configuration management for the SEO context server."""

from .parser import (
    CONFIG_FILE_NAME,
    SeoContextConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "SeoContextConfig",
    "find_config_file",
    "load_config",
]
