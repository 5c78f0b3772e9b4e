"""Configuration loader for the SEO context server."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".seo-context.toml"

DEFAULT_BACKEND_URL = "http://localhost:3000"


@dataclass
class SeoContextConfig:
    """Complete server configuration.

    Precedence: built-in defaults, then .seo-context.toml, then environment.
    """

    backend_api_url: str = DEFAULT_BACKEND_URL
    api_key: Optional[str] = None
    request_timeout: float = 30.0
    cache_ttl: int = 3600  # seconds
    insights_cache_ttl: int = 300  # GSC insights change more often
    log_level: str = "info"
    default_domain: Optional[str] = None
    default_project_id: Optional[str] = None
    local_timeout: float = 5.0

    # Project root for resolving file paths
    project_root: Path = field(default_factory=Path.cwd)

    def summary(self) -> Dict[str, Any]:
        """Describe the effective configuration without exposing secrets."""
        return {
            "backend_api_url": self.backend_api_url,
            "has_api_key": bool(self.api_key),
            "request_timeout": self.request_timeout,
            "cache_ttl": self.cache_ttl,
            "insights_cache_ttl": self.insights_cache_ttl,
            "log_level": self.log_level,
            "default_domain": self.default_domain or "not set",
            "default_project_id": self.default_project_id or "not set",
            "project_root": str(self.project_root),
        }


def find_config_file(project_path: Path) -> Optional[Path]:
    """Find .seo-context.toml in project root.

    Args:
        project_path: Root path of the project

    Returns:
        Path to .seo-context.toml if found, None otherwise
    """
    config_file = project_path / CONFIG_FILE_NAME
    if config_file.exists():
        return config_file
    return None


def load_config(
    project_path: Path,
    environ: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> SeoContextConfig:
    """Load configuration from .seo-context.toml and the environment.

    Args:
        project_path: Root path of the project
        environ: Environment mapping (defaults to os.environ)
        use_dotenv: Load a .env file into os.environ first

    Returns:
        SeoContextConfig with loaded or default configuration

    Raises:
        ValueError: If a numeric environment variable is not a number
    """
    if use_dotenv and environ is None:
        load_dotenv()
    env = os.environ if environ is None else environ

    config = SeoContextConfig(project_root=project_path)

    config_file = find_config_file(project_path)
    if config_file:
        _apply_file(config, config_file)

    _apply_environment(config, env)

    logger.debug("Configuration loaded: %s", config.summary())
    return config


def _apply_file(config: SeoContextConfig, config_file: Path) -> None:
    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        # If TOML parsing fails, keep defaults
        logger.warning("Ignoring unreadable %s: %s", config_file, e)
        return

    if "backend" in data:
        backend_data = data["backend"]
        config.backend_api_url = backend_data.get("url", config.backend_api_url)
        config.request_timeout = float(backend_data.get("timeout", config.request_timeout))

    if "cache" in data:
        cache_data = data["cache"]
        config.cache_ttl = int(cache_data.get("ttl", config.cache_ttl))
        config.insights_cache_ttl = int(
            cache_data.get("insights_ttl", config.insights_cache_ttl)
        )

    if "logging" in data:
        config.log_level = data["logging"].get("level", config.log_level)

    if "site" in data:
        site_data = data["site"]
        config.default_domain = site_data.get("domain", config.default_domain)
        config.default_project_id = site_data.get("project_id", config.default_project_id)

    if "local" in data:
        config.local_timeout = float(data["local"].get("timeout", config.local_timeout))


def _apply_environment(config: SeoContextConfig, env: Mapping[str, str]) -> None:
    config.backend_api_url = env.get("BACKEND_API_URL") or config.backend_api_url
    # SEO_API_KEY is current, API_KEY is the legacy name
    config.api_key = env.get("SEO_API_KEY") or env.get("API_KEY") or config.api_key
    config.log_level = env.get("LOG_LEVEL") or config.log_level
    config.default_domain = env.get("SEO_CLIENT_DOMAIN") or config.default_domain
    config.default_project_id = env.get("SEO_PROJECT_ID") or config.default_project_id

    if env.get("CACHE_TTL"):
        config.cache_ttl = _parse_int("CACHE_TTL", env["CACHE_TTL"])
    if env.get("BACKEND_TIMEOUT"):
        config.request_timeout = float(_parse_int("BACKEND_TIMEOUT", env["BACKEND_TIMEOUT"]))


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer number of seconds, got {raw!r}") from None
