# pageflux/core/config.py

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "pageflux.yaml"


@dataclass
class Settings:
    """Runtime settings for the feed sources, the search prompt and the image cache."""
    home_base_url: Optional[str] = None
    home_page_limit: Optional[int] = None
    search_base_url: Optional[str] = None
    search_path: str = "search"
    debounce_seconds: float = 0.2
    http_timeout: float = 10.0
    image_count_limit: int = 100
    image_total_cost_limit: int = 50 * 1024 * 1024

    def source_configs(self) -> List[Dict[str, Any]]:
        """The settings expressed as source config dicts, for `get_source`."""
        configs = []
        if self.home_base_url:
            configs.append({
                "type": "home", "name": "Home", "base_url": self.home_base_url,
                "page_limit": self.home_page_limit, "timeout": self.http_timeout,
            })
        if self.search_base_url:
            configs.append({
                "type": "search", "name": "Search", "base_url": self.search_base_url,
                "path": self.search_path, "timeout": self.http_timeout,
            })
        return configs


def _section(data: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    for key in keys:
        data = data.get(key) if isinstance(data, dict) else None
    return data if isinstance(data, dict) else {}


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    """Builds Settings from the parsed YAML structure, keeping defaults for anything absent."""
    settings = Settings()
    home = _section(data, "sources", "home")
    search = _section(data, "sources", "search")
    search_opts = _section(data, "search")
    http = _section(data, "http")
    images = _section(data, "images")

    settings.home_base_url = home.get("base_url", settings.home_base_url)
    settings.home_page_limit = home.get("page_limit", settings.home_page_limit)
    settings.search_base_url = search.get("base_url", settings.search_base_url)
    settings.search_path = search.get("path", settings.search_path)
    settings.debounce_seconds = float(search_opts.get("debounce_seconds", settings.debounce_seconds))
    settings.http_timeout = float(http.get("timeout", settings.http_timeout))
    settings.image_count_limit = int(images.get("count_limit", settings.image_count_limit))
    settings.image_total_cost_limit = int(images.get("total_cost_limit", settings.image_total_cost_limit))
    return settings


def apply_environment(settings: Settings, environ: Optional[Dict[str, str]] = None) -> Settings:
    """Environment variables win over the file for the backend URLs."""
    environ = os.environ if environ is None else environ
    settings.home_base_url = environ.get("PAGEFLUX_HOME_BASE_URL") or settings.home_base_url
    settings.search_base_url = environ.get("PAGEFLUX_SEARCH_BASE_URL") or settings.search_base_url
    return settings


def load_settings_from_yaml(filepath: str = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Loads and parses the YAML settings file.

    Args:
        filepath: The path to the pageflux.yaml file.

    Returns:
        A Settings instance. Defaults are used when the file is missing,
        empty or malformed; environment overrides are applied either way.
    """
    data: Dict[str, Any] = {}
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                data = loaded
    except FileNotFoundError:
        logger.warning(f"Configuration file not found at '{filepath}'; using defaults.")
    except yaml.YAMLError as e:
        logger.warning(f"Error parsing YAML file: {e}")

    try:
        settings = settings_from_dict(data)
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid value in '{filepath}': {e}; using defaults.")
        settings = Settings()
    return apply_environment(settings)
