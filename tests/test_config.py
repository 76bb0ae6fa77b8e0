"""Tests for YAML settings loading and environment overrides."""

import pytest

from pageflux.core import config as config_module
from pageflux.core.config import Settings, apply_environment, load_settings_from_yaml, settings_from_dict

YAML = """
sources:
  home:
    base_url: https://api.example.com/v1
    page_limit: 20
  search:
    base_url: https://search.example.com
    path: m1/735111-711675-default/search
search:
  debounce_seconds: 0.5
http:
  timeout: 4
images:
  count_limit: 10
  total_cost_limit: 1024
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("PAGEFLUX_HOME_BASE_URL", raising=False)
    monkeypatch.delenv("PAGEFLUX_SEARCH_BASE_URL", raising=False)


class TestLoadSettings:

    def test_reads_every_key(self, tmp_path):
        path = tmp_path / "pageflux.yaml"
        path.write_text(YAML, encoding="utf-8")

        settings = load_settings_from_yaml(str(path))

        assert settings.home_base_url == "https://api.example.com/v1"
        assert settings.home_page_limit == 20
        assert settings.search_base_url == "https://search.example.com"
        assert settings.search_path == "m1/735111-711675-default/search"
        assert settings.debounce_seconds == 0.5
        assert settings.http_timeout == 4.0
        assert settings.image_count_limit == 10
        assert settings.image_total_cost_limit == 1024

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings_from_yaml(str(tmp_path / "absent.yaml")) == Settings()

    def test_malformed_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "pageflux.yaml"
        path.write_text("sources: [unclosed", encoding="utf-8")

        assert load_settings_from_yaml(str(path)) == Settings()

    def test_bad_value_gives_defaults(self, tmp_path):
        path = tmp_path / "pageflux.yaml"
        path.write_text("http:\n  timeout: soon\n", encoding="utf-8")

        assert load_settings_from_yaml(str(path)) == Settings()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "pageflux.yaml"
        path.write_text(YAML, encoding="utf-8")
        monkeypatch.setenv("PAGEFLUX_SEARCH_BASE_URL", "http://localhost:8080")

        settings = load_settings_from_yaml(str(path))

        assert settings.search_base_url == "http://localhost:8080"
        assert settings.home_base_url == "https://api.example.com/v1"

    def test_default_path(self):
        assert config_module.DEFAULT_CONFIG_PATH == "pageflux.yaml"


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.debounce_seconds == 0.2
        assert settings.image_count_limit == 100
        assert settings.image_total_cost_limit == 50 * 1024 * 1024
        assert settings.search_path == "search"

    def test_partial_dict_keeps_defaults(self):
        settings = settings_from_dict({"sources": {"home": {"base_url": "https://a.example.com"}}})
        assert settings.home_base_url == "https://a.example.com"
        assert settings.search_base_url is None
        assert settings.http_timeout == 10.0

    def test_apply_environment_with_explicit_mapping(self):
        settings = apply_environment(Settings(home_base_url="https://file.example.com"),
                                     {"PAGEFLUX_HOME_BASE_URL": "https://env.example.com"})
        assert settings.home_base_url == "https://env.example.com"

    def test_empty_environment_value_does_not_override(self):
        settings = apply_environment(Settings(home_base_url="https://file.example.com"),
                                     {"PAGEFLUX_HOME_BASE_URL": ""})
        assert settings.home_base_url == "https://file.example.com"

    def test_source_configs(self):
        settings = Settings(home_base_url="https://a.example.com", home_page_limit=5, http_timeout=3.0)
        configs = settings.source_configs()

        assert configs == [{
            "type": "home", "name": "Home", "base_url": "https://a.example.com",
            "page_limit": 5, "timeout": 3.0,
        }]
