"""Tests for configuration loading and credential resolution."""
import sys

import pytest

from wafctl.config import Config, ConfigError, resolve_credentials
from wafctl.models import ConfigFile, Template


@pytest.fixture
def site_config():
    """Site config with an account key and two sites."""
    return ConfigFile.model_validate({
        "apiKey": "file-key",
        "sites": {"example.com": "example-secret", "shop.example.com": "shop-secret"},
    })


class TestConfig:
    """Tests for the Config class."""

    def test_defaults_without_file(self):
        """Test default values when no config file exists."""
        config = Config()

        assert config.config_file_path is None
        assert config.api_url == "https://waf.sucuri.net/api?v2"
        assert config.timeout == 30.0
        assert config.max_retries == 2
        assert config.concurrency == 10
        assert config.max_subnet_hosts == 1024
        assert config.site_config.api_key is None
        assert config.site_config.sites == {}

    def test_loads_site_config(self, write_json):
        """Test that the API key and sites are read from the file."""
        path = write_json("config.json", {"apiKey": "k1", "sites": {"a.com": "s1"}})

        config = Config(path)

        assert config.site_config.api_key == "k1"
        assert config.site_config.sites == {"a.com": "s1"}

    def test_file_overrides_defaults(self, write_json):
        """Test that runtime keys in the file override defaults."""
        path = write_json("config.json", {"SUCURI_CONCURRENCY": 3, "SUCURI_TIMEOUT": 5})

        config = Config(path)

        assert config.concurrency == 3
        assert config.timeout == 5.0

    def test_environment_overrides_file(self, write_json, monkeypatch):
        """Test that environment variables override the file."""
        path = write_json("config.json", {"SUCURI_CONCURRENCY": 3})
        monkeypatch.setenv("SUCURI_CONCURRENCY", "7")

        config = Config(path)

        assert config.concurrency == 7

    def test_config_file_env_var(self, write_json, monkeypatch):
        """Test that CONFIG_FILE points to the config file."""
        path = write_json("other.json", {"apiKey": "from-env-path"})
        monkeypatch.setenv("CONFIG_FILE", path)

        config = Config()

        assert config.site_config.api_key == "from-env-path"

    def test_config_json_in_working_directory(self, write_json):
        """Test that ./config.json is found without a flag."""
        write_json("config.json", {"apiKey": "cwd-key"})

        config = Config()

        assert config.site_config.api_key == "cwd-key"

    def test_config_json_beside_executable(self, tmp_path, monkeypatch):
        """Test that config.json next to the executable is found."""
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        (bin_dir / "config.json").write_text('{"apiKey": "bin-key"}', encoding="utf-8")
        monkeypatch.setattr(sys, "argv", [str(bin_dir / "wafctl")])
        monkeypatch.chdir(tmp_path)

        config = Config()

        assert config.config_file_path == bin_dir.resolve() / "config.json"
        assert config.site_config.api_key == "bin-key"

    def test_working_directory_beats_executable_dir(self, tmp_path, write_json, monkeypatch):
        """Test that ./config.json is preferred over the executable's directory."""
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        (bin_dir / "config.json").write_text('{"apiKey": "bin-key"}', encoding="utf-8")
        write_json("config.json", {"apiKey": "cwd-key"})
        monkeypatch.setattr(sys, "argv", [str(bin_dir / "wafctl")])

        config = Config()

        assert config.site_config.api_key == "cwd-key"

    def test_explicit_missing_file_raises(self, tmp_path):
        """Test that an explicit path must exist."""
        with pytest.raises(ConfigError, match="not found"):
            Config(str(tmp_path / "missing.json"))

    def test_invalid_json_raises(self, tmp_path):
        """Test that malformed JSON is reported."""
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError, match="Unable to parse config file"):
            Config(str(path))

    def test_invalid_sites_raises(self, write_json):
        """Test that a sites value of the wrong type is reported."""
        path = write_json("config.json", {"sites": ["a.com"]})

        with pytest.raises(ConfigError):
            Config(path)

    def test_non_numeric_value_raises(self, monkeypatch):
        """Test that a non-numeric timeout raises ConfigError."""
        monkeypatch.setenv("SUCURI_TIMEOUT", "soon")
        config = Config()

        with pytest.raises(ConfigError, match="SUCURI_TIMEOUT"):
            config.timeout


class TestResolveCredentials:
    """Tests for resolve_credentials()."""

    def test_key_flag_wins(self, site_config):
        """Test that --key beats the template and the config file."""
        template = Template.model_validate({"apiKey": "template-key"})

        creds = resolve_credentials(site_config, template, key="flag-key", secret="s")

        assert creds.api_key == "flag-key"

    def test_template_key_beats_config_file(self, site_config):
        """Test that the template key beats the config file."""
        template = Template.model_validate({"apiKey": "template-key"})

        creds = resolve_credentials(site_config, template, secret="s")

        assert creds.api_key == "template-key"

    def test_config_file_key_used_last(self, site_config):
        """Test that the config file key is the fallback."""
        creds = resolve_credentials(site_config, None, secret="s")

        assert creds.api_key == "file-key"

    def test_missing_key_raises(self):
        """Test that a missing API key is reported."""
        with pytest.raises(ConfigError, match="API key"):
            resolve_credentials(ConfigFile(), None, secret="s")

    def test_secret_flag(self, site_config):
        """Test that --secret is used as given."""
        creds = resolve_credentials(site_config, None, secret="flag-secret")

        assert creds.api_secret == "flag-secret"
        assert creds.site is None

    def test_site_lookup(self, site_config):
        """Test that --site looks up the secret in the config file."""
        creds = resolve_credentials(site_config, None, site="shop.example.com")

        assert creds.api_secret == "shop-secret"
        assert creds.site == "shop.example.com"

    def test_site_flag_beats_template_site(self, site_config):
        """Test that --site beats the template's site."""
        template = Template.model_validate({"site": "example.com"})

        creds = resolve_credentials(site_config, template, site="shop.example.com")

        assert creds.api_secret == "shop-secret"

    def test_template_site(self, site_config):
        """Test that the template's site is used without --site."""
        template = Template.model_validate({"site": "example.com"})

        creds = resolve_credentials(site_config, template)

        assert creds.api_secret == "example-secret"

    def test_unknown_site_raises(self, site_config):
        """Test that an unknown site is reported."""
        with pytest.raises(ConfigError, match="Site 'nope.com' not found"):
            resolve_credentials(site_config, None, site="nope.com")

    def test_secret_and_site_together_raises(self, site_config):
        """Test that --secret and --site are mutually exclusive."""
        with pytest.raises(ConfigError, match="not both"):
            resolve_credentials(site_config, None, secret="s", site="example.com")

    def test_neither_secret_nor_site_raises(self, site_config):
        """Test that a secret or a site is required."""
        with pytest.raises(ConfigError, match="No API secret or site"):
            resolve_credentials(site_config, None)
