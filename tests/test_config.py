"""Tests for run configuration loading."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from homestack.core.config import HomelabConfig, find_config, load_config
from homestack.core.errors import ConfigError


@pytest.mark.usefixtures("no_config_files")
class TestDefaults:
    """Built-in defaults."""

    def test_defaults(self):
        config = load_config(environ={})

        assert config.root == Path("/opt/homelab")
        assert config.stack_name == "laptop-homelab"
        assert config.timezone == "America/New_York"
        assert config.install_vpn is True
        assert config.env_file == Path("/opt/homelab/.env")
        assert config.compose_file == Path("/opt/homelab/docker-compose.yml")
        assert config.unit_file == Path("/etc/systemd/system/laptop-homelab.service")

    def test_operator_user_from_sudo(self, monkeypatch):
        monkeypatch.setenv("SUDO_USER", "alice")
        assert load_config(environ={}).operator_user == "alice"

    def test_no_file_found(self):
        assert find_config() is None


@pytest.mark.usefixtures("no_config_files")
class TestPrecedence:
    """defaults < YAML file < environment."""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "homestack.yml"
        path.write_text("root: /srv/lab\ntimezone: Europe/Oslo\ninstall_vpn: false\n")

        config = load_config(str(path), environ={})

        assert config.root == Path("/srv/lab")
        assert config.timezone == "Europe/Oslo"
        assert config.install_vpn is False
        assert config.stack_name == "laptop-homelab"

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "homestack.yml"
        path.write_text("timezone: Europe/Oslo\n")

        config = load_config(str(path), environ={"HOMESTACK_TZ": "UTC", "HOMESTACK_INSTALL_VPN": "0"})

        assert config.timezone == "UTC"
        assert config.install_vpn is False

    def test_env_config_path(self, tmp_path, monkeypatch):
        path = tmp_path / "other.yml"
        path.write_text("stack_name: lab2\n")
        monkeypatch.setenv("HOMESTACK_CONFIG", str(path))

        assert load_config(environ={}).stack_name == "lab2"


@pytest.mark.usefixtures("no_config_files")
class TestValidation:
    """Invalid input is a ConfigError before any step runs."""

    def test_bad_stack_name(self):
        with pytest.raises(ConfigError) as exc_info:
            load_config(environ={"HOMESTACK_STACK_NAME": "My Lab"})
        assert "Stack name" in str(exc_info.value)

    def test_relative_root(self):
        with pytest.raises(ConfigError):
            load_config(environ={"HOMESTACK_ROOT": "homelab"})

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "homestack.yml"
        path.write_text("rooot: /srv/lab\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(str(path), environ={})
        assert str(path) in str(exc_info.value)

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yml"), environ={})

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "homestack.yml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})


def test_config_is_frozen():
    config = HomelabConfig()
    with pytest.raises(ValidationError):
        config.timezone = "UTC"
