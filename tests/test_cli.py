"""CLI tests using Typer's CliRunner."""
import pytest
import yaml
from typer.testing import CliRunner

from homestack.cli import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, homelab_config):
    """YAML config pointing every managed path into tmp_path."""
    path = tmp_path / "homestack.yml"
    data = {
        "root": str(homelab_config.root),
        "systemd_dir": str(homelab_config.systemd_dir),
        "apt_keyrings_dir": str(homelab_config.apt_keyrings_dir),
        "apt_sources_dir": str(homelab_config.apt_sources_dir),
        "os_release_path": str(homelab_config.os_release_path),
        "operator_user": "alice",
        "timezone": "Europe/Oslo",
    }
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture
def cli_host(monkeypatch, fake_host):
    """Route every command the CLI runs to the fake host."""
    monkeypatch.setattr("homestack.cli_provision_commands.get_runner", lambda: fake_host)
    monkeypatch.setattr("homestack.cli_support.get_runner", lambda: fake_host)
    return fake_host


class TestHelp:
    """Help and version output."""

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        output = result.stdout
        assert "homestack - Idempotent provisioning for single-host homelabs" in output
        for command in ("up", "plan", "render", "check", "links", "doctor", "version"):
            assert command in output

    def test_render_help(self):
        result = runner.invoke(app, ["render", "--help"])

        assert result.exit_code == 0
        for command in ("manifest", "env-keys", "firewall", "unit", "prometheus", "dashboard"):
            assert command in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "homestack v0.1.0" in result.stdout


@pytest.mark.usefixtures("no_config_files")
class TestRender:
    """Render commands print artifacts without touching the host."""

    def test_manifest(self):
        result = runner.invoke(app, ["render", "manifest"])

        assert result.exit_code == 0
        manifest = yaml.safe_load(result.stdout)
        assert len(manifest["services"]) == 11

    def test_env_keys_hide_values(self):
        result = runner.invoke(app, ["render", "env-keys"])

        assert result.exit_code == 0
        assert "MYSQL_ROOT_PASSWORD  (generated, 16 random bytes)" in result.stdout
        assert "TZ" in result.stdout
        assert "=" not in result.stdout

    def test_firewall(self):
        result = runner.invoke(app, ["render", "firewall"])

        assert result.exit_code == 0
        rules = result.stdout.split()
        assert rules[0] == "OpenSSH"
        assert "8082" in rules

    def test_firewall_ssh_port_rule(self):
        result = runner.invoke(app, ["render", "firewall", "--ssh-rule", "22/tcp"])

        assert result.exit_code == 0
        rules = result.stdout.split()
        assert rules[0] == "22/tcp"
        assert "OpenSSH" not in rules

    def test_unit(self, config_file):
        result = runner.invoke(app, ["render", "unit", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "ExecStart=/usr/bin/docker compose up -d" in result.stdout

    def test_prometheus(self):
        result = runner.invoke(app, ["render", "prometheus"])
        assert result.exit_code == 0
        assert "host.docker.internal:9100" in result.stdout

    def test_dashboard_title(self, tmp_path):
        path = tmp_path / "homestack.yml"
        path.write_text("dashboard_title: Basement Lab\n")

        result = runner.invoke(app, ["render", "dashboard", "--config", str(path)])

        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["appConfig"]["title"] == "Basement Lab"

    def test_check(self):
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "Stack is consistent (11 services)" in result.stdout

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "homestack.yml"
        path.write_text("stack_name: Not Valid\n")

        result = runner.invoke(app, ["render", "manifest", "--config", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_links(self):
        result = runner.invoke(app, ["links", "--host", "lab.local"])
        assert result.exit_code == 0
        assert "https://lab.local:9443" in result.stdout


@pytest.mark.usefixtures("as_root", "no_config_files")
class TestUp:
    """The up command."""

    def test_up_success(self, config_file, cli_host, tmp_path, homelab_config):
        result = runner.invoke(app, [
            "up", "--config", str(config_file), "--log-file", str(tmp_path / "run.log"),
        ])

        assert result.exit_code == 0, result.stdout
        assert "Homelab is deploying" in result.stdout
        assert "Quick links" in result.stdout
        assert "tailscale up" in result.stdout
        assert cli_host.running_services
        assert homelab_config.env_file.exists()

    def test_up_failure_exit_code(self, config_file, cli_host, tmp_path):
        cli_host.fail_on("ufw", "allow")

        result = runner.invoke(app, [
            "up", "--config", str(config_file), "--log-file", str(tmp_path / "run.log"),
        ])

        assert result.exit_code == 1
        assert "firewall" in result.stdout
        assert cli_host.count("docker", "compose") == 0

    def test_plan_changes_nothing(self, config_file, cli_host, homelab_config):
        result = runner.invoke(app, ["plan", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Provisioning plan" in result.stdout
        assert "would" in result.stdout
        assert not homelab_config.root.exists()
        assert cli_host.count("apt-get") == 0


@pytest.mark.usefixtures("no_config_files")
def test_doctor(config_file, cli_host):
    result = runner.invoke(app, ["doctor", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "Ubuntu 24.04.1 LTS" in result.stdout
    assert "Memory" in result.stdout
