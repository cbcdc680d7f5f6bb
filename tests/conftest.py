"""Shared test fixtures for homestack tests."""
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import yaml

from homestack.core.config import HomelabConfig
from homestack.core.errors import ActionFailure
from homestack.core.shell import CommandRunner

UBUNTU_NOBLE = """PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION="24.04.1 LTS (Noble Numbat)"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
"""

DEBIAN_BOOKWORM = """PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
NAME="Debian GNU/Linux"
VERSION_ID="12"
VERSION_CODENAME=bookworm
ID=debian
"""


class FakeHost(CommandRunner):
    """In-memory Ubuntu host answering the commands homestack issues.

    State changes only through commands, the same way a real host would,
    so preconditions observe the effect of earlier actions.
    """

    def __init__(self):
        super().__init__()
        self.commands: List[List[str]] = []
        self.packages = set()
        self.binaries = {"apt-get", "dpkg", "dpkg-query", "curl", "gpg", "systemctl", "id", "usermod", "sh"}
        self.groups: Dict[str, set] = {"alice": {"alice", "sudo"}}
        self.ufw_active = False
        self.ufw_rules: List[str] = []
        self.ufw_apps = ["OpenSSH"]
        self.enabled_units = set()
        self.running_services = set()
        self.fail_prefixes: List[List[str]] = []

    # -- helpers -------------------------------------------------------

    def fail_on(self, *prefix: str) -> None:
        """Make every command starting with prefix exit 1."""
        self.fail_prefixes.append(list(prefix))

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.commands if c[:len(prefix)] == list(prefix))

    def which(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.binaries else None

    # -- dispatch ------------------------------------------------------

    def run(self, command, check=True, cwd=None, env=None, input=None):
        command = list(command)
        self.commands.append(command)

        if any(command[:len(p)] == p for p in self.fail_prefixes):
            result = subprocess.CompletedProcess(command, 1, "", "simulated failure")
        else:
            result = self._dispatch(command, cwd, input)

        if check and result.returncode != 0:
            raise ActionFailure(
                f"Command failed with exit code {result.returncode}: {' '.join(command)}",
                command=command,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def _ok(self, command, stdout=""):
        return subprocess.CompletedProcess(command, 0, stdout, "")

    def _dispatch(self, command, cwd, input):
        program, args = command[0], command[1:]

        if program == "dpkg-query":
            if args[-1] in self.packages:
                return self._ok(command, "install ok installed")
            return subprocess.CompletedProcess(command, 1, "", f"no packages found matching {args[-1]}")
        if program == "apt-get":
            if args[0] == "install":
                installed = [a for a in args[1:] if not a.startswith("-")]
                self.packages.update(installed)
                if "docker-ce" in installed:
                    self.binaries.add("docker")
                if "ufw" in installed:
                    self.binaries.add("ufw")
            return self._ok(command)
        if program == "curl":
            return self._ok(command, "#!/bin/sh\necho fake\n")
        if program == "gpg":
            Path(args[args.index("-o") + 1]).write_text("fake keyring")
            return self._ok(command)
        if program == "dpkg":
            return self._ok(command, "amd64\n")
        if program == "sh":
            self.binaries.add("tailscale")
            return self._ok(command)
        if program == "id":
            members = self.groups.get(args[-1])
            if members is None:
                return subprocess.CompletedProcess(command, 1, "", "no such user")
            return self._ok(command, " ".join(sorted(members)) + "\n")
        if program == "usermod":
            self.groups.setdefault(args[-1], set()).add(args[-2])
            return self._ok(command)
        if program == "chown":
            return self._ok(command)
        if program == "ufw":
            return self._ufw(command, args)
        if program == "systemctl":
            return self._systemctl(command, args)
        if program == "docker" and args[:1] == ["compose"]:
            return self._compose(command, args[1:], cwd)

        return subprocess.CompletedProcess(command, 127, "", f"{program}: command not found")

    def _ufw(self, command, args):
        if args == ["status"]:
            lines = [f"Status: {'active' if self.ufw_active else 'inactive'}"]
            if self.ufw_active and self.ufw_rules:
                lines += ["", "To                         Action      From",
                          "--                         ------      ----"]
                lines += [f"{rule:<27}ALLOW       Anywhere" for rule in self.ufw_rules]
                lines += [f"{rule + ' (v6)':<27}ALLOW       Anywhere (v6)" for rule in self.ufw_rules]
            return self._ok(command, "\n".join(lines) + "\n")
        if args == ["app", "list"]:
            apps = "".join(f"  {app}\n" for app in self.ufw_apps)
            return self._ok(command, "Available applications:\n" + apps)
        if args[0] == "allow":
            if args[1] not in self.ufw_rules:
                self.ufw_rules.append(args[1])
            return self._ok(command, "Rule added\n")
        if args == ["--force", "enable"]:
            self.ufw_active = True
            return self._ok(command, "Firewall is active and enabled on system startup\n")
        return self._ok(command)

    def _systemctl(self, command, args):
        if args[0] == "is-enabled":
            if args[1] in self.enabled_units:
                return self._ok(command, "enabled\n")
            return subprocess.CompletedProcess(command, 1, "disabled\n", "")
        if args[0] == "is-active":
            if args[1] in self.enabled_units:
                return self._ok(command, "active\n")
            return subprocess.CompletedProcess(command, 3, "inactive\n", "")
        if args[0] == "enable":
            self.enabled_units.add(args[-1])
        return self._ok(command)

    def _compose(self, command, args, cwd):
        if args[:1] == ["ps"]:
            return self._ok(command, "".join(f"{s}\n" for s in sorted(self.running_services)))
        if args[:1] == ["up"]:
            manifest = yaml.safe_load((Path(cwd) / "docker-compose.yml").read_text())
            self.running_services = set(manifest["services"])
        return self._ok(command)


@pytest.fixture
def fake_host():
    """Fresh Ubuntu host with nothing installed."""
    return FakeHost()


@pytest.fixture
def os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text(UBUNTU_NOBLE)
    return path


@pytest.fixture
def homelab_config(tmp_path, os_release):
    """Configuration with every managed path under tmp_path."""
    return HomelabConfig(
        root=tmp_path / "homelab",
        systemd_dir=tmp_path / "systemd",
        apt_keyrings_dir=tmp_path / "keyrings",
        apt_sources_dir=tmp_path / "sources.list.d",
        os_release_path=os_release,
        operator_user="alice",
        timezone="Europe/Oslo",
    )


@pytest.fixture
def as_root(monkeypatch):
    """Pretend the test process runs as root."""
    monkeypatch.setattr("homestack.services.host.os.geteuid", lambda: 0)


def snapshot_tree(*roots: Path) -> Dict[str, bytes]:
    """Map every file under roots to its content."""
    files = {}
    for root in roots:
        if not root.exists():
            continue
        for path in sorted(root.rglob("*")):
            if path.is_file():
                files[str(path)] = path.read_bytes()
    return files


@pytest.fixture
def snapshot():
    return snapshot_tree


@pytest.fixture
def no_config_files(monkeypatch, tmp_path):
    """Isolate from config files on the machine running the tests."""
    monkeypatch.setattr("homestack.core.config.CONFIG_PATHS", [str(tmp_path / "missing.yml")])
    monkeypatch.delenv("HOMESTACK_CONFIG", raising=False)
