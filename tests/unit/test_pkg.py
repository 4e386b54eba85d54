"""
Unit tests for the package manager front-end.

Commands are captured by a scripted transport instead of being run.
"""

import pytest

from minimal42.core.platform import Platform
from minimal42.errors import ApplyError
from minimal42.resources import PackageManager
from minimal42.transport import Transport


class ScriptedTransport(Transport):
    """Transport that records commands and replies from a script."""

    def __init__(self, replies=None):
        self.replies = replies or {}
        self.commands = []

    def run_command(self, args):
        self.commands.append(args)
        return self.replies.get(args[0], ("", 0))

    def write_file(self, path, content):
        raise NotImplementedError

    def read_file(self, path):
        raise NotImplementedError

    def file_exists(self, path):
        return False

    def is_directory(self, path):
        return False

    def list_tree(self, path):
        return []

    def copy_file(self, src_path, dest_path):
        raise NotImplementedError

    def close(self):
        pass


def platform(distro, system="Linux"):
    return Platform(system=system, distro=distro, version="", arch="x86_64")


class TestForPlatform:

    @pytest.mark.parametrize("distro,manager", [
        ("ubuntu", "apt"),
        ("debian", "apt"),
        ("fedora", "dnf"),
        ("rhel", "dnf"),
        ("arch", "pacman"),
    ])
    def test_linux(self, distro, manager):
        assert PackageManager.for_platform(platform(distro)).manager == manager

    def test_macos(self):
        assert PackageManager.for_platform(platform("macos", "Darwin")).manager == "brew"

    def test_unsupported(self):
        with pytest.raises(ValueError):
            PackageManager.for_platform(platform("plan9", "Plan9"))

    def test_unknown_manager(self):
        with pytest.raises(ValueError):
            PackageManager("zypper")


class TestInstalledVersion:

    def test_apt_installed(self):
        transport = ScriptedTransport({"dpkg-query": ("install ok installed|5.2.3.4-1", 0)})
        assert PackageManager("apt", transport).installed_version("shorewall") == "5.2.3.4-1"

    def test_apt_config_files_only(self):
        transport = ScriptedTransport({"dpkg-query": ("deinstall ok config-files|5.2.3.4-1", 0)})
        assert PackageManager("apt", transport).installed_version("shorewall") is None

    def test_apt_missing(self):
        transport = ScriptedTransport({"dpkg-query": ("no packages found", 1)})
        assert PackageManager("apt", transport).installed_version("shorewall") is None

    def test_dnf(self):
        transport = ScriptedTransport({"rpm": ("5.2.8-3.fc38", 0)})
        assert PackageManager("dnf", transport).installed_version("shorewall") == "5.2.8-3.fc38"

    def test_pacman(self):
        transport = ScriptedTransport({"pacman": ("shorewall 5.2.8-1\n", 0)})
        assert PackageManager("pacman", transport).installed_version("shorewall") == "5.2.8-1"

    def test_brew_missing(self):
        transport = ScriptedTransport({"brew": ("", 1)})
        assert PackageManager("brew", transport).installed_version("shorewall") is None


class TestInstallRemove:

    def test_apt_pinned(self):
        transport = ScriptedTransport()
        PackageManager("apt", transport).install("shorewall", "1.0.42")

        assert transport.commands[-1][-1] == "shorewall=1.0.42"
        assert "DEBIAN_FRONTEND=noninteractive" in transport.commands[-1]

    def test_dnf_pinned(self):
        transport = ScriptedTransport()
        PackageManager("dnf", transport).install("shorewall", "1.0.42")

        assert transport.commands[-1] == ["dnf", "install", "-y", "shorewall-1.0.42"]

    def test_brew_pinned(self):
        transport = ScriptedTransport()
        PackageManager("brew", transport).install("shorewall", "1.0.42")

        assert transport.commands[-1] == ["brew", "install", "shorewall@1.0.42"]

    def test_pacman_cannot_pin(self):
        with pytest.raises(ApplyError):
            PackageManager("pacman", ScriptedTransport()).install("shorewall", "1.0.42")

    def test_remove(self):
        transport = ScriptedTransport()
        PackageManager("dnf", transport).remove("shorewall")

        assert transport.commands[-1] == ["dnf", "remove", "-y", "shorewall"]

    def test_failure(self):
        transport = ScriptedTransport({"env": ("E: Unable to locate package shorewall", 100)})

        with pytest.raises(ApplyError, match="Unable to locate"):
            PackageManager("apt", transport).install("shorewall")
