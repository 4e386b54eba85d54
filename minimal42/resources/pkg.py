"""
Package manager front-end.

Supports:
- apt (Debian/Ubuntu)
- dnf (Fedora/RHEL)
- pacman (Arch)
- brew (macOS)
"""

from typing import List, Optional

from minimal42.core.platform import Platform
from minimal42.errors import ApplyError
from minimal42.transport import NullTransport, Transport


class PackageManager:
    """
    Queries, installs and removes single packages.

    Example:
        pm = PackageManager.for_platform(Platform.detect(), LocalTransport())
        pm.installed_version("shorewall")   # "5.2.3.4" or None
        pm.install("shorewall", "5.2.3.4")
    """

    SUPPORTED = ("apt", "dnf", "pacman", "brew")

    def __init__(self, manager: str, transport: Optional[Transport] = None):
        if manager not in self.SUPPORTED:
            raise ValueError(f"Unsupported package manager: {manager}")
        self.manager = manager
        self.transport = transport or NullTransport()

    @classmethod
    def for_platform(cls, platform: Platform, transport: Optional[Transport] = None) -> "PackageManager":
        """Pick the package manager of a platform."""
        if platform.distro in ["ubuntu", "debian"]:
            manager = "apt"
        elif platform.distro in ["fedora", "rhel", "centos", "rocky", "almalinux"]:
            manager = "dnf"
        elif platform.distro == "arch":
            manager = "pacman"
        elif platform.system == "Darwin":
            manager = "brew"
        else:
            raise ValueError(f"Unsupported platform: {platform.distro}")
        return cls(manager, transport)

    def installed_version(self, name: str) -> Optional[str]:
        """Return the installed version, or None if not installed."""
        if self.manager == "apt":
            output, code = self.transport.run_command(
                ["dpkg-query", "-W", "-f=${Status}|${Version}", name]
            )
            if code != 0:
                return None
            status, _, version = output.strip().partition("|")
            return version if status.endswith(" installed") else None

        if self.manager == "dnf":
            output, code = self.transport.run_command(
                ["rpm", "-q", "--queryformat", "%{VERSION}-%{RELEASE}", name]
            )
            return output.strip() if code == 0 else None

        if self.manager == "pacman":
            output, code = self.transport.run_command(["pacman", "-Q", name])
            if code == 0:
                # Output: "package-name version"
                parts = output.strip().split()
                return parts[1] if len(parts) > 1 else None
            return None

        output, code = self.transport.run_command(["brew", "list", "--versions", name])
        if code == 0:
            parts = output.strip().split()
            return parts[1] if len(parts) > 1 else None
        return None

    def install(self, name: str, version: Optional[str] = None) -> None:
        """
        Install a package, pinned when a version is given.

        Raises:
            ApplyError: command failed, or pinning unsupported
        """
        self._run(self._install_command(name, version), "installation", name)

    def remove(self, name: str) -> None:
        """
        Raises:
            ApplyError: command failed
        """
        commands = {
            "apt": ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "remove", "-y", name],
            "dnf": ["dnf", "remove", "-y", name],
            "pacman": ["pacman", "-R", "--noconfirm", name],
            "brew": ["brew", "uninstall", name],
        }
        self._run(commands[self.manager], "removal", name)

    def _install_command(self, name: str, version: Optional[str]) -> List[str]:
        if self.manager == "apt":
            target = f"{name}={version}" if version else name
            return ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get", "install", "-y",
                    "--allow-downgrades", target]
        if self.manager == "dnf":
            target = f"{name}-{version}" if version else name
            return ["dnf", "install", "-y", target]
        if self.manager == "pacman":
            if version:
                raise ApplyError(f"pacman cannot pin {name} to version {version}")
            return ["pacman", "-S", "--noconfirm", name]
        target = f"{name}@{version}" if version else name
        return ["brew", "install", target]

    def _run(self, cmd: List[str], what: str, name: str) -> None:
        output, code = self.transport.run_command(cmd)
        if code != 0:
            raise ApplyError(f"Package {what} failed for {name}: {output.strip()}")
