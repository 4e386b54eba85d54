"""
Platform detection.
"""

import platform as platform_module
from dataclasses import dataclass

import distro


@dataclass(frozen=True)
class Platform:
    """Platform information (OS, distro, version)."""
    system: str  # Linux, Darwin
    distro: str  # ubuntu, debian, arch, etc.
    version: str
    arch: str

    @classmethod
    def detect(cls) -> "Platform":
        """Detect the platform minimal42 is running on."""
        system = platform_module.system()
        arch = platform_module.machine()

        if system == "Linux":
            distro_id = distro.id() or "unknown"
            version = distro.version()
        elif system == "Darwin":
            distro_id = "macos"
            version = platform_module.mac_ver()[0]
        else:
            distro_id = "unknown"
            version = ""

        return cls(system=system, distro=distro_id, version=version, arch=arch)
