"""
Module definitions.

A module definition holds the per-distribution defaults of a managed
application: which package to install, where its configuration lives and
which template renders it by default.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from minimal42.core.content import ContentProvider, ProviderRegistry


@dataclass(frozen=True)
class ModuleDefinition:
    """Defaults for one managed application."""
    name: str
    package: str
    config_file: str
    config_dir: str
    default_template: str
    config_file_mode: Optional[int] = 0o644
    config_file_owner: Optional[str] = "root"
    config_file_group: Optional[str] = "root"
    default_options: Dict[str, str] = field(default_factory=dict)
    providers: Dict[str, Callable[[], ContentProvider]] = field(default_factory=dict)

    @property
    def config_file_title(self) -> str:
        return f"{self.name}.conf"

    @property
    def config_dir_title(self) -> str:
        return f"{self.name}.dir"

    def register_providers(self, registry: ProviderRegistry) -> ProviderRegistry:
        """Register the providers shipped with this module."""
        for class_ref, provider in self.providers.items():
            if class_ref not in registry:
                registry.register(class_ref, provider)
        return registry
