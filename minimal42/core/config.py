"""
Module configuration.

Every parameter is optional. When several content sources are set the
first one in CONTENT_PRECEDENCE wins.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from minimal42.errors import ConfigError

CONTENT_PRECEDENCE = ("source", "my_class", "template")


@dataclass(frozen=True)
class ModuleConfig:
    """
    Parameters of a module run.

    Attributes:
        version: Pin the package to this exact version
        absent: Remove the package and its configuration
        noop: Compute changes without applying them
        template: Template reference for the configuration file
        options: Extra template variables
        source: Source URI for the configuration file
        source_dir: Source URI for the whole configuration directory
        source_dir_purge: Remove local files missing from source_dir
        my_class: Custom content provider reference
    """
    version: Optional[str] = None
    absent: bool = False
    noop: bool = False
    template: Optional[str] = None
    options: Dict[str, str] = field(default_factory=dict)
    source: Optional[str] = None
    source_dir: Optional[str] = None
    source_dir_purge: bool = False
    my_class: Optional[str] = None

    def __post_init__(self):
        if self.options is None:
            object.__setattr__(self, "options", {})
        if not isinstance(self.options, Mapping):
            raise ConfigError(f"options must be a mapping, got {type(self.options).__name__}")
        object.__setattr__(
            self, "options", {str(k): str(v) for k, v in self.options.items()}
        )
        for name in ("absent", "noop", "source_dir_purge"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ConfigError(f"{name} must be a boolean, got {value!r}")
        for name in ("version", "template", "source", "source_dir", "my_class"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{name} must be a string, got {value!r}")

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ModuleConfig":
        """
        Build a config from a plain mapping.

        Raises:
            ConfigError: unknown keys or wrongly typed values
        """
        known = set(cls.field_names())
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ConfigError(f"Unknown parameter(s): {', '.join(unknown)}")
        return cls(**dict(mapping))

    def content_sources(self) -> List[str]:
        """Names of the content-source parameters that are set, by precedence."""
        return [name for name in CONTENT_PRECEDENCE if getattr(self, name)]

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
