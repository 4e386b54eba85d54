"""
Built-in module definitions.
"""

from typing import Dict

from minimal42.core.module import ModuleDefinition
from minimal42.modules.shorewall import SHOREWALL

MODULES: Dict[str, ModuleDefinition] = {
    SHOREWALL.name: SHOREWALL,
}


def get_module(name: str) -> ModuleDefinition:
    """
    Look up a built-in module definition.

    Raises:
        KeyError: unknown module name
    """
    try:
        return MODULES[name]
    except KeyError:
        raise KeyError(f"Unknown module: {name} (known: {', '.join(sorted(MODULES))})") from None


__all__ = ["ModuleDefinition", "MODULES", "SHOREWALL", "get_module"]
