__version__ = "0.1.0"

from minimal42.core import (
    ABSENT,
    PRESENT,
    Executor,
    ModuleConfig,
    ModulePlan,
    Planner,
    RenderContext,
    Version,
    describe_file,
    describe_package,
)
from minimal42.logging import get_logger, get_run_logger, setup_logging
from minimal42.modules import SHOREWALL, get_module

"""
Building blocks of a minimal42 run:
    ModuleConfig holds the parameters of a run (version, absent, noop, content sources).
    Planner turns a ModuleConfig into a ModulePlan for one node.
    ModulePlan lists the package, the configuration file and the optional directory.
    Executor checks the host and converges a ModulePlan, honoring noop.
"""

__all__ = [
    "ABSENT",
    "PRESENT",
    "Executor",
    "ModuleConfig",
    "ModulePlan",
    "Planner",
    "RenderContext",
    "SHOREWALL",
    "Version",
    "describe_file",
    "describe_package",
    "get_logger",
    "get_module",
    "get_run_logger",
    "setup_logging",
]
