"""
Core minimal42 functionality.

Exports the resource model, the planner and the executor.
"""

from minimal42.core.config import ModuleConfig
from minimal42.core.content import (
    ContentProvider,
    ProviderRegistry,
    RenderContext,
    TemplateContent,
    TemplateRegistry,
)
from minimal42.core.executor import Executor, ResourcePlan, ResourceReport, RunReport
from minimal42.core.module import ModuleDefinition
from minimal42.core.planner import ModulePlan, Planner
from minimal42.core.platform import Platform
from minimal42.core.resource import (
    ABSENT,
    DEFAULT,
    PRESENT,
    Absent,
    Action,
    Change,
    Default,
    InlineTemplate,
    ManagedFile,
    ManagedPackage,
    Present,
    ProvidedContent,
    RemoteSource,
    Version,
    describe_file,
    describe_package,
)

__all__ = [
    "ABSENT",
    "DEFAULT",
    "PRESENT",
    "Absent",
    "Action",
    "Change",
    "ContentProvider",
    "Default",
    "Executor",
    "InlineTemplate",
    "ManagedFile",
    "ManagedPackage",
    "ModuleConfig",
    "ModuleDefinition",
    "ModulePlan",
    "Planner",
    "Platform",
    "Present",
    "ProvidedContent",
    "ProviderRegistry",
    "RemoteSource",
    "RenderContext",
    "ResourcePlan",
    "ResourceReport",
    "RunReport",
    "TemplateContent",
    "TemplateRegistry",
    "Version",
    "describe_file",
    "describe_package",
]
