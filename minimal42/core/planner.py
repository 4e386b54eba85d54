"""
Convergence planner.

Turns a ModuleConfig into the resource descriptors of one run and renders
file content. Planning is pure: the same configuration always yields the
same plan, and nothing on the host is touched.
"""

import warnings
from dataclasses import dataclass
from typing import Iterator, Optional

from minimal42.core.config import ModuleConfig
from minimal42.core.content import (
    ProviderRegistry,
    RenderContext,
    TemplateContent,
    TemplateRegistry,
)
from minimal42.core.resource import (
    ABSENT,
    PRESENT,
    InlineTemplate,
    ManagedFile,
    ManagedPackage,
    ManagedResource,
    ProvidedContent,
    RemoteSource,
    describe_file,
    describe_package,
)
from minimal42.core.module import ModuleDefinition
from minimal42.errors import AmbiguousContentSource, ConfigError
from minimal42.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModulePlan:
    """Resources of one run, in apply order."""
    package: ManagedPackage
    conf_file: ManagedFile
    dir_file: Optional[ManagedFile] = None

    def resources(self) -> Iterator[ManagedResource]:
        yield self.package
        if self.dir_file is not None:
            yield self.dir_file
        yield self.conf_file

    def get(self, name: str) -> Optional[ManagedResource]:
        """Find a resource by title, package name or id."""
        for resource in self.resources():
            if name in (resource.name, resource.id):
                return resource
        return None


class Planner:
    """
    Builds plans for a module on a node.

    Example:
        planner = Planner(SHOREWALL, fqdn="fw1.example.com")
        plan = planner.plan(ModuleConfig(version="1.0.42"))
        plan.package.ensure   # "1.0.42"
    """

    def __init__(
        self,
        module: ModuleDefinition,
        fqdn: str,
        templates: Optional[TemplateRegistry] = None,
        providers: Optional[ProviderRegistry] = None,
    ):
        if not fqdn:
            raise ConfigError("Node fqdn must not be empty")

        self.module = module
        self.fqdn = fqdn
        self.templates = templates or TemplateRegistry()
        self.providers = module.register_providers(providers or ProviderRegistry())

    def render_context(self, config: ModuleConfig) -> RenderContext:
        return RenderContext.build(
            self.fqdn,
            options=config.options,
            defaults=self.module.default_options,
            custom_class_ref=config.my_class,
        )

    def render_template(self, template_ref: str, context: RenderContext) -> str:
        """
        Render a template for a context.

        Raises:
            TemplateNotFound: if the reference cannot be resolved
        """
        return TemplateContent(self.templates, template_ref).render(context)

    def plan(self, config: ModuleConfig) -> ModulePlan:
        """
        Compute the resources for a configuration.

        Raises:
            InvalidVersionFormat, ConflictingContentSource, TemplateNotFound,
            ProviderNotFound: the run must stop before anything is applied
        """
        module = self.module
        noop = config.noop

        if config.absent:
            if config.version is not None:
                logger.debug("absent=True overrides version %s", config.version)
            package = describe_package(module.package, ABSENT, noop=noop)
            conf_file = describe_file(
                module.config_file,
                ABSENT,
                title=module.config_file_title,
                noop=noop,
            )
            logger.debug("Planned removal of %s", module.name)
            return ModulePlan(package=package, conf_file=conf_file)

        package = describe_package(module.package, config.version, noop=noop)
        conf_file = self._plan_conf_file(config)

        dir_file = None
        if config.source_dir:
            dir_file = describe_file(
                module.config_dir,
                PRESENT,
                source=RemoteSource(config.source_dir),
                directory=True,
                purge=config.source_dir_purge,
                force=True,
                noop=noop,
                title=module.config_dir_title,
            )
        elif config.source_dir_purge:
            logger.debug("source_dir_purge ignored without source_dir")

        logger.debug("Planned %s: package %s, %s", module.name, package.ensure, conf_file.content_source)
        return ModulePlan(package=package, conf_file=conf_file, dir_file=dir_file)

    def _plan_conf_file(self, config: ModuleConfig) -> ManagedFile:
        module = self.module
        selected = config.content_sources()
        if len(selected) > 1:
            message = (
                f"{module.name}: {', '.join(selected)} all set, "
                f"using {selected[0]}"
            )
            logger.warning(message)
            warnings.warn(message, AmbiguousContentSource, stacklevel=3)

        file_args = dict(
            title=module.config_file_title,
            noop=config.noop,
            mode=module.config_file_mode,
            owner=module.config_file_owner,
            group=module.config_file_group,
        )

        if config.source:
            return describe_file(
                module.config_file, PRESENT, source=RemoteSource(config.source), **file_args
            )

        context = self.render_context(config)

        if config.my_class:
            provider = self.providers.resolve(config.my_class)
            return describe_file(
                module.config_file,
                PRESENT,
                provider=ProvidedContent(config.my_class),
                content=provider.render(context),
                **file_args,
            )

        if config.template:
            return describe_file(
                module.config_file,
                PRESENT,
                template=InlineTemplate(config.template, dict(config.options)),
                content=self.render_template(config.template, context),
                **file_args,
            )

        return describe_file(
            module.config_file,
            PRESENT,
            content=self.render_template(module.default_template, context),
            **file_args,
        )
