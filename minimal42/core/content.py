"""
Content generation for managed files.

Templates are Jinja2 files looked up in user template directories first
and then in the templates shipped with minimal42. Custom content providers
are objects with a render(context) method, registered by name or loaded
from a "package.module:Attribute" path.
"""

import importlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    select_autoescape,
)
from jinja2 import TemplateNotFound as JinjaTemplateNotFound

from minimal42.errors import ProviderNotFound, TemplateNotFound
from minimal42.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RenderContext:
    """
    Variables available when rendering file content.

    Attributes:
        fqdn: Name of the managed node
        options: Module defaults merged with user options; always holds fqdn
        custom_class_ref: Provider reference when my_class is configured
    """
    fqdn: str
    options: Dict[str, str] = field(default_factory=dict)
    custom_class_ref: Optional[str] = None

    @classmethod
    def build(
        cls,
        fqdn: str,
        options: Optional[Mapping[str, Any]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
        custom_class_ref: Optional[str] = None,
    ) -> "RenderContext":
        merged = {str(k): str(v) for k, v in (defaults or {}).items()}
        merged.update({str(k): str(v) for k, v in (options or {}).items()})
        merged["fqdn"] = fqdn
        return cls(fqdn=fqdn, options=merged, custom_class_ref=custom_class_ref)

    def variables(self) -> Dict[str, Any]:
        """Template variables: every option at top level, plus fqdn and options."""
        variables: Dict[str, Any] = dict(self.options)
        variables["options"] = dict(self.options)
        variables["fqdn"] = self.fqdn
        return variables


class ContentProvider(ABC):
    """Produces file content for a render context."""

    @abstractmethod
    def render(self, context: RenderContext) -> str:
        pass


class TemplateRegistry:
    """
    Resolves and renders Jinja2 templates.

    Example:
        registry = TemplateRegistry(["./templates"])
        text = registry.render("shorewall/spec.j2", {"fqdn": "host"})
    """

    def __init__(self, search_paths: Iterable[Union[str, Path]] = ()):
        self.search_paths = [str(p) for p in search_paths]
        loaders = [FileSystemLoader(p) for p in self.search_paths]
        loaders.append(PackageLoader("minimal42", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(),
            keep_trailing_newline=True,
        )

    def exists(self, template_ref: str) -> bool:
        try:
            self.env.get_template(template_ref)
        except JinjaTemplateNotFound:
            return False
        return True

    def render(self, template_ref: str, variables: Mapping[str, Any]) -> str:
        """
        Render a template.

        Raises:
            TemplateNotFound: if no loader knows the reference
        """
        try:
            template = self.env.get_template(template_ref)
        except JinjaTemplateNotFound:
            raise TemplateNotFound(template_ref) from None
        return template.render(**variables)


class TemplateContent(ContentProvider):
    """Content provider backed by a template."""

    def __init__(self, registry: TemplateRegistry, template_ref: str):
        self.registry = registry
        self.template_ref = template_ref

    def render(self, context: RenderContext) -> str:
        return self.registry.render(self.template_ref, context.variables())

    def __repr__(self):
        return f"TemplateContent({self.template_ref!r})"


class ProviderRegistry:
    """
    Resolves custom class references to content providers.

    Names registered explicitly win. Anything else must read
    "package.module:Attribute" to be imported. Classes are instantiated
    without arguments.
    """

    def __init__(self):
        self._providers: Dict[str, Any] = {}

    def register(self, class_ref: str, provider: Any) -> None:
        """
        Register a provider (instance or class) under a reference.

        Args:
            class_ref: Reference used in my_class, e.g. "shorewall::spec"
            provider: ContentProvider instance or subclass
        """
        self._providers[class_ref] = provider

    def __contains__(self, class_ref: str) -> bool:
        return class_ref in self._providers

    def resolve(self, class_ref: str) -> ContentProvider:
        """
        Get the provider for a reference.

        Raises:
            ProviderNotFound: unknown name, failed import, a class that
                cannot be created or an object without a render method
        """
        if class_ref in self._providers:
            target = self._providers[class_ref]
        else:
            target = self._import(class_ref)

        if isinstance(target, type):
            try:
                provider = target()
            except Exception as e:
                raise ProviderNotFound(class_ref, f"could not create {target.__name__}: {e}") from e
        else:
            provider = target
        if not callable(getattr(provider, "render", None)):
            raise ProviderNotFound(class_ref, "object has no render() method")

        logger.debug("Resolved content provider %s -> %r", class_ref, provider)
        return provider

    @staticmethod
    def _import(class_ref: str) -> Any:
        module_name, sep, attr = class_ref.partition(":")
        # "shorewall::spec" style names are only valid when registered
        if not sep or not attr.isidentifier() or not _is_module_path(module_name):
            raise ProviderNotFound(class_ref, "not registered")

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ProviderNotFound(class_ref, str(e)) from e

        try:
            return getattr(module, attr)
        except AttributeError:
            raise ProviderNotFound(class_ref, f"{module_name} has no attribute {attr}") from None


def _is_module_path(name: str) -> bool:
    return bool(name) and all(part.isidentifier() for part in name.split("."))
