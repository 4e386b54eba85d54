"""
Errors raised by minimal42.

Planning errors are raised before anything touches the host and abort the
whole run. Apply errors come from the package/file collaborators and are
collected per resource by the executor.
"""


class Minimal42Error(Exception):
    """Base class for all minimal42 errors."""


class PlanningError(Minimal42Error):
    """Invalid input detected while building a plan."""


class InvalidVersionFormat(PlanningError, ValueError):
    """Package version string is empty or malformed."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Invalid package version: {version!r}")


class ConflictingContentSource(PlanningError):
    """More than one content source was given for a single file."""

    def __init__(self, path: str, sources: list):
        self.path = path
        self.sources = sources
        names = ", ".join(type(s).__name__ for s in sources)
        super().__init__(f"Conflicting content sources for {path}: {names}")


class InvalidFileOptions(PlanningError, ValueError):
    """File options that make no sense together (e.g. purge on a plain file)."""


class TemplateNotFound(PlanningError, LookupError):
    """Template reference could not be resolved."""

    def __init__(self, template_ref: str):
        self.template_ref = template_ref
        super().__init__(f"Template not found: {template_ref}")


class ProviderNotFound(PlanningError, LookupError):
    """Custom content provider reference could not be resolved."""

    def __init__(self, class_ref: str, reason: str = ""):
        self.class_ref = class_ref
        msg = f"Content provider not found: {class_ref}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ConfigError(PlanningError, ValueError):
    """Module configuration is malformed."""


class ApplyError(Minimal42Error):
    """A collaborator failed to converge a resource."""


class UnsupportedSource(ApplyError):
    """Source URI uses a scheme that cannot be fetched."""

    def __init__(self, uri: str):
        self.uri = uri
        super().__init__(f"Unsupported source: {uri}")


class AmbiguousContentSource(UserWarning):
    """Several content sources were configured; precedence picked one."""
