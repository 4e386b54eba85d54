"""
Resource model for minimal42.

Managed resources are immutable descriptors of a desired state. They are
built fresh for every run by the planner and compared against the host by
the executor, which owns the Check/Apply side.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from minimal42.errors import (
    ConflictingContentSource,
    InvalidFileOptions,
    InvalidVersionFormat,
)


class Action(Enum):
    """Resource actions during apply."""
    NONE = "none"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class Change:
    """Represents a single property change."""
    field: str
    from_value: Any
    to_value: Any

    def __str__(self):
        return f"{self.field}: {self.from_value} → {self.to_value}"


# Desired states

@dataclass(frozen=True)
class Present:
    def __str__(self):
        return "present"


@dataclass(frozen=True)
class Absent:
    def __str__(self):
        return "absent"


@dataclass(frozen=True)
class Version:
    """Package pinned to an exact version."""
    value: str

    def __str__(self):
        return self.value


PRESENT = Present()
ABSENT = Absent()

DesiredState = Union[Present, Absent, Version]


# Content sources

@dataclass(frozen=True)
class InlineTemplate:
    """Content rendered from a named template with extra options."""
    template_ref: str
    options: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RemoteSource:
    """Content copied from a source URI."""
    uri: str


@dataclass(frozen=True)
class ProvidedContent:
    """Content produced by a custom content provider."""
    class_ref: str


@dataclass(frozen=True)
class Default:
    """Content rendered from the module's built-in template."""


DEFAULT = Default()

ContentSource = Union[InlineTemplate, RemoteSource, ProvidedContent, Default]


@dataclass(frozen=True)
class ManagedPackage:
    """
    A system package and the state it should be in.

    Examples:
        describe_package("shorewall")
        describe_package("shorewall", "1.0.42")
        describe_package("shorewall", ABSENT, noop=True)
    """
    name: str
    desired_state: DesiredState = PRESENT
    noop: bool = False

    kind = "package"

    @property
    def ensure(self) -> str:
        return str(self.desired_state)

    @property
    def id(self) -> str:
        return f"pkg:{self.name}"


@dataclass(frozen=True)
class ManagedFile:
    """
    A file or directory and the state it should be in.

    `content` holds the rendered text for template, default and provider
    sources. Remote sources are fetched at apply time, so their content
    stays None here.
    """
    path: str
    title: str
    desired_state: Union[Present, Absent] = PRESENT
    content_source: ContentSource = DEFAULT
    content: Optional[str] = None
    directory: bool = False
    purge: bool = False
    force: bool = False
    noop: bool = False
    mode: Optional[int] = None
    owner: Optional[str] = None
    group: Optional[str] = None

    kind = "file"

    @property
    def ensure(self) -> str:
        if isinstance(self.desired_state, Absent):
            return "absent"
        return "directory" if self.directory else "file"

    @property
    def name(self) -> str:
        return self.title

    @property
    def id(self) -> str:
        return f"file:{self.title}"

    @property
    def source(self) -> Optional[str]:
        if isinstance(self.content_source, RemoteSource):
            return self.content_source.uri
        return None


ManagedResource = Union[ManagedPackage, ManagedFile]


def describe_package(
    name: str,
    ensure: Union[None, str, DesiredState] = None,
    noop: bool = False,
) -> ManagedPackage:
    """
    Build a package descriptor.

    Args:
        name: Package name
        ensure: None for present, a desired state, or a version string
        noop: Compute changes but never apply them

    Raises:
        InvalidVersionFormat: if a version string is empty or contains
            whitespace
    """
    if ensure is None:
        state = PRESENT
    elif isinstance(ensure, (Present, Absent)):
        state = ensure
    elif isinstance(ensure, Version):
        _check_version(ensure.value)
        state = ensure
    else:
        _check_version(ensure)
        state = Version(ensure)

    return ManagedPackage(name=name, desired_state=state, noop=bool(noop))


def _check_version(version: str) -> None:
    if not isinstance(version, str) or not version.strip():
        raise InvalidVersionFormat(version)
    if any(c.isspace() for c in version):
        raise InvalidVersionFormat(version)


def describe_file(
    path: str,
    ensure: Union[Present, Absent] = PRESENT,
    *,
    template: Optional[InlineTemplate] = None,
    source: Optional[RemoteSource] = None,
    provider: Optional[ProvidedContent] = None,
    content: Optional[str] = None,
    directory: bool = False,
    purge: bool = False,
    force: bool = False,
    noop: bool = False,
    title: Optional[str] = None,
    mode: Optional[int] = None,
    owner: Optional[str] = None,
    group: Optional[str] = None,
) -> ManagedFile:
    """
    Build a file descriptor.

    At most one of template, source and provider may be given; with none
    the module default is used.

    Raises:
        ConflictingContentSource: more than one content source given
        InvalidFileOptions: purge/force outside a mirrored directory, or
            an ensure value other than present/absent
    """
    if not isinstance(ensure, (Present, Absent)):
        raise InvalidFileOptions(f"File {path} can only be present or absent, got {ensure}")

    sources: List[ContentSource] = [s for s in (source, provider, template) if s is not None]
    if len(sources) > 1:
        raise ConflictingContentSource(path, sources)
    content_source = sources[0] if sources else DEFAULT

    mirrored = directory and isinstance(content_source, RemoteSource)
    if (purge or force) and not mirrored:
        raise InvalidFileOptions(
            f"purge/force on {path} require a directory with a remote source"
        )

    if isinstance(ensure, Absent):
        content = None

    return ManagedFile(
        path=path,
        title=title or path,
        desired_state=ensure,
        content_source=content_source,
        content=content,
        directory=directory,
        purge=purge,
        force=force,
        noop=bool(noop),
        mode=mode,
        owner=owner,
        group=group,
    )
