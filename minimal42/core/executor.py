"""
Executor - converges a ModulePlan on the host.

The executor:
1. Checks the actual state of every planned resource
2. Works out the action and field changes for each one
3. Applies them, unless the resource is in noop mode
4. Records lifecycle transitions (optional)
"""

import os
import socket
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from minimal42.core.planner import ModulePlan
from minimal42.core.platform import Platform
from minimal42.core.resource import (
    Absent,
    Action,
    Change,
    ManagedFile,
    ManagedPackage,
    ManagedResource,
    RemoteSource,
    Version,
)
from minimal42.errors import ApplyError
from minimal42.logging import get_run_logger
from minimal42.resources import FileManager, PackageManager, SourceFetcher
from minimal42.state import CONVERGED, REMOVED, UNMANAGED, HistoryEntry, Store
from minimal42.transport import LocalTransport, Transport

logger = get_run_logger(__name__)

APPLIED = "applied"
PLANNED = "planned"
UNCHANGED = "unchanged"
FAILED = "failed"


@dataclass
class ResourcePlan:
    """What has to happen to one resource."""
    action: Action
    changes: List[Change] = field(default_factory=list)
    reason: str = ""

    def has_changes(self) -> bool:
        return self.action != Action.NONE and len(self.changes) > 0


@dataclass
class ResourceReport:
    """Outcome for one resource of a run."""
    kind: str
    name: str
    desired_state: str
    noop: bool
    status: str
    action: Action = Action.NONE
    changes: List[Change] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def id(self) -> str:
        prefix = "pkg" if self.kind == "package" else self.kind
        return f"{prefix}:{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.capitalize(),
            "name": self.name,
            "desiredState": self.desired_state,
            "noop": self.noop,
            "appliedOrPlanned": self.status,
            "action": self.action.value,
            "changes": [str(c) for c in self.changes],
            "error": self.error,
        }


@dataclass
class RunReport:
    """Result of a convergence run."""
    resources: List[ResourceReport] = field(default_factory=list)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return not any(r.status == FAILED for r in self.resources)

    @property
    def changed(self) -> List[str]:
        return [r.id for r in self.resources if r.status == APPLIED]

    @property
    def planned(self) -> List[str]:
        return [r.id for r in self.resources if r.status == PLANNED]

    def get(self, name: str) -> Optional[ResourceReport]:
        for report in self.resources:
            if name in (report.name, report.id):
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "duration": round(self.duration, 3),
            "resources": [r.to_dict() for r in self.resources],
        }


def version_matches(installed: str, wanted: str) -> bool:
    """True if installed satisfies wanted; "1.0" matches "1.0" and "1.0-2"."""
    return installed == wanted or installed.startswith(wanted + "-")


def _other_paths(plan: ModulePlan, resource: ManagedResource) -> List[str]:
    return [
        other.path for other in plan.resources()
        if isinstance(other, ManagedFile) and other is not resource
    ]


class Executor:
    """
    Check/apply workflow for planned resources.

    Example:
        executor = Executor(transport=LocalTransport())
        report = executor.apply(planner.plan(config))
        print(f"Changed {len(report.changed)} resources")
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        packages: Optional[PackageManager] = None,
        files: Optional[FileManager] = None,
        sources: Optional[SourceFetcher] = None,
        store: Optional[Store] = None,
        platform: Optional[Platform] = None,
    ):
        """
        Args:
            transport: Host access (default: LocalTransport)
            packages: Package manager (default: detected from platform)
            files: File manager (default: one on the transport)
            sources: Source fetcher for remote sources
            store: State store; lifecycle is recorded when set
            platform: Platform info (auto-detected if needed)
        """
        self.transport = transport or LocalTransport()
        self.files = files or FileManager(self.transport)
        self.sources = sources or SourceFetcher()
        self.store = store
        self.platform = platform
        self._packages = packages

    @property
    def packages(self) -> PackageManager:
        if self._packages is None:
            platform = self.platform or Platform.detect()
            self._packages = PackageManager.for_platform(platform, self.transport)
        return self._packages

    def check(self, plan: ModulePlan) -> Dict[str, ResourcePlan]:
        """
        Work out the changes for every resource without applying anything.

        Raises:
            ApplyError, FileNotFoundError: host state or sources unreadable
        """
        return {
            resource.id: self.check_resource(resource, _other_paths(plan, resource))
            for resource in plan.resources()
        }

    def check_resource(self, resource: ManagedResource, keep: Iterable[str] = ()) -> ResourcePlan:
        """
        Work out the changes for one resource.

        Args:
            resource: Resource to check
            keep: Paths of other managed files, left alone by directory purges
        """
        if isinstance(resource, ManagedPackage):
            return self._check_package(resource)
        if resource.directory:
            return self._check_directory(resource, keep)
        return self._check_file(resource)

    def apply(self, plan: ModulePlan, dry_run: bool = False) -> RunReport:
        """
        Converge every resource of a plan.

        Resources in noop mode (or every resource with dry_run) are
        checked and reported as planned, never applied. A failing resource
        is reported and the run goes on with the next one.
        """
        report = RunReport()
        start_time = time.time()

        for resource in plan.resources():
            noop = resource.noop or dry_run
            entry = ResourceReport(
                kind=resource.kind,
                name=resource.name,
                desired_state=resource.ensure,
                noop=resource.noop,
                status=UNCHANGED,
            )
            report.resources.append(entry)

            keep = _other_paths(plan, resource)
            try:
                resource_plan = self.check_resource(resource, keep)
                entry.action = resource_plan.action
                entry.changes = resource_plan.changes

                if not resource_plan.has_changes():
                    entry.status = UNCHANGED
                elif noop:
                    entry.status = PLANNED
                    logger.noop(f"would {resource_plan.action.value} {resource.id}")
                else:
                    self.apply_resource(resource, resource_plan, keep)
                    entry.status = APPLIED
                    logger.action(resource_plan.action.value, resource.id, resource.ensure)
            except (ApplyError, OSError, ValueError) as e:
                entry.status = FAILED
                entry.error = str(e)
                logger.error("%s failed: %s", resource.id, e)

            if self.store is not None and not noop:
                self._record(resource, entry)

        report.duration = time.time() - start_time
        return report

    def apply_resource(
        self,
        resource: ManagedResource,
        resource_plan: ResourcePlan,
        keep: Iterable[str] = (),
    ) -> None:
        if isinstance(resource, ManagedPackage):
            self._apply_package(resource, resource_plan)
        elif resource_plan.action == Action.DELETE:
            self.files.delete(resource.path)
        elif resource.directory:
            src = self.sources.resolve(resource.source)
            self.files.mirror(
                src, resource.path, purge=resource.purge, force=resource.force, keep=keep
            )
        else:
            self._apply_file(resource, resource_plan)

    # Packages

    def _check_package(self, package: ManagedPackage) -> ResourcePlan:
        installed = self.packages.installed_version(package.name)
        desired = package.desired_state

        if isinstance(desired, Absent):
            if installed is None:
                return ResourcePlan(Action.NONE, reason="Package correctly absent")
            return ResourcePlan(
                Action.DELETE,
                [Change("version", installed, None)],
                "Package should not be installed",
            )

        wanted = desired.value if isinstance(desired, Version) else None
        if installed is None:
            return ResourcePlan(
                Action.CREATE,
                [Change("version", None, wanted or "present")],
                "Package is not installed",
            )
        if wanted and not version_matches(installed, wanted):
            return ResourcePlan(
                Action.UPDATE,
                [Change("version", installed, wanted)],
                "Installed version differs",
            )
        return ResourcePlan(Action.NONE, reason="No changes needed")

    def _apply_package(self, package: ManagedPackage, resource_plan: ResourcePlan) -> None:
        if resource_plan.action == Action.DELETE:
            self.packages.remove(package.name)
            return
        version = package.desired_state.value if isinstance(package.desired_state, Version) else None
        self.packages.install(package.name, version)

    # Files

    def _check_directory(self, directory: ManagedFile, keep: Iterable[str]) -> ResourcePlan:
        actual = self.files.check(directory.path, read_content=False)

        if isinstance(directory.desired_state, Absent):
            return self._check_absent(actual)

        src = self.sources.resolve(directory.source)
        if not actual["exists"]:
            diff = self.files.diff_tree(src, directory.path, keep=keep)
            changes = [Change("ensure", None, "directory")]
            changes += [Change("content", None, relative) for relative in diff["copy"]]
            return ResourcePlan(Action.CREATE, changes, "Directory does not exist")

        if actual["type"] != "directory":
            return ResourcePlan(
                Action.UPDATE,
                [Change("type", actual["type"], "directory")],
                "Path is not a directory",
            )

        diff = self.files.diff_tree(src, directory.path, purge=directory.purge, keep=keep)
        changes = [Change("content", "differs", relative) for relative in diff["copy"]]
        changes += [Change("purge", relative, None) for relative in diff["purge"]]
        if changes:
            return ResourcePlan(Action.UPDATE, changes, "Directory differs from source")
        return ResourcePlan(Action.NONE, reason="No changes needed")

    def _check_file(self, managed: ManagedFile) -> ResourcePlan:
        actual = self.files.check(managed.path, read_content=False)

        if isinstance(managed.desired_state, Absent):
            return self._check_absent(actual)

        content = self._desired_content(managed)
        metadata = {"mode": managed.mode, "owner": managed.owner, "group": managed.group}

        if not actual["exists"]:
            changes = [Change("type", None, "file"), Change("content", None, _text(content))]
            changes += [Change(key, None, value) for key, value in metadata.items() if value is not None]
            return ResourcePlan(Action.CREATE, changes, "File does not exist")

        # Anything but a regular file is replaced, metadata included
        if actual["type"] != "file":
            return ResourcePlan(
                Action.UPDATE,
                [Change("type", actual["type"], "file"), Change("content", None, _text(content))],
                "Path is not a regular file",
            )

        changes = []
        current = self.transport.read_file(managed.path)
        if current != content:
            changes.append(Change("content", _text(current), _text(content)))
        for key, value in metadata.items():
            if value is not None and actual[key] != value:
                changes.append(Change(key, actual[key], value))

        if changes:
            return ResourcePlan(Action.UPDATE, changes, "Properties differ from desired state")
        return ResourcePlan(Action.NONE, reason="No changes needed")

    @staticmethod
    def _check_absent(actual: Dict[str, Any]) -> ResourcePlan:
        if not actual["exists"]:
            return ResourcePlan(Action.NONE, reason="Resource correctly absent")
        return ResourcePlan(
            Action.DELETE,
            [Change("ensure", actual["type"], "absent")],
            "Resource should not exist",
        )

    def _desired_content(self, managed: ManagedFile) -> bytes:
        if isinstance(managed.content_source, RemoteSource):
            src = self.sources.resolve(managed.source)
            if src.is_dir():
                raise ApplyError(f"Source {managed.source} is a directory")
            return src.read_bytes()
        return (managed.content or "").encode("utf-8")

    def _apply_file(self, managed: ManagedFile, resource_plan: ResourcePlan) -> None:
        fields = {c.field for c in resource_plan.changes}
        replace = resource_plan.action == Action.CREATE or "type" in fields

        if "type" in fields:
            current = self.files.check(managed.path, read_content=False)["type"]
            if current == "directory" and not managed.force:
                raise ApplyError(f"{managed.path} is a directory")
            # Writing through a symlink would change its target instead
            self.files.delete(managed.path)

        if replace or "content" in fields:
            if isinstance(managed.content_source, RemoteSource):
                self.files.copy(self.sources.resolve(managed.source), managed.path)
            else:
                self.files.write(managed.path, managed.content or "")

        if replace:
            self.files.set_metadata(managed.path, managed.mode, managed.owner, managed.group)
        else:
            self.files.set_metadata(
                managed.path,
                mode=managed.mode if "mode" in fields else None,
                owner=managed.owner if fields & {"owner", "group"} else None,
                group=managed.group if fields & {"owner", "group"} else None,
            )

    # State

    def _record(self, resource: ManagedResource, entry: ResourceReport) -> None:
        user = os.getenv("USER", "unknown")
        hostname = socket.gethostname()
        timestamp = datetime.now()

        if entry.status != FAILED:
            lifecycle = REMOVED if isinstance(resource.desired_state, Absent) else CONVERGED
            untouched = (
                lifecycle == REMOVED
                and entry.status == UNCHANGED
                and self.store.lifecycle(resource.id) == UNMANAGED
            )
            # Nothing existed and nothing was done: the resource stays unmanaged
            if not untouched:
                self.store.transition(
                    resource.id,
                    resource.kind,
                    lifecycle,
                    resource.ensure,
                    user=user,
                    hostname=hostname,
                    timestamp=timestamp,
                )

        if entry.status in (APPLIED, FAILED):
            self.store.add_history(HistoryEntry(
                timestamp=timestamp,
                resource_id=resource.id,
                action=entry.action.value,
                user=user,
                hostname=hostname,
                success=entry.status == APPLIED,
                changes={c.field: {"from": c.from_value, "to": c.to_value} for c in entry.changes},
                error=entry.error,
            ))


def _text(data: bytes) -> str:
    """Content as shown in reports and history."""
    return data.decode("utf-8", errors="replace")
