"""
Integration tests for the shorewall module workflow.

Tests the full plan/apply cycle with real files, a state store and the CLI.
The package manager is replaced so nothing is installed on the test host.
"""

import json

import pytest
from click.testing import CliRunner

from minimal42 import __version__
from minimal42.cli.main import cli
from minimal42.core.config import ModuleConfig
from minimal42.core.executor import APPLIED, UNCHANGED, Executor
from minimal42.core.module import ModuleDefinition
from minimal42.core.planner import Planner
from minimal42.modules import SHOREWALL
from minimal42.resources import PackageManager, SourceFetcher
from minimal42.state import CONVERGED, REMOVED, UNMANAGED, Store

NODE = "rspec.example42.com"


class MemoryPackageManager(PackageManager):
    """Keeps installed packages in a dict."""

    def __init__(self):
        super().__init__("dnf")
        self.installed = {}

    def installed_version(self, name):
        return self.installed.get(name)

    def install(self, name, version=None):
        self.installed[name] = version or "5.2.8-1"

    def remove(self, name):
        self.installed.pop(name, None)


@pytest.fixture
def module(tmp_path):
    root = tmp_path / "root"
    return ModuleDefinition(
        name="shorewall",
        package="shorewall",
        config_file=str(root / "etc" / "shorewall" / "shorewall.conf"),
        config_dir=str(root / "etc" / "shorewall"),
        default_template=SHOREWALL.default_template,
        config_file_owner=None,
        config_file_group=None,
        default_options=SHOREWALL.default_options,
        providers=SHOREWALL.providers,
    )


@pytest.fixture
def store(tmp_path):
    with Store(str(tmp_path / "state.db")) as s:
        yield s


class TestLifecycleWorkflow:
    """Install, reconfigure and remove, tracking lifecycle."""

    def test_install_update_remove(self, module, store):
        planner = Planner(module, fqdn=NODE)
        executor = Executor(packages=MemoryPackageManager(), store=store)

        # Install with the default template
        report = executor.apply(planner.plan(ModuleConfig()))
        assert report.success
        assert store.lifecycle("pkg:shorewall") == CONVERGED
        assert store.lifecycle("file:shorewall.conf") == CONVERGED

        # Switch to a custom provider
        report = executor.apply(planner.plan(ModuleConfig(my_class="shorewall::spec",
                                                          options={"opt_a": "value_a"})))
        assert report.get("shorewall.conf").status == APPLIED
        with open(module.config_file) as f:
            content = f.read()
        assert "fqdn: rspec.example42.com" in content
        assert "OPT_A=value_a" in content

        # Remove everything
        report = executor.apply(planner.plan(ModuleConfig(absent=True)))
        assert report.success
        assert store.lifecycle("pkg:shorewall") == REMOVED
        assert store.lifecycle("file:shorewall.conf") == REMOVED
        assert store.get_resource("pkg:shorewall").ensure == "absent"

        actions = [h.action for h in store.get_history("file:shorewall.conf")]
        assert actions == ["delete", "update", "create"]

    def test_absent_on_clean_host_stays_unmanaged(self, module, store):
        planner = Planner(module, fqdn=NODE)
        executor = Executor(packages=MemoryPackageManager(), store=store)

        report = executor.apply(planner.plan(ModuleConfig(absent=True)))

        assert all(r.status == UNCHANGED for r in report.resources)
        assert store.lifecycle("pkg:shorewall") == UNMANAGED
        assert store.list_resources() == []

    def test_noop_does_not_record(self, module, store):
        planner = Planner(module, fqdn=NODE)
        executor = Executor(packages=MemoryPackageManager(), store=store)

        executor.apply(planner.plan(ModuleConfig(noop=True)))

        assert store.list_resources() == []
        assert store.get_history("pkg:shorewall") == []

    def test_source_dir_convergence(self, module, store, tmp_path):
        files_root = tmp_path / "files"
        (files_root / "shorewall" / "dir" / "spec").mkdir(parents=True)
        (files_root / "shorewall" / "dir" / "spec" / "interfaces").write_text("net eth0\n")

        planner = Planner(module, fqdn=NODE)
        executor = Executor(
            packages=MemoryPackageManager(),
            sources=SourceFetcher(files_root),
            store=store,
        )
        config = ModuleConfig(source_dir="module:///shorewall/dir/spec", source_dir_purge=True)

        first = executor.apply(planner.plan(config))
        second = executor.apply(planner.plan(config))

        assert first.get("shorewall.dir").status == APPLIED
        assert all(r.status == UNCHANGED for r in second.resources)
        assert store.lifecycle("file:shorewall.dir") == CONVERGED


class TestCli:
    """CLI commands that don't touch the host."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["version"])

        assert result.exit_code == 0
        assert f"minimal42 version {__version__}" in result.output

    def test_render_default_template(self):
        result = CliRunner().invoke(cli, ["render", "--node", NODE])

        assert result.exit_code == 0
        assert "# fqdn: rspec.example42.com" in result.output
        assert "STARTUP_ENABLED=Yes" in result.output

    def test_render_custom_template(self):
        result = CliRunner().invoke(cli, [
            "render", "--node", NODE,
            "--template", "shorewall/spec.j2",
            "--option", "opt_a=value_a",
        ])

        assert result.exit_code == 0
        assert result.output == (
            "# Template used to check custom templates and options\n"
            "fqdn: rspec.example42.com\n"
            "value: value_a\n"
        )

    def test_render_from_params_file(self, tmp_path):
        params = tmp_path / "params.py"
        params.write_text('template = "shorewall/spec.j2"\noptions = {"opt_a": "from_file"}\n')

        result = CliRunner().invoke(cli, ["render", "--node", NODE, "--params", str(params)])

        assert result.exit_code == 0
        assert "value: from_file" in result.output

    def test_render_with_source(self):
        result = CliRunner().invoke(cli, ["render", "--node", NODE,
                                          "--source", "module:///shorewall/spec"])

        assert result.exit_code == 0
        assert "module:///shorewall/spec" in result.output

    def test_invalid_version(self):
        result = CliRunner().invoke(cli, ["render", "--node", NODE, "--pkg-version", ""])

        assert result.exit_code == 1
        assert "Planning failed" in result.output

    def test_unknown_provider(self):
        result = CliRunner().invoke(cli, ["render", "--node", NODE, "--my-class", "site::nothing"])

        assert result.exit_code == 1
        assert "Planning failed" in result.output

    def test_bad_option(self):
        result = CliRunner().invoke(cli, ["render", "--node", NODE, "--option", "no_equals"])

        assert result.exit_code != 0

    def test_state_list_empty(self, tmp_path):
        result = CliRunner().invoke(cli, ["state", "list", "--state-db", str(tmp_path / "state.db")])

        assert result.exit_code == 0
        assert "No managed resources found." in result.output

    def test_state_list_and_history(self, module, tmp_path):
        db = str(tmp_path / "state.db")
        with Store(db) as store:
            executor = Executor(packages=MemoryPackageManager(), store=store)
            executor.apply(Planner(module, fqdn=NODE).plan(ModuleConfig(version="1.0.42")))

        runner = CliRunner()
        listing = runner.invoke(cli, ["state", "list", "--state-db", db])
        history = runner.invoke(cli, ["state", "history", "pkg:shorewall", "--state-db", db])

        assert listing.exit_code == 0
        assert "pkg:shorewall" in listing.output
        assert "1.0.42" in listing.output
        assert history.exit_code == 0
        assert "create" in history.output

    @pytest.fixture
    def local_module(self, tmp_path, monkeypatch):
        """Point the shorewall module at tmp_path and fake the package manager."""
        monkeypatch.setattr(Executor, "packages", property(lambda self: MemoryPackageManager()))
        root = tmp_path / "etc" / "shorewall"
        definition = ModuleDefinition(
            name="shorewall",
            package="shorewall",
            config_file=str(root / "shorewall.conf"),
            config_dir=str(root),
            default_template=SHOREWALL.default_template,
            config_file_owner=None,
            config_file_group=None,
        )

        from minimal42 import modules
        monkeypatch.setitem(modules.MODULES, "shorewall", definition)
        return definition

    def test_plan_json_for_absent_noop(self, local_module):
        """--absent --noop on a host without shorewall plans nothing."""
        result = CliRunner().invoke(cli, ["plan", "--node", NODE, "--absent", "--noop", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert [r["appliedOrPlanned"] for r in data["resources"]] == [UNCHANGED, UNCHANGED]
        assert all(r["noop"] for r in data["resources"])

    def test_plan_fails_when_a_resource_fails(self, local_module, tmp_path):
        result = CliRunner().invoke(cli, ["plan", "--node", NODE,
                                          "--source", str(tmp_path / "missing.conf")])

        assert result.exit_code == 1
        assert "file:shorewall.conf" in result.output
        assert "No changes needed" not in result.output

    def test_plan_json_fails_when_a_resource_fails(self, local_module, tmp_path):
        result = CliRunner().invoke(cli, ["plan", "--node", NODE, "--json",
                                          "--source", str(tmp_path / "missing.conf")])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["success"] is False

    def test_apply_json_still_asks(self, local_module, tmp_path):
        result = CliRunner().invoke(
            cli,
            ["apply", "--node", NODE, "--json", "--state-db", str(tmp_path / "state.db")],
            input="n\n",
        )

        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert not (tmp_path / "etc" / "shorewall" / "shorewall.conf").exists()

    def test_apply_json_with_yes(self, local_module, tmp_path):
        result = CliRunner().invoke(
            cli,
            ["apply", "--node", NODE, "--json", "--yes", "--state-db", str(tmp_path / "state.db")],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["success"] is True
        assert (tmp_path / "etc" / "shorewall" / "shorewall.conf").exists()
