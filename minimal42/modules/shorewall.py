"""
Shorewall firewall module.
"""

from minimal42.core.content import ContentProvider, RenderContext
from minimal42.core.module import ModuleDefinition


class SpecContent(ContentProvider):
    """Sample custom provider, selected with my_class="shorewall::spec"."""

    def render(self, context: RenderContext) -> str:
        lines = [
            "# Shorewall configuration from custom class shorewall::spec",
            f"# fqdn: {context.fqdn}",
            "STARTUP_ENABLED=Yes",
            f"LOGFILE=/var/log/shorewall-{context.fqdn}.log",
        ]
        for key in sorted(context.options):
            if key != "fqdn":
                lines.append(f"{key.upper()}={context.options[key]}")
        return "\n".join(lines) + "\n"


SHOREWALL = ModuleDefinition(
    name="shorewall",
    package="shorewall",
    config_file="/etc/shorewall/shorewall.conf",
    config_dir="/etc/shorewall",
    default_template="shorewall/shorewall.conf.j2",
    default_options={
        "startup_enabled": "Yes",
        "verbosity": "1",
        "logfile": "/var/log/messages",
    },
    providers={"shorewall::spec": SpecContent},
)
