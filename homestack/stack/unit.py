"""systemd unit that brings the stack up at boot."""
from jinja2 import BaseLoader, Environment

from homestack.core.config import HomelabConfig

DOCKER_BIN = "/usr/bin/docker"

UNIT_TEMPLATE = """[Unit]
Description={{ stack_name }} stack
Requires=docker.service
After=docker.service network-online.target
Wants=network-online.target

[Service]
Type=oneshot
WorkingDirectory={{ root }}
Environment=COMPOSE_PROJECT_NAME={{ stack_name }}
RemainAfterExit=yes
ExecStart={{ docker }} compose up -d
ExecStop={{ docker }} compose down

[Install]
WantedBy=multi-user.target
"""

_jinja_env = Environment(
    loader=BaseLoader(),
    autoescape=False,
    keep_trailing_newline=True,
)


def render_unit(config: HomelabConfig) -> str:
    template = _jinja_env.from_string(UNIT_TEMPLATE)
    return template.render(
        stack_name=config.stack_name,
        root=config.root,
        docker=DOCKER_BIN,
    )
