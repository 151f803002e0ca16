"""Environment-based configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from projectdeck.core.command_runner import DEFAULT_TIMEOUT_SECONDS
from projectdeck.core.port_allocator import DEFAULT_PORT_RANGES
from projectdeck.models.project import PortClass, PortRange

ENV_PREFIX = "PROJECTDECK_"
_TRUTHY = {"1", "true", "yes", "on"}


def parse_port_range(value: str) -> PortRange:
    """Parse ``start-end`` into a :class:`PortRange`."""
    start, sep, end = value.strip().partition("-")
    if not sep:
        msg = f"Invalid port range {value!r}; expected start-end"
        raise ValueError(msg)
    return PortRange(start=int(start), end=int(end))


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime settings for the lifecycle manager and its UI bridge."""

    home: Path
    git_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    port_ranges: dict[PortClass, PortRange] = field(
        default_factory=lambda: dict(DEFAULT_PORT_RANGES)
    )
    strict_ports: bool = False
    host: str = "127.0.0.1"
    port: int = 19400

    @property
    def db_path(self) -> Path:
        return self.home / "projectdeck.db"

    @property
    def shared_context_root(self) -> Path:
        return self.home / "projects"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        home = Path(env.get(f"{ENV_PREFIX}HOME", "~/.projectdeck")).expanduser()

        port_ranges = dict(DEFAULT_PORT_RANGES)
        for port_class in PortClass:
            raw = env.get(f"{ENV_PREFIX}{port_class.name}_PORTS")
            if raw:
                port_ranges[port_class] = parse_port_range(raw)

        return cls(
            home=home,
            git_timeout_seconds=float(
                env.get(f"{ENV_PREFIX}GIT_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))
            ),
            port_ranges=port_ranges,
            strict_ports=env.get(f"{ENV_PREFIX}STRICT_PORTS", "").strip().lower() in _TRUTHY,
            host=env.get(f"{ENV_PREFIX}HOST", "127.0.0.1"),
            port=int(env.get(f"{ENV_PREFIX}PORT", "19400")),
        )
