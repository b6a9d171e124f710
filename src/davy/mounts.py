"""Bind-mount planning for agent auth directories and host skills.

Each enabled auth provider maps a host directory into the sandbox user's
home. Whether a missing source aborts the launch depends on how the mount
was requested:

=====================  ==================  =============
source                 explicit flag       --auth-all
=====================  ==================  =============
Pi / Codex / Gemini    required            warn
agents skills          warn                warn
=====================  ==================  =============

A source that exists but is not a directory always fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from davy.errors import ValidationError
from davy.logger import logger
from davy.types import LaunchRequest, MountDirective, Requiredness

CONTAINER_HOME = "/home/dev"
CODEX_HOME_ENV = f"CODEX_HOME={CONTAINER_HOME}/.codex"


@dataclass
class MountPlan:
    mounts: list[MountDirective] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class MountPlanner:
    """Ordered mount builder; directives come out in the order they were added."""

    def __init__(self, home_dir: Path):
        self.home_dir = home_dir
        self.plan = MountPlan()

    def warn(self, message: str) -> None:
        self.plan.warnings.append(message)
        logger.warning(message)

    def add_bind(
        self,
        relative_source: str,
        container_path: str,
        label: str,
        requiredness: Requiredness,
    ) -> bool:
        """Plan a bind mount of ``~/<relative_source>``.

        Returns True when the directive was added, False when it was skipped.
        """
        source = self.home_dir / relative_source
        if source.is_dir():
            self.plan.mounts.append(
                MountDirective(
                    host_path=str(source),
                    container_path=container_path,
                    label=label,
                    requiredness=requiredness,
                )
            )
            return True

        if source.exists():
            raise ValidationError(f"{label} mount source is not a directory: {source}")

        if requiredness == "warn":
            self.warn(f"{label} mount source not found at {source}; skipping.")
            return False

        raise ValidationError(f"{label} mount source not found: {source}")

    def add_env(self, entry: str) -> None:
        self.plan.env.append(entry)


def plan_mounts(request: LaunchRequest, home_dir: Path) -> MountPlan:
    """Turn the auth flags of *request* into bind-mount directives."""
    planner = MountPlanner(home_dir)
    # --auth-all downgrades the per-provider mounts to warn-and-skip
    auth_requiredness: Requiredness = "warn" if request.auth_all else "required"

    if request.auth_pi or request.auth_all:
        planner.add_bind(".pi/agent", f"{CONTAINER_HOME}/.pi/agent", "Pi auth", auth_requiredness)

    if request.auth_codex or request.auth_all:
        if planner.add_bind(".codex", f"{CONTAINER_HOME}/.codex", "Codex auth", auth_requiredness):
            planner.add_env(CODEX_HOME_ENV)

    if request.auth_gemini or request.auth_all:
        planner.add_bind(
            ".gemini", f"{CONTAINER_HOME}/.gemini", "Gemini auth", auth_requiredness
        )

    if not planner.add_bind(
        ".agents/skills", f"{CONTAINER_HOME}/.agents/skills", "agents skills", "warn"
    ):
        planner.warn("continuing without host skills mount.")

    return planner.plan
