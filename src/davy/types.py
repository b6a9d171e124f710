"""Data models for davy."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# "required": a missing source aborts the launch.
# "warn": a missing source is logged and the mount is skipped.
Requiredness = Literal["required", "warn"]


@dataclass(frozen=True)
class LaunchRequest:
    """User-supplied launch options, as parsed from the command line."""

    project_dir: Path | None = None
    name: str | None = None
    image: str | None = None  # None → settings.image
    dockerfile: Path | None = None  # None → settings.dockerfile, then lookup
    local_dockerfile: bool = False
    rebuild: bool = False  # wins over no_build
    no_build: bool = False
    keep: bool = False
    expose_ssh: int | None = None  # host port published to container port 22
    with_docker_sock: bool = False
    docker_sock: Path | None = None  # None → settings.docker_sock
    auth_pi: bool = False
    auth_codex: bool = False
    auth_gemini: bool = False
    auth_claude: bool = False
    auth_all: bool = False
    env: tuple[str, ...] = ()  # KEY=VALUE or bare KEY
    pass_env: tuple[str, ...] = ()  # host keys to forward
    docker_args: tuple[str, ...] = ()  # passed to `docker run` before the image
    command: tuple[str, ...] = ()


@dataclass(frozen=True)
class MountDirective:
    host_path: str
    container_path: str
    label: str
    requiredness: Requiredness = "required"

    def as_docker_args(self) -> list[str]:
        return ["-v", f"{self.host_path}:{self.container_path}"]


@dataclass(frozen=True)
class DockerSocket:
    path: Path
    gid: int | None = None  # owning group, added to the container user


@dataclass
class ResolvedLaunchPlan:
    """Fully validated launch parameters. Nothing downstream re-checks the host."""

    project_dir: Path
    dockerfile: Path
    context_dir: Path
    image: str
    name: str
    host_uid: int
    host_gid: int
    claude_auth_volume: str
    command: list[str]
    keep: bool = False
    rebuild: bool = False
    no_build: bool = False
    claude_auth: bool = False
    expose_ssh: int | None = None
    docker_socket: DockerSocket | None = None
    mounts: list[MountDirective] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    docker_args: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
