"""Host filesystem lookups: project dir, Dockerfile, docker socket.

Read-only: nothing here creates or modifies host files.
"""

from __future__ import annotations

import os
import stat
from datetime import datetime
from pathlib import Path

from davy.errors import ConfigurationError, ValidationError
from davy.types import DockerSocket

DOCKERFILE_CANDIDATES = ("rocky.Dockerfile", "debian.Dockerfile")
DEFAULT_DOCKER_SOCK = Path("/var/run/docker.sock")
_UNIX_SCHEME = "unix://"


def _absolute(path: Path, cwd: Path) -> Path:
    # Lexical only; symlinks are not followed.
    return Path(os.path.abspath(cwd / path.expanduser()))


def resolve_project_dir(path: Path | None, cwd: Path) -> Path:
    """Return the absolute project directory, defaulting to *cwd*."""
    project_dir = _absolute(path, cwd) if path is not None else _absolute(cwd, cwd)
    if not project_dir.is_dir():
        shown = path if path is not None else project_dir
        raise ConfigurationError(f"project dir not found: {shown}")
    return project_dir


def _first_file(directory: Path) -> tuple[Path | None, list[Path]]:
    candidates = [directory / name for name in DOCKERFILE_CANDIDATES]
    for candidate in candidates:
        if candidate.is_file():
            return candidate, candidates
    return None, candidates


def resolve_dockerfile(
    explicit: Path | None,
    prefer_local: bool,
    cwd: Path,
    config_dir: Path,
) -> Path:
    """Pick the Dockerfile to build from.

    Precedence: *explicit* (returned unchecked; see :func:`validate_dockerfile`),
    then ``rocky``/``debian`` in *cwd* when *prefer_local*, otherwise
    ``rocky``/``debian`` in *config_dir*.
    """
    if explicit is not None:
        return explicit

    if prefer_local:
        found, tried = _first_file(cwd)
        if found is not None:
            return found
        raise ConfigurationError(
            "no Dockerfile found in current directory "
            f"(looked for {' and '.join(str(p) for p in tried)})"
        )

    found, tried = _first_file(config_dir)
    if found is not None:
        return found
    raise ConfigurationError(
        f"no Dockerfile found (looked for {' and '.join(str(p) for p in tried)}); "
        "use --dockerfile, --local-dockerfile, or DAVY_DOCKERFILE"
    )


def validate_dockerfile(dockerfile: Path, cwd: Path) -> tuple[Path, Path]:
    """Return ``(dockerfile, context_dir)`` as absolute paths.

    The build context is the directory holding the Dockerfile.
    """
    resolved = _absolute(dockerfile, cwd)
    if not resolved.is_file():
        raise ConfigurationError(f"Dockerfile not found at: {dockerfile}")
    return resolved, resolved.parent


def default_container_name(project_dir: Path, now: datetime | None = None) -> str:
    """``davy-<basename>-<YYYYMMDD-HHMMSS>`` using local time."""
    base = project_dir.name or "project"
    timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"davy-{base}-{timestamp}"


def parse_unix_socket_from_docker_host(docker_host: str) -> Path | None:
    """Extract the socket path from a ``unix://`` DOCKER_HOST value."""
    if not docker_host.startswith(_UNIX_SCHEME):
        return None
    path = docker_host[len(_UNIX_SCHEME) :]
    return Path(path) if path else None


def resolve_docker_socket(
    override: Path | None,
    docker_host: str | None,
    cwd: Path | None = None,
) -> DockerSocket:
    """Locate the docker control socket to bind into the sandbox.

    Precedence: explicit override, then a ``unix://`` DOCKER_HOST, then
    ``/var/run/docker.sock``. A non-unix DOCKER_HOST without an override is
    an error since there is no local socket to mount. A relative override is
    taken against *cwd*.
    """
    if override is not None:
        socket_path = _absolute(override, cwd or Path.cwd())
    elif docker_host:
        parsed = parse_unix_socket_from_docker_host(docker_host)
        if parsed is None:
            raise ConfigurationError(
                f"DOCKER_HOST is set to '{docker_host}', but --docker needs a local "
                "unix socket. Set --docker-sock or DAVY_DOCKER_SOCK."
            )
        socket_path = parsed
    else:
        socket_path = DEFAULT_DOCKER_SOCK

    try:
        st = socket_path.stat()
    except OSError as exc:
        raise ConfigurationError(f"docker socket not found: {socket_path}") from exc
    if not stat.S_ISSOCK(st.st_mode):
        raise ValidationError(f"docker socket path is not a unix socket: {socket_path}")

    return DockerSocket(path=socket_path, gid=st.st_gid)
