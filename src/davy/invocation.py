"""Launch orchestration: resolve a request, build the image, run the sandbox.

:func:`build_launch_plan` performs every host check up front, so by the
time :func:`launch` issues ``docker run`` nothing can fail on configuration
and no half-started container is left behind.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

from davy.bootstrap import compose_command, select_preludes
from davy.config import Settings
from davy.docker import ContainerRuntime
from davy.errors import ConfigurationError, ExternalCommandError
from davy.logger import logger
from davy.mounts import plan_mounts
from davy.resolver import (
    default_container_name,
    resolve_docker_socket,
    resolve_dockerfile,
    resolve_project_dir,
    validate_dockerfile,
)
from davy.ssh_keys import AUTH_KEYS_ENV, collect_authorized_keys, encode_authorized_keys
from davy.types import LaunchRequest, ResolvedLaunchPlan
from davy.volume import CLAUDE_AUTH_MOUNT, ensure_claude_volume_ready

PROJECT_MOUNT = "/project"
CONTAINER_DOCKER_SOCK = "/var/run/docker.sock"
CONTAINER_SSH_PORT = 22


def _env_entries(request: LaunchRequest, environ: Mapping[str, str]) -> list[str]:
    entries: list[str] = []
    for entry in request.env:
        # bare KEY is forwarded by docker from the host environment
        if not entry.partition("=")[0]:
            raise ConfigurationError(f"invalid --env value (expected KEY[=VALUE]): {entry!r}")
        entries.append(entry)
    for key in request.pass_env:
        if not key or "=" in key:
            raise ConfigurationError(f"invalid --pass-env key: {key!r}")
        entries.append(f"{key}={environ.get(key, '')}")
    return entries


def build_launch_plan(
    request: LaunchRequest,
    settings: Settings,
    *,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> ResolvedLaunchPlan:
    """Validate *request* against the host and produce a complete launch plan.

    Raises:
        ConfigurationError: unresolved paths, missing Dockerfile, empty env keys.
        ValidationError: wrong-typed mount sources or socket, no SSH keys.
    """
    cwd = cwd or Path.cwd()
    environ = os.environ if environ is None else environ

    project_dir = resolve_project_dir(request.project_dir, cwd)
    chosen = resolve_dockerfile(
        request.dockerfile or settings.dockerfile,
        request.local_dockerfile,
        cwd,
        settings.config_dir,
    )
    dockerfile, context_dir = validate_dockerfile(chosen, cwd)

    claude_auth = request.auth_claude or request.auth_all
    env = _env_entries(request, environ)

    mount_plan = plan_mounts(request, settings.home_dir)
    env.extend(mount_plan.env)

    docker_socket = None
    if request.with_docker_sock:
        docker_socket = resolve_docker_socket(
            request.docker_sock or settings.docker_sock, settings.docker_host, cwd
        )

    if request.expose_ssh is not None:
        keys = collect_authorized_keys(settings.home_dir, settings.ssh_authorized_keys_file)
        env.append(f"{AUTH_KEYS_ENV}={encode_authorized_keys(keys)}")

    if request.rebuild and request.no_build:
        logger.warning("--rebuild and --no-build both set; rebuilding")

    preludes = select_preludes(expose_ssh=request.expose_ssh is not None, claude_auth=claude_auth)

    return ResolvedLaunchPlan(
        project_dir=project_dir,
        dockerfile=dockerfile,
        context_dir=context_dir,
        image=request.image or settings.image,
        name=request.name or default_container_name(project_dir, now),
        host_uid=settings.host_uid,
        host_gid=settings.host_gid,
        claude_auth_volume=settings.claude_auth_volume_name,
        command=compose_command(request.command, preludes),
        keep=request.keep,
        rebuild=request.rebuild,
        no_build=request.no_build,
        claude_auth=claude_auth,
        expose_ssh=request.expose_ssh,
        docker_socket=docker_socket,
        mounts=mount_plan.mounts,
        env=env,
        docker_args=list(request.docker_args),
        warnings=mount_plan.warnings,
    )


def ensure_image(plan: ResolvedLaunchPlan, runtime: ContainerRuntime) -> None:
    """Build the image when the plan calls for it.

    ``rebuild`` always builds with ``--pull --no-cache``. Otherwise the image
    is built only when missing, unless ``no_build`` is set, which turns a
    missing image into an error.
    """
    build_args = {"USER_UID": str(plan.host_uid), "USER_GID": str(plan.host_gid)}

    if plan.rebuild:
        logger.info("Rebuilding image", image=plan.image, dockerfile=str(plan.dockerfile))
        runtime.build(
            dockerfile=plan.dockerfile,
            context_dir=plan.context_dir,
            tag=plan.image,
            build_args=build_args,
            pull=True,
            no_cache=True,
        )
        return

    if runtime.image_exists(plan.image):
        return

    if plan.no_build:
        raise ConfigurationError(f"image '{plan.image}' not found (and --no-build was set)")

    logger.info("Image not found, building", image=plan.image, dockerfile=str(plan.dockerfile))
    runtime.build(
        dockerfile=plan.dockerfile,
        context_dir=plan.context_dir,
        tag=plan.image,
        build_args=build_args,
    )


def build_run_args(plan: ResolvedLaunchPlan) -> list[str]:
    """Assemble ``docker run`` arguments (without the CLI name) in fixed order."""
    args = ["run", "-it"]
    if not plan.keep:
        args.append("--rm")

    args.extend(["--name", plan.name])
    args.extend(["-v", f"{plan.project_dir}:{PROJECT_MOUNT}", "-w", PROJECT_MOUNT])

    if plan.claude_auth:
        args.extend(
            ["--mount", f"type=volume,src={plan.claude_auth_volume},dst={CLAUDE_AUTH_MOUNT}"]
        )

    if plan.docker_socket is not None:
        args.extend(["-v", f"{plan.docker_socket.path}:{CONTAINER_DOCKER_SOCK}"])
        if plan.docker_socket.gid is not None:
            args.extend(["--group-add", str(plan.docker_socket.gid)])

    if plan.expose_ssh is not None:
        args.extend(["-p", f"{plan.expose_ssh}:{CONTAINER_SSH_PORT}"])

    for mount in plan.mounts:
        args.extend(mount.as_docker_args())

    for entry in plan.env:
        args.extend(["-e", entry])

    args.extend(plan.docker_args)
    args.append(plan.image)
    args.extend(plan.command)
    return args


def _announce(plan: ResolvedLaunchPlan) -> None:
    if plan.docker_socket is not None:
        logger.warning(
            "Docker socket mounted; container can control host Docker",
            socket=str(plan.docker_socket.path),
        )
        if plan.docker_socket.gid is not None:
            logger.info(
                "Adding supplementary group for docker socket access",
                gid=plan.docker_socket.gid,
            )
    if plan.expose_ssh is not None:
        logger.info(
            "Exposing SSH (user dev, key auth only)",
            host_port=plan.expose_ssh,
            container_port=CONTAINER_SSH_PORT,
        )
    if plan.claude_auth:
        logger.info(
            "Claude auth volume mounted",
            volume=plan.claude_auth_volume,
            target=CLAUDE_AUTH_MOUNT,
        )
        logger.info("First use requires running 'claude login' in-container")


def launch(
    request: LaunchRequest,
    settings: Settings,
    runtime: ContainerRuntime | None = None,
) -> int:
    """Run a sandbox for *request* and return the container's exit code.

    Raises:
        DavyError: any configuration, validation or runtime failure.
    """
    if runtime is None:
        runtime = ContainerRuntime(settings.runtime)
    if not runtime.is_available():
        raise ExternalCommandError(runtime.cli, detail="not found on PATH")
    plan = build_launch_plan(request, settings)

    ensure_image(plan, runtime)
    if plan.claude_auth:
        ensure_claude_volume_ready(
            runtime, plan.claude_auth_volume, plan.image, plan.host_uid, plan.host_gid
        )

    _announce(plan)
    returncode = runtime.run_interactive(build_run_args(plan))
    if returncode < 0:
        raise ExternalCommandError(f"{runtime.cli} run", returncode)
    return returncode
