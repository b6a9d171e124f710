"""Entry point for `davy` / `python -m davy`.

Usage:
    davy [options] [DOCKER_ARG ...] [-- COMMAND ...]
    davy auth claude reset

Unrecognized arguments before ``--`` are passed to ``docker run``;
everything after the first ``--`` is the command run in the sandbox.
"""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from davy.errors import DavyError
from davy.types import LaunchRequest

DEFAULT_SSH_PORT = 222
_COMMAND_TERMINATOR = "--"


def _package_version() -> str:
    try:
        return version("davy")
    except PackageNotFoundError:
        return "unknown"


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from None
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range (1-65535): {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="davy",
        description="Docker-based sandbox runner for agent CLIs",
        usage="%(prog)s [options] [DOCKER_ARG ...] [-- COMMAND ...]",
        epilog="Subcommands: 'davy auth claude reset' deletes the Claude auth volume.",
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    parser.add_argument(
        "-p", "--project", dest="project_dir", type=Path, metavar="DIR",
        help="Mount project directory at /project (default: current directory)",
    )
    parser.add_argument("-n", "--name", help="Container name (default: davy-<folder>-<timestamp>)")
    parser.add_argument(
        "--docker", dest="with_docker_sock", action="store_true",
        help="Also mount host docker socket",
    )
    parser.add_argument(
        "--docker-sock", type=Path, metavar="PATH",
        help="Docker socket path to mount (defaults to DAVY_DOCKER_SOCK, DOCKER_HOST "
        "unix://, then /var/run/docker.sock)",
    )
    parser.add_argument(
        "--rebuild", action="store_true",
        help="Force rebuild of the image before running (pull + no cache)",
    )
    parser.add_argument("--no-build", action="store_true", help="Do not build; fail if image is missing")
    parser.add_argument("--keep", action="store_true", help="Do not remove the container on exit")
    parser.add_argument(
        "-s", "--expose-ssh", nargs="?", const=DEFAULT_SSH_PORT, type=_port, metavar="PORT",
        help=f"Publish host PORT to container port 22 (default: {DEFAULT_SSH_PORT})",
    )
    parser.add_argument(
        "-e", "--env", action="append", default=[], metavar="KEY[=VALUE]",
        help="Additional environment variable; a bare KEY forwards the host value "
        "(repeatable)",
    )
    parser.add_argument(
        "--pass-env", action="append", default=[], metavar="KEY",
        help="Forward host environment variable by key name (repeatable)",
    )
    parser.add_argument(
        "--auth-pi", "--pi-auth", dest="auth_pi", action="store_true",
        help="Mount host Pi auth",
    )
    parser.add_argument(
        "--auth-codex", "--codex-auth", dest="auth_codex", action="store_true",
        help="Mount host Codex auth",
    )
    parser.add_argument(
        "--auth-gemini", "--gemini-auth", dest="auth_gemini", action="store_true",
        help="Mount host Gemini auth",
    )
    parser.add_argument(
        "--auth-claude", "--claude-auth", dest="auth_claude", action="store_true",
        help="Mount persistent Claude auth volume",
    )
    parser.add_argument(
        "-a", "--auth-all", action="store_true",
        help="Enable all auth mounts (pi, codex, gemini, claude); missing sources are skipped",
    )
    parser.add_argument("--image", help="Docker image tag (default: DAVY_IMAGE or davy-sandbox:latest)")
    parser.add_argument(
        "--dockerfile", type=Path, metavar="PATH",
        help="Dockerfile to build (defaults to ~/.config/davy/rocky.Dockerfile, "
        "then ~/.config/davy/debian.Dockerfile)",
    )
    parser.add_argument(
        "--local-dockerfile", action="store_true",
        help="Use Dockerfile from current directory instead of ~/.config/davy",
    )
    return parser


def _build_auth_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="davy auth", description="Manage persistent auth state")
    providers = parser.add_subparsers(dest="provider", required=True)
    claude = providers.add_parser("claude", help="Claude auth volume management")
    actions = claude.add_subparsers(dest="action", required=True)
    actions.add_parser("reset", help="Delete the Claude auth volume")
    return parser


def parse_launch_request(argv: list[str]) -> LaunchRequest:
    """Parse run-mode arguments into a :class:`LaunchRequest`."""
    if _COMMAND_TERMINATOR in argv:
        split = argv.index(_COMMAND_TERMINATOR)
        options, command = argv[:split], argv[split + 1 :]
    else:
        options, command = argv, []

    args, docker_args = build_parser().parse_known_args(options)
    return LaunchRequest(
        project_dir=args.project_dir,
        name=args.name,
        image=args.image,
        dockerfile=args.dockerfile,
        local_dockerfile=args.local_dockerfile,
        rebuild=args.rebuild,
        no_build=args.no_build,
        keep=args.keep,
        expose_ssh=args.expose_ssh,
        with_docker_sock=args.with_docker_sock,
        docker_sock=args.docker_sock,
        auth_pi=args.auth_pi,
        auth_codex=args.auth_codex,
        auth_gemini=args.auth_gemini,
        auth_claude=args.auth_claude,
        auth_all=args.auth_all,
        env=tuple(args.env),
        pass_env=tuple(args.pass_env),
        docker_args=tuple(docker_args),
        command=tuple(command),
    )


def _reset_claude_auth() -> int:
    from davy.config import get_settings
    from davy.docker import ContainerRuntime
    from davy.volume import reset_claude_auth_volume

    s = get_settings()
    volume = s.claude_auth_volume_name
    if reset_claude_auth_volume(ContainerRuntime(s.runtime), volume):
        print(f"davy: removed Claude auth volume '{volume}'", file=sys.stderr)
    else:
        print(f"davy: Claude auth volume '{volume}' does not exist", file=sys.stderr)
    return 0


def _launch(request: LaunchRequest) -> int:
    from davy.config import get_settings
    from davy.invocation import launch

    return launch(request, get_settings())


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        if argv and argv[0] == "auth":
            _build_auth_parser().parse_args(argv[1:])
            return _reset_claude_auth()
        return _launch(parse_launch_request(argv))
    except DavyError as exc:
        print(f"davy: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
