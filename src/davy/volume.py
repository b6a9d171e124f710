"""Persistent Claude auth volume lifecycle.

A fresh named volume is root-owned and empty, so before the sandbox user
can write to it a throwaway root container lays out the expected skeleton
and hands ownership to the host uid/gid. Both steps are idempotent.
"""

from __future__ import annotations

from davy.docker import ContainerRuntime
from davy.logger import logger

CLAUDE_AUTH_MOUNT = "/home/dev/.claude-auth"
_INIT_MOUNT = "/auth"


def default_volume_name(uid: int) -> str:
    return f"davy-claude-auth-{uid}-v1"


def volume_init_script(uid: int, gid: int) -> str:
    return (
        f"mkdir -p {_INIT_MOUNT}/.claude && touch {_INIT_MOUNT}/.claude.json"
        f" && chown -R {uid}:{gid} {_INIT_MOUNT}"
    )


def ensure_claude_volume_ready(
    runtime: ContainerRuntime,
    volume: str,
    image: str,
    uid: int,
    gid: int,
) -> None:
    """Create *volume* if needed and initialize it for the host user."""
    runtime.volume_create(volume)
    runtime.run_checked(
        [
            "run",
            "--rm",
            "--user",
            "0:0",
            "-v",
            f"{volume}:{_INIT_MOUNT}",
            image,
            "bash",
            "-lc",
            volume_init_script(uid, gid),
        ],
        f"{runtime.cli} run (initialize Claude auth volume)",
    )
    logger.debug("Claude auth volume ready", volume=volume, uid=uid, gid=gid)


def reset_claude_auth_volume(runtime: ContainerRuntime, volume: str) -> bool:
    """Delete the Claude auth volume. Returns False if it did not exist."""
    if not runtime.volume_exists(volume):
        logger.info("Claude auth volume does not exist", volume=volume)
        return False
    runtime.volume_remove(volume)
    logger.info("Removed Claude auth volume", volume=volume)
    return True
