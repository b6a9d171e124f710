"""Authorized-keys discovery for SSH exposure.

Collects public keys from the host into one deduplicated authorized_keys
payload. The payload is base64-encoded into a single env var so it survives
``docker run -e`` intact; the SSH prelude decodes it in-container.
"""

from __future__ import annotations

import base64
from pathlib import Path

from davy.errors import ConfigurationError, ValidationError
from davy.logger import logger

AUTH_KEYS_ENV = "DAVY_SSH_AUTH_KEYS_B64"


def _collect_key_lines(path: Path, seen: set[str], keys: list[str]) -> None:
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"failed to read SSH keys from {path}: {exc}") from exc

    for raw in content.splitlines():
        line = raw.strip()
        if line and line not in seen:
            seen.add(line)
            keys.append(line)


def _key_sources(home_dir: Path) -> list[Path]:
    ssh_dir = home_dir / ".ssh"
    sources: list[Path] = []
    authorized_keys = ssh_dir / "authorized_keys"
    if authorized_keys.is_file():
        sources.append(authorized_keys)
    if ssh_dir.is_dir():
        sources.extend(p for p in sorted(ssh_dir.glob("*.pub")) if p.is_file())
    return sources


def collect_authorized_keys(home_dir: Path, override: Path | None = None) -> str:
    """Return the newline-terminated authorized_keys text.

    With *override* set only that file is read. Otherwise
    ``~/.ssh/authorized_keys`` is read first, then ``~/.ssh/*.pub`` in sorted
    order. Each distinct trimmed line is kept once, in first-seen order.

    Raises:
        ConfigurationError: *override* is not a file, or a source is unreadable.
        ValidationError: no keys were found.
    """
    if override is not None:
        if not override.is_file():
            raise ConfigurationError(f"DAVY_SSH_AUTHORIZED_KEYS_FILE not found: {override}")
        sources = [override]
    else:
        sources = _key_sources(home_dir)

    seen: set[str] = set()
    keys: list[str] = []
    for source in sources:
        _collect_key_lines(source, seen, keys)

    if not keys:
        raise ValidationError(
            "no SSH public keys found. Add ~/.ssh/*.pub or set DAVY_SSH_AUTHORIZED_KEYS_FILE"
        )

    logger.debug("Collected SSH keys", count=len(keys), sources=[str(s) for s in sources])
    return "\n".join(keys) + "\n"


def encode_authorized_keys(content: str) -> str:
    return base64.b64encode(content.encode()).decode("ascii")
