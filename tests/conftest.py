"""Shared test fixtures for davy."""

from __future__ import annotations

import shutil
import socket
import tempfile
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Shared helpers (plain functions importable by test files)
# ---------------------------------------------------------------------------

# Cached property names that must be set via __dict__ (not model_construct).
_CACHED_PROPERTY_NAMES = frozenset(
    {
        "home_dir",
        "config_dir",
        "host_uid",
        "host_gid",
        "claude_auth_volume_name",
    }
)


def make_settings(**overrides):
    """Create a Settings object without reading the real environment.

    Accepts both model fields (image, dockerfile, ...) and cached property
    overrides (home_dir, host_uid, ...).

    Usage::

        s = make_settings(home_dir=tmp_path)
        s = make_settings(image="custom:tag", host_uid=1000, host_gid=1000)
    """
    from davy.config import Settings

    cached = {k: overrides.pop(k) for k in list(overrides) if k in _CACHED_PROPERTY_NAMES}

    defaults = {
        "image": "davy-sandbox:latest",
        "dockerfile": None,
        "docker_sock": None,
        "claude_auth_volume": None,
        "ssh_authorized_keys_file": None,
        "runtime": "docker",
        "docker_host": None,
    }
    defaults.update(overrides)
    settings = Settings.model_construct(**defaults)
    for key, value in cached.items():
        settings.__dict__[key] = value
    return settings


def write_dockerfile(directory: Path, name: str = "rocky.Dockerfile") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("FROM rockylinux:9\n")
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def unix_socket():
    """A bound unix socket under a short path (sun_path is limited to ~108 bytes)."""
    directory = tempfile.mkdtemp(prefix="davy")
    path = Path(directory) / "d.sock"
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.bind(str(path))
    try:
        yield path
    finally:
        sock.close()
        shutil.rmtree(directory, ignore_errors=True)
