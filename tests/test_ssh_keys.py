"""Tests for authorized-keys aggregation."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from davy.errors import ConfigurationError, ValidationError
from davy.ssh_keys import collect_authorized_keys, encode_authorized_keys


@pytest.fixture
def ssh_dir(home: Path) -> Path:
    d = home / ".ssh"
    d.mkdir()
    return d


class TestCollectAuthorizedKeys:
    def test_authorized_keys_then_sorted_pub_files(self, home: Path, ssh_dir: Path):
        (ssh_dir / "authorized_keys").write_text("ssh-ed25519 AAA host\n")
        (ssh_dir / "z.pub").write_text("ssh-ed25519 ZZZ z\n")
        (ssh_dir / "a.pub").write_text("ssh-rsa BBB a\n")
        (ssh_dir / "id_ed25519").write_text("PRIVATE KEY\n")

        result = collect_authorized_keys(home)

        assert result == "ssh-ed25519 AAA host\nssh-rsa BBB a\nssh-ed25519 ZZZ z\n"

    def test_duplicates_across_files_kept_once_first_seen(self, home: Path, ssh_dir: Path):
        (ssh_dir / "authorized_keys").write_text("key-b\nkey-a\nkey-b\n")
        (ssh_dir / "id.pub").write_text("  key-a  \nkey-c\n")

        assert collect_authorized_keys(home) == "key-b\nkey-a\nkey-c\n"

    def test_blank_lines_dropped_single_trailing_newline(self, home: Path, ssh_dir: Path):
        (ssh_dir / "id.pub").write_text("\n\n  key-a\n\n   \nkey-b\n\n")

        result = collect_authorized_keys(home)

        assert result == "key-a\nkey-b\n"
        assert not result.endswith("\n\n")

    def test_override_is_exclusive(self, home: Path, ssh_dir: Path, tmp_path: Path):
        (ssh_dir / "id.pub").write_text("from-ssh-dir\n")
        override = tmp_path / "keys"
        override.write_text("from-override\nfrom-override\n")

        assert collect_authorized_keys(home, override) == "from-override\n"

    def test_missing_override_raises(self, home: Path, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="DAVY_SSH_AUTHORIZED_KEYS_FILE"):
            collect_authorized_keys(home, tmp_path / "missing")

    def test_no_ssh_dir_raises(self, home: Path):
        with pytest.raises(ValidationError, match="no SSH public keys found"):
            collect_authorized_keys(home)

    def test_only_blank_content_raises(self, home: Path, ssh_dir: Path):
        (ssh_dir / "authorized_keys").write_text("\n   \n")
        (ssh_dir / "id.pub").write_text("")
        with pytest.raises(ValidationError):
            collect_authorized_keys(home)

    def test_empty_override_raises(self, home: Path, tmp_path: Path):
        override = tmp_path / "keys"
        override.write_text("\n")
        with pytest.raises(ValidationError):
            collect_authorized_keys(home, override)

    def test_pub_directory_is_ignored(self, home: Path, ssh_dir: Path):
        (ssh_dir / "weird.pub").mkdir()
        (ssh_dir / "id.pub").write_text("key-a\n")
        assert collect_authorized_keys(home) == "key-a\n"


class TestEncodeAuthorizedKeys:
    def test_standard_base64(self):
        encoded = encode_authorized_keys("key-a\n")
        assert encoded == "a2V5LWEK"
        assert base64.b64decode(encoded).decode() == "key-a\n"
