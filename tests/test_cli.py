"""Tests for command-line parsing and the entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from davy.__main__ import main, parse_launch_request
from davy.errors import ConfigurationError


class TestParseLaunchRequest:
    def test_extra_docker_args_and_command(self):
        request = parse_launch_request(["--name", "my-name", "--privileged", "--", "echo", "ok"])

        assert request.name == "my-name"
        assert request.docker_args == ("--privileged",)
        assert request.command == ("echo", "ok")

    def test_passthrough_docker_args_without_command(self):
        request = parse_launch_request(["--privileged", "--network", "host"])

        assert request.docker_args == ("--privileged", "--network", "host")
        assert request.command == ()

    def test_only_first_terminator_splits(self):
        request = parse_launch_request(["--", "sh", "-c", "x", "--", "y"])
        assert request.command == ("sh", "-c", "x", "--", "y")
        assert request.docker_args == ()

    def test_davy_options_after_command_are_not_parsed(self):
        request = parse_launch_request(["--", "tool", "--keep"])
        assert not request.keep
        assert request.command == ("tool", "--keep")

    def test_expose_ssh_defaults_to_222(self):
        assert parse_launch_request(["--expose-ssh"]).expose_ssh == 222

    def test_expose_ssh_explicit_port(self):
        assert parse_launch_request(["--expose-ssh", "2022"]).expose_ssh == 2022
        assert parse_launch_request(["-s", "2022"]).expose_ssh == 2022

    def test_expose_ssh_absent(self):
        assert parse_launch_request([]).expose_ssh is None

    @pytest.mark.parametrize("port", ["0", "65536", "ssh"])
    def test_expose_ssh_rejects_bad_port(self, port):
        with pytest.raises(SystemExit):
            parse_launch_request(["--expose-ssh", port])

    def test_docker_sock_path(self):
        request = parse_launch_request(["--docker", "--docker-sock", "/tmp/docker.sock"])
        assert request.with_docker_sock
        assert request.docker_sock == Path("/tmp/docker.sock")

    def test_local_dockerfile_flag(self):
        assert parse_launch_request(["--local-dockerfile"]).local_dockerfile

    def test_repeatable_env_and_pass_env(self):
        request = parse_launch_request(["-e", "A=1", "--env", "B=2", "--pass-env", "HOME"])
        assert request.env == ("A=1", "B=2")
        assert request.pass_env == ("HOME",)

    def test_auth_aliases(self):
        request = parse_launch_request(
            ["--pi-auth", "--codex-auth", "--gemini-auth", "--claude-auth"]
        )
        assert request.auth_pi and request.auth_codex
        assert request.auth_gemini and request.auth_claude
        assert not request.auth_all

    def test_auth_all_short_flag(self):
        assert parse_launch_request(["-a"]).auth_all

    def test_build_flags(self):
        request = parse_launch_request(["--rebuild", "--no-build", "--keep"])
        assert request.rebuild and request.no_build and request.keep

    def test_project_and_image(self):
        request = parse_launch_request(["-p", "~/code", "--image", "x:1"])
        assert request.project_dir == Path("~/code")
        assert request.image == "x:1"


class TestMain:
    def test_returns_launch_exit_code(self):
        with (
            patch("davy.config.get_settings"),
            patch("davy.invocation.launch", return_value=7) as launch,
        ):
            assert main(["--keep", "--", "make"]) == 7
        request = launch.call_args.args[0]
        assert request.keep
        assert request.command == ("make",)

    def test_davy_error_exits_one_with_prefix(self, capsys):
        with (
            patch("davy.config.get_settings"),
            patch(
                "davy.invocation.launch",
                side_effect=ConfigurationError("project dir not found: /nope"),
            ),
        ):
            assert main(["-p", "/nope"]) == 1
        assert "davy: project dir not found: /nope" in capsys.readouterr().err

    def test_auth_claude_reset(self, capsys):
        with (
            patch("davy.config.get_settings") as get_settings,
            patch("davy.volume.reset_claude_auth_volume", return_value=True) as reset,
        ):
            get_settings.return_value.claude_auth_volume_name = "vol"
            get_settings.return_value.runtime = "docker"
            assert main(["auth", "claude", "reset"]) == 0

        assert reset.call_args.args[1] == "vol"
        assert "removed Claude auth volume 'vol'" in capsys.readouterr().err

    def test_auth_claude_reset_missing_volume(self, capsys):
        with (
            patch("davy.config.get_settings") as get_settings,
            patch("davy.volume.reset_claude_auth_volume", return_value=False),
        ):
            get_settings.return_value.claude_auth_volume_name = "vol"
            get_settings.return_value.runtime = "docker"
            assert main(["auth", "claude", "reset"]) == 0
        assert "does not exist" in capsys.readouterr().err

    def test_auth_requires_subcommand(self):
        with pytest.raises(SystemExit):
            main(["auth"])
