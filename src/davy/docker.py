"""Container runtime CLI wrappers.

Every call is a blocking ``subprocess.run`` with no timeout: builds and the
interactive session can legitimately run for hours, and Ctrl-C reaches the
child through the terminal's process group. Nothing is retried.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from davy.errors import ExternalCommandError
from davy.logger import logger


@dataclass(frozen=True)
class ContainerRuntime:
    """A docker-compatible CLI (``docker`` or ``podman``)."""

    cli: str = "docker"

    def is_available(self) -> bool:
        return shutil.which(self.cli) is not None

    def _run(self, args: list[str], name: str, *, quiet: bool) -> int:
        cmd = [self.cli, *args]
        logger.debug("Running container CLI", command=name, argv=cmd)
        try:
            if quiet:
                result = subprocess.run(
                    cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
                )
            else:
                result = subprocess.run(cmd)
        except OSError as exc:
            raise ExternalCommandError(name, detail=str(exc)) from exc
        return result.returncode

    def run_checked(self, args: list[str], name: str) -> None:
        """Run with inherited stdio; raise unless the command exits 0."""
        returncode = self._run(args, name, quiet=False)
        if returncode != 0:
            raise ExternalCommandError(name, returncode)

    def run_interactive(self, args: list[str]) -> int:
        """Run ``<cli> run ...`` attached to the terminal and return its exit code."""
        return self._run(args, f"{self.cli} run", quiet=False)

    def probe(self, args: list[str], name: str) -> bool:
        """Run a silent existence check; True on exit status 0."""
        return self._run(args, name, quiet=True) == 0

    # --- Images ---

    def image_exists(self, image: str) -> bool:
        return self.probe(["image", "inspect", image], f"{self.cli} image inspect")

    def build(
        self,
        *,
        dockerfile: Path,
        context_dir: Path,
        tag: str,
        build_args: dict[str, str],
        pull: bool = False,
        no_cache: bool = False,
    ) -> None:
        args = ["build"]
        if pull:
            args.append("--pull")
        if no_cache:
            args.append("--no-cache")
        for key, value in build_args.items():
            args.extend(["--build-arg", f"{key}={value}"])
        args.extend(["-f", str(dockerfile), "-t", tag, str(context_dir)])
        self.run_checked(args, f"{self.cli} build")

    # --- Volumes ---

    def volume_exists(self, name: str) -> bool:
        return self.probe(["volume", "inspect", name], f"{self.cli} volume inspect")

    def volume_create(self, name: str) -> None:
        """Create a named volume; a no-op when it already exists."""
        self.run_checked(["volume", "create", name], f"{self.cli} volume create")

    def volume_remove(self, name: str) -> None:
        self.run_checked(["volume", "rm", "-f", name], f"{self.cli} volume rm")
