"""Error kinds raised while resolving and launching a sandbox.

Everything here is fatal: the CLI prints the message prefixed with ``davy:``
and exits 1. Optional-mount problems are warnings and never raised.
"""

from __future__ import annotations


class DavyError(Exception):
    """Base class for errors reported to the user before exiting."""


class ConfigurationError(DavyError):
    """Missing or invalid input: unresolved paths, no Dockerfile, bad flags."""


class ValidationError(DavyError):
    """A host resource exists in the wrong shape or carries no usable content."""


class ExternalCommandError(DavyError):
    """The container runtime failed or could not be invoked."""

    def __init__(self, name: str, returncode: int | None = None, detail: str | None = None):
        self.name = name
        self.returncode = returncode
        self.detail = detail
        super().__init__(self._format())

    def _format(self) -> str:
        if self.detail is not None:
            return f"failed to run {self.name}: {self.detail}"
        if self.returncode is None:
            return f"{self.name} failed"
        if self.returncode < 0:
            return f"{self.name} terminated by signal {-self.returncode}"
        return f"{self.name} exited with status code {self.returncode}"
