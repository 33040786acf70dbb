"""
Error taxonomy for the harness.

Setup errors (locator, configuration, bootstrap) are fatal to a scenario.
CallError is the only transient kind; the polling verifier absorbs it and
reports DeadlineExceeded when readiness never arrives.
"""

from __future__ import annotations

from typing import Optional


class HarnessError(Exception):
    """Base class for every error raised by the harness."""


class ArtifactNotFound(HarnessError):
    """No module executable could be located."""


class AmbiguousArtifact(ArtifactNotFound):
    """More than one archive matched and strict lookup was requested."""


class ConfigInvalid(HarnessError, ValueError):
    """A configuration document violates a structural invariant."""


class BootstrapError(HarnessError):
    """Building a runtime instance from a configuration failed."""


class ModuleLaunchError(BootstrapError):
    """A module process could not be started or did not complete its handshake."""


class ComponentBindError(BootstrapError):
    """No module serves the requested model, or the module refused to build it."""


class ComponentNotFound(HarnessError, LookupError):
    """No component with the requested name exists in the runtime instance."""


class CallError(HarnessError):
    """A capability call failed (transport, driver-reported error or timeout)."""

    def __init__(self, message: str, method: Optional[str] = None):
        super().__init__(message)
        self.method = method


class DeadlineExceeded(HarnessError):
    """A bounded wait ran out of time."""

    def __init__(
        self,
        name: str,
        elapsed_s: float,
        timeout_s: float,
        attempts: int = 0,
    ):
        self.name = name
        self.elapsed_s = elapsed_s
        self.timeout_s = timeout_s
        self.attempts = attempts
        super().__init__(
            f"{name}: deadline exceeded after {elapsed_s:.2f}s "
            f"(timeout {timeout_s:.2f}s, {attempts} attempt(s))"
        )
