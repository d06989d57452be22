"""
Thin wrapper around the Azure CLI (``az``).

Every external lookup made by the Cortex Cloud Azure checkers goes through
``execute``: the command is built with ``AzCmd``, run with a bounded timeout,
and failures are raised as ``AzCliError`` subclasses so callers can decide
whether a failure is fatal or should degrade to an empty result.
"""

import json
import shutil
import subprocess
from logging import getLogger
from typing import Any

log = getLogger(__name__)

# Seconds allowed for a single az invocation
DEFAULT_TIMEOUT = 60

AUTHORIZATION_ERROR = "AuthorizationFailed"
NOT_LOGGED_IN_ERRORS = ("Please run 'az login'", "az login")


class AzCliError(Exception):
    """An az command failed"""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class AzAuthError(AzCliError):
    pass


class AzLoginError(AzCliError):
    pass


class AzTimeoutError(AzCliError):
    pass


class AzCliNotFoundError(AzCliError):
    pass


class AzCmd:
    """Builder for Azure CLI commands."""

    def __init__(self, service: str, action: str = ""):
        """Initialize with service and action (e.g., 'role assignment', 'list')."""
        self.cmd = service.split() + action.split()

    def param(self, key: str, value: str) -> "AzCmd":
        """Adds a key-value pair parameter"""
        self.cmd.extend([key, value])
        return self

    def flag(self, flag: str) -> "AzCmd":
        """Adds a flag to the command"""
        self.cmd.append(flag)
        return self

    def output(self, fmt: str) -> "AzCmd":
        if "--output" in self.cmd or "-o" in self.cmd:
            return self
        return self.param("--output", fmt)

    def __str__(self) -> str:
        return "az " + " ".join(self.cmd)


def az_installed() -> bool:
    return shutil.which("az") is not None


def execute(az_cmd: AzCmd, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run an Azure CLI command and return its stdout or raise AzCliError."""
    full_command = ["az"] + az_cmd.cmd
    log.debug(f"Running: {az_cmd}")

    try:
        result = subprocess.run(full_command, capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as e:
        raise AzTimeoutError(f"Command timed out after {timeout}s: {az_cmd}") from e
    except FileNotFoundError as e:
        raise AzCliNotFoundError("Azure CLI ('az') is not installed") from e

    if result.returncode != 0:
        stderr = result.stderr or ""
        log.debug(f"Command failed: {az_cmd}\n{stderr}")
        if AUTHORIZATION_ERROR in stderr:
            raise AzAuthError(f"Insufficient permissions when executing '{az_cmd}'", stderr)
        if any(marker in stderr for marker in NOT_LOGGED_IN_ERRORS):
            raise AzLoginError("Azure CLI not authenticated. Run 'az login' first.", stderr)
        raise AzCliError(f"Command failed: {az_cmd}", stderr)

    return result.stdout


def execute_json(az_cmd: AzCmd, timeout: float = DEFAULT_TIMEOUT) -> Any:
    """Run a command with JSON output and decode it (empty output decodes to None)"""
    output = execute(az_cmd.output("json"), timeout=timeout)
    if not output.strip():
        return None
    try:
        return json.loads(output)
    except ValueError as e:
        raise AzCliError(f"Could not decode JSON output of '{az_cmd}': {e}") from e


def execute_tsv(az_cmd: AzCmd, timeout: float = DEFAULT_TIMEOUT) -> str:
    return execute(az_cmd.output("tsv"), timeout=timeout).strip()
