from .core import DockerCli, authenticate, describe, image_id
from .models import CommandResult
from .utils import CommandRunner, redact, run_command

from .exceptions import (
    DockerExceptions,
    DockerNotFoundError,
    BuildError,
    AuthError,
    PublishError,
    PullError,
    LaunchError,
    ReadinessTimeoutError,
)

__all__ = [
    "DockerCli",
    "authenticate",
    "CommandResult",
    "CommandRunner",
    "describe",
    "image_id",
    "redact",
    "run_command",
    "DockerExceptions",
    "DockerNotFoundError",
    "BuildError",
    "AuthError",
    "PublishError",
    "PullError",
    "LaunchError",
    "ReadinessTimeoutError",
]
