from .core import VerificationRunner, parse_failures

from .exceptions import (
    VerificationExceptions,
    DependencyInstallError,
    VerificationError,
)

__all__ = [
    "VerificationRunner",
    "parse_failures",
    "VerificationExceptions",
    "DependencyInstallError",
    "VerificationError",
]
