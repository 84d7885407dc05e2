"""Process exit codes.

The release commands only distinguish success from failure: any validation
or pipeline problem exits with 1.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    FAILED = 1

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
