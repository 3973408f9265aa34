"""Git CLI orchestration utilities."""

from .runner import (
    GitExecutionResult,
    GitNotFoundError,
    GitRunner,
    GitRunnerError,
    GitTimeoutError,
)

__all__ = [
    "GitRunner",
    "GitExecutionResult",
    "GitRunnerError",
    "GitNotFoundError",
    "GitTimeoutError",
]
