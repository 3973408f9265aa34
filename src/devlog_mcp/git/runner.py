"""Async runner for the git CLI."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Mapping

from .utils import sanitize_environment

DEFAULT_TIMEOUT = 120.0

_NOTHING_TO_COMMIT_MARKERS = (
    "nothing to commit",
    "nothing added to commit",
    "no changes added to commit",
)


class GitRunnerError(RuntimeError):
    """Base class for git runner errors."""


class GitNotFoundError(GitRunnerError):
    """Raised when the git executable cannot be located."""


class GitTimeoutError(GitRunnerError):
    """Raised when a git command does not finish within the configured timeout."""


@dataclass(slots=True)
class GitExecutionResult:
    """Holds the outcome of a git CLI invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def nothing_to_commit(self) -> bool:
        output = f"{self.stdout}\n{self.stderr}".lower()
        return any(marker in output for marker in _NOTHING_TO_COMMIT_MARKERS)

    @property
    def error_message(self) -> str:
        """Best human-readable explanation of a failed invocation."""

        message = self.stderr.strip() or self.stdout.strip()
        return message or f"git exited with code {self.returncode}"


class GitRunner:
    """Execute git CLI commands asynchronously."""

    def __init__(self, executable: Path | None = None, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._timeout = timeout

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    @property
    def timeout(self) -> float:
        return self._timeout

    async def version(self) -> GitExecutionResult:
        return await self._invoke("--version")

    async def work_tree_root(self, cwd: Path) -> GitExecutionResult:
        """Ask git whether ``cwd`` is inside a work tree and where its top level is."""

        return await self._invoke("rev-parse", "--is-inside-work-tree", "--show-toplevel", cwd=cwd)

    async def clone(self, url: str, destination: Path) -> GitExecutionResult:
        return await self._invoke("clone", url, str(destination), cwd=destination.parent)

    async def add(self, cwd: Path, pathspec: str) -> GitExecutionResult:
        return await self._invoke("add", pathspec, cwd=cwd)

    async def commit(self, cwd: Path, message: str) -> GitExecutionResult:
        return await self._invoke("commit", "-m", message, cwd=cwd)

    async def push(self, cwd: Path) -> GitExecutionResult:
        return await self._invoke("push", cwd=cwd)

    async def unpushed_count(self, cwd: Path) -> GitExecutionResult:
        return await self._invoke("rev-list", "--count", "@{upstream}..HEAD", cwd=cwd)

    async def status(self, cwd: Path, pathspec: str) -> GitExecutionResult:
        return await self._invoke("status", "--porcelain", "--", pathspec, cwd=cwd)

    async def _invoke(self, *args: str, cwd: Path | None = None) -> GitExecutionResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=sanitize_environment(),
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            await _terminate(process)
            raise GitTimeoutError(
                f"git {' '.join(args[:1])} timed out after {self._timeout:g}s"
            ) from exc
        except asyncio.CancelledError:
            await _terminate(process)
            raise
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return GitExecutionResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        process.kill()
        await process.wait()


class FakeGitRunner(GitRunner):
    """Test double that simulates git CLI responses.

    Responses are scripted per git subcommand (``"add"``, ``"commit"``, ...);
    each invocation consumes the next scripted result for its subcommand and
    falls back to a successful empty result once the script runs out.
    """

    def __init__(  # type: ignore[override]
        self,
        responses: Mapping[str, Iterable[GitExecutionResult | BaseException]] | None = None,
    ) -> None:
        self._responses = {name: list(items) for name, items in (responses or {}).items()}
        self._invocations: list[tuple[str, ...]] = []
        self._cwds: list[Path | None] = []
        self._executable_path = Path("/tmp/fake-git")
        self._timeout = DEFAULT_TIMEOUT
        self.on_invoke: Callable[[tuple[str, ...], Path | None], Awaitable[None]] | None = None

    def script(self, subcommand: str, *results: GitExecutionResult | BaseException) -> None:
        self._responses.setdefault(subcommand, []).extend(results)

    async def _invoke(self, *args: str, cwd: Path | None = None) -> GitExecutionResult:  # type: ignore[override]
        self._invocations.append(tuple(args))
        self._cwds.append(cwd)
        if self.on_invoke is not None:
            await self.on_invoke(args, cwd)
        queue = self._responses.get(args[0]) if args else None
        if queue:
            response = queue.pop(0)
            if isinstance(response, BaseException):
                raise response
            return response
        return GitExecutionResult(args=tuple(args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations

    @property
    def subcommands(self) -> list[str]:
        return [args[0] for args in self._invocations if args]

    @property
    def cwds(self) -> list[Path | None]:
        return self._cwds


def fake_result(subcommand: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> GitExecutionResult:
    """Build a result for scripting :class:`FakeGitRunner`."""

    return GitExecutionResult(args=("git", subcommand), returncode=returncode, stdout=stdout, stderr=stderr)
