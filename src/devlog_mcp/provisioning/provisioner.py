"""Ensure a local working copy of the log repository exists."""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import Awaitable, Callable, Union

from ..git import GitRunner, GitRunnerError
from .models import ProvisionFailure, ProvisionResult, ProvisionStatus

logger = logging.getLogger(__name__)

RemoteUrlSupplier = Callable[[], Union[str, None, Awaitable[Union[str, None]]]]


class RepositoryProvisioner:
    """Reuses a valid working copy or clones the remote into an absent path."""

    def __init__(self, runner: GitRunner) -> None:
        self._runner = runner

    async def ensure_repository(
        self,
        local_path: Path,
        remote_url_supplier: RemoteUrlSupplier | None = None,
    ) -> ProvisionResult:
        path = Path(local_path)

        try:
            kind = _inspect(path)
        except OSError as exc:
            return ProvisionResult.failed(
                path, ProvisionFailure.VERIFY_FAILED, f"Cannot inspect {path}: {exc}"
            )

        if kind == "file":
            return ProvisionResult.failed(
                path,
                ProvisionFailure.NOT_A_REPOSITORY,
                f"{path} exists but is not a directory",
            )
        if kind == "populated":
            return await self._verify(path)
        if kind == "empty":
            logger.info("Empty directory at repository path; cloning into it", extra={"path": str(path)})

        remote_url = await self._resolve_remote(remote_url_supplier)
        if not remote_url:
            return ProvisionResult.failed(
                path,
                ProvisionFailure.NO_REMOTE_PROVIDED,
                "No repository URL provided. Cannot start tracking.",
            )
        return await self._clone(path, remote_url)

    async def _verify(self, path: Path) -> ProvisionResult:
        try:
            result = await self._runner.work_tree_root(path)
        except GitRunnerError as exc:
            return ProvisionResult.failed(path, ProvisionFailure.VERIFY_FAILED, str(exc))

        if result.ok:
            lines = result.stdout.strip().splitlines()
            inside = bool(lines) and lines[0].strip() == "true"
            toplevel = Path(lines[1].strip()) if len(lines) > 1 else None
            if inside and toplevel is not None and _same_path(toplevel, path):
                logger.info("Reusing existing working copy", extra={"path": str(path)})
                return ProvisionResult(
                    status=ProvisionStatus.READY,
                    path=path,
                    message="Repository already exists. Starting log tracking.",
                )
            return ProvisionResult.failed(
                path,
                ProvisionFailure.NOT_A_REPOSITORY,
                f"{path} is not the root of a git working copy",
            )

        if "not a git repository" in result.error_message.lower():
            return ProvisionResult.failed(
                path,
                ProvisionFailure.NOT_A_REPOSITORY,
                f"{path} exists but is not a git repository; move it aside or point "
                "DEVLOG_REPO_PATH elsewhere",
            )
        return ProvisionResult.failed(path, ProvisionFailure.VERIFY_FAILED, result.error_message)

    async def _clone(self, path: Path, remote_url: str) -> ProvisionResult:
        created = False
        try:
            created = not path.exists()
            path.mkdir(parents=True, exist_ok=True)
            result = await self._runner.clone(remote_url, path)
            error = None if result.ok else result.error_message
        except (GitRunnerError, OSError) as exc:
            error = str(exc)

        if error is not None:
            if created:
                _remove_if_empty(path)
            logger.warning("Clone failed", extra={"path": str(path), "remote_url": remote_url})
            return ProvisionResult.failed(
                path, ProvisionFailure.CLONE_FAILED, f"Error cloning repository: {error}"
            )

        logger.info("Cloned repository", extra={"path": str(path), "remote_url": remote_url})
        return ProvisionResult(
            status=ProvisionStatus.CLONED,
            path=path,
            message="Repository cloned successfully. Tracking will now start.",
            remote_url=remote_url,
        )

    @staticmethod
    async def _resolve_remote(supplier: RemoteUrlSupplier | None) -> str | None:
        if supplier is None:
            return None
        value = supplier()
        if inspect.isawaitable(value):
            value = await value
        if value is None:
            return None
        return str(value).strip() or None


def _inspect(path: Path) -> str:
    """Classify the repository path as absent, file, empty or populated."""

    if not path.exists():
        return "absent"
    if not path.is_dir():
        return "file"
    return "populated" if any(path.iterdir()) else "empty"


def _same_path(left: Path, right: Path) -> bool:
    try:
        return left.resolve() == right.resolve()
    except OSError:
        return False


def _remove_if_empty(path: Path) -> None:
    try:
        if path.is_dir() and not any(path.iterdir()):
            path.rmdir()
    except OSError as exc:
        logger.warning("Could not remove empty clone directory", extra={"path": str(path), "error": str(exc)})


__all__ = ["RemoteUrlSupplier", "RepositoryProvisioner"]
