"""FastMCP server bootstrap for devlog."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import DevlogSettings, get_settings
from .git import GitNotFoundError, GitRunner, GitRunnerError
from .session import SessionController
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the devlog server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _run_sync(coro):
    """Execute an async coroutine on a dedicated event loop."""

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def build_lifespan(controller: SessionController | None):
    """Server lifespan that flushes pending logs when the server shuts down."""

    @asynccontextmanager
    async def lifespan(_server):
        try:
            yield {}
        finally:
            if controller is not None:
                outcome = await controller.shutdown_finalize()
                if outcome is not None:
                    logging.getLogger(__name__).info(
                        "Shutdown flush finished",
                        extra={"status": outcome.status.value},
                    )

    return lifespan


def create_server(
    settings: Optional[DevlogSettings] = None,
    git_runner: GitRunner | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with the tracking tools and status resource."""

    settings = settings or get_settings()

    git_metadata = {
        "available": False,
        "version": None,
        "error": None,
    }

    if git_runner is None:
        try:
            git_runner = GitRunner(
                Path(settings.git_path) if settings.git_path else None,
                timeout=settings.command_timeout_seconds,
            )
        except GitNotFoundError as exc:
            git_metadata["error"] = str(exc)
            git_runner = None

    if git_runner is not None:
        git_metadata["available"] = True
        try:
            version_result = _run_sync(git_runner.version())
            if version_result.ok:
                git_metadata["version"] = version_result.stdout.strip()
            else:
                git_metadata["error"] = version_result.error_message
        except GitRunnerError as exc:
            git_metadata["error"] = str(exc)

    controller = SessionController(settings, git_runner) if git_runner is not None else None

    server = FastMCP(
        name="devlog MCP",
        version=__version__,
        instructions=(
            "devlog records editor activity into a daily log file inside a git "
            "repository and periodically commits and pushes it. Call start_tracking "
            "once, report editor events with record_activity, and terminate_tracking "
            "when done."
        ),
        lifespan=build_lifespan(controller),
    )

    handles = register_tools(server, settings=settings, controller=controller)

    @server.resource(
        "resource://devlog/status",
        name="devlog_status",
        title="devlog Status",
        description="Provides the current tracking and sync status.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing tracking state."""

        tracking = controller.status() if controller is not None else {"state": "unavailable"}
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "git": {
                "path": settings.git_path,
                **git_metadata,
            },
            "config": {
                "repo_path": str(settings.repo_path),
                "logs_subdir": settings.logs_subdir,
                "sync_interval_seconds": settings.sync_interval_seconds,
                "rollover_at_midnight": settings.rollover_at_midnight,
            },
            "tracking": tracking,
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "git_runner", git_runner)
    setattr(server, "git_metadata", git_metadata)
    setattr(server, "controller", controller)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the devlog MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching devlog MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "git_available": getattr(server, "git_metadata", {}).get("available"),
            "repo_path": str(settings.repo_path),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
