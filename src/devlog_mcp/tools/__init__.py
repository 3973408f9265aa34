"""Tool registration for devlog MCP."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP

from ..activity import ActivityEvent
from ..config import DevlogSettings
from ..errors import AlreadyStartedError, NotStartedError
from ..session import SessionController

REMOTE_URL_PROMPT = "Enter the git repository URL to clone:"
GIT_UNAVAILABLE_MESSAGE = "git is unavailable; activity tracking cannot run"


@dataclass(slots=True)
class ToolHandles:
    start_tracking: Any
    terminate_tracking: Any
    record_activity: Any
    flush_logs: Any
    tracking_status: Any


def register_tools(
    server: FastMCP,
    *,
    settings: DevlogSettings,
    controller: SessionController | None,
) -> ToolHandles:
    """Register devlog's MCP tools on the server."""

    unavailable = {"status": "error", "message": GIT_UNAVAILABLE_MESSAGE}

    async def _start_tracking(
        remote_url: str | None = None,
        open_documents: list[str] | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Provision the log repository and start recording editor activity."""

        if controller is None:
            return dict(unavailable)
        active = controller

        async def _supply_remote_url() -> str | None:
            if remote_url and remote_url.strip():
                return remote_url
            if settings.remote_url:
                return settings.remote_url
            return await _ask_operator(context, REMOTE_URL_PROMPT)

        try:
            result = await active.start(_supply_remote_url)
        except AlreadyStartedError as exc:
            return {"status": "error", "message": str(exc)}

        if not result.ok:
            _emit_log(
                context,
                "error",
                result.message,
                extra={"error": result.error.value if result.error else None},
            )
            return {
                "status": "error",
                "error": result.error.value if result.error else None,
                "message": result.message,
            }

        if open_documents:
            active.seed_open_documents(open_documents)
        session = active.session
        _emit_log(context, "info", "Tracking started", extra={"repo_path": str(result.path)})
        return {
            "status": result.status.value,
            "message": f"{result.message} Tracking started. Logs will be saved periodically.",
            "repo_path": str(result.path),
            "log_file": str(session.log_file_path) if session and session.log_file_path else None,
        }

    async def _terminate_tracking(context: Context | None = None) -> dict[str, Any]:
        """Flush pending log entries and stop tracking."""

        if controller is None:
            return dict(unavailable)
        try:
            outcome = await controller.terminate()
        except NotStartedError as exc:
            return {"status": "error", "message": str(exc)}

        payload: dict[str, Any] = {"status": "terminated", "message": "Tracking terminated."}
        if outcome is not None:
            payload["sync"] = outcome.to_dict()
            if not outcome.ok:
                _emit_log(context, "error", outcome.message, extra={"reason": outcome.reason})
        return payload

    def _record_activity(
        kind: str,
        subject: str | None = None,
        subjects: list[str] | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Record an editor event (Modified, Opened, Closed, Saved, Created, ...)."""

        if controller is None:
            return dict(unavailable)
        active = controller
        try:
            event = ActivityEvent.of(kind, subjects if subjects else subject)
        except ValueError as exc:
            return {"status": "error", "message": str(exc)}

        before = active.tracker.revision
        failures = active.publish(event)
        if failures:
            message = "; ".join(str(exc) for exc in failures)
            _emit_log(context, "error", "Failed to record activity", extra={"error": message})
            return {"status": "error", "message": message}
        written = active.tracker.revision != before
        return {
            "status": "recorded" if written else "ignored",
            "kind": event.kind.value,
            "subjects": list(event.resolved_subjects()),
        }

    async def _flush_logs(reason: str | None = None, context: Context | None = None) -> dict[str, Any]:
        """Commit and push pending log entries now."""

        if controller is None:
            return dict(unavailable)
        try:
            outcome = await controller.flush_now(reason or "Manual update of developer logs.")
        except NotStartedError as exc:
            return {"status": "error", "message": str(exc)}
        if outcome is None:
            return {"status": "nothing_to_commit", "message": "No changes to commit."}
        if not outcome.ok:
            _emit_log(context, "error", outcome.message, extra={"stage": outcome.stage.value if outcome.stage else None})
        return outcome.to_dict()

    def _tracking_status(context: Context | None = None) -> dict[str, Any]:
        """Report the tracking state, current log file and last sync outcome."""

        if controller is None:
            return {"state": "unavailable", "repo_path": str(settings.repo_path)}
        return controller.status()

    tool_start = server.tool(
        name="start_tracking",
        description="Clone or reuse the developer log repository and start logging editor activity.",
    )(_start_tracking)

    tool_terminate = server.tool(
        name="terminate_tracking",
        description="Commit and push pending developer logs, then stop tracking.",
    )(_terminate_tracking)

    tool_record = server.tool(
        name="record_activity",
        description="Append an editor activity event to today's developer log.",
    )(_record_activity)

    tool_flush = server.tool(
        name="flush_logs",
        description="Commit and push pending developer log entries immediately.",
    )(_flush_logs)

    tool_status = server.tool(
        name="tracking_status",
        description="Show whether tracking is active and how the last sync went.",
    )(_tracking_status)

    return ToolHandles(
        start_tracking=tool_start,
        terminate_tracking=tool_terminate,
        record_activity=tool_record,
        flush_logs=tool_flush,
        tracking_status=tool_status,
    )


__all__ = ["register_tools", "ToolHandles"]

logger = logging.getLogger(__name__)


async def _ask_operator(context: Context | None, prompt: str) -> str | None:
    """Ask the connected client for a value via elicitation, when it supports it."""

    elicit = getattr(context, "elicit", None) if context is not None else None
    if not callable(elicit):
        return None
    try:
        response = await elicit(prompt, response_type=str)
    except Exception as exc:
        _emit_log(context, "warning", "Operator prompt unavailable", extra={"error": str(exc)})
        return None
    if getattr(response, "action", None) != "accept":
        return None
    data = getattr(response, "data", None)
    return str(data) if data is not None else None


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
