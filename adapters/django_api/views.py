"""
Night Audit Django Adapter Views
==================================
Pass-through HTTP views over the closure coordinator and reopen manager.

Envelope:
    {"ok": true,  "data": {...}}
    {"ok": false, "error": {"code": str, "message": str, "details": {...}}}
"""

from __future__ import annotations

import json
from typing import Any, Optional

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from adapters.django_api.wiring import get_runtime
from core.time.business_date import parse_business_date
from engines.hotel_night_audit.commands import CloseDayRequest, ReopenDayRequest
from engines.hotel_night_audit.errors import (
    DayNotClosed,
    LockHeld,
    PermissionDenied,
    ReasonTooShort,
    ReopenOutOfOrder,
)
from engines.hotel_night_audit.no_show import confirm_all, decline_all
from engines.hotel_night_audit.services import ClosureState

_CLOSURE_HTTP_STATUS = {
    ClosureState.COMPLETE: 200,
    ClosureState.ALREADY_CLOSED: 200,
    ClosureState.BLOCKED: 409,
    ClosureState.FAILED: 500,
}

_REOPEN_HTTP_STATUS = (
    (PermissionDenied, 403),
    (ReasonTooShort, 400),
    (DayNotClosed, 404),
    (ReopenOutOfOrder, 409),
)


def _ok(data: Any, status: int = 200) -> JsonResponse:
    return JsonResponse({"ok": True, "data": data}, status=status)


def _json_error(
    code: str, message: str, status: int = 400, details: Optional[dict] = None
) -> JsonResponse:
    return JsonResponse(
        {"ok": False, "error": {"code": code, "message": message, "details": details or {}}},
        status=status,
    )


def _method_not_allowed() -> JsonResponse:
    return _json_error(
        "METHOD_NOT_ALLOWED",
        "Method not allowed for this endpoint.",
        status=405,
    )


def _lock_held(exc: LockHeld) -> JsonResponse:
    return _json_error(
        exc.code, str(exc), status=423,
        details={
            "holder": exc.holder,
            "reason": exc.reason,
            "acquired_at": exc.acquired_at.isoformat(),
        },
    )


def _parse_json_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        parsed = json.loads(request.body.decode("utf-8"))
    except Exception as exc:
        raise ValueError("Request body must be valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object.")
    return parsed


def _required_date(raw: Any, field_name: str = "date"):
    if raw is None or raw == "":
        raise ValueError(f"{field_name} is required.")
    return parse_business_date(raw)


def _parse_bool(raw: Any, field_name: str, default: Optional[bool]) -> Optional[bool]:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    raise ValueError(f"{field_name} must be a boolean.")


# ══════════════════════════════════════════════════════════════
# READS
# ══════════════════════════════════════════════════════════════

@csrf_exempt
def status_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    return _ok(get_runtime().coordinator.status().to_dict())


@csrf_exempt
def preview_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    try:
        target = _required_date(request.GET.get("date"))
    except ValueError as exc:
        return _json_error("INVALID_REQUEST", str(exc))
    process_no_shows = request.GET.get("process_no_shows", "true").lower() != "false"
    result = get_runtime().coordinator.preview(target, process_no_shows=process_no_shows)
    return _ok(result.to_dict())


@csrf_exempt
def no_shows_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    try:
        target = _required_date(request.GET.get("date"))
    except ValueError as exc:
        return _json_error("INVALID_REQUEST", str(exc))
    summary = get_runtime().coordinator.detect_no_shows(target)
    data = summary.to_dict()
    data["prompt"] = summary.describe()
    return _ok(data)


@csrf_exempt
def records_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    audits = get_runtime().deps.audits
    return _ok({
        "records": [record.to_dict() for record in audits.list_records()],
        "overrides": [entry.to_dict() for entry in audits.list_overrides()],
        "last_closed_date": (
            audits.last_closed_date().isoformat() if audits.last_closed_date() else None
        ),
    })


# ══════════════════════════════════════════════════════════════
# WRITES
# ══════════════════════════════════════════════════════════════

@csrf_exempt
def close_day_view(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    runtime = get_runtime()
    try:
        body = _parse_json_body(request)
        command = CloseDayRequest(
            business_date=_required_date(body.get("date")),
            actor_id=str(body.get("actor_id", "")),
            process_no_shows=_parse_bool(body.get("process_no_shows"), "process_no_shows", True),
            report_recipients=tuple(body.get("report_recipients", ())),
        )
        confirm = _parse_bool(body.get("confirm_no_shows"), "confirm_no_shows", None)
    except (ValueError, TypeError) as exc:
        return _json_error("INVALID_REQUEST", str(exc))

    decision = None
    if confirm is not None:
        decision = confirm_all if confirm else decline_all
    try:
        outcome = runtime.coordinator.close_day(command, confirm_no_shows=decision)
    except LockHeld as exc:
        return _lock_held(exc)

    return JsonResponse(
        {"ok": outcome.completed or outcome.state == ClosureState.ALREADY_CLOSED,
         "data": outcome.to_dict()},
        status=_CLOSURE_HTTP_STATUS[outcome.state],
    )


@csrf_exempt
def reopen_day_view(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    runtime = get_runtime()
    try:
        body = _parse_json_body(request)
        command = ReopenDayRequest(
            business_date=_required_date(body.get("date")),
            reason=body.get("reason", ""),
            actor_id=str(body.get("actor_id", "")),
            # Trusted as sent. Behind real auth, take id and role from
            # the authenticated session, never from the body.
            actor_role=str(body.get("actor_role", "")),
        )
    except (ValueError, TypeError) as exc:
        return _json_error("INVALID_REQUEST", str(exc))

    try:
        outcome = runtime.reopen.reopen_day(command)
    except LockHeld as exc:
        return _lock_held(exc)
    except (PermissionDenied, ReasonTooShort, DayNotClosed, ReopenOutOfOrder) as exc:
        status = next(code for cls, code in _REOPEN_HTTP_STATUS if isinstance(exc, cls))
        return _json_error(exc.code, str(exc), status=status)

    return _ok(outcome.to_dict())
