"""
Hotel Night Audit Engine - Closure Report Export
==================================================
Renders the sealed day as a PDF and mails it to the configured
recipients. Runs after the seal: nothing here can undo a closure.

Render and dispatch are each attempted once per closure. Failures come
back as warnings. A failed dispatch is parked in the outbox with its
rendered document so it can be retried later without re-rendering.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from core.documents import render_pdf
from core.time.clock import Clock
from engines.hotel_night_audit.errors import CollaboratorFailure

logger = logging.getLogger("night_audit.reporting")

PDF_CONTENT_TYPE = "application/pdf"


# ══════════════════════════════════════════════════════════════
# EXPORTER PROTOCOL
# ══════════════════════════════════════════════════════════════

class ReportExporter(Protocol):
    def render(self, snapshot: Dict[str, Any]) -> bytes:
        ...  # pragma: no cover

    def dispatch(
        self, document: bytes, recipients: Sequence[str], *, subject: str, filename: str
    ) -> bool:
        ...  # pragma: no cover


def build_report_plan(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a closure snapshot (record dict + extras) into a PDF report plan."""
    stats = snapshot.get("stats", {})
    sections: List[Dict[str, Any]] = [
        {
            "heading": "Summary",
            "fields": [
                ("Business date", snapshot.get("date")),
                ("Closed at", snapshot.get("closed_at")),
                ("Closed by", snapshot.get("closed_by")),
            ],
        },
        {
            "heading": "Statistics",
            "fields": [
                ("Check-ins", stats.get("check_ins")),
                ("Check-outs", stats.get("check_outs")),
                ("Occupied rooms", f"{stats.get('occupied_rooms')} / {stats.get('total_rooms')}"),
                ("Occupancy", f"{stats.get('occupancy_rate')}%"),
                ("Revenue", stats.get("revenue")),
                ("Average rate", stats.get("average_rate")),
                ("No-shows", stats.get("no_shows")),
                ("Cancellations", stats.get("cancellations")),
            ],
        },
    ]

    folios = snapshot.get("folios", ())
    if folios:
        sections.append({
            "heading": "Folios",
            "columns": ["Folio", "Guest", "Room", "Balance", "Status"],
            "rows": [
                [f["folio_number"], f["guest_name"], f["room_number"],
                 f["balance"], f["status"]]
                for f in folios
            ],
        })

    no_shows = snapshot.get("no_shows", ())
    if no_shows:
        sections.append({
            "heading": "No-shows",
            "columns": ["Reservation", "Guest", "Room", "Penalty"],
            "rows": [
                [n["reservation_id"], n["guest_name"], n["room_number"],
                 n["penalty"] or "no charge"]
                for n in no_shows
            ],
        })

    checklist = snapshot.get("checklist", ())
    if checklist:
        sections.append({
            "heading": "Checklist",
            "lines": [
                f"[{'x' if item['completed'] else ' '}] {item['task']}" for item in checklist
            ],
        })

    return {
        "title": f"Night Audit {snapshot.get('date')}",
        "subtitle": f"Store {snapshot.get('store_id')}",
        "sections": sections,
        "footer": "Generated by night audit. This day is sealed.",
    }


def document_ref_for(business_date: str, document: bytes) -> str:
    digest = hashlib.sha256(document).hexdigest()[:12]
    return f"night-audit-{business_date}-{digest}"


# ══════════════════════════════════════════════════════════════
# DEFAULT EXPORTER: PDF + DJANGO MAIL
# ══════════════════════════════════════════════════════════════

class PdfMailReportExporter:
    def __init__(self, from_email: Optional[str] = None):
        self._from_email = from_email

    def render(self, snapshot: Dict[str, Any]) -> bytes:
        return render_pdf(build_report_plan(snapshot))

    def dispatch(
        self, document: bytes, recipients: Sequence[str], *, subject: str, filename: str
    ) -> bool:
        from django.core.mail import EmailMessage

        message = EmailMessage(
            subject=subject,
            body="The night audit report is attached.",
            from_email=self._from_email,
            to=list(recipients),
        )
        message.attach(filename, document, PDF_CONTENT_TYPE)
        try:
            return message.send(fail_silently=False) > 0
        except OSError as exc:
            raise CollaboratorFailure("Mail backend", str(exc)) from exc


# ══════════════════════════════════════════════════════════════
# OUTBOX
# ══════════════════════════════════════════════════════════════

@dataclass
class PendingDispatch:
    document_ref: str
    document: bytes
    recipients: Tuple[str, ...]
    subject: str
    filename: str
    queued_at: datetime
    attempts: int = 1
    last_error: str = ""


class ReportOutbox:
    """In-memory queue of report mails that could not be sent."""

    def __init__(self, clock: Clock):
        self._clock = clock
        self._pending: Dict[str, PendingDispatch] = {}
        self._lock = threading.Lock()

    def enqueue(self, document_ref: str, document: bytes, recipients: Sequence[str],
                *, subject: str, filename: str, error: str) -> PendingDispatch:
        item = PendingDispatch(
            document_ref=document_ref,
            document=document,
            recipients=tuple(recipients),
            subject=subject,
            filename=filename,
            queued_at=self._clock.now_utc(),
            last_error=error,
        )
        with self._lock:
            self._pending[document_ref] = item
        return item

    def pending(self) -> List[PendingDispatch]:
        with self._lock:
            return list(self._pending.values())

    def retry_pending(self, exporter: ReportExporter) -> Tuple[str, ...]:
        """Retry every parked mail once. Returns refs that went out."""
        delivered: List[str] = []
        for item in self.pending():
            try:
                sent = exporter.dispatch(
                    item.document, item.recipients,
                    subject=item.subject, filename=item.filename,
                )
            except Exception as exc:
                sent = False
                item.last_error = str(exc)
                logger.error(f"Outbox retry failed for {item.document_ref}: {exc}",
                             exc_info=True)
            item.attempts += 1
            if sent:
                with self._lock:
                    self._pending.pop(item.document_ref, None)
                delivered.append(item.document_ref)
                logger.info(f"Outbox delivered {item.document_ref} "
                            f"after {item.attempts} attempt(s)")
        return tuple(delivered)


# ══════════════════════════════════════════════════════════════
# SERVICE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ExportResult:
    document_ref: Optional[str] = None
    dispatched: bool = False
    queued: bool = False
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "document_ref": self.document_ref,
            "dispatched": self.dispatched,
            "queued": self.queued,
            "warnings": list(self.warnings),
        }


class ClosureReportService:
    def __init__(self, exporter: ReportExporter, outbox: Optional[ReportOutbox] = None):
        self._exporter = exporter
        self._outbox = outbox

    def export(self, snapshot: Dict[str, Any], recipients: Sequence[str]) -> ExportResult:
        """Best-effort. Never raises."""
        business_date = str(snapshot.get("date"))
        warnings: List[str] = []

        try:
            document = self._exporter.render(snapshot)
        except Exception as exc:
            logger.error(f"Report render failed for {business_date}: {exc}", exc_info=True)
            return ExportResult(warnings=(f"Report could not be generated: {exc}",))

        document_ref = document_ref_for(business_date, document)
        if not recipients:
            return ExportResult(document_ref=document_ref)

        subject = f"Night audit report {business_date}"
        filename = f"{document_ref}.pdf"
        try:
            dispatched = bool(self._exporter.dispatch(
                document, recipients, subject=subject, filename=filename,
            ))
            error = "" if dispatched else "mail backend accepted no messages"
        except Exception as exc:
            logger.error(f"Report dispatch failed for {business_date}: {exc}", exc_info=True)
            dispatched = False
            error = str(exc)

        queued = False
        if not dispatched:
            warnings.append(f"Report email was not sent: {error}")
            if self._outbox is not None:
                self._outbox.enqueue(document_ref, document, recipients,
                                     subject=subject, filename=filename, error=error)
                queued = True

        return ExportResult(
            document_ref=document_ref,
            dispatched=dispatched,
            queued=queued,
            warnings=tuple(warnings),
        )
