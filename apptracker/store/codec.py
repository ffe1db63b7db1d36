"""Mapping between store documents and in-memory records.

Stored documents use the field names of the web client
(``dateApplied``, ``followUpDate``) so both clients can share a collection.
Dates live in the store as timestamps; the edit form works on ISO date
strings. Conversion happens here and nowhere else.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any

from apptracker.core.schemas import (
    ApplicationDraft,
    ApplicationStatus,
    JobApplication,
    Principal,
)
from apptracker.store.base import StoredDocument

logger = logging.getLogger(__name__)

COLLECTION_NAME = "job_applications"


def collection_path(app_id: str, principal: Principal) -> str:
    """Per-principal collection: artifacts/{app_id}/users/{uid}/job_applications."""
    return f"artifacts/{app_id}/users/{principal.uid}/{COLLECTION_NAME}"


def date_string_to_timestamp(value: str) -> datetime | None:
    """``"2024-03-01"`` → UTC midnight of that day. Empty → None.

    Raises ValueError on a non-empty string that is not an ISO date.
    """
    value = (value or "").strip()
    if not value:
        return None
    return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)


def timestamp_to_date_string(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).date().isoformat()


def draft_to_document(draft: ApplicationDraft) -> dict[str, Any]:
    """Mutable fields of a draft as a store field map."""
    return {
        "title": draft.title.strip(),
        "company": draft.company.strip(),
        "link": draft.link.strip(),
        "status": draft.status.value,
        "dateApplied": date_string_to_timestamp(draft.date_applied),
        "followUpDate": date_string_to_timestamp(draft.follow_up_date),
        "notes": draft.notes,
    }


def document_to_application(doc: StoredDocument) -> JobApplication:
    """Build a JobApplication from a store document.

    Unknown status strings map to On Hold. Raises ValueError when required
    fields are unusable.
    """
    data = doc.data
    raw_status = data.get("status") or ApplicationStatus.APPLIED.value
    try:
        status = ApplicationStatus(raw_status)
    except ValueError:
        logger.warning("Document %s has unknown status %r, showing as On Hold", doc.id, raw_status)
        status = ApplicationStatus.ON_HOLD

    return JobApplication(
        id=doc.id,
        title=str(data.get("title") or ""),
        company=str(data.get("company") or ""),
        link=str(data.get("link") or ""),
        status=status,
        date_applied=_resolve_timestamp(data.get("dateApplied")),
        follow_up_date=_resolve_timestamp(data.get("followUpDate")),
        notes=str(data.get("notes") or ""),
    )


def documents_to_applications(docs: list[StoredDocument]) -> list[JobApplication]:
    """Decode a snapshot, skipping documents that cannot be decoded."""
    result: list[JobApplication] = []
    for doc in docs:
        try:
            result.append(document_to_application(doc))
        except ValueError:
            logger.warning("Skipping undecodable document %s", doc.id, exc_info=True)
    return result


def sort_applications(records: list[JobApplication]) -> list[JobApplication]:
    """Most recent application first; unresolvable dates last (stable)."""
    dated = [r for r in records if r.date_applied is not None]
    undated = [r for r in records if r.date_applied is None]
    dated.sort(key=lambda r: r.date_applied, reverse=True)  # type: ignore[arg-type, return-value]
    return dated + undated


def _resolve_timestamp(value: Any) -> datetime | None:
    """Accept native datetimes (Firestore, local store); anything else is absent."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return None
