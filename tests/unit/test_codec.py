"""Tests for document <-> record conversion and ordering."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from apptracker.core.schemas import ApplicationDraft, ApplicationStatus, JobApplication, Principal
from apptracker.store.base import StoredDocument
from apptracker.store.codec import (
    collection_path,
    date_string_to_timestamp,
    document_to_application,
    documents_to_applications,
    draft_to_document,
    sort_applications,
    timestamp_to_date_string,
)


def _ts(y: int, m: int, d: int) -> datetime:
    return datetime(y, m, d, tzinfo=timezone.utc)


def _make_record(record_id: str, applied: datetime | None) -> JobApplication:
    return JobApplication(id=record_id, title="Dev", company="Acme", date_applied=applied)


class TestCollectionPath:
    def test_path_layout(self) -> None:
        path = collection_path("my-app", Principal(uid="u42"))
        assert path == "artifacts/my-app/users/u42/job_applications"


class TestDateConversion:
    def test_utc_midnight(self) -> None:
        assert date_string_to_timestamp("2024-03-01") == _ts(2024, 3, 1)

    def test_empty_is_none(self) -> None:
        assert date_string_to_timestamp("") is None
        assert date_string_to_timestamp("   ") is None

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            date_string_to_timestamp("March 1st")

    def test_round_trip(self) -> None:
        assert timestamp_to_date_string(date_string_to_timestamp("2024-03-01")) == "2024-03-01"

    def test_none_to_empty(self) -> None:
        assert timestamp_to_date_string(None) == ""


class TestDraftToDocument:
    def test_fields(self) -> None:
        draft = ApplicationDraft(
            title=" Dev ",
            company="Acme ",
            link="acme.io/jobs/1",
            status=ApplicationStatus.OFFER,
            date_applied="2024-03-01",
            follow_up_date="",
            notes="call Sam",
        )
        doc = draft_to_document(draft)
        assert doc == {
            "title": "Dev",
            "company": "Acme",
            "link": "acme.io/jobs/1",
            "status": "Offer",
            "dateApplied": _ts(2024, 3, 1),
            "followUpDate": None,
            "notes": "call Sam",
        }

    def test_id_not_stored(self) -> None:
        assert "id" not in draft_to_document(ApplicationDraft(id="x", title="a", company="b"))


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDocumentToApplication:
    def test_full_document(self) -> None:
        doc = StoredDocument(
            "d1",
            {
                "title": "Dev",
                "company": "Acme",
                "link": "",
                "status": "Technical Screen",
                "dateApplied": _ts(2024, 3, 1),
                "followUpDate": _ts(2024, 3, 8),
                "notes": "n",
            },
        )
        record = document_to_application(doc)
        assert record.id == "d1"
        assert record.status is ApplicationStatus.TECHNICAL_SCREEN
        assert record.follow_up_date == _ts(2024, 3, 8)

    def test_unknown_status_becomes_on_hold(self) -> None:
        record = document_to_application(StoredDocument("d1", {"title": "a", "status": "Ghosted"}))
        assert record.status is ApplicationStatus.ON_HOLD

    def test_missing_status_is_applied(self) -> None:
        record = document_to_application(StoredDocument("d1", {"title": "a"}))
        assert record.status is ApplicationStatus.APPLIED

    def test_non_timestamp_dates_are_absent(self) -> None:
        record = document_to_application(
            StoredDocument("d1", {"title": "a", "dateApplied": "2024-03-01", "followUpDate": 0})
        )
        assert record.date_applied is None
        assert record.follow_up_date is None

    def test_naive_timestamp_gets_utc(self) -> None:
        record = document_to_application(
            StoredDocument("d1", {"title": "a", "dateApplied": datetime(2024, 3, 1)})
        )
        assert record.date_applied == _ts(2024, 3, 1)

    def test_undecodable_documents_skipped(self) -> None:
        good = _make_record("ok", None)
        docs = [StoredDocument("bad", {}), StoredDocument("ok", {"title": "Dev"})]
        with patch(
            "apptracker.store.codec.document_to_application",
            side_effect=[ValueError("bad document"), good],
        ):
            assert documents_to_applications(docs) == [good]


class TestSortApplications:
    def test_newest_first(self) -> None:
        records = [
            _make_record("old", _ts(2024, 1, 1)),
            _make_record("new", _ts(2024, 3, 1)),
            _make_record("mid", _ts(2024, 2, 1)),
        ]
        assert [r.id for r in sort_applications(records)] == ["new", "mid", "old"]

    def test_undated_last_in_original_order(self) -> None:
        records = [
            _make_record("u1", None),
            _make_record("dated", _ts(2024, 1, 1)),
            _make_record("u2", None),
        ]
        assert [r.id for r in sort_applications(records)] == ["dated", "u1", "u2"]

    def test_ties_are_stable(self) -> None:
        records = [_make_record("a", _ts(2024, 1, 1)), _make_record("b", _ts(2024, 1, 1))]
        assert [r.id for r in sort_applications(records)] == ["a", "b"]
