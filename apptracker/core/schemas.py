"""Core data models for the job application tracker."""

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApplicationStatus(str, Enum):
    """Pipeline status of a tracked application (closed set)."""

    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    TECHNICAL_SCREEN = "Technical Screen"
    OFFER = "Offer"
    REJECTED = "Rejected"
    ON_HOLD = "On Hold"


INTERVIEW_STATUSES = frozenset({ApplicationStatus.INTERVIEWING, ApplicationStatus.TECHNICAL_SCREEN})


class StatusStyle(BaseModel):
    """Display attributes for one status."""

    model_config = ConfigDict(frozen=True)

    label: str
    color: str


STATUS_STYLES: dict[ApplicationStatus, StatusStyle] = {
    ApplicationStatus.APPLIED: StatusStyle(label="Applied", color="yellow"),
    ApplicationStatus.INTERVIEWING: StatusStyle(label="Interviewing", color="blue"),
    ApplicationStatus.TECHNICAL_SCREEN: StatusStyle(label="Technical Screen", color="blue"),
    ApplicationStatus.OFFER: StatusStyle(label="Offer", color="green"),
    ApplicationStatus.REJECTED: StatusStyle(label="Rejected", color="red"),
    ApplicationStatus.ON_HOLD: StatusStyle(label="On Hold", color="grey50"),
}


class Principal(BaseModel):
    """The signed-in identity that owns a set of records."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str = ""
    id_token: str = Field(default="", repr=False)

    @field_validator("uid")
    @classmethod
    def uid_is_path_safe(cls, v: str) -> str:
        if not v or "/" in v:
            msg = f"invalid principal uid: {v!r}"
            raise ValueError(msg)
        return v


class JobApplication(BaseModel):
    """A persisted job application, as reflected from the store.

    Frozen: the binding replaces whole snapshots and nothing patches records.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    company: str
    link: str = ""
    status: ApplicationStatus = ApplicationStatus.APPLIED
    date_applied: datetime | None = None
    follow_up_date: datetime | None = None
    notes: str = ""

    @property
    def display_link(self) -> str:
        """Link with a missing scheme normalized to https://."""
        return normalize_link(self.link)


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class ApplicationDraft(BaseModel):
    """Working copy of one record held by the edit form.

    Dates are ISO ``YYYY-MM-DD`` strings; an empty string means "absent".
    """

    id: str | None = None
    title: str = ""
    company: str = ""
    link: str = ""
    status: ApplicationStatus = ApplicationStatus.APPLIED
    date_applied: str = Field(default_factory=today_iso)
    follow_up_date: str = ""
    notes: str = ""

    @classmethod
    def from_application(cls, record: JobApplication) -> "ApplicationDraft":
        """Reopen a persisted record for editing."""
        return cls(
            id=record.id,
            title=record.title,
            company=record.company,
            link=record.link,
            status=record.status,
            date_applied=(
                record.date_applied.astimezone(timezone.utc).date().isoformat()
                if record.date_applied is not None
                else today_iso()
            ),
            follow_up_date=(
                record.follow_up_date.astimezone(timezone.utc).date().isoformat()
                if record.follow_up_date is not None
                else ""
            ),
            notes=record.notes,
        )

    def validate_for_save(self) -> None:
        """Raise ValueError if the draft cannot be persisted."""
        if not self.title.strip():
            msg = "Job title is required"
            raise ValueError(msg)
        if not self.company.strip():
            msg = "Company is required"
            raise ValueError(msg)
        if not self.date_applied.strip():
            msg = "Date applied is required"
            raise ValueError(msg)
        for name in ("date_applied", "follow_up_date"):
            value = getattr(self, name).strip()
            if value:
                try:
                    date.fromisoformat(value)
                except ValueError as e:
                    msg = f"{name} must be a YYYY-MM-DD date, got '{value}'"
                    raise ValueError(msg) from e


class ApplicationStats(BaseModel):
    """Aggregate statistics over the current record list."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    interviews: int = 0
    offers: int = 0
    rejected: int = 0
    overdue_follow_ups: int = 0
    offer_rate: float = 0.0


def normalize_link(link: str) -> str:
    link = (link or "").strip()
    if not link:
        return ""
    if link.startswith("http"):
        return link
    return f"https://{link}"
