from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiError(BaseModel):
    code: str
    message: str
    trace_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class ApiEnvelope(BaseModel):
    data: Any = None
    error: ApiError | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class Severity(str, Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class ThreatItem(BaseModel):
    """A normalized security-news item as served to clients.

    Field names serialize in camelCase (``datePublished``, ``aiSummary`` ...).
    ``cve_id`` and ``affected_products`` are reserved and stay empty.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    cve_id: str = ""
    title: str
    description: str
    severity: Severity = Severity.medium
    ai_summary: str = ""
    date_published: datetime
    source: str
    url: str
    cvss_score: float | None = Field(default=None, ge=0, le=10)
    affected_products: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return bool(self.title.strip()) and bool(self.description.strip())

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RawEntry(BaseModel):
    source: str
    title: str = ""
    excerpt: str = ""
    url: str = ""
    published_hint: str | None = None

    @field_validator("title", "excerpt", "url", mode="before")
    @classmethod
    def _strip(cls, value: str | None) -> str:
        return (value or "").strip()


class SourceOut(BaseModel):
    name: str
    url: str
    article_selector: str


@dataclass(frozen=True)
class TextResult:
    """Outcome of a fetch or summarize call: text on success, reason on failure."""

    ok: bool
    text: str = ""
    reason: str | None = None

    @classmethod
    def success(cls, text: str) -> "TextResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, reason: str) -> "TextResult":
        return cls(ok=False, reason=reason)

    @property
    def text_or_empty(self) -> str:
        return self.text if self.ok else ""
