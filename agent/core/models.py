from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class Message(BaseModel):
    role: Role
    text: str = ""
    timestamp: datetime = Field(default_factory=utcnow)

    def to_document(self) -> Dict[str, Any]:
        return {"role": self.role.value, "text": self.text, "timestamp": self.timestamp}


def _clean_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _clean_string_set(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        return []
    seen: List[str] = []
    for item in value:
        cleaned = _clean_string(item)
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class ProfileRecord(BaseModel):
    """Structured facts pulled out of a user's own messages.

    Field names follow the camelCase keys stored in the ``userinfos``
    collection. Every extraction run replaces the whole record.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    city: Optional[str] = None
    preferences: List[str] = Field(default_factory=list)
    health_issues: List[str] = Field(default_factory=list, alias="healthIssues")
    interested_products: List[str] = Field(default_factory=list, alias="interestedProducts")
    extracted_at: datetime = Field(default_factory=utcnow, alias="extractedAt")

    @field_validator("name", "city", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _clean_string(value)

    @field_validator("preferences", "health_issues", "interested_products", mode="before")
    @classmethod
    def _coerce_sets(cls, value: Any) -> List[str]:
        return _clean_string_set(value)

    @classmethod
    def from_extracted(cls, data: Any, extracted_at: Optional[datetime] = None) -> "ProfileRecord":
        fields: Dict[str, Any] = dict(data) if isinstance(data, dict) else {}
        # the stamp always comes from this run, never from model output
        fields.pop("extractedAt", None)
        fields.pop("extracted_at", None)
        fields["extractedAt"] = extracted_at or utcnow()
        return cls.model_validate(fields)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
