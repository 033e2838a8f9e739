"""Certificate domain Pydantic V2 schemas."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class IssueCertificateRequest(BaseModel):
    """Admin request to (re)issue a certificate for a completed course."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: UUID
    course_id: UUID
    recipient_name: str = Field(min_length=1, max_length=200)


class CertificateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    certificate_id: UUID
    user_id: UUID
    course_id: UUID
    certificate_code: str
    verification_url: str
    issued_at: datetime
    recipient_name: str
    course_title: str


class CertificateVerifyResponse(BaseModel):
    """Public verification result — no authentication required."""

    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    certificate_id: UUID | None = None
    certificate_code: str | None = None
    user_id: UUID | None = None
    recipient_name: str | None = None
    course_id: UUID | None = None
    course_title: str | None = None
    issued_at: datetime | None = None
    issued_on: date | None = None
