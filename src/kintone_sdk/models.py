"""Typed shapes for credentials and record query results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

Record = dict[str, dict[str, Any]]


class Credentials(BaseModel):
    """Everything needed to address and authenticate against one Kintone app."""

    model_config = ConfigDict(frozen=True)

    domain: str = Field(min_length=1)
    app: int | str | None = None
    token: str | None = None
    login_name: str | None = None
    password: str | None = None
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        value = value.strip()
        for scheme in ("https://", "http://"):
            if value.startswith(scheme):
                value = value[len(scheme):]
        return value.rstrip("/")

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"


class UpdateKey(BaseModel):
    """Alternate unique field identifying a record for update."""

    field: str = Field(min_length=1)
    value: Any


class RecordsPage(BaseModel):
    records: list[Record]
    total_count: int | None = None


class RecordsResult(BaseModel):
    records: list[Record] = Field(default_factory=list)
    total_count: int | None = None
