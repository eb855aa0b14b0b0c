"""Domain errors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class KintoneError(RuntimeError):
    """Base class for every error the SDK raises."""

    code: str
    message: str

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(eq=False)
class KintoneValidationError(KintoneError):
    """Raised before any request is made when an argument is unusable."""


@dataclass(eq=False)
class KintoneAuthError(KintoneError):
    """Raised when neither password auth nor an API token is configured."""


@dataclass(eq=False)
class KintoneTransportError(KintoneError):
    """Raised when the HTTP transport fails (DNS, connect, timeout, ...)."""

    method: str = ""
    url: str = ""


@dataclass(eq=False)
class KintoneApiError(KintoneError):
    """Raised when the Kintone REST API returns an error response."""

    status_code: int | None = None
    method: str = ""
    url: str = ""
    payload: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return (
            f"Kintone API error {self.status_code} for {self.method} {self.url}: "
            f"[{self.code}] {self.message}"
        )
