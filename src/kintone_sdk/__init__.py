"""Client SDK for the Kintone REST API."""

from .client import KintoneClient
from .errors import (
    KintoneApiError,
    KintoneAuthError,
    KintoneError,
    KintoneTransportError,
    KintoneValidationError,
)
from .models import Credentials, RecordsPage, RecordsResult, UpdateKey
from .paginator import MAX_PAGE_SIZE

__all__ = [
    "MAX_PAGE_SIZE",
    "Credentials",
    "KintoneApiError",
    "KintoneAuthError",
    "KintoneClient",
    "KintoneError",
    "KintoneTransportError",
    "KintoneValidationError",
    "RecordsPage",
    "RecordsResult",
    "UpdateKey",
]
