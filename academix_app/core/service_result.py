"""Uniform result type returned by every core service operation."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from decimal import Decimal
from functools import wraps
from typing import Any, Callable, Optional

from ..db_instance import db
from .error_handlers import AcademixError, ErrorCodes, http_status_for

__all__ = ["ErrorCodes", "ServiceResult", "service_boundary", "to_jsonable"]

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = 'An unexpected error occurred. Please try again later.'


def to_jsonable(value: Any) -> Any:
    """Convert service payloads (dataclasses, decimals, datetimes) to JSON-safe values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


@dataclasses.dataclass
class ServiceResult:
    success: bool
    data: Any = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    details: dict = dataclasses.field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ServiceResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error_code: str, message: str, details: Optional[dict] = None) -> "ServiceResult":
        return cls(success=False, error_code=error_code, message=message, details=details or {})

    @classmethod
    def from_error(cls, error: AcademixError) -> "ServiceResult":
        return cls.fail(error.code, error.message, error.details)

    @property
    def http_status(self) -> int:
        return 200 if self.success else http_status_for(self.error_code)

    def to_dict(self) -> dict:
        if self.success:
            payload = {'success': True, 'data': to_jsonable(self.data)}
            if self.message:
                payload['message'] = self.message
            return payload
        payload = {'success': False, 'code': self.error_code, 'message': self.message}
        if self.details:
            payload['details'] = to_jsonable(self.details)
        return payload


def service_boundary(operation: str) -> Callable:
    """Turn typed service errors into failed results and roll back the session.

    Unexpected exceptions are logged with their traceback and reported as
    ``INTERNAL_ERROR`` with a generic message.
    """

    def decorator(func: Callable[..., ServiceResult]) -> Callable[..., ServiceResult]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> ServiceResult:
            try:
                return func(*args, **kwargs)
            except AcademixError as exc:
                db.session.rollback()
                logger.info("%s refused: %s (%s)", operation, exc.code, exc.message)
                return ServiceResult.from_error(exc)
            except Exception:
                db.session.rollback()
                logger.exception("%s failed unexpectedly", operation)
                return ServiceResult.fail(ErrorCodes.INTERNAL_ERROR, GENERIC_FAILURE_MESSAGE)

        return wrapper

    return decorator
