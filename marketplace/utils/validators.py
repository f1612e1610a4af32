"""
Field validation helpers shared by the ORM models.
Every helper returns the normalised value or raises ValueError with a
human-readable message; services translate those into API errors.
"""

import enum
import ipaddress
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Type, TypeVar
from urllib.parse import urlparse

E = TypeVar("E", bound=enum.Enum)


class ValidationUtils:
    """
    Reusable validation operations for model attributes.
    Optional values pass through as None unless a helper says otherwise.
    """

    PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{6,14}$')
    DIGITS_PATTERN = re.compile(r'^\d+$')
    URL_SCHEMES = ("http", "https")

    @staticmethod
    def require(value: Any, message: str) -> Any:
        if value is None:
            raise ValueError(message)
        return value

    @staticmethod
    def non_empty(value: Optional[str], message: str, required: bool = True) -> Optional[str]:
        """
        Reject blank strings.

        Args:
            value: String to check
            message: Error message when the check fails
            required: Whether None is rejected as well

        Returns:
            The stripped string, or None for an optional missing value
        """
        if value is None:
            if required:
                raise ValueError(message)
            return None
        if not str(value).strip():
            raise ValueError(message)
        return str(value).strip()

    @staticmethod
    def length(value: Optional[str], field_name: str, min_length: int = 0,
               max_length: Optional[int] = None) -> Optional[str]:
        if value is None:
            return None
        size = len(value)
        if size < min_length or (max_length is not None and size > max_length):
            if max_length is None:
                raise ValueError(f"{field_name} must be at least {min_length} characters")
            if min_length == 0:
                raise ValueError(f"{field_name} must be less than {max_length} characters")
            raise ValueError(f"{field_name} must be between {min_length} and {max_length} characters")
        return value

    @staticmethod
    def number_range(value: Any, field_name: str, min_value: Any = None,
                     max_value: Any = None, min_message: Optional[str] = None,
                     max_message: Optional[str] = None) -> Any:
        """
        Check an optional numeric value against inclusive bounds.

        Raises:
            ValueError: If value is outside the bounds
        """
        if value is None:
            return None
        if min_value is not None and value < min_value:
            raise ValueError(min_message or f"{field_name} must be at least {min_value}")
        if max_value is not None and value > max_value:
            raise ValueError(max_message or f"{field_name} cannot exceed {max_value}")
        return value

    @staticmethod
    def to_decimal(value: Any, field_name: str) -> Optional[Decimal]:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValueError(f"{field_name} must be a valid decimal number")

    @staticmethod
    def to_enum(value: Any, enum_cls: Type[E], field_name: str) -> Optional[E]:
        """Coerce a raw value or member name into an enum member."""
        if value is None or isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            pass
        try:
            return enum_cls[str(value).upper()]
        except KeyError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ValueError(f"Invalid {field_name} '{value}'. Allowed values: {allowed}")

    @staticmethod
    def url(value: Optional[str], message: str = "Invalid URL format") -> Optional[str]:
        if value is None:
            return None
        parsed = urlparse(str(value).strip())
        if parsed.scheme not in ValidationUtils.URL_SCHEMES or not parsed.netloc or "." not in parsed.netloc:
            raise ValueError(message)
        return str(value).strip()

    @staticmethod
    def url_list(values: Optional[Iterable[str]], message: str = "Invalid URL format") -> list:
        return [ValidationUtils.url(item, message) for item in (values or [])]

    @staticmethod
    def ip_address(value: Optional[str], message: str = "Invalid IP address format") -> Optional[str]:
        if value is None:
            return None
        try:
            return str(ipaddress.ip_address(str(value).strip()))
        except ValueError:
            raise ValueError(message)

    @staticmethod
    def phone_number(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        phone = re.sub(r'[\s\-\(\)]', '', str(value))
        if not ValidationUtils.PHONE_PATTERN.match(phone):
            raise ValueError("Invalid phone number format")
        return phone

    @staticmethod
    def one_of(value: Optional[str], allowed: Iterable[str], message: str) -> Optional[str]:
        if value is None:
            return None
        if value not in allowed:
            raise ValueError(message)
        return value

    @staticmethod
    def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
        """Treat naive datetimes as UTC so they compare against aware ones."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @staticmethod
    def required_keys(value: Optional[dict], keys: Iterable[str], label: str) -> Optional[dict]:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValueError(f"{label} must be an object")
        missing = [key for key in keys if not value.get(key)]
        if missing:
            raise ValueError(f"Missing required {label} fields: {', '.join(missing)}")
        return value
