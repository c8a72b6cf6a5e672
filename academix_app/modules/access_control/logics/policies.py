"""Role constants and pure role checks."""

from typing import Optional

ROLE_ADMIN = 'ADMIN'
ROLE_TEACHER = 'TEACHER'
ROLE_STUDENT = 'STUDENT'

KNOWN_ROLES = (ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT)


def normalize_role(role: Optional[str]) -> str:
    """Roles compare case-insensitively; unknown values normalise to ''."""
    if not role:
        return ''
    value = str(role).strip().upper()
    return value if value in KNOWN_ROLES else ''


def has_role(role: Optional[str], expected: str) -> bool:
    return normalize_role(role) == expected
