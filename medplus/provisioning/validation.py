"""Input checks run before the provisioning saga touches the backend."""

import re

from medplus.exceptions import ValidationError

MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def validate_email(email: str | None) -> str:
    if not email or not _EMAIL_RE.fullmatch(email):
        raise ValidationError("Invalid email format")
    return email


def validate_password(password: str | None, confirm_password: str | None = None) -> str:
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if confirm_password is not None and confirm_password != password:
        raise ValidationError("Passwords do not match")
    return password
