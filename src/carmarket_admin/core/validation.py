# src/carmarket_admin/core/validation.py
import re
from typing import List, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
SPECIAL_CHARS_RE = re.compile(r"""[!@#$%^&*(),.?":{}|<>\-_\[\]\\/;'`~+=]""")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_RE.match(email.strip()) is not None


def password_strength_errors(password: str) -> List[str]:
    """Complexity rules for operator-created passwords.

    The HTTP API only enforces the minimum length; the CLI applies the
    full set.
    """
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("At least one uppercase letter (A-Z)")
    if not re.search(r"[a-z]", password):
        errors.append("At least one lowercase letter (a-z)")
    if not re.search(r"\d", password):
        errors.append("At least one digit (0-9)")
    if not SPECIAL_CHARS_RE.search(password):
        errors.append("At least one special character (!@#$%^&*...)")
    return errors
