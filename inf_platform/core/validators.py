"""
Local input validation - runs before any database call.

One canonical rule set for every signup/profile form (student and company
signup share it; the minimum length and allowed domains come from settings).
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from inf_platform.core.config import get_settings
from inf_platform.core.errors import ValidationFailed

SPECIAL_CHARS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')
PHONE_REGEX = re.compile(r"^(\+212|0)[5-7][0-9]{8}$")
COMMON_PASSWORDS = ["password", "12345678", "qwerty", "admin", "letmein"]


@dataclass
class PasswordStrength:
    score: int = 0
    feedback: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.score >= 6 and not self.feedback


def check_password_strength(password: str, min_length: Optional[int] = None) -> PasswordStrength:
    """
    Score a password 0-6 and collect the unmet requirements.

    Valid only when every requirement is met and no common password is embedded.
    """
    if min_length is None:
        min_length = get_settings().password_min_length

    result = PasswordStrength()

    if len(password) >= min_length:
        result.score += 2
    else:
        result.feedback.append(f"At least {min_length} characters")

    if re.search(r"[A-Z]", password):
        result.score += 1
    else:
        result.feedback.append("One uppercase letter")

    if re.search(r"[a-z]", password):
        result.score += 1
    else:
        result.feedback.append("One lowercase letter")

    if re.search(r"[0-9]", password):
        result.score += 1
    else:
        result.feedback.append("One number")

    if SPECIAL_CHARS.search(password):
        result.score += 1
    else:
        result.feedback.append("One special character (!@#$%^&*)")

    lowered = password.lower()
    if any(common in lowered for common in COMMON_PASSWORDS):
        result.feedback.append("Avoid common passwords")
        result.score = max(0, result.score - 2)

    return result


def sanitize_input(value: str) -> str:
    """Trim and drop angle brackets."""
    return value.strip().replace("<", "").replace(">", "")


def validate_phone(phone: Optional[str]) -> bool:
    """Moroccan format: +212 6XX XXX XXX or 06XX XXX XXX. Empty is allowed."""
    if not phone:
        return True
    return bool(PHONE_REGEX.match(phone.replace(" ", "")))


def validate_full_name(full_name: str) -> bool:
    return len(sanitize_input(full_name)) >= 2


def validate_email_domain(email: str, allowed: Optional[List[str]] = None) -> bool:
    allowed = allowed if allowed is not None else get_settings().allowed_email_domains
    domain = email.rsplit("@", 1)[-1].lower()
    return domain in [d.lower() for d in allowed]


def validate_signup(email: str, password: str, full_name: str, phone: Optional[str] = None) -> dict:
    """
    Run every signup check in order and return the sanitized values.

    Raises:
        ValidationFailed with the first failing rule
    """
    name = sanitize_input(full_name)
    clean_email = sanitize_input(email.lower())
    clean_phone = sanitize_input(phone) if phone else None

    if not validate_full_name(name):
        raise ValidationFailed("Please enter a valid full name (at least 2 characters)")

    if not validate_email_domain(clean_email):
        domains = ", ".join(f"@{d}" for d in get_settings().allowed_email_domains)
        raise ValidationFailed(f"Email must be from an allowed domain ({domains})")

    strength = check_password_strength(password)
    if not strength.is_valid:
        raise ValidationFailed(
            f"Password must meet requirements: {', '.join(strength.feedback)}",
            feedback=strength.feedback,
        )

    if clean_phone and not validate_phone(clean_phone):
        raise ValidationFailed("Invalid phone number format. Use format: +212 6XX XXX XXX or 06XX XXX XXX")

    return {"email": clean_email, "full_name": name, "phone": clean_phone or None}
