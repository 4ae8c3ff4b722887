"""Saudi mobile number validation and normalization."""

import re

_MOBILE_RE = re.compile(r"^(\+9665|05)[0-9]{8}$")


def is_valid_mobile(mobile: str) -> bool:
    """Return True for ``05XXXXXXXX`` or ``+9665XXXXXXXX``."""
    return bool(_MOBILE_RE.match(mobile))


def normalize_mobile(mobile: str) -> str:
    """Rewrite a local ``05XXXXXXXX`` number to ``+9665XXXXXXXX``.

    Raises:
        ValueError: If the number is not a valid Saudi mobile.
    """
    cleaned = mobile.strip()
    if not is_valid_mobile(cleaned):
        raise ValueError(
            f"Invalid mobile number '{mobile}'. Use 05XXXXXXXX or +9665XXXXXXXX."
        )
    if cleaned.startswith("05"):
        return "+966" + cleaned[1:]
    return cleaned


def format_mobile_for_display(mobile: str) -> str:
    """Render ``+9665XXXXXXXX`` back to the local ``05XXXXXXXX`` form."""
    if mobile.startswith("+966"):
        return "0" + mobile[4:]
    return mobile
