"""
PII (Personally Identifiable Information) masking for log payloads.
"""
import re
from typing import Any

UUID_RE = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.I)
PHONE_RE = re.compile(r'^[\d\s\+\-\(\)]+$')

# Keys whose values are hidden completely
SECRET_FIELDS = {"authorization", "token", "id_token", "password", "private_key", "signature"}

# Free-text address parts
ADDRESS_FIELDS = {"address", "city", "postalcode", "postal_code"}


def mask_email(email: str) -> str:
    """Mask email address."""
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        masked = "**"
    else:
        masked = local[:2] + "*" * (len(local) - 2)
    return f"{masked}@{domain}"


def mask_phone(phone: str) -> str:
    """Mask phone number, keeping the first and last two characters."""
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]


def mask_name(name: str) -> str:
    if len(name) <= 2:
        return "**"
    return name[0] + "*" * (len(name) - 2) + name[-1]


def mask_uuid(uuid_str: str) -> str:
    """Mask UUID (show first 8 chars only)."""
    if len(uuid_str) < 8:
        return "*" * len(uuid_str)
    return uuid_str[:8] + "-****-****-****-************"


def mask_value(key: str, value: Any) -> Any:
    """Mask a single value according to its key and shape."""
    if not isinstance(value, str):
        return value

    key_lower = key.lower()
    if key_lower in SECRET_FIELDS:
        return "***"
    if key_lower in ADDRESS_FIELDS:
        return "*" * min(len(value), 8)
    if "@" in value:
        return mask_email(value)
    if "phone" in key_lower or (key_lower != "quantity" and PHONE_RE.match(value) and len(value) >= 7):
        return mask_phone(value)
    if UUID_RE.match(value):
        return mask_uuid(value)
    if "name" in key_lower:
        return mask_name(value)
    if key_lower.endswith("id") and len(value) > 10:
        return mask_uuid(value)
    return value


def mask_pii_in_dict(data: dict) -> dict:
    """Mask PII in dictionary recursively."""
    masked = {}
    for key, value in data.items():
        if isinstance(value, dict):
            masked[key] = mask_pii_in_dict(value)
        elif isinstance(value, list):
            masked[key] = [mask_pii_in_dict(item) if isinstance(item, dict) else item for item in value]
        else:
            masked[key] = mask_value(key, value)
    return masked
