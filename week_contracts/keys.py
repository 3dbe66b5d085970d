"""Key and blob path conventions for stored submissions."""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_UNDERSCORE_RUN = re.compile(r"_+")

LEGACY_KEY_PREFIX = "submission:"
SIGNATURE_ROLES = ("participant", "parent")


def sanitize(value: str) -> str:
    """Trim, lowercase and replace every non-alphanumeric character with ``_``."""
    return _NON_ALNUM.sub("_", value.strip().lower())


def normalize(value: str) -> str:
    """Like :func:`sanitize` but collapses ``_`` runs and strips them from the ends."""
    collapsed = _UNDERSCORE_RUN.sub("_", _NON_ALNUM.sub("_", value.lower()))
    return collapsed.strip("_")


def build_submission_key(first_name: str, last_name: str, email: str, timestamp_ms: int) -> str:
    return f"{sanitize(first_name)}_{sanitize(last_name)}_{sanitize(email)}_{int(timestamp_ms)}"


def name_prefix(first_name: str, last_name: str) -> str:
    return f"{sanitize(first_name)}_{sanitize(last_name)}_"


def email_fragment(email: str) -> str:
    """The segment an email contributes to a submission key."""
    return sanitize(email)


def key_matches_email(key: str, email: str) -> bool:
    # Names and email are both sanitized with "_", so match the
    # "_<email>_<digits>" tail rather than a substring.
    fragment = email_fragment(email)
    head, sep, timestamp = key.rpartition("_")
    if not sep or not timestamp.isdigit():
        return False
    return head.endswith(f"_{fragment}")


def signature_blob_path(key: str, role: str) -> str:
    if role not in SIGNATURE_ROLES:
        raise ValueError(f"Unknown signature role: {role!r}")
    return f"{key}_{role}.png"


def is_legacy_key(key: str) -> bool:
    return key.startswith(LEGACY_KEY_PREFIX)


def legacy_blob_path(key: str, role: str) -> str:
    if role not in SIGNATURE_ROLES:
        raise ValueError(f"Unknown signature role: {role!r}")
    return f"{key}-{role}.png"
