"""Submission field validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from week_contracts.form_rules import FormRules

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Calendar date, optionally followed by a time part from a datetime input.
DOB_REGEX = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:T\S*)?$")
TEXT_FIELDS = ("firstName", "lastName")


class SubmissionRejected(ValueError):
    """Raised when a submission fails validation; the message is client-facing."""

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass(slots=True)
class ValidatedSubmission:
    data: dict[str, Any]
    is_adult: bool
    dob: date | None = None


def is_blank(value: Any) -> bool:
    if not value:
        return True
    return isinstance(value, str) and value.strip() == ""


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_REGEX.match(value))


def age_on(birth_date: date, today: date) -> int:
    had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (0 if had_birthday else 1)


def _require(data: dict[str, Any], fields: list[str]) -> None:
    for name in fields:
        if is_blank(data.get(name)):
            raise SubmissionRejected(f"Missing required field: {name}", field=name)


def _parse_dob(raw: str) -> date:
    match = DOB_REGEX.match(raw.strip())
    if match is None:
        raise SubmissionRejected("Invalid date of birth", field="dob")
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        raise SubmissionRejected("Invalid date of birth", field="dob") from None


def validate_submission(payload: Any, *, rules: FormRules, today: date) -> ValidatedSubmission:
    """Run the field checks in order; the first failure is raised.

    A missing ``dob`` counts as an adult. Empty fields belonging to the other
    party (parent fields for an adult, participant fields for a minor) are
    accepted.
    """

    if not isinstance(payload, dict):
        raise SubmissionRejected("Bad Request: submission must be a JSON object")

    _require(payload, rules.required_fields)

    for name in TEXT_FIELDS:
        if not isinstance(payload.get(name), str):
            raise SubmissionRejected(f"Bad Request: {name} must be a string", field=name)

    email = payload.get("email")
    if not isinstance(email, str) or not is_valid_email(email):
        raise SubmissionRejected("Invalid email format", field="email")

    birth_date: date | None = None
    raw_dob = payload.get("dob")
    if raw_dob and isinstance(raw_dob, str):
        birth_date = _parse_dob(raw_dob)
        if birth_date > today:
            raise SubmissionRejected("Date of birth cannot be in the future", field="dob")

    is_adult = True
    if birth_date is not None:
        is_adult = age_on(birth_date, today) >= rules.age_of_majority

    _require(payload, rules.conditional_fields(is_adult=is_adult))

    return ValidatedSubmission(data=payload, is_adult=is_adult, dob=birth_date)
