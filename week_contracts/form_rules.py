"""Form field rules loading utilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any

import yaml

DEFAULT_AGE_OF_MAJORITY = 18
_RULES_CACHE: dict[Path, tuple[float, FormRules]] = {}
_RULES_LOCK = RLock()


@dataclass(slots=True)
class FormRules:
    """Which fields a submission must carry."""

    required_fields: list[str]
    adult_fields: list[str]
    minor_fields: list[str]
    age_of_majority: int = DEFAULT_AGE_OF_MAJORITY
    labels: dict[str, str] = field(default_factory=dict)

    def conditional_fields(self, *, is_adult: bool) -> list[str]:
        return self.adult_fields if is_adult else self.minor_fields

    def label(self, field_name: str) -> str:
        return self.labels.get(field_name, field_name)


def _ensure_names(value: Any, *, section: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{section} must be a list of field names")
    return [str(item) for item in value]


def parse_rules(data: dict[str, Any]) -> FormRules:
    labels = data.get("labels", {}) or {}
    if not isinstance(labels, dict):
        raise ValueError("labels must be a mapping of field -> label")

    required = _ensure_names(data.get("required_fields"), section="required_fields")
    if not required:
        raise ValueError("required_fields must name at least one field")

    return FormRules(
        required_fields=required,
        adult_fields=_ensure_names(data.get("adult_fields"), section="adult_fields"),
        minor_fields=_ensure_names(data.get("minor_fields"), section="minor_fields"),
        age_of_majority=int(data.get("age_of_majority", DEFAULT_AGE_OF_MAJORITY)),
        labels={str(key): str(value) for key, value in labels.items()},
    )


def load_rules(path: Path, *, use_cache: bool = True) -> FormRules:
    resolved = path.resolve()
    try:
        mtime = resolved.stat().st_mtime
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Form rules file {resolved} not found") from exc

    if use_cache:
        with _RULES_LOCK:
            cached = _RULES_CACHE.get(resolved)
            if cached and cached[0] == mtime:
                return cached[1]

    data = yaml.safe_load(resolved.read_text(encoding="utf-8"))
    if data is None:
        raise ValueError(f"Form rules file {resolved} is empty")
    if not isinstance(data, dict):
        raise ValueError(f"Form rules file {resolved} must contain a mapping")

    rules = parse_rules(data)

    if use_cache:
        with _RULES_LOCK:
            _RULES_CACHE[resolved] = (mtime, rules)

    return rules


def invalidate_rules_cache(path: Path | None = None) -> None:
    """Clear cached rule entries (all or a specific file)."""

    with _RULES_LOCK:
        if path is None:
            _RULES_CACHE.clear()
        else:
            _RULES_CACHE.pop(path.resolve(), None)
