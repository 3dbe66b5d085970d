from __future__ import annotations

from pathlib import Path

import pytest

from week_contracts.form_rules import invalidate_rules_cache, load_rules, parse_rules


def test_bundled_rules_cover_form_fields() -> None:
    rules = load_rules(Path("config/form.yaml"))

    assert rules.required_fields[0] == "preferredLanguage"
    assert "signatureParticipant" not in rules.required_fields
    assert rules.conditional_fields(is_adult=True) == ["fullNameParticipant", "signatureParticipant"]
    assert rules.conditional_fields(is_adult=False) == ["fullNameParent", "signatureParent"]
    assert rules.age_of_majority == 18
    assert rules.label("emergencyPhone") == "Emergency Contact Phone"
    assert rules.label("extraField") == "extraField"


def test_rules_reload_after_invalidation(tmp_path: Path) -> None:
    path = tmp_path / "form.yaml"
    path.write_text("required_fields: [firstName]\n", encoding="utf-8")
    first = load_rules(path)

    path.write_text("required_fields: [firstName, email]\nage_of_majority: 19\n", encoding="utf-8")
    invalidate_rules_cache(path)
    second = load_rules(path)

    assert first.required_fields == ["firstName"]
    assert second.required_fields == ["firstName", "email"]
    assert second.age_of_majority == 19


def test_missing_rules_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "absent.yaml")


def test_empty_rules_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "form.yaml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError, match="empty"):
        load_rules(path)


def test_rules_require_at_least_one_field() -> None:
    with pytest.raises(ValueError, match="required_fields"):
        parse_rules({"adult_fields": ["fullNameParticipant"]})
