"""Unit tests for correction models and replacement suggestions."""

import pytest
from pydantic import ValidationError

from ketolens.domain.correction.models import (
    CorrectionAction,
    CorrectionDecision,
    CorrectionEvent,
    CorrectionOutcome,
)
from ketolens.domain.correction.replacements import suggest_replacements
from ketolens.domain.keto.models import KetoVerdict


class TestCorrectionDecision:
    """Test decision validation."""

    def test_replace_requires_replacement(self) -> None:
        with pytest.raises(ValidationError):
            CorrectionDecision(target="rice", action=CorrectionAction.REPLACED)

    def test_blank_replacement_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CorrectionDecision(
                target="rice", action=CorrectionAction.REPLACED, replacement="  "
            )

    def test_remove_needs_no_replacement(self) -> None:
        decision = CorrectionDecision(target="rice", action="removed")

        assert decision.action == CorrectionAction.REMOVED
        assert decision.replacement is None

    def test_empty_target_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CorrectionDecision(target="", action=CorrectionAction.CONFIRMED)


def test_outcome_counts_removals() -> None:
    events = [
        CorrectionEvent(
            product_or_scan_id="scan-1",
            action=action,
            original_label=f"item {i}",
        )
        for i, action in enumerate(
            [CorrectionAction.REMOVED, CorrectionAction.CONFIRMED, CorrectionAction.REMOVED]
        )
    ]

    outcome = CorrectionOutcome(
        items=[], score=70, verdict=KetoVerdict.BORDERLINE, events=events
    )

    assert outcome.removed_count == 2


def test_event_timestamp_is_utc() -> None:
    event = CorrectionEvent(
        product_or_scan_id="scan-1",
        action=CorrectionAction.CONFIRMED,
        original_label="egg",
    )

    assert event.created_at.tzinfo is not None


@pytest.mark.parametrize(
    "name,expected_first",
    [
        ("Teriyaki Sauce", "Butter"),
        ("Jasmine Rice", "Cauliflower rice"),
        ("garlic bread", "Lettuce wrap"),
        ("Mashed Potato", "Mashed cauliflower"),
        ("penne pasta", "Zucchini noodles"),
        ("ribeye", "Remove item"),
    ],
)
def test_suggest_replacements(name: str, expected_first: str) -> None:
    assert suggest_replacements(name)[0] == expected_first
