"""
Correction workflow.

Applies user decisions (confirm, remove, replace) to detected food items,
records each decision in the audit log and re-scores the result.
"""

from typing import Dict, List, Sequence

import structlog

from ketolens.domain.correction.models import (
    CorrectionAction,
    CorrectionDecision,
    CorrectionEvent,
    CorrectionOutcome,
)
from ketolens.domain.correction.ports import ICorrectionLog
from ketolens.domain.keto.models import DetectedFoodItem, KetoVerdict
from ketolens.domain.shared.errors import PersistenceError

logger = structlog.get_logger(__name__)

REMOVAL_BONUS = 5
PROMOTION_THRESHOLD = 75


class CorrectionWorkflow:
    """
    Rebuild a detected item list from user decisions.

    Scoring is an approximation: each removed item is worth +5 points,
    capped at 100. A borderline verdict is promoted to safe once the
    adjusted score reaches 75. Verdicts are never demoted.

    Example:
        >>> workflow = CorrectionWorkflow(InMemoryCorrectionLog())
        >>> outcome = await workflow.apply(
        ...     items, decisions, score=60, verdict=KetoVerdict.BORDERLINE,
        ...     scan_id="scan-1",
        ... )
    """

    def __init__(self, log: ICorrectionLog) -> None:
        self.log = log

    async def apply(
        self,
        items: Sequence[DetectedFoodItem],
        decisions: Sequence[CorrectionDecision],
        score: int,
        verdict: KetoVerdict,
        scan_id: str,
    ) -> CorrectionOutcome:
        """
        Apply decisions to the item list.

        Args:
            items: Items as detected
            decisions: User decisions, matched to items by name
            score: Current score (0-100)
            verdict: Current verdict
            scan_id: Scan the correction belongs to

        Returns:
            CorrectionOutcome with rebuilt items, adjusted score and verdict
        """
        by_name: Dict[str, DetectedFoodItem] = {item.name: item for item in items}

        applied: Dict[str, CorrectionDecision] = {}
        events: List[CorrectionEvent] = []
        skipped: List[str] = []

        for decision in decisions:
            target = decision.target.strip()
            item = by_name.get(target)
            if item is None:
                logger.warning(
                    "Correction target not found, skipping",
                    scan_id=scan_id,
                    target=target,
                    action=decision.action.value,
                )
                skipped.append(target)
                continue

            event = CorrectionEvent(
                product_or_scan_id=scan_id,
                action=decision.action,
                original_label=item.name,
                corrected_label=(
                    decision.replacement.strip()
                    if decision.action == CorrectionAction.REPLACED and decision.replacement
                    else None
                ),
                model_confidence=item.confidence,
            )
            await self._record(event)
            events.append(event)
            applied[target] = decision

        rebuilt: List[DetectedFoodItem] = []
        removed = 0
        for item in items:
            decision = applied.get(item.name)
            if decision is None or decision.action == CorrectionAction.CONFIRMED:
                rebuilt.append(item)
            elif decision.action == CorrectionAction.REMOVED:
                removed += 1
            else:
                rebuilt.append(item.renamed((decision.replacement or "").strip()))

        new_score = min(100, score + REMOVAL_BONUS * removed)
        new_verdict = verdict
        if verdict == KetoVerdict.BORDERLINE and new_score >= PROMOTION_THRESHOLD:
            new_verdict = KetoVerdict.SAFE

        logger.info(
            "Corrections applied",
            scan_id=scan_id,
            decisions=len(decisions),
            removed=removed,
            skipped=len(skipped),
            score_before=score,
            score_after=new_score,
            verdict=new_verdict.value,
        )

        return CorrectionOutcome(
            items=rebuilt,
            score=new_score,
            verdict=new_verdict,
            events=events,
            skipped_targets=skipped,
        )

    async def _record(self, event: CorrectionEvent) -> None:
        try:
            await self.log.append(event)
        except PersistenceError as e:
            logger.warning(
                "Correction log write failed",
                scan_id=event.product_or_scan_id,
                action=event.action.value,
                error=str(e),
            )
