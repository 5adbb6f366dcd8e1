"""
Result resolution for a quiz session.

Two policies, chosen per quiz through ``Quiz.scoring_policy``:

``weighted``
    Every recorded answer contributes the weights of all its result mappings
    to one running total. The primary result is the one with the highest
    ``min_score`` that the total reaches; if the total reaches none of them,
    the result with the lowest threshold is used.

``voting``
    Every result mapping of every recorded answer is one vote for that
    result, whatever its weight. The result with the most votes wins. Ties go
    to the lowest ``display_order`` (then the lowest id). With no votes at all
    the result with the lowest ``display_order`` is used.

A quiz without results resolves to no primary result in both policies.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from quiz.models import AnswerResultWeight, QuizResult

logger = logging.getLogger("quiz_funnel")

WEIGHTED = "weighted"
VOTING = "voting"


@dataclass(frozen=True)
class ResolvedOutcome:
    primary_result: Optional[QuizResult]
    score: float
    votes: Dict[int, int] = field(default_factory=dict)

    @property
    def is_lead(self) -> bool:
        return bool(self.primary_result and self.primary_result.is_lead)


def _threshold_key(result):
    return (-result.min_score, result.display_order, result.pk)


def _display_key(result):
    return (result.display_order, result.pk)


def pick_threshold_result(total: float, results: Sequence[QuizResult]) -> Optional[QuizResult]:
    """Highest min_score that total reaches, else the lowest threshold."""
    ranked = sorted(results, key=_threshold_key)
    for result in ranked:
        if result.min_score <= total:
            return result
    if ranked:
        return ranked[-1]
    return None


def pick_plurality_result(votes: Dict[int, int], results: Sequence[QuizResult]) -> Optional[QuizResult]:
    """Most votes wins, ties by display order. No votes falls back to display order."""
    if not results:
        return None

    ordered = sorted(results, key=_display_key)
    if not any(votes.get(r.pk, 0) for r in ordered):
        return ordered[0]

    return max(ordered, key=lambda r: (votes.get(r.pk, 0), -r.display_order, -r.pk))


def tally_votes(mappings: Iterable[Tuple[int, float]]) -> Dict[int, int]:
    return dict(Counter(result_id for result_id, _ in mappings))


def sum_weights(mappings: Iterable[Tuple[int, float]]) -> float:
    return float(sum(weight for _, weight in mappings))


def recorded_mappings(session) -> List[Tuple[int, float]]:
    """(result_id, weight) for every mapping attached to every answer the session recorded."""
    return list(
        AnswerResultWeight.objects
        .filter(answer__responses__session=session)
        .values_list('result_id', 'weight')
    )


def resolve_outcome(session) -> ResolvedOutcome:
    mappings = recorded_mappings(session)
    results = list(QuizResult.objects.filter(quiz_id=session.quiz_id))
    policy = session.quiz.scoring_policy

    if policy == VOTING:
        votes = tally_votes(mappings)
        primary = pick_plurality_result(votes, results)
        score = float(votes.get(primary.pk, 0)) if primary else 0.0
        logger.info(f"Session {session.pk} votes {votes}, primary {primary.title if primary else None}")
        return ResolvedOutcome(primary_result=primary, score=score, votes=votes)

    total = sum_weights(mappings)
    primary = pick_threshold_result(total, results)
    logger.info(f"Session {session.pk} total score {total}, primary {primary.title if primary else None}")
    return ResolvedOutcome(primary_result=primary, score=total)
