"""Maps the outcome of an answer to a quality rating.

The table is fixed: hints and wrong answers can never be rated above
"correct with a hint" or "incorrect".
"""

from lexis.domain.models import QualityRating

SELF_RATINGS = (QualityRating.HESITANT, QualityRating.GOOD, QualityRating.PERFECT)


def determine_quality(
    is_correct: bool,
    used_hint: bool,
    is_skipped: bool,
    user_selected: int | None = None,
) -> QualityRating:
    """
    Args:
        is_correct: Typed answer matched the word.
        used_hint: A hint was revealed for this word.
        is_skipped: The learner skipped the word.
        user_selected: Self-rating, only honoured for a correct unhinted answer.

    Returns:
        0 for a skip or a wrong hinted answer, 1 for a wrong answer, 2 for a
        correct hinted answer, otherwise the self-rating clamped to 3..5
        (3 when absent).
    """
    if is_skipped:
        return QualityRating.BLACKOUT
    if not is_correct:
        return QualityRating.BLACKOUT if used_hint else QualityRating.INCORRECT
    if used_hint:
        return QualityRating.HINTED
    if user_selected is None:
        return QualityRating.HESITANT
    return QualityRating(max(QualityRating.HESITANT, min(QualityRating.PERFECT, int(user_selected))))
