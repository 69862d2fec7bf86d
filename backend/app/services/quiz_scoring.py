"""Quiz grading and badge tiers."""

from app.db.models import Badge

# Highest threshold first
BADGE_THRESHOLDS: tuple[tuple[float, Badge], ...] = (
    (90.0, Badge.GOLD),
    (75.0, Badge.SILVER),
    (50.0, Badge.BRONZE),
)


def grade_answers(selected: list[int], answer_key: list[int]) -> int:
    """Count positions where the selected option index matches the key."""
    return sum(1 for chosen, correct in zip(selected, answer_key) if chosen == correct)


def percentage(score: int, total: int) -> float:
    if total <= 0:
        raise ValueError("total must be positive")
    return score / total * 100


def badge_for(percent: float) -> Badge:
    for threshold, badge in BADGE_THRESHOLDS:
        if percent >= threshold:
            return badge
    return Badge.PARTICIPATION
