"""Completeness-based confidence scoring."""

from .models import RawThought, ThoughtType

BASE_POINTS = 5  # 0.5 in tenths
MAX_POINTS = 10


def score(item: RawThought) -> float:
    """Score how complete an extracted item is.

    Starts at 0.5 and adds 0.1 per populated signal: type, importance,
    next action (tasks), deadline (tasks) and category. Clamped to 1.0.

    Args:
        item: The validated item to score.

    Returns:
        A float in [0.5, 1.0].
    """
    points = BASE_POINTS

    if item.type:
        points += 1

    if item.importance:
        points += 1

    is_task = item.type is ThoughtType.TASK
    if is_task and item.next_action:
        points += 1

    if is_task and item.deadline:
        points += 1

    if item.category:
        points += 1

    # Tenths keep the sum exact (0.5 + 5 * 0.1 would drift below 1.0)
    return min(points, MAX_POINTS) / 10
