"""
Markov regime classification of recent demand.

The regime is recomputed from the trailing window on every call. Transition
counts and streak length only continue when the caller threads the previous
MarkovState back in; nothing is remembered between calls.
"""

from collections.abc import Sequence

from models.enums import ActivityRegime
from models.forecast import HistoricalDemandPoint, MarkovState

RECENT_WINDOW_DAYS = 7
LOW_ACTIVITY_THRESHOLD = 3.0
HIGH_ACTIVITY_THRESHOLD = 8.0


def classify_activity(mean_demand: float) -> ActivityRegime:
    if mean_demand < LOW_ACTIVITY_THRESHOLD:
        return ActivityRegime.LOW
    if mean_demand < HIGH_ACTIVITY_THRESHOLD:
        return ActivityRegime.NORMAL
    return ActivityRegime.HIGH


def transition_key(from_state: ActivityRegime, to_state: ActivityRegime) -> str:
    return f"{from_state.value}_to_{to_state.value}"


def detect_markov_state(
    series: Sequence[HistoricalDemandPoint],
    previous_state: MarkovState | None = None,
) -> MarkovState:
    """
    Classify the trailing week of demand and update transition bookkeeping.

    Args:
        series: Daily demand series, ascending by date.
        previous_state: State returned by an earlier call, if any. It is never mutated.

    Returns:
        A new MarkovState. With no history the regime is low activity with a
        zero-day streak.
    """
    counts = dict(previous_state.transition_counts) if previous_state else {}
    recent = list(series)[-RECENT_WINDOW_DAYS:]
    if not recent:
        return MarkovState(
            current=ActivityRegime.LOW, transition_counts=counts, consecutive_days=0
        )

    mean_demand = sum(point.stock_out_volume for point in recent) / len(recent)
    current = classify_activity(mean_demand)

    if previous_state is None:
        return MarkovState(current=current, transition_counts=counts, consecutive_days=1)

    key = transition_key(previous_state.current, current)
    counts[key] = counts.get(key, 0) + 1
    if previous_state.current == current:
        streak = previous_state.consecutive_days + 1
    else:
        streak = 1
    return MarkovState(current=current, transition_counts=counts, consecutive_days=streak)
