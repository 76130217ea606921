"""
Temporal stability tracking.

Holds the last accepted frequency so that candidates close to it score
higher on the next call. State is only ever written by the engine,
after a successful spectral detection.
"""

from typing import Optional

from vocalpitch.core.models import StabilityState


STABILITY_WINDOW_MS: int = 500

# (relative difference limit, bonus), checked in order
STABILITY_BONUS_STEPS = (
    (0.05, 15.0),
    (0.10, 8.0),
)


def is_fresh(state: StabilityState, now_ms: int, window_ms: int = STABILITY_WINDOW_MS) -> bool:
    """True when the state holds a frequency accepted within the window."""
    if state.last_frequency_hz is None:
        return False
    return (now_ms - state.last_timestamp_ms) <= window_ms


def stability_bonus(
    state: StabilityState,
    frequency_hz: float,
    now_ms: int,
    window_ms: int = STABILITY_WINDOW_MS,
) -> float:
    """
    Score bonus for a candidate close to the last accepted frequency.

    Returns 15 within 5%, 8 within 10%, otherwise 0. Absent or stale
    state always gives 0.
    """
    if not is_fresh(state, now_ms, window_ms):
        return 0.0

    last = state.last_frequency_hz
    if not last:
        return 0.0

    relative_difference = abs(frequency_hz - last) / last
    for limit, bonus in STABILITY_BONUS_STEPS:
        if relative_difference < limit:
            return bonus
    return 0.0


class StabilityTracker:
    """Owner of one engine's StabilityState."""

    def __init__(self, window_ms: int = STABILITY_WINDOW_MS):
        self.window_ms = int(window_ms)
        self._state = StabilityState()

    @property
    def state(self) -> StabilityState:
        """Current (immutable) state snapshot."""
        return self._state

    def fresh_state(self, now_ms: int) -> Optional[StabilityState]:
        """The state if still within the window, else None."""
        if is_fresh(self._state, now_ms, self.window_ms):
            return self._state
        return None

    def update(self, frequency_hz: float, now_ms: int) -> None:
        self._state = StabilityState(
            last_frequency_hz=float(frequency_hz),
            last_timestamp_ms=int(now_ms),
        )

    def reset(self) -> None:
        self._state = StabilityState()
