"""Token budget threshold monitor.

Maps a running token count to a stage, a severity badge and a recommended
action. The caller owns the running count; the monitor keeps no state.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import InvalidInputError
from .models import Classification, RecommendedAction, ThresholdConfig, ThresholdStage


@dataclass(frozen=True)
class StageProfile:
    """Presentation and advice attached to a stage."""

    stage: ThresholdStage
    icon: str
    label: str
    advice: str
    action: RecommendedAction


STAGE_PROFILES: dict[ThresholdStage, StageProfile] = {
    ThresholdStage.FRESH: StageProfile(
        ThresholdStage.FRESH, "🟢", "OK",
        "plenty of room left",
        RecommendedAction.NONE,
    ),
    ThresholdStage.GROWING: StageProfile(
        ThresholdStage.GROWING, "🟡", "NOTICE",
        "consider delegating exploration to a sub-agent",
        RecommendedAction.DELEGATE,
    ),
    ThresholdStage.LARGE: StageProfile(
        ThresholdStage.LARGE, "🟠", "ALERT",
        "delegate remaining research before continuing",
        RecommendedAction.DELEGATE,
    ),
    ThresholdStage.CRITICAL: StageProfile(
        ThresholdStage.CRITICAL, "🔴", "WARNING",
        "save a context bundle now",
        RecommendedAction.SAVE_BUNDLE,
    ),
    ThresholdStage.OVERLOAD: StageProfile(
        ThresholdStage.OVERLOAD, "🔴", "CRITICAL",
        "save a bundle and hand off to a fresh session",
        RecommendedAction.HANDOFF,
    ),
}


class ThresholdMonitor:
    """Classifies token counts against fixed breakpoints."""

    def __init__(self, thresholds: ThresholdConfig | None = None) -> None:
        """Initialize monitor with breakpoints.

        Args:
            thresholds: Lower bounds of each stage, defaults to the standard
                60k/100k/120k/150k breakpoints
        """
        self.thresholds = thresholds or ThresholdConfig()
        # Highest breakpoint first; the first bound reached wins.
        self._breakpoints: tuple[tuple[int, ThresholdStage], ...] = (
            (self.thresholds.overload, ThresholdStage.OVERLOAD),
            (self.thresholds.critical, ThresholdStage.CRITICAL),
            (self.thresholds.large, ThresholdStage.LARGE),
            (self.thresholds.growing, ThresholdStage.GROWING),
        )

    def stage_for(self, token_count: int) -> ThresholdStage:
        """Return the stage a token count falls into.

        Raises:
            InvalidInputError: If token_count is not a non-negative integer
        """
        if isinstance(token_count, bool) or not isinstance(token_count, int):
            msg = f"Token count must be an integer, got {type(token_count).__name__}"
            raise InvalidInputError(msg, details={"token_count": token_count})
        if token_count < 0:
            msg = f"Token count must be non-negative, got {token_count}"
            raise InvalidInputError(msg, details={"token_count": token_count})

        for lower_bound, stage in self._breakpoints:
            if token_count >= lower_bound:
                return stage
        return ThresholdStage.FRESH

    def classify(self, token_count: int) -> Classification:
        """Classify a token count into a stage with a status message.

        Args:
            token_count: Current context window usage

        Returns:
            Classification with stage, badge, message and recommended action

        Raises:
            InvalidInputError: If token_count is negative or not an integer
        """
        entry = STAGE_PROFILES[self.stage_for(token_count)]
        return Classification(
            stage=entry.stage,
            icon=entry.icon,
            label=entry.label,
            tokens=token_count,
            message=f"{entry.icon} {entry.label}: {token_count} tokens, {entry.advice}",
            action=entry.action,
        )


_default_monitor = ThresholdMonitor()


def classify(token_count: int) -> Classification:
    """Classify a token count using the default breakpoints."""
    return _default_monitor.classify(token_count)
