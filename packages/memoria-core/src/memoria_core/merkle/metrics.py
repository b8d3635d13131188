"""Cadence analytics: confidence, velocity and milestones."""

from __future__ import annotations

import logging

from memoria_core.events import LearningMilestone
from memoria_core.merkle.models import EntityLedger

logger = logging.getLogger(__name__)

ONE_HOUR = 3600
ONE_DAY = 24 * ONE_HOUR
IDLE_GAP = 30 * ONE_DAY

COUNT_MILESTONES: dict[int, str] = {
    10: "First Decade",
    100: "Century",
    1000: "Millennium",
}
IDLE_MILESTONE = "Long Break"


class MetricsEngine:
    """Recomputes LearningMetrics from the update cadence.

    Must run after the ledger's update counter has been incremented.
    """

    def __init__(self, entity: str, ledger: EntityLedger) -> None:
        self._entity = entity
        self._ledger = ledger

    def record_update(self, now: int) -> int:
        """Fold one update at *now* into the metrics.

        Returns the seconds elapsed since the previous update, measured
        against the pre-update timestamp.
        """
        metrics = self._ledger.metrics
        metrics.total_interactions += 1
        metrics.learning_events += 1

        # A clock that steps backwards counts as no elapsed time.
        elapsed = max(0, now - metrics.last_update_timestamp)
        if elapsed != 0:
            metrics.learning_velocity = ONE_DAY // elapsed
        metrics.last_update_timestamp = now

        if self._ledger.update_count <= 1:
            metrics.confidence_score = 0
        else:
            metrics.confidence_score = (
                self._ledger.update_count * 100 + elapsed // ONE_HOUR + 1
            )
        return elapsed

    def milestones(self, elapsed: int, now: int) -> list[LearningMilestone]:
        """Milestones reached by the commit that just happened."""
        reached: list[LearningMilestone] = []
        count = self._ledger.update_count
        name = COUNT_MILESTONES.get(count)
        if name is not None:
            reached.append(
                LearningMilestone(entity=self._entity, timestamp=now, milestone=name, value=count)
            )
        # The first update has no previous one to be idle from.
        if count > 1 and elapsed >= IDLE_GAP:
            reached.append(
                LearningMilestone(
                    entity=self._entity,
                    timestamp=now,
                    milestone=IDLE_MILESTONE,
                    value=elapsed // ONE_DAY,
                )
            )
        for m in reached:
            logger.info("Entity %s reached milestone %r", self._entity, m.milestone)
        return reached
