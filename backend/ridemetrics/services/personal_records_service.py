"""Cross-ride personal records for the canonical power curve durations."""

import logging
from datetime import date
from typing import Optional, Sequence

from ridemetrics.schemas.power import CANONICAL_DURATIONS, PersonalRecord, RideCurve

logger = logging.getLogger(__name__)


class PersonalRecordsService:
    """Fold many rides' power curves into all-time bests."""

    def aggregate(
        self,
        curves: Sequence[RideCurve],
        durations: Sequence[int] = CANONICAL_DURATIONS
    ) -> dict[int, PersonalRecord]:
        """
        Find the best power per duration across all rides.

        Only a strictly higher power replaces the current record, so ties
        keep the ride that appears first in ``curves``.

        Args:
            curves: Power curves with their ride identity and date
            durations: Durations to report, in seconds

        Returns:
            Dictionary mapping duration to PersonalRecord (power 0 when unseen)
        """
        records = {
            duration: PersonalRecord(duration_seconds=duration)
            for duration in durations
        }

        for curve in curves:
            for duration, record in records.items():
                power = curve.get(duration)
                if power is not None and power > record.power:
                    records[duration] = PersonalRecord(
                        duration_seconds=duration,
                        power=power,
                        ride_id=curve.ride_id,
                        ride_date=curve.ride_date,
                    )

        logger.debug(f"Aggregated personal records from {len(curves)} power curves")
        return records

    def best_by_duration(
        self,
        curves: Sequence[RideCurve],
        since: Optional[date] = None
    ) -> tuple[dict[int, float], int]:
        """
        Collapse many rides into the best power per duration.

        Args:
            curves: Power curves with their ride date
            since: Only consider rides on or after this date (undated rides are skipped)

        Returns:
            Tuple of (duration -> best watts, number of contributing rides)
        """
        best: dict[int, float] = {}
        ride_count = 0

        for curve in curves:
            if since is not None and (curve.ride_date is None or curve.ride_date < since):
                continue
            if not curve.powers:
                continue

            ride_count += 1
            for duration, power in curve.powers.items():
                if power > best.get(duration, 0):
                    best[duration] = power

        return best, ride_count


# Create a singleton instance for convenience
personal_records_service = PersonalRecordsService()
