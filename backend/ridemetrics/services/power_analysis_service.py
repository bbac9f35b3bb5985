"""Power stream analysis service.

Extracts per-ride power metrics from 1Hz power samples:
- Best efforts (mean-maximal power) for the canonical curve durations
- Normalized Power (NP), Intensity Factor (IF), Variability Index (VI)
- Power zones and time-in-zone distribution
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from ridemetrics.schemas.power import CANONICAL_DURATIONS, BestEffort, PowerCurve, PowerZone

logger = logging.getLogger(__name__)


class PowerAnalysisService:
    """Analyze raw power samples from a single ride."""

    ROLLING_AVG_WINDOW = 30  # Seconds for NP calculation
    MAX_EXACT_TIE_CHECKS = 64  # Near-tied plateaus re-summed exactly per duration

    # Power zone percentages of FTP (lower bound inclusive, upper bound exclusive)
    POWER_ZONES = {
        "zone_1": {"name": "Recovery", "min": 0, "max": 55},
        "zone_2": {"name": "Endurance", "min": 55, "max": 75},
        "zone_3": {"name": "Tempo", "min": 75, "max": 90},
        "zone_4": {"name": "Threshold", "min": 90, "max": 105},
        "zone_5": {"name": "VO2max", "min": 105, "max": 120},
        "zone_6": {"name": "Anaerobic", "min": 120, "max": float("inf")},
    }

    @staticmethod
    def _clean_samples(samples: Sequence[Optional[float]]) -> np.ndarray:
        """Replace dropouts (None, NaN, negative) with 0W; keep integer streams integral."""
        cleaned = [p if p is not None and p > 0 else 0 for p in samples]
        power = np.asarray(cleaned)
        if power.dtype.kind in "iub":
            return power.astype(np.int64)
        return power.astype(np.float64)

    @staticmethod
    def _cumulative(power: np.ndarray) -> np.ndarray:
        return np.concatenate((np.zeros(1, dtype=power.dtype), np.cumsum(power)))

    def _best_window(
        self,
        power: np.ndarray,
        cumulative: np.ndarray,
        duration_seconds: int
    ) -> Optional[BestEffort]:
        if duration_seconds <= 0 or power.size < duration_seconds:
            return None

        window_sums = cumulative[duration_seconds:] - cumulative[:-duration_seconds]
        best_start = int(np.argmax(window_sums))  # argmax returns the first maximum

        if power.dtype.kind == "f":
            # Float prefix sums carry rounding error; settle near-ties on exact sums
            tolerance = 1e-9 * max(1.0, abs(float(window_sums[best_start])))
            candidates = np.flatnonzero(window_sums >= window_sums[best_start] - tolerance)
            # A run of adjacent near-tied windows is one plateau; its first window stands for it
            plateau_starts = candidates[np.concatenate(([True], np.diff(candidates) > 1))]
            if plateau_starts.size > self.MAX_EXACT_TIE_CHECKS:
                plateau_starts = plateau_starts[:self.MAX_EXACT_TIE_CHECKS]
            checked = np.union1d(plateau_starts, [best_start])

            best_total = -math.inf
            for start in checked:
                total = math.fsum(power[start:start + duration_seconds])
                if total > best_total:
                    best_total = total
                    best_start = int(start)
            average_power = best_total / duration_seconds
        else:
            average_power = int(window_sums[best_start]) / duration_seconds

        return BestEffort(
            duration_seconds=duration_seconds,
            average_power=average_power,
            start_index=best_start,
            end_index=best_start + duration_seconds,
        )

    def best_effort(
        self,
        samples: Sequence[Optional[float]],
        duration_seconds: int
    ) -> Optional[BestEffort]:
        """
        Find the best average power sustained for a fixed duration.

        Slides a window of ``duration_seconds`` over the stream and keeps the
        highest mean. Ties resolve to the earliest window.

        Args:
            samples: Power values in watts (1Hz sampling rate)
            duration_seconds: Window length in seconds

        Returns:
            BestEffort, or None if the stream is shorter than the window
        """
        if samples is None or len(samples) == 0 or len(samples) < duration_seconds:
            return None

        power = self._clean_samples(samples)
        return self._best_window(power, self._cumulative(power), duration_seconds)

    def analyze_ride(
        self,
        samples: Sequence[Optional[float]],
        durations: Sequence[int] = CANONICAL_DURATIONS
    ) -> PowerCurve:
        """
        Build the power curve of a ride.

        Durations longer than the ride are left out of the curve.

        Args:
            samples: Power values in watts (1Hz sampling rate)
            durations: Durations to evaluate, in seconds

        Returns:
            PowerCurve mapping duration to best average watts
        """
        powers: dict[int, int] = {}
        if samples is None or len(samples) == 0:
            return PowerCurve(powers=powers)

        power = self._clean_samples(samples)
        cumulative = self._cumulative(power)

        for duration in durations:
            effort = self._best_window(power, cumulative, duration)
            if effort:
                powers[duration] = int(round(effort.average_power))

        logger.debug(
            f"Analyzed {power.size} samples: {len(powers)}/{len(durations)} durations available"
        )
        return PowerCurve(powers=powers)

    def calculate_normalized_power(self, samples: Sequence[Optional[float]]) -> int:
        """
        Calculate Normalized Power (NP) from a power stream.

        NP accounts for the variability of power output during a ride.
        Algorithm:
        1. Calculate 30-second rolling average of power
        2. Raise each value to the 4th power
        3. Take the average of these values
        4. Take the 4th root

        Args:
            samples: Power values in watts (1Hz sampling rate)

        Returns:
            Normalized Power in watts as an integer
        """
        if samples is None or len(samples) == 0:
            return 0

        if len(samples) < self.ROLLING_AVG_WINDOW:
            # Not enough data for rolling average, return average power
            valid_values = [p for p in samples if p is not None and p >= 0]
            if valid_values:
                return int(sum(valid_values) / len(valid_values))
            return 0

        power = self._clean_samples(samples).astype(np.float64)
        cumulative = self._cumulative(power)
        rolling_averages = (
            cumulative[self.ROLLING_AVG_WINDOW:] - cumulative[:-self.ROLLING_AVG_WINDOW]
        ) / self.ROLLING_AVG_WINDOW

        normalized_power = float(np.mean(rolling_averages ** 4)) ** 0.25
        return int(round(normalized_power))

    def calculate_intensity_factor(self, normalized_power: float, ftp: Optional[int]) -> float:
        """
        Calculate Intensity Factor (IF).

        IF = NP / FTP
        IF of 1.0 means the workout was at FTP intensity.
        """
        if not ftp or ftp <= 0 or normalized_power <= 0:
            return 0.0

        return round(normalized_power / ftp, 2)

    def calculate_variability_index(self, normalized_power: float, average_power: float) -> float:
        """VI = NP / average power; 1.0 means perfectly steady output."""
        if average_power <= 0:
            return 0.0

        return round(normalized_power / average_power, 3)

    def calculate_work_kj(self, samples: Sequence[Optional[float]]) -> int:
        """Total mechanical work in kilojoules (1 sample = 1 second)."""
        if samples is None or len(samples) == 0:
            return 0

        total_joules = float(np.sum(self._clean_samples(samples)))
        return int(round(total_joules / 1000))

    def get_power_zones(self, ftp: int) -> dict[str, PowerZone]:
        """
        Calculate power zones based on FTP.

        Standard 6-zone power model:
        - Zone 1 (Recovery): < 55% FTP
        - Zone 2 (Endurance): 55-75% FTP
        - Zone 3 (Tempo): 75-90% FTP
        - Zone 4 (Threshold): 90-105% FTP
        - Zone 5 (VO2max): 105-120% FTP
        - Zone 6 (Anaerobic): > 120% FTP

        Args:
            ftp: Functional Threshold Power in watts

        Returns:
            Dictionary mapping zone key to its PowerZone, empty if FTP is not set
        """
        if not ftp or ftp <= 0:
            return {}

        zones = {}
        for zone_key, zone_info in self.POWER_ZONES.items():
            unbounded = zone_info["max"] == float("inf")
            zones[zone_key] = PowerZone(
                name=zone_info["name"],
                min_watts=int(ftp * zone_info["min"] / 100),
                max_watts=None if unbounded else int(ftp * zone_info["max"] / 100),
                min_percent=zone_info["min"],
                max_percent=None if unbounded else zone_info["max"],
            )

        return zones

    def get_zone_for_power(self, power: float, ftp: int) -> Optional[str]:
        """
        Determine which power zone a given power value falls into.

        Returns:
            Zone key (e.g., "zone_1", "zone_4"), or None if FTP is not set
        """
        if not ftp or ftp <= 0:
            return None

        percent_ftp = (power / ftp) * 100

        for zone_key, zone_info in self.POWER_ZONES.items():
            if percent_ftp < zone_info["max"]:
                return zone_key

        return "zone_6"

    def analyze_power_distribution(
        self,
        samples: Sequence[Optional[float]],
        ftp: int
    ) -> dict[str, float]:
        """
        Analyze time spent in each power zone.

        Args:
            samples: Power values in watts (1Hz sampling rate)
            ftp: Functional Threshold Power in watts

        Returns:
            Dictionary mapping zone keys to percentage of time spent
        """
        if samples is None or len(samples) == 0 or not ftp or ftp <= 0:
            return {zone: 0.0 for zone in self.POWER_ZONES}

        # Count seconds in each zone
        zone_counts = {zone: 0 for zone in self.POWER_ZONES}
        total_valid = 0

        for power in samples:
            if power is not None and power >= 0:
                zone_counts[self.get_zone_for_power(power, ftp)] += 1
                total_valid += 1

        if total_valid == 0:
            return {zone: 0.0 for zone in self.POWER_ZONES}

        return {
            zone: round((count / total_valid) * 100, 1)
            for zone, count in zone_counts.items()
        }


# Create a singleton instance for convenience
power_analysis_service = PowerAnalysisService()
