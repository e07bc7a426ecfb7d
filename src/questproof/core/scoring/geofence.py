"""QuestProof geofence scorer.

Distance between the quest location and the photo location converted into a
bounded match score:

  - missing coordinates        -> 0.5 (neutral, cameras often omit GPS)
  - d <= threshold             -> 1 - d / threshold
  - d >  threshold             -> max(0, 0.3 - d / (10 * threshold))
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from questproof.models.schemas import PhotoMetadata

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_THRESHOLD_M = 500.0
NEUTRAL_SCORE = 0.5


@dataclass(frozen=True)
class GeofenceResult:
    score: float
    distance_m: float | None
    within_fence: bool
    reason: str


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class GeofenceScorer:
    def __init__(self, threshold_m: float = DEFAULT_THRESHOLD_M) -> None:
        if threshold_m <= 0:
            raise ValueError("threshold_m must be positive")
        self.threshold_m = threshold_m

    def score(
        self,
        quest_lat: float | None,
        quest_lon: float | None,
        metadata: PhotoMetadata | None = None,
        user_lat: float | None = None,
        user_lon: float | None = None,
    ) -> GeofenceResult:
        # EXIF coordinates win over user-reported ones
        if metadata is not None and metadata.has_gps:
            photo_lat, photo_lon = metadata.latitude, metadata.longitude
        else:
            photo_lat, photo_lon = user_lat, user_lon

        if quest_lat is None or quest_lon is None or photo_lat is None or photo_lon is None:
            return GeofenceResult(
                score=NEUTRAL_SCORE,
                distance_m=None,
                within_fence=False,
                reason="Missing GPS coordinates",
            )

        distance = haversine_m(quest_lat, quest_lon, photo_lat, photo_lon)
        return self.score_distance(distance)

    def score_distance(self, distance: float) -> GeofenceResult:
        t = self.threshold_m
        within = distance <= t
        if within:
            score = max(0.0, 1.0 - distance / t)
            reason = f"Within {round(distance)}m of quest location"
        else:
            score = max(0.0, 0.3 - distance / (10 * t))
            reason = f"{round(distance)}m away (threshold: {round(t)}m)"
        return GeofenceResult(
            score=min(1.0, score),
            distance_m=round(distance, 2),
            within_fence=within,
            reason=reason,
        )
