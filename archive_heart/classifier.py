"""
Keyword-based emotion classification.

Assigns every track one of the four emotions by counting mood keywords in its
artist and title, then places an energy level inside the band belonging to
that emotion. Everything runs locally; no model or network call is involved.
"""

import logging
import random
from collections.abc import Iterable

from .models import Emotion, EmotionResult, TrackRecord

logger = logging.getLogger(__name__)

EMOTION_KEYWORDS: dict[Emotion, tuple[str, ...]] = {
    Emotion.HAPPY: (
        "love", "happy", "joy", "celebrate", "party", "smile", "laugh",
        "sunshine", "summer", "bright", "dance", "fun", "good", "best",
        "paradise", "wonderful", "beautiful", "dream", "magic",
    ),
    Emotion.SAD: (
        "sad", "cry", "lonely", "alone", "heartbreak", "goodbye", "lose",
        "funeral", "death", "pain", "sorrow", "tears", "broken", "broken heart",
        "midnight", "dark", "empty", "ghost", "fade", "end",
    ),
    Emotion.ENERGETIC: (
        "rock", "heavy", "metal", "punk", "electric", "power", "thunder",
        "wild", "crazy", "fast", "speed", "blast", "rush", "pump",
        "hyper", "extreme", "dunk", "turbo", "adrenaline",
    ),
    Emotion.CALM: (
        "peace", "calm", "quiet", "sleep", "dream", "night", "soft",
        "gentle", "lullaby", "meditation", "zen", "flow", "easy",
        "ambient", "chill", "relax", "breathe", "still", "serene",
    ),
}

# Half-open [low, high) energy bands per emotion
ENERGY_BANDS: dict[Emotion, tuple[float, float]] = {
    Emotion.ENERGETIC: (0.8, 1.0),
    Emotion.HAPPY: (0.6, 0.8),
    Emotion.CALM: (0.3, 0.5),
    Emotion.SAD: (0.2, 0.4),
}

DEFAULT_EMOTION = Emotion.CALM


def energy_band(emotion: Emotion) -> tuple[float, float]:
    """Return the (low, high) energy band for an emotion."""
    return ENERGY_BANDS[emotion]


def search_text(track: TrackRecord) -> str:
    return f"{track.artist_name} {track.track_name}".lower()


def score_emotions(text: str) -> dict[Emotion, int]:
    """Count how many keywords of each emotion occur in the text."""
    return {
        emotion: sum(1 for keyword in keywords if keyword in text)
        for emotion, keywords in EMOTION_KEYWORDS.items()
    }


def dominant_emotion(scores: dict[Emotion, int]) -> Emotion:
    """Pick the single highest-scoring emotion; any tie at the top is calm."""
    best = max(scores.values())
    if best == 0:
        return DEFAULT_EMOTION
    leaders = [emotion for emotion, score in scores.items() if score == best]
    if len(leaders) > 1:
        return DEFAULT_EMOTION
    return leaders[0]


def classify(track: TrackRecord, rng: random.Random | None = None) -> EmotionResult:
    """
    Classify a track from its artist and title.

    Args:
        track: The track to classify (raw or already classified)
        rng: Optional random generator used for the energy jitter

    Returns:
        Emotion, confidence in [0, 1] and an energy level inside the
        emotion's band
    """
    scores = score_emotions(search_text(track))
    emotion = dominant_emotion(scores)

    total = sum(scores.values())
    confidence = scores[emotion] / (total * 0.5) if total > 0 else 0.0

    low, high = energy_band(emotion)
    jitter = (rng or random).random()

    return EmotionResult(
        emotion=emotion,
        confidence=min(max(confidence, 0.0), 1.0),
        energy_level=low + jitter * (high - low),
    )


def classify_all(
    tracks: Iterable[TrackRecord], rng: random.Random | None = None
) -> list[TrackRecord]:
    """Return classified copies of the given tracks, in the same order."""
    classified = []
    for track in tracks:
        result = classify(track, rng)
        classified.append(track.with_classification(result.emotion, result.energy_level))

    logger.debug("Classified %d track(s)", len(classified))
    return classified


def distribution(tracks: Iterable[TrackRecord]) -> dict[Emotion, int]:
    """Count classified tracks per emotion. Every emotion is always present."""
    counts = {emotion: 0 for emotion in Emotion}
    for track in tracks:
        if track.emotion is not None:
            counts[track.emotion] += 1
    return counts
