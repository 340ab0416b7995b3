"""
Shared data models for the Archive Heart timeline.

This module defines the core domain models used across multiple layers
of the application (pipeline, API, CLI). Attribute names are snake_case in
Python and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class Emotion(str, Enum):
    """Closed set of moods a track can be classified into."""

    HAPPY = "happy"
    SAD = "sad"
    ENERGETIC = "energetic"
    CALM = "calm"


class SessionStatus(str, Enum):
    """Lifecycle of the current timeline session."""

    EMPTY = "empty"
    INGESTING = "ingesting"
    READY = "ready"
    VIEWING = "viewing"


class WireModel(BaseModel):
    """Base for frozen models serialized with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TrackRecord(WireModel):
    """One listening event, either raw or classified."""

    end_time: str = Field(..., description="Timestamp when playback ended")
    artist_name: str = Field(..., min_length=1, description="Artist name")
    track_name: str = Field(..., min_length=1, description="Track title")
    ms_played: int = Field(0, ge=0, description="Milliseconds listened")
    year: int | None = Field(None, description="Year parsed from end_time")
    month: int | None = Field(None, ge=1, le=12, description="Month parsed from end_time")
    emotion: Emotion | None = Field(None, description="Classified mood")
    energy_level: float | None = Field(
        None, ge=0.0, le=1.0, description="Perceived intensity in [0, 1]"
    )

    @model_validator(mode="after")
    def _check_classification(self) -> "TrackRecord":
        if (self.emotion is None) != (self.energy_level is None):
            raise ValueError("emotion and energyLevel must be set together")
        return self

    @property
    def is_classified(self) -> bool:
        return self.emotion is not None

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used to deduplicate plays across exports."""
        return (self.artist_name, self.track_name, self.end_time)

    def with_classification(self, emotion: Emotion, energy_level: float) -> "TrackRecord":
        """Return a copy of this record carrying the given classification."""
        return self.model_copy(update={"emotion": emotion, "energy_level": energy_level})


class EmotionResult(WireModel):
    """Outcome of classifying a single track."""

    emotion: Emotion
    confidence: float = Field(..., ge=0.0, le=1.0)
    energy_level: float = Field(..., ge=0.0, le=1.0)


class YearRange(WireModel):
    """Inclusive range of years covered by a dataset."""

    start: int
    end: int


class DatasetStats(WireModel):
    """Headline numbers for a whole dataset."""

    total_songs: int
    unique_artists: int
    most_played_artist: str


class YearStats(WireModel):
    """Statistics scoped to a subset of tracks, usually one year."""

    total_songs: int
    total_minutes: int
    unique_artists: int
    most_played_artist: str


class TimelineDataset(WireModel):
    """Aggregated, classified and chronologically ordered view of a track list."""

    tracks: tuple[TrackRecord, ...]
    year_range: YearRange
    total_minutes: int
    stats: DatasetStats


class ShareMetadata(WireModel):
    """Informational metadata stamped on a share payload."""

    created_at: str = Field(..., description="ISO-8601 encode time")
    version: str = Field(..., description="Payload format version")


class SharePayload(WireModel):
    """Exact structure compressed into a share link."""

    tracks: list[TrackRecord]
    skin_id: str
    metadata: ShareMetadata


class Theme(WireModel):
    """Visual theme referenced by identifier. Palettes live outside the core."""

    id: str
    name: str
    description: str


class TimelineSession(WireModel):
    """The current timeline held for a session. Replaced, never mutated."""

    status: SessionStatus = SessionStatus.EMPTY
    dataset: TimelineDataset | None = None
    skin_id: str
    selected_year: int | None = None
    updated_at: datetime | None = None


class MonthSummary(WireModel):
    """Listening summary for one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    total_songs: int
    total_minutes: int
    dominant_emotion: Emotion
