"""Comprehensive Record: the structured output of the extraction pass.

The record is produced by an external model, so every field is parsed
leniently. Numbers that arrive as strings are coerced, clock strings such as
``"1:05"`` become seconds, missing collections become empty lists and
unknown labels become ``"unknown"``. Shape problems the parser cannot absorb
surface as ``pydantic.ValidationError`` and are turned into a
``malformed_extraction`` failure by the extraction stage.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.shared.utils.logging import get_logger

LOGGER = get_logger(__name__)

UNKNOWN = "unknown"
TEAM_COUNT = 2


def _parse_clock(text: str) -> float:
    parts = [float(part) for part in text.split(":")]
    seconds = 0.0
    for part in parts:
        seconds = seconds * 60 + part
    return seconds


def _coerce_seconds(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        numeric = float(value)
        return numeric if math.isfinite(numeric) else 0.0
    if isinstance(value, str):
        text = value.strip().lower().rstrip("s").strip()
        if not text:
            return 0.0
        try:
            numeric = _parse_clock(text) if ":" in text else float(text)
        except ValueError:
            return 0.0
        return numeric if math.isfinite(numeric) else 0.0
    return 0.0


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric) or numeric < 0:
        return 0
    return int(numeric)


def _coerce_optional_count(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _coerce_count(value)


def _coerce_label(value: Any) -> str:
    if value is None:
        return UNKNOWN
    text = str(value).strip()
    return text or UNKNOWN


def _coerce_optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "success", "complete", "completed"}
    return bool(value)


def _coerce_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _coerce_mapping(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _mapping_items(value: Any) -> List[Any]:
    """Keep only object-shaped entries of a list; anything else becomes empty."""

    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, (Mapping, BaseModel))]


Seconds = Annotated[float, BeforeValidator(_coerce_seconds)]
Count = Annotated[int, BeforeValidator(_coerce_count)]
OptionalCount = Annotated[Optional[int], BeforeValidator(_coerce_optional_count)]
Label = Annotated[str, BeforeValidator(_coerce_label)]
Text = Annotated[str, BeforeValidator(_coerce_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_coerce_optional_text)]
Flag = Annotated[bool, BeforeValidator(_coerce_bool)]
TextList = Annotated[List[str], BeforeValidator(_coerce_text_list)]
FreeForm = Annotated[Dict[str, Any], BeforeValidator(_coerce_mapping)]


class RecordModel(BaseModel):
    """Base for record models: camelCase on the wire, lenient on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class VideoMetadata(RecordModel):
    duration: Optional[float] = None
    quality: Label = UNKNOWN
    camera_angle: Label = UNKNOWN
    game_type: Label = UNKNOWN
    competition_level: Label = UNKNOWN
    weather: OptionalText = None
    field: OptionalText = None
    video_title: OptionalText = None
    video_url: OptionalText = None

    @field_validator("duration", mode="before")
    @classmethod
    def _normalise_duration(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        seconds = _coerce_seconds(value)
        return seconds if seconds > 0 else None

    @field_validator("game_type", "competition_level", mode="after")
    @classmethod
    def _snake_case(cls, value: str) -> str:
        return value.lower().replace(" ", "_").replace("-", "_")


class Participant(RecordModel):
    """A player identified by jersey number or by a visual description."""

    number: OptionalText = None
    description: Text = ""
    position: OptionalText = None
    handedness: OptionalText = None

    @field_validator("number", mode="after")
    @classmethod
    def _strip_hash(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.lstrip("#").strip() or None

    @property
    def is_identified(self) -> bool:
        return bool(self.number or self.description)


class TeamRecord(RecordModel):
    jersey_color: Label = UNKNOWN
    identified_players: List[Participant] = Field(default_factory=list)

    @field_validator("identified_players", mode="before")
    @classmethod
    def _players(cls, value: Any) -> List[Any]:
        return _mapping_items(value)

    @field_validator("identified_players", mode="after")
    @classmethod
    def _drop_unidentified(cls, value: List[Participant]) -> List[Participant]:
        return [participant for participant in value if participant.is_identified]

    def participant_labels(self) -> List[str]:
        labels = []
        for participant in self.identified_players:
            if participant.number:
                labels.append(f"{self.jersey_color} #{participant.number}")
            else:
                labels.append(participant.description)
        return labels


class BallMovement(RecordModel):
    time: Seconds = 0.0
    from_player: Label = Field(default=UNKNOWN, alias="from")
    to_player: Label = Field(default=UNKNOWN, alias="to")
    pass_type: Label = UNKNOWN
    success: Flag = False


class PlayerAction(RecordModel):
    time: Seconds = 0.0
    player: Label = UNKNOWN
    action: Label = UNKNOWN
    outcome: Text = ""
    details: Any = None


class Formations(RecordModel):
    offensive: OptionalText = None
    defensive: OptionalText = None


class Play(RecordModel):
    play_id: Text = ""
    start_time: Seconds = 0.0
    end_time: Seconds = 0.0
    play_type: Label = UNKNOWN
    ball_movement: List[BallMovement] = Field(default_factory=list)
    player_actions: List[PlayerAction] = Field(default_factory=list)
    formations: Formations = Field(default_factory=Formations)
    result: Label = UNKNOWN

    window_reordered: bool = Field(default=False, exclude=True)

    @field_validator("ball_movement", "player_actions", mode="before")
    @classmethod
    def _events(cls, value: Any) -> List[Any]:
        return _mapping_items(value)

    @field_validator("formations", mode="before")
    @classmethod
    def _formations(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, BaseModel)) else {}

    @field_validator("play_id", mode="before")
    @classmethod
    def _play_id(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @model_validator(mode="after")
    def _order_window(self) -> "Play":
        if self.end_time < self.start_time:
            self.start_time, self.end_time = self.end_time, self.start_time
            self.window_reordered = True
        return self


class PlayerStats(RecordModel):
    goals: Count = 0
    assists: Count = 0
    shots: Count = 0
    ground_balls: Count = 0
    caused_turnovers: Count = 0
    turnovers: Count = 0
    saves: OptionalCount = None
    faceoff_wins: OptionalCount = None
    faceoff_losses: OptionalCount = None


class PlayerPerformance(RecordModel):
    player: Label = UNKNOWN
    stats: PlayerStats = Field(default_factory=PlayerStats)
    skills: FreeForm = Field(default_factory=dict)
    athleticism: FreeForm = Field(default_factory=dict)

    @field_validator("stats", mode="before")
    @classmethod
    def _stats(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, BaseModel)) else {}


class MomentumEvent(RecordModel):
    time: Seconds = 0.0
    team: Label = UNKNOWN
    reason: Text = ""


class KeyMoment(RecordModel):
    time: Seconds = 0.0
    description: Text = ""
    impact: Label = UNKNOWN


class ScoringEvent(RecordModel):
    time: Seconds = 0.0
    scorer: Label = UNKNOWN
    assist: OptionalText = None
    type: Label = UNKNOWN


class GameFlow(RecordModel):
    momentum: List[MomentumEvent] = Field(default_factory=list)
    key_moments: List[KeyMoment] = Field(default_factory=list)
    scoring: List[ScoringEvent] = Field(default_factory=list)

    @field_validator("momentum", "key_moments", "scoring", mode="before")
    @classmethod
    def _events(cls, value: Any) -> List[Any]:
        return _mapping_items(value)

    @field_validator("momentum", "key_moments", "scoring", mode="after")
    @classmethod
    def _time_ordered(cls, value: List[Any]) -> List[Any]:
        return sorted(value, key=lambda event: event.time)


class TacticalObservations(RecordModel):
    offensive_strategies: TextList = Field(default_factory=list)
    defensive_strategies: TextList = Field(default_factory=list)
    transition_patterns: TextList = Field(default_factory=list)
    special_situations: FreeForm = Field(default_factory=dict)


class DevelopmentPlan(RecordModel):
    player: Label = UNKNOWN
    areas: TextList = Field(default_factory=list)


class CoachingInsights(RecordModel):
    strengths: TextList = Field(default_factory=list)
    weaknesses: TextList = Field(default_factory=list)
    recommendations: TextList = Field(default_factory=list)
    player_development: List[DevelopmentPlan] = Field(default_factory=list)

    @field_validator("player_development", mode="before")
    @classmethod
    def _plans(cls, value: Any) -> List[Any]:
        return _mapping_items(value)


def _default_teams() -> List[TeamRecord]:
    return [TeamRecord() for _ in range(TEAM_COUNT)]


class ComprehensiveRecord(RecordModel):
    """Everything the extraction pass observed in one video."""

    video_metadata: VideoMetadata = Field(default_factory=VideoMetadata)
    teams: List[TeamRecord] = Field(default_factory=_default_teams)
    plays: List[Play] = Field(default_factory=list)
    individual_performance: List[PlayerPerformance] = Field(default_factory=list)
    game_flow: GameFlow = Field(default_factory=GameFlow)
    tactical_observations: TacticalObservations = Field(default_factory=TacticalObservations)
    coaching_insights: CoachingInsights = Field(default_factory=CoachingInsights)

    @field_validator(
        "video_metadata",
        "game_flow",
        "tactical_observations",
        "coaching_insights",
        mode="before",
    )
    @classmethod
    def _sections(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, BaseModel)) else {}

    @field_validator("plays", "individual_performance", mode="before")
    @classmethod
    def _entries(cls, value: Any) -> List[Any]:
        return _mapping_items(value)

    @field_validator("teams", mode="before")
    @classmethod
    def _two_sides(cls, value: Any) -> List[Any]:
        if isinstance(value, Mapping):
            ordered = [value[key] for key in ("team1", "team2") if key in value]
            if not ordered:
                ordered = list(value.values())
            value = ordered
        sides = _mapping_items(value)
        if len(sides) > TEAM_COUNT:
            LOGGER.warning(
                "Extraction reported %d teams; keeping the first %d",
                len(sides),
                TEAM_COUNT,
            )
            sides = sides[:TEAM_COUNT]
        while len(sides) < TEAM_COUNT:
            sides.append({})
        return sides

    @classmethod
    def empty(cls) -> "ComprehensiveRecord":
        """The well-typed fallback used when extraction produced nothing usable."""

        return cls()

    @property
    def is_empty(self) -> bool:
        return (
            not self.plays
            and not self.individual_performance
            and not any(team.identified_players for team in self.teams)
        )

    def timestamp_warnings(self) -> List[str]:
        """Describe timestamps outside ``[0, duration]`` and reordered play windows."""

        warnings: List[str] = []
        duration = self.video_metadata.duration

        def check(label: str, seconds: float) -> None:
            if seconds < 0 or (duration is not None and seconds > duration):
                bound = f"{duration:g}s" if duration is not None else "unknown"
                warnings.append(f"{label} at {seconds:g}s is outside the video (duration {bound})")

        for index, play in enumerate(self.plays):
            name = f"play {play.play_id or index + 1}"
            if play.window_reordered:
                warnings.append(f"{name} ended before it started; window was reordered")
            check(f"{name} start", play.start_time)
            check(f"{name} end", play.end_time)
            for movement in play.ball_movement:
                check(f"{name} pass", movement.time)
            for action in play.player_actions:
                check(f"{name} {action.action}", action.time)

        for moment in self.game_flow.momentum:
            check("momentum swing", moment.time)
        for moment in self.game_flow.key_moments:
            check("key moment", moment.time)
        for score in self.game_flow.scoring:
            check("scoring event", score.time)
        return warnings

    def to_prompt_json(self) -> str:
        """Full record as indented camelCase JSON, never truncated."""

        return self.model_dump_json(by_alias=True, indent=2)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
