"""Per-module outputs of the formatting pass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ModuleKind(str, Enum):
    """The fixed set of formatting transformations."""

    PLAYER_EVALUATION = "playerEvaluation"
    STATISTICS = "statistics"
    TACTICAL = "tactical"
    HIGHLIGHTS = "highlights"

    @classmethod
    def parse(cls, value: Union[str, "ModuleKind"]) -> "ModuleKind":
        """Resolve a module by wire value or enum name, case-insensitively."""

        if isinstance(value, ModuleKind):
            return value
        key = str(value).strip()
        for kind in cls:
            if key.lower() in {kind.value.lower(), kind.name.lower()}:
                return kind
        raise ValueError(f"Unknown analysis module: {value!r}")

    @property
    def returns_json(self) -> bool:
        return self is ModuleKind.STATISTICS


def _scalar_label(value: Any) -> Any:
    # Jersey numbers often come back as bare numbers.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


StatLabel = Annotated[str, BeforeValidator(_scalar_label)]


class StatsModel(BaseModel):
    """Strict numeric shapes; the model must already emit valid numbers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PlayerStatLine(StatsModel):
    player: StatLabel
    team: Optional[StatLabel] = None
    goals: int = Field(default=0, ge=0)
    assists: int = Field(default=0, ge=0)
    shots: int = Field(default=0, ge=0)
    shooting_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    ground_balls: int = Field(default=0, ge=0)
    caused_turnovers: int = Field(default=0, ge=0)
    turnovers: int = Field(default=0, ge=0)
    saves: Optional[int] = Field(default=None, ge=0)
    faceoff_wins: Optional[int] = Field(default=None, ge=0)
    faceoff_losses: Optional[int] = Field(default=None, ge=0)

    @property
    def points(self) -> int:
        return self.goals + self.assists


class TeamStatLine(StatsModel):
    team: StatLabel
    goals: int = Field(default=0, ge=0)
    shots: int = Field(default=0, ge=0)
    ground_balls: int = Field(default=0, ge=0)
    turnovers: int = Field(default=0, ge=0)
    clearing_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    riding_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    possession_seconds: Optional[float] = Field(default=None, ge=0)


class SituationStat(StatsModel):
    success: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    percentage: Optional[float] = Field(default=None, ge=0, le=100)


class StatisticsPayload(StatsModel):
    """Structured output of the ``statistics`` module."""

    players: List[PlayerStatLine] = Field(default_factory=list)
    teams: List[TeamStatLine] = Field(default_factory=list)
    situations: Dict[str, SituationStat] = Field(default_factory=dict)
    advanced: Dict[str, Optional[float]] = Field(default_factory=dict)
    notes: List[str] = Field(default_factory=list)

    def player(self, label: str) -> Optional[PlayerStatLine]:
        """Find a player line by exact label or by bare jersey number."""

        wanted = label.strip().lstrip("#")
        for line in self.players:
            name = line.player.strip()
            if name == label.strip() or name.lstrip("#") == wanted:
                return line
            if name.endswith(f"#{wanted}"):
                return line
        return None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class TextAnalysis:
    """Prose output of the playerEvaluation, tactical and highlights modules."""

    module: ModuleKind
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"module": self.module.value, "text": self.text}


FormattedOutput = Union[StatisticsPayload, TextAnalysis]
