"""Optional viewer hints supplied with an analysis request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

COMPETITION_LEVELS = ("youth", "high_school", "college", "professional")


@dataclass(frozen=True)
class AnalysisContext:
    """What the uploader told us about the video.

    These are hints for where to look, never facts: the extraction
    instruction says so explicitly, and nothing here is copied into the
    Comprehensive Record.
    """

    competition_level: Optional[str] = None
    player_number: Optional[str] = None
    team_color: Optional[str] = None
    position: Optional[str] = None
    video_type: Optional[str] = None
    user_prompt: Optional[str] = None

    def __post_init__(self) -> None:
        if self.competition_level is not None:
            level = self.competition_level.strip().lower().replace(" ", "_").replace("-", "_")
            if level not in COMPETITION_LEVELS:
                raise ValueError(
                    f"competition_level must be one of {', '.join(COMPETITION_LEVELS)}"
                )
            object.__setattr__(self, "competition_level", level)
        if self.player_number is not None:
            object.__setattr__(self, "player_number", self.player_number.strip().lstrip("#") or None)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "AnalysisContext":
        if not data:
            return cls()

        def text(*keys: str) -> Optional[str]:
            for key in keys:
                value = data.get(key)
                if value is not None and str(value).strip():
                    return str(value).strip()
            return None

        return cls(
            competition_level=text("competition_level", "competitionLevel", "level"),
            player_number=text("player_number", "playerNumber"),
            team_color=text("team_color", "teamColor", "teamName"),
            position=text("position"),
            video_type=text("video_type", "videoType"),
            user_prompt=text("user_prompt", "userPrompt"),
        )

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.competition_level,
                self.player_number,
                self.team_color,
                self.position,
                self.video_type,
                self.user_prompt,
            )
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "competition_level": self.competition_level,
            "player_number": self.player_number,
            "team_color": self.team_color,
            "position": self.position,
            "video_type": self.video_type,
            "user_prompt": self.user_prompt,
        }
