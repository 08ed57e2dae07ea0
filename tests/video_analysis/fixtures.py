"""
Test data and fakes for the video analysis pipeline.

Provides sample extraction/formatting payloads and a scripted stand-in for
the Gemini video client that records every request it receives.
"""

import json
from typing import Dict, List, Optional, Sequence, Union

from src.functions.video_analysis.core.contracts import ModuleKind
from src.functions.video_analysis.core.llm import GenerationRequest
from src.functions.video_analysis.core.prompts import FORMATTING_PROMPTS

YOUTUBE_URL = "https://www.youtube.com/watch?v=lax-film-01"

# One goal by white #23 inside a 10s-14s possession.
SAMPLE_RECORD = {
    "videoMetadata": {
        "duration": 95,
        "quality": "HD",
        "cameraAngle": "sideline",
        "gameType": "highlight",
        "competitionLevel": "High School",
        "weather": "clear",
        "field": "turf",
    },
    "teams": [
        {
            "jerseyColor": "white",
            "identifiedPlayers": [
                {
                    "number": "#23",
                    "description": "attackman, X behind the cage",
                    "position": "attack",
                    "handedness": "left",
                },
                {"number": "10", "position": "midfield"},
            ],
        },
        {
            "jerseyColor": "blue",
            "identifiedPlayers": [
                {"number": "5", "position": "goalie", "handedness": "right"},
                {"position": "defense"},
            ],
        },
    ],
    "plays": [
        {
            "playId": 1,
            "startTime": 10,
            "endTime": "14s",
            "playType": "settled_offense",
            "ballMovement": [
                {"time": 11.5, "from": "white #10", "to": "white #23", "passType": "skip", "success": "true"}
            ],
            "playerActions": [
                {"time": 13, "player": "white #23", "action": "shot", "outcome": "goal, low left"},
                {"time": 13, "player": "blue #5", "action": "save", "outcome": "beaten low"},
            ],
            "formations": {"offensive": "2-3-1", "defensive": "man"},
            "result": "goal",
        }
    ],
    "individualPerformance": [
        {
            "player": "white #23",
            "stats": {"goals": 1, "assists": "0", "shots": 1, "groundBalls": 0},
            "skills": {"shooting": "quick release off the catch", "dodging": "not shown"},
            "athleticism": {"speed": "good first step"},
        },
        {
            "player": "blue #5",
            "stats": {"saves": 0, "goals": 0},
            "skills": {"defense": "late on low shots"},
        },
    ],
    "gameFlow": {
        "momentum": [{"time": 13, "team": "white", "reason": "goal off the skip pass"}],
        "keyMoments": [{"time": 13, "description": "white #23 finishes low left", "impact": "high"}],
        "scoring": [{"time": 13, "scorer": "white #23", "assist": "white #10", "type": "even_strength"}],
    },
    "tacticalObservations": {
        "offensiveStrategies": ["2-3-1 motion with skip passes to X"],
        "defensiveStrategies": ["man-to-man, adjacent slide"],
        "transitionPatterns": [],
        "specialSituations": {"manUp": {"success": 0, "total": 0}},
    },
    "coachingInsights": {
        "strengths": ["ball movement"],
        "weaknesses": ["slide recovery"],
        "recommendations": ["two-more drill for the defense"],
        "playerDevelopment": [{"player": "blue #5", "areas": ["low-angle saves"]}],
    },
}

SAMPLE_RECORD_JSON = json.dumps(SAMPLE_RECORD)

SAMPLE_STATISTICS = {
    "players": [
        {
            "player": "white #23",
            "team": "white",
            "goals": 1,
            "assists": 0,
            "shots": 1,
            "shootingPercentage": 100,
            "groundBalls": 0,
        },
        {"player": "white #10", "team": "white", "assists": 1},
        {"player": "blue #5", "team": "blue", "saves": 0},
    ],
    "teams": [
        {"team": "white", "goals": 1, "shots": 1},
        {"team": "blue", "goals": 0, "shots": 0},
    ],
    "situations": {"manUp": {"success": 0, "total": 0, "percentage": None}},
    "advanced": {"pointsPerPossession": 1.0},
    "notes": ["Highlight footage only; a single possession is shown."],
}

SAMPLE_STATISTICS_JSON = json.dumps(SAMPLE_STATISTICS)

SAMPLE_TEXT = {
    ModuleKind.PLAYER_EVALUATION: (
        "**white #23**\n\n*Quick Take:* Finished his only look with a quick release.\n\n"
        "**Rating:** 7/10 for what was shown on this film"
    ),
    ModuleKind.TACTICAL: "**What We're Looking At:** one settled possession from a highlight clip.",
    ModuleKind.HIGHLIGHTS: "**13s - Skip pass finish**\nRating: 4 stars\nWhat happened: white #23 scores low left.",
}

Response = Union[str, BaseException]


def module_for_prompt(prompt: str) -> Optional[ModuleKind]:
    for kind, instruction in FORMATTING_PROMPTS.items():
        if instruction in prompt:
            return kind
    return None


class FakeVideoModelClient:
    """Scripted upstream: extraction responses are consumed in order, formatting by module."""

    def __init__(
        self,
        extraction: Union[Response, Sequence[Response]] = SAMPLE_RECORD_JSON,
        formatting: Optional[Dict[ModuleKind, Response]] = None,
    ):
        if isinstance(extraction, (str, BaseException)):
            extraction = [extraction]
        self._extraction: List[Response] = list(extraction)
        self._formatting: Dict[ModuleKind, Response] = {
            ModuleKind.STATISTICS: SAMPLE_STATISTICS_JSON,
            **SAMPLE_TEXT,
        }
        self._formatting.update(formatting or {})
        self.requests: List[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if request.has_video:
            # The last scripted extraction response repeats once the script runs out.
            response = self._extraction.pop(0) if len(self._extraction) > 1 else self._extraction[0]
        else:
            module = module_for_prompt(request.prompt)
            if module is None:
                raise AssertionError("formatting prompt did not match any module instruction")
            response = self._formatting[module]
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def extraction_requests(self) -> List[GenerationRequest]:
        return [request for request in self.requests if request.has_video]

    @property
    def formatting_requests(self) -> List[GenerationRequest]:
        return [request for request in self.requests if not request.has_video]

    def formatted_modules(self) -> List[ModuleKind]:
        return [module_for_prompt(request.prompt) for request in self.formatting_requests]
