"""Prompt templates and builders for the extraction and formatting passes."""

from __future__ import annotations

from typing import Dict, List, Optional

from .contracts.analysis_context import AnalysisContext
from .contracts.formatted_output import ModuleKind
from .registry import AISettings, ModuleConfig, OutputSettings

OBSERVATION_RULES = """STRICT OBSERVATION RULES:
1. Report ONLY what is directly visible or audible in this video.
2. NEVER invent team names, player names, school names, club names or any other institution.
   A name may appear only if it is readable on screen (jersey, scoreboard, title card).
3. Identify players by jersey colour and number ("white #23"). If no number is visible,
   use a short visual description ("white long-pole defender, left-handed").
4. When an attribute cannot be determined, write "unknown". Do not guess.
5. Record times as seconds from the start of the video (e.g. 74.5), as precisely as you can."""

EXTRACTION_SCHEMA = """{
  "videoMetadata": {
    "duration": <seconds>,
    "quality": "HD" | "SD" | "low" | "unknown",
    "cameraAngle": "sideline" | "endline" | "elevated" | "handheld" | "unknown",
    "gameType": "full_game" | "highlight" | "practice" | "drill" | "unknown",
    "competitionLevel": "youth" | "high_school" | "college" | "professional" | "unknown",
    "weather": "<clear | rain | wind | indoor | unknown>",
    "field": "<turf | grass | indoor | unknown>",
    "videoTitle": "<title only if shown on screen>"
  },
  "teams": [
    {"jerseyColor": "<colour>", "identifiedPlayers": [
      {"number": "<visible number or null>", "description": "<visual description>",
       "position": "<attack | midfield | defense | goalie | faceoff | unknown>",
       "handedness": "<left | right | unknown>"}
    ]},
    {"jerseyColor": "<colour>", "identifiedPlayers": []}
  ],
  "plays": [
    {
      "playId": "1",
      "startTime": <seconds>,
      "endTime": <seconds, not before startTime>,
      "playType": "settled_offense" | "fast_break" | "clear" | "ride" | "face_off" | "man_up" | "man_down" | "ground_ball" | "other",
      "ballMovement": [
        {"time": <seconds>, "from": "<player>", "to": "<player>", "passType": "<type>", "success": true}
      ],
      "playerActions": [
        {"time": <seconds>, "player": "<player>", "action": "dodge | shot | check | ground_ball | save | pass | faceoff", "outcome": "<what happened>"}
      ],
      "formations": {"offensive": "<e.g. 2-3-1 or unknown>", "defensive": "<e.g. man, zone or unknown>"},
      "result": "goal" | "save" | "miss" | "turnover" | "clear" | "failed_clear" | "ground_ball" | "other"
    }
  ],
  "individualPerformance": [
    {
      "player": "<player>",
      "stats": {"goals": 0, "assists": 0, "shots": 0, "groundBalls": 0, "causedTurnovers": 0,
                "turnovers": 0, "saves": null, "faceoffWins": null, "faceoffLosses": null},
      "skills": {"shooting": "<observed>", "dodging": "<observed>", "passing": "<observed>", "defense": "<observed>"},
      "athleticism": {"speed": "<observed>", "agility": "<observed>", "strength": "<observed>", "endurance": "<observed>"}
    }
  ],
  "gameFlow": {
    "momentum": [{"time": <seconds>, "team": "<jersey colour>", "reason": "<why>"}],
    "keyMoments": [{"time": <seconds>, "description": "<what happened>", "impact": "high" | "medium" | "low"}],
    "scoring": [{"time": <seconds>, "scorer": "<player>", "assist": "<player or null>", "type": "even_strength" | "man_up" | "man_down" | "unknown"}]
  },
  "tacticalObservations": {
    "offensiveStrategies": ["<observed pattern>"],
    "defensiveStrategies": ["<observed pattern>"],
    "transitionPatterns": ["<observed pattern>"],
    "specialSituations": {"manUp": {"success": 0, "total": 0}, "manDown": {"success": 0, "total": 0},
                          "faceoffs": {"wins": 0, "total": 0, "technique": []}}
  },
  "coachingInsights": {
    "strengths": ["<observed>"],
    "weaknesses": ["<observed>"],
    "recommendations": ["<actionable>"],
    "playerDevelopment": [{"player": "<player>", "areas": ["<area>"]}]
  }
}"""

EXTRACTION_PROMPT = (
    "You are a lacrosse video analyst. Watch the entire video and extract a complete, "
    "factual record of it.\n\n"
    f"{OBSERVATION_RULES}\n\n"
    "The \"teams\" array must contain exactly two entries, even if one side has no "
    "identified players. Every time value must lie between 0 and the video duration.\n\n"
    "Respond with a single JSON object that follows this schema exactly, with no commentary:\n"
    f"{EXTRACTION_SCHEMA}"
)

LEVEL_CALIBRATION = (
    "Calibrate every skill, upside and recruiting statement to the competition level in "
    "videoMetadata.competitionLevel. If that level is \"unknown\", say that the level of "
    "competition cannot be determined from the film and do not project recruiting levels."
)

ANTI_FABRICATION = (
    "Use only the player descriptors that appear in the record (for example \"white #23\"). "
    "Never introduce team, player, school or club names that are not in the record."
)

FORMATTING_PROMPTS: Dict[ModuleKind, str] = {
    ModuleKind.PLAYER_EVALUATION: """You are an experienced lacrosse coach evaluating players from film. Write in a direct coaching voice.

For each player in individualPerformance (and any other identified player with meaningful actions), use this format:

**[Player descriptor]**

*Quick Take:* 2-3 sentences capturing how the player played.

**The Good:**
- [Strength] - what happened at [timestamp]
- [Strength] - evidence from the film

**Needs Work:**
- [Area] - a specific drill or focus

**Rating:** x/10 for what was shown on this film

**Recruiting Level:** a realistic projection, or "cannot be determined"

**Coach's Note:** one personal observation that proves you watched the film

If the footage is a highlight reel, say so instead of treating it as a full game.""",
    ModuleKind.STATISTICS: """Using only the extracted data, calculate statistics and return ONE JSON object with this shape:
{
  "players": [{"player": "<descriptor>", "team": "<jersey colour>", "goals": 0, "assists": 0, "shots": 0,
               "shootingPercentage": <0-100 or null>, "groundBalls": 0, "causedTurnovers": 0, "turnovers": 0,
               "saves": <int or null>, "faceoffWins": <int or null>, "faceoffLosses": <int or null>}],
  "teams": [{"team": "<jersey colour>", "goals": 0, "shots": 0, "groundBalls": 0, "turnovers": 0,
             "clearingPercentage": <0-100 or null>, "ridingPercentage": <0-100 or null>,
             "possessionSeconds": <seconds or null>}],
  "situations": {"manUp": {"success": 0, "total": 0, "percentage": <0-100 or null>},
                 "manDown": {"success": 0, "total": 0, "percentage": <0-100 or null>},
                 "faceoffs": {"success": 0, "total": 0, "percentage": <0-100 or null>}},
  "advanced": {"pointsPerPossession": <number or null>, "defensiveEfficiency": <number or null>},
  "notes": ["<caveats, e.g. highlight footage only>"]
}
Counts are whole numbers. Percentages are 0-100. Use null when a value cannot be computed.
Every player descriptor must match the record exactly.""",
    ModuleKind.TACTICAL: """You are a lacrosse coach breaking down film with your team. Talk like you are in the film room.

**What We're Looking At:** the type of video (game film, highlights, practice) and what it can and cannot show.

**Offensive Observations:**
- Sets and formations (1-4-1, 2-3-1, ...), how they initiate, ball movement, off-ball movement

**Defensive Schemes:**
- Man or zone tendencies, slide packages, communication, positioning

**Transition Game:**
- Clears, rides, fast breaks

**Adjustments I'd Make:**
- Specific counters to what you see

If the video is only highlights, say that full systems are hard to judge from highlight clips before giving what stands out.
Use real lacrosse terminology and explain complex concepts briefly.""",
    ModuleKind.HIGHLIGHTS: """You are a coach picking the best plays to show the team.

For each play, use this format:

**[Timestamp] - [Short title]**
Rating: 1-5 stars
What happened: 1-2 sentences.
Why it matters: what this shows about the player or team.

Look for goals, defensive stops, clutch moments, unselfish assists, hustle plays and technical skills worth rewinding.
Keep it energetic but educational. Only pick plays that exist in the extracted data.""",
}

_DETAIL_GUIDANCE = {
    "minimal": "Keep the response short: only the most important points.",
    "standard": "Give a balanced level of detail.",
    "comprehensive": "Be thorough and cover every relevant play in the record.",
    "maximum": "Be exhaustive: cover every play, player and pattern in the record.",
}

_LEVEL_ANCHORED = {ModuleKind.PLAYER_EVALUATION, ModuleKind.TACTICAL}


def build_extraction_prompt(
    *,
    video_url: Optional[str] = None,
    context: Optional[AnalysisContext] = None,
) -> str:
    """Return the fixed extraction instruction plus per-request pinning and hints."""

    sections = [EXTRACTION_PROMPT]
    if video_url:
        sections.append(
            f"IMPORTANT: You are analyzing THIS specific video: {video_url}\n"
            "Do not describe or draw on any other video."
        )
    if context is not None and not context.is_empty:
        sections.append(_context_hints(context))
    return "\n\n".join(sections)


def _context_hints(context: AnalysisContext) -> str:
    lines = [
        "VIEWER HINTS (from the uploader; use them to decide where to look, never report them "
        "as observations unless the film confirms them):"
    ]
    if context.competition_level:
        lines.append(f"- Stated competition level: {context.competition_level}")
    if context.video_type:
        lines.append(f"- Stated video type: {context.video_type}")
    if context.player_number:
        lines.append(f"- Focus player: jersey #{context.player_number}")
    if context.team_color:
        lines.append(f"- Focus team: {context.team_color}")
    if context.position:
        lines.append(f"- Focus position: {context.position}")
    if context.user_prompt:
        lines.append(f"- Uploader's question: {context.user_prompt}")
    return "\n".join(lines)


def build_formatting_prompt(
    record_json: str,
    module: ModuleKind,
    *,
    module_config: Optional[ModuleConfig] = None,
    ai: Optional[AISettings] = None,
    output: Optional[OutputSettings] = None,
) -> str:
    """Embed the full record and the module's instruction into one prompt.

    The record is included verbatim; it is never summarised or truncated.
    """

    instruction: List[str] = [FORMATTING_PROMPTS[module]]
    if module in _LEVEL_ANCHORED:
        instruction.append(ANTI_FABRICATION)
        instruction.append(LEVEL_CALIBRATION)

    if output is not None:
        instruction.append(_DETAIL_GUIDANCE[output.detail_level])
        if not module.returns_json:
            if output.include_timestamps:
                instruction.append("Cite the timestamp (seconds) of every play you mention.")
            if not output.include_recommendations:
                instruction.append("Do not include recommendations or drills.")

    if module_config is not None:
        if module_config.focus_areas:
            instruction.append("Focus areas: " + ", ".join(module_config.focus_areas) + ".")
        if module_config.output_format == "summary" and not module.returns_json:
            instruction.append("Prefer a summary over a play-by-play breakdown.")
        instruction.extend(module_config.custom_prompts)

    if ai is not None and ai.multi_pass:
        instruction.append(
            f"Before answering, review your draft against the extracted data {ai.pass_count} "
            "times and remove anything the data does not support."
        )

    return (
        "Here is the extracted video data:\n"
        f"{record_json}\n\n"
        + "\n\n".join(instruction)
    )
