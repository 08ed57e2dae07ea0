"""Runtime-adjustable analysis configuration shared by pipeline runs.

The registry holds one immutable ``AnalysisConfiguration`` snapshot. Writers
build a new snapshot and swap it in under a lock, so concurrent readers
always see a complete configuration and never a half-applied update.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from src.shared.utils.logging import get_logger

from .contracts.formatted_output import ModuleKind

LOGGER = get_logger(__name__)

_MODES = {"standard", "advanced", "custom"}
_DETAIL_LEVELS = {"minimal", "standard", "comprehensive", "maximum"}
_OUTPUT_FORMATS = {"detailed", "summary"}
_PRIORITY_RANGE = (1, 10)
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

PRESETS = ("quick", "standard", "comprehensive", "recruiting", "coaching")


def _ensure_choice(value: Any, field_name: str, choices: set[str]) -> str:
    if not isinstance(value, str) or value.strip().lower() not in choices:
        raise ValueError(f"{field_name} must be one of {sorted(choices)}, got {value!r}")
    return value.strip().lower()


def _ensure_range(value: Any, field_name: str, minimum: float, maximum: float) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric")
    try:
        numeric = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be numeric") from exc
    if numeric < minimum or numeric > maximum:
        raise ValueError(f"{field_name} must be between {minimum:g} and {maximum:g}")
    return numeric


def _ensure_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return value


def _ensure_strings(value: Any, field_name: str) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{field_name} must be a list of strings")
    return tuple(str(item).strip() for item in value if str(item).strip())


@dataclass(frozen=True)
class ModuleConfig:
    enabled: bool = True
    priority: int = 5
    focus_areas: Tuple[str, ...] = ()
    custom_prompts: Tuple[str, ...] = ()
    output_format: str = "detailed"

    def __post_init__(self) -> None:
        _ensure_bool(self.enabled, "modules.enabled")
        priority = _ensure_range(self.priority, "modules.priority", *_PRIORITY_RANGE)
        object.__setattr__(self, "priority", int(priority))
        object.__setattr__(self, "focus_areas", _ensure_strings(self.focus_areas, "modules.focus_areas"))
        object.__setattr__(
            self, "custom_prompts", _ensure_strings(self.custom_prompts, "modules.custom_prompts")
        )
        object.__setattr__(
            self,
            "output_format",
            _ensure_choice(self.output_format, "modules.output_format", _OUTPUT_FORMATS),
        )


@dataclass(frozen=True)
class AISettings:
    model: str = "gemini-2.5-pro"
    temperature: float = 0.7
    max_tokens: int = 8000
    multi_pass: bool = True
    pass_count: int = 3

    def __post_init__(self) -> None:
        if not isinstance(self.model, str) or not self.model.strip():
            raise ValueError("ai.model must be provided")
        object.__setattr__(self, "model", self.model.strip())
        object.__setattr__(self, "temperature", _ensure_range(self.temperature, "ai.temperature", 0.0, 2.0))
        object.__setattr__(self, "max_tokens", int(_ensure_range(self.max_tokens, "ai.max_tokens", 1, 65536)))
        _ensure_bool(self.multi_pass, "ai.multi_pass")
        object.__setattr__(self, "pass_count", int(_ensure_range(self.pass_count, "ai.pass_count", 1, 10)))


@dataclass(frozen=True)
class PerformanceSettings:
    max_concurrent_analyses: int = 3
    timeout_seconds: int = 300
    retry_attempts: int = 2

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "max_concurrent_analyses",
            int(_ensure_range(self.max_concurrent_analyses, "performance.max_concurrent_analyses", 1, 64)),
        )
        object.__setattr__(
            self,
            "timeout_seconds",
            int(_ensure_range(self.timeout_seconds, "performance.timeout_seconds", 1, 3600)),
        )
        object.__setattr__(
            self,
            "retry_attempts",
            int(_ensure_range(self.retry_attempts, "performance.retry_attempts", 0, 10)),
        )


@dataclass(frozen=True)
class OutputSettings:
    detail_level: str = "comprehensive"
    include_confidence_scores: bool = True
    include_timestamps: bool = True
    include_recommendations: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "detail_level",
            _ensure_choice(self.detail_level, "output.detail_level", _DETAIL_LEVELS),
        )
        for name in ("include_confidence_scores", "include_timestamps", "include_recommendations"):
            _ensure_bool(getattr(self, name), f"output.{name}")


def _default_modules() -> Mapping[ModuleKind, ModuleConfig]:
    return MappingProxyType(
        {
            ModuleKind.PLAYER_EVALUATION: ModuleConfig(
                priority=9,
                focus_areas=("technique", "decision-making", "athleticism"),
            ),
            ModuleKind.TACTICAL: ModuleConfig(
                priority=8,
                focus_areas=("formations", "slides", "transition"),
            ),
            ModuleKind.STATISTICS: ModuleConfig(
                priority=7,
                focus_areas=("goals", "assists", "turnovers", "faceoffs"),
                output_format="summary",
            ),
            ModuleKind.HIGHLIGHTS: ModuleConfig(
                priority=6,
                focus_areas=("goals", "defensive stops", "hustle plays"),
            ),
        }
    )


@dataclass(frozen=True)
class AnalysisConfiguration:
    """Complete, immutable analysis policy."""

    enabled: bool = True
    version: str = "1.0.0"
    mode: str = "advanced"
    modules: Mapping[ModuleKind, ModuleConfig] = field(default_factory=_default_modules)
    ai: AISettings = field(default_factory=AISettings)
    performance: PerformanceSettings = field(default_factory=PerformanceSettings)
    output: OutputSettings = field(default_factory=OutputSettings)

    def __post_init__(self) -> None:
        _ensure_bool(self.enabled, "enabled")
        object.__setattr__(self, "mode", _ensure_choice(self.mode, "mode", _MODES))
        modules = {ModuleKind.parse(kind): config for kind, config in self.modules.items()}
        for kind, config in modules.items():
            if not isinstance(config, ModuleConfig):
                raise ValueError(f"modules.{kind.value} must be a ModuleConfig")
        object.__setattr__(self, "modules", MappingProxyType(modules))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "version": self.version,
            "mode": self.mode,
            "modules": {
                kind.value: _section_to_dict(config) for kind, config in self.modules.items()
            },
            "ai": _section_to_dict(self.ai),
            "performance": _section_to_dict(self.performance),
            "output": _section_to_dict(self.output),
        }


SectionT = TypeVar("SectionT", ModuleConfig, AISettings, PerformanceSettings, OutputSettings)

_SECTIONS: Dict[str, Type[Any]] = {
    "ai": AISettings,
    "performance": PerformanceSettings,
    "output": OutputSettings,
}
_SCALARS = {"enabled", "version", "mode"}


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _section_to_dict(section: Any) -> Dict[str, Any]:
    payload = {}
    for item in fields(section):
        value = getattr(section, item.name)
        payload[item.name] = list(value) if isinstance(value, tuple) else value
    return payload


def _build_section(section_type: Type[SectionT], value: Union[SectionT, Mapping[str, Any]], label: str) -> SectionT:
    """Build a full section from a mapping; omitted fields take their defaults."""

    if isinstance(value, section_type):
        return value
    if not isinstance(value, Mapping):
        raise ValueError(f"`{label}` must be a mapping or {section_type.__name__}")
    known = {item.name for item in fields(section_type)}
    kwargs = {}
    for key, item in value.items():
        name = _snake(str(key))
        if name not in known:
            raise ValueError(f"Unknown setting `{label}.{key}`")
        kwargs[name] = tuple(item) if isinstance(item, list) else item
    return section_type(**kwargs)


def _build_modules(value: Any) -> Mapping[ModuleKind, ModuleConfig]:
    if not isinstance(value, Mapping):
        raise ValueError("`modules` must be a mapping of module name to settings")
    return {
        ModuleKind.parse(kind): _build_section(ModuleConfig, config, f"modules.{kind}")
        for kind, config in value.items()
    }


class AnalysisConfigRegistry:
    """Owns the current ``AnalysisConfiguration`` and applies updates."""

    def __init__(self, config: Optional[AnalysisConfiguration] = None) -> None:
        self._lock = threading.RLock()
        self._config = config or AnalysisConfiguration()

    def get_config(self) -> AnalysisConfiguration:
        return self._config

    def update_config(self, partial: Mapping[str, Any]) -> AnalysisConfiguration:
        """Shallow-merge ``partial`` into the configuration.

        Each top-level key replaces the whole value it names: updating ``ai``
        with ``{"multiPass": False}`` resets every other AI setting to its
        default. Pass the sibling fields you want to keep.
        """

        if not isinstance(partial, Mapping):
            raise ValueError("Configuration updates must be a mapping")

        changes: Dict[str, Any] = {}
        for key, value in partial.items():
            name = _snake(str(key))
            if name in _SCALARS:
                changes[name] = value
            elif name == "modules":
                changes[name] = _build_modules(value)
            elif name in _SECTIONS:
                changes[name] = _build_section(_SECTIONS[name], value, name)
            else:
                raise ValueError(f"Unknown configuration key `{key}`")

        with self._lock:
            self._config = replace(self._config, **changes)
            LOGGER.info("Analysis configuration updated: %s", ", ".join(sorted(changes)) or "no changes")
            return self._config

    def reset(self) -> AnalysisConfiguration:
        with self._lock:
            self._config = AnalysisConfiguration()
            return self._config

    def get_module_config(self, kind: Union[ModuleKind, str]) -> Optional[ModuleConfig]:
        return self._config.modules.get(ModuleKind.parse(kind))

    def is_module_enabled(self, kind: Union[ModuleKind, str]) -> bool:
        config = self.get_module_config(kind)
        return bool(config and config.enabled)

    def get_enabled_modules(self) -> List[ModuleKind]:
        """Enabled modules, highest priority first (ties keep declaration order)."""

        snapshot = self._config
        enabled = [(kind, config) for kind, config in snapshot.modules.items() if config.enabled]
        enabled.sort(key=lambda entry: entry[1].priority, reverse=True)
        return [kind for kind, _ in enabled]

    def get_ai_settings(self) -> AISettings:
        return self._config.ai

    def get_output_settings(self) -> OutputSettings:
        return self._config.output

    def get_performance_settings(self) -> PerformanceSettings:
        return self._config.performance

    def apply_preset(self, name: str) -> AnalysisConfiguration:
        """Apply one of the named presets on top of the current configuration.

        ``standard`` names the configuration as it already is and changes
        nothing; use ``reset()`` to get back to the defaults.
        """

        preset = (name or "").strip().lower()
        with self._lock:
            current = self._config
            if preset == "quick":
                updates: Dict[str, Any] = {
                    "mode": "standard",
                    "ai": replace(current.ai, multi_pass=False, pass_count=1),
                    "output": replace(current.output, detail_level="minimal"),
                }
            elif preset == "standard":
                LOGGER.info("Preset 'standard' leaves the configuration unchanged")
                return current
            elif preset == "comprehensive":
                updates = {
                    "mode": "advanced",
                    "ai": replace(current.ai, multi_pass=True, pass_count=5),
                    "output": replace(current.output, detail_level="maximum"),
                }
            elif preset == "recruiting":
                updates = {
                    "modules": self._reprioritised(
                        current,
                        {ModuleKind.PLAYER_EVALUATION: 10, ModuleKind.STATISTICS: 9},
                    )
                }
            elif preset == "coaching":
                updates = {
                    "modules": self._reprioritised(
                        current,
                        {ModuleKind.TACTICAL: 10, ModuleKind.HIGHLIGHTS: 9},
                    )
                }
            else:
                raise ValueError(f"Unknown preset {name!r}; expected one of {', '.join(PRESETS)}")

            LOGGER.info("Applying analysis preset '%s'", preset)
            return self.update_config(updates)

    @staticmethod
    def _reprioritised(
        config: AnalysisConfiguration,
        priorities: Mapping[ModuleKind, int],
    ) -> Dict[ModuleKind, ModuleConfig]:
        modules = dict(config.modules)
        for kind, priority in priorities.items():
            base = modules.get(kind, ModuleConfig())
            modules[kind] = replace(base, priority=priority)
        return modules


_DEFAULT_REGISTRY: Optional[AnalysisConfigRegistry] = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> AnalysisConfigRegistry:
    """Process-wide registry for scripts; services should own their own."""

    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        if _DEFAULT_REGISTRY is None:
            _DEFAULT_REGISTRY = AnalysisConfigRegistry()
        return _DEFAULT_REGISTRY
