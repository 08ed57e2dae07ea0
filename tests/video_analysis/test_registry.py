import pytest

from src.functions.video_analysis.core.contracts import ModuleKind
from src.functions.video_analysis.core.registry import (
    PRESETS,
    AnalysisConfigRegistry,
    ModuleConfig,
    default_registry,
)


def test_defaults_enable_every_module_by_priority():
    registry = AnalysisConfigRegistry()

    assert registry.get_enabled_modules() == [
        ModuleKind.PLAYER_EVALUATION,
        ModuleKind.TACTICAL,
        ModuleKind.STATISTICS,
        ModuleKind.HIGHLIGHTS,
    ]
    ai = registry.get_ai_settings()
    assert ai.model == "gemini-2.5-pro"
    assert ai.temperature == 0.7
    assert ai.max_tokens == 8000
    assert ai.multi_pass is True
    assert ai.pass_count == 3
    performance = registry.get_performance_settings()
    assert (performance.max_concurrent_analyses, performance.timeout_seconds, performance.retry_attempts) == (3, 300, 2)
    assert registry.get_output_settings().detail_level == "comprehensive"


def test_quick_preset_disables_multi_pass_and_keeps_module_order():
    registry = AnalysisConfigRegistry()

    registry.apply_preset("quick")

    config = registry.get_config()
    assert config.mode == "standard"
    assert config.ai.multi_pass is False
    assert config.ai.pass_count == 1
    assert config.output.detail_level == "minimal"
    priorities = [registry.get_module_config(kind).priority for kind in registry.get_enabled_modules()]
    assert priorities == sorted(priorities, reverse=True)


def test_comprehensive_preset_raises_pass_count():
    registry = AnalysisConfigRegistry()

    registry.apply_preset("Comprehensive")

    assert registry.get_config().mode == "advanced"
    assert registry.get_ai_settings().pass_count == 5
    assert registry.get_output_settings().detail_level == "maximum"


def test_standard_preset_keeps_current_configuration():
    registry = AnalysisConfigRegistry()
    registry.apply_preset("quick")
    before = registry.get_config()

    after = registry.apply_preset("standard")

    assert after is before
    assert registry.get_config() is before
    assert registry.get_ai_settings().pass_count == 1
    assert registry.get_output_settings().detail_level == "minimal"


def test_recruiting_preset_puts_player_modules_first():
    registry = AnalysisConfigRegistry()

    registry.apply_preset("recruiting")

    assert registry.get_enabled_modules() == [
        ModuleKind.PLAYER_EVALUATION,
        ModuleKind.STATISTICS,
        ModuleKind.TACTICAL,
        ModuleKind.HIGHLIGHTS,
    ]


def test_coaching_preset_ties_keep_declaration_order():
    registry = AnalysisConfigRegistry()

    registry.apply_preset("coaching")

    assert registry.get_enabled_modules() == [
        ModuleKind.TACTICAL,
        ModuleKind.PLAYER_EVALUATION,
        ModuleKind.HIGHLIGHTS,
        ModuleKind.STATISTICS,
    ]


def test_unknown_preset_is_rejected():
    registry = AnalysisConfigRegistry()

    with pytest.raises(ValueError) as exc:
        registry.apply_preset("scouting")

    assert "scouting" in str(exc.value)
    assert registry.get_config().mode == "advanced"
    assert "quick" in PRESETS


def test_update_replaces_whole_section():
    registry = AnalysisConfigRegistry()
    registry.update_config({"ai": {"model": "gemini-2.5-flash", "temperature": 0.2}})

    registry.update_config({"ai": {"multiPass": False}})

    ai = registry.get_ai_settings()
    assert ai.multi_pass is False
    assert ai.model == "gemini-2.5-pro"
    assert ai.temperature == 0.7


def test_update_accepts_camel_and_snake_keys():
    registry = AnalysisConfigRegistry()

    registry.update_config(
        {
            "performance": {"maxConcurrentAnalyses": 5, "timeout_seconds": 120, "retryAttempts": 1},
            "output": {"detailLevel": "standard", "include_timestamps": False},
        }
    )

    assert registry.get_performance_settings().max_concurrent_analyses == 5
    assert registry.get_performance_settings().timeout_seconds == 120
    assert registry.get_output_settings().include_timestamps is False
    assert registry.get_output_settings().include_recommendations is True


def test_update_modules_replaces_module_map():
    registry = AnalysisConfigRegistry()

    registry.update_config(
        {
            "modules": {
                "statistics": {"enabled": True, "priority": 10},
                "highlights": {"enabled": False},
            }
        }
    )

    assert registry.get_enabled_modules() == [ModuleKind.STATISTICS]
    assert registry.get_module_config(ModuleKind.PLAYER_EVALUATION) is None
    assert not registry.is_module_enabled("highlights")
    assert registry.get_module_config("statistics") == ModuleConfig(priority=10)


@pytest.mark.parametrize(
    "partial",
    [
        {"colour": "red"},
        {"ai": {"topK": 3}},
        {"modules": {"statistics": {"priority": 11}}},
        {"modules": {"faceoffs": {"enabled": True}}},
        {"output": {"detailLevel": "verbose"}},
        {"mode": "turbo"},
    ],
)
def test_invalid_updates_are_rejected(partial):
    registry = AnalysisConfigRegistry()
    before = registry.get_config()

    with pytest.raises(ValueError):
        registry.update_config(partial)

    assert registry.get_config() is before


def test_reset_restores_defaults():
    registry = AnalysisConfigRegistry()
    registry.apply_preset("quick")

    registry.reset()

    assert registry.get_ai_settings().multi_pass is True
    assert registry.get_config().mode == "advanced"


def test_snapshots_are_immutable():
    registry = AnalysisConfigRegistry()
    snapshot = registry.get_config()

    registry.apply_preset("quick")

    assert snapshot.ai.multi_pass is True
    with pytest.raises(TypeError):
        snapshot.modules[ModuleKind.STATISTICS] = ModuleConfig()


def test_to_dict_uses_module_wire_names():
    payload = AnalysisConfigRegistry().get_config().to_dict()

    assert set(payload["modules"]) == {"playerEvaluation", "statistics", "tactical", "highlights"}
    assert payload["modules"]["statistics"]["focus_areas"][0] == "goals"
    assert payload["ai"]["pass_count"] == 3


def test_module_kind_parse_is_case_insensitive():
    assert ModuleKind.parse("playerevaluation") is ModuleKind.PLAYER_EVALUATION
    assert ModuleKind.parse("PLAYER_EVALUATION") is ModuleKind.PLAYER_EVALUATION
    assert ModuleKind.parse(" Statistics ") is ModuleKind.STATISTICS
    with pytest.raises(ValueError):
        ModuleKind.parse("transition")


def test_default_registry_is_shared():
    assert default_registry() is default_registry()
