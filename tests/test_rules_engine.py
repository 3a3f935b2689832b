import pytest

from spire_online.core.rules_engine import (
    clear_stress_for_fallout,
    fallout_severity_for_total_stress,
    get_rules_config,
    maybe_trigger_fallout,
    stress_clear_amount_for_severity,
    total_stress_for_fallout,
)


def _pc(**filled):
    stress = {track: list(range(filled.get(track, 0))) for track in ("blood", "mind", "silver", "shadow", "reputation")}
    return {"id": "pc-1", "stressFilled": stress, "fallout": []}


def test_rules_config_defaults_without_campaign():
    assert get_rules_config(None) == {
        "difficultyDowngrades": True,
        "falloutCheckOnStress": True,
        "clearStressOnFallout": True,
    }


def test_rules_config_core_and_unknown_profiles_use_defaults():
    expected = get_rules_config(None)
    assert get_rules_config({"rulesProfile": "Core"}) == expected
    assert get_rules_config({"rulesProfile": "Homebrew"}) == expected
    assert get_rules_config({"name": "no profile"}) == expected


def test_rules_config_quickstart_is_fixed():
    config = get_rules_config({"rulesProfile": "Quickstart", "customRules": {"falloutCheckOnStress": True}})
    assert config == {
        "difficultyDowngrades": True,
        "falloutCheckOnStress": False,
        "clearStressOnFallout": False,
    }


def test_rules_config_custom_overrides_per_key():
    config = get_rules_config({"rulesProfile": "Custom", "customRules": {"falloutCheckOnStress": False}})
    assert config == {
        "difficultyDowngrades": True,
        "falloutCheckOnStress": False,
        "clearStressOnFallout": True,
    }



@pytest.mark.parametrize("custom_rules", ["abc", ["falloutCheckOnStress"], 7, None])
def test_custom_rules_that_are_not_a_mapping_are_ignored(custom_rules):
    assert get_rules_config({"rulesProfile": "Custom", "customRules": custom_rules}) == get_rules_config(None)


def test_custom_rules_keep_only_known_boolean_switches():
    config = get_rules_config({
        "rulesProfile": "Custom",
        "customRules": {
            "falloutCheckOnStress": None,
            "clearStressOnFallout": "no",
            "difficultyDowngrades": False,
            "homebrewDice": True,
        },
    })
    assert config == {
        "difficultyDowngrades": False,
        "falloutCheckOnStress": True,
        "clearStressOnFallout": True,
    }

def test_rules_config_does_not_leak_between_calls():
    config = get_rules_config(None)
    config["difficultyDowngrades"] = False
    assert get_rules_config(None)["difficultyDowngrades"] is True


def test_total_stress_caps_each_track_at_ten():
    pc = _pc(blood=13, mind=9, silver=0, shadow=22, reputation=1)
    assert total_stress_for_fallout(pc) == 10 + 9 + 0 + 10 + 1


def test_total_stress_blood_twelve_counts_ten():
    assert total_stress_for_fallout(_pc(blood=12)) == 10


def test_total_stress_handles_missing_tracks():
    assert total_stress_for_fallout({}) == 0
    assert total_stress_for_fallout({"stressFilled": {"mind": [1, 2]}}) == 2


def test_fallout_severity_thresholds():
    assert fallout_severity_for_total_stress(0) == "Minor"
    assert fallout_severity_for_total_stress(4) == "Minor"
    assert fallout_severity_for_total_stress(5) == "Moderate"
    assert fallout_severity_for_total_stress(8) == "Moderate"
    assert fallout_severity_for_total_stress(9) == "Severe"
    assert fallout_severity_for_total_stress(50) == "Severe"


def test_stress_clear_amounts():
    assert stress_clear_amount_for_severity("Minor") == 3
    assert stress_clear_amount_for_severity("Moderate") == 5
    assert stress_clear_amount_for_severity("Severe") == 7
    assert stress_clear_amount_for_severity("anything else") == 3


def test_clear_stress_starts_with_given_track():
    pc = _pc(blood=2, mind=4)
    cleared = clear_stress_for_fallout(pc, 3, first_track="mind")
    assert cleared == 3
    assert len(pc["stressFilled"]["mind"]) == 1
    assert len(pc["stressFilled"]["blood"]) == 2


def test_clear_stress_spills_over_and_stops_when_empty():
    pc = _pc(blood=1, silver=1)
    assert clear_stress_for_fallout(pc, 5, first_track="blood") == 2
    assert total_stress_for_fallout(pc) == 0


def test_maybe_trigger_fallout_when_roll_below_total():
    pc = _pc(blood=6, mind=1)
    entry = maybe_trigger_fallout(pc, "blood", get_rules_config({"rulesProfile": "Core"}), rng=lambda: 0.1)
    assert entry is not None
    assert len(pc["fallout"]) == 1
    assert pc["fallout"][0]["severity"] == "Moderate"
    # Moderate clears 5 boxes, blood first
    assert len(pc["stressFilled"]["blood"]) == 1
    assert len(pc["stressFilled"]["mind"]) == 1


def test_maybe_trigger_fallout_nothing_when_roll_meets_total():
    pc = _pc(blood=4)
    assert maybe_trigger_fallout(pc, "blood", get_rules_config(None), rng=lambda: 0.9) is None
    assert pc["fallout"] == []


def test_maybe_trigger_fallout_respects_quickstart():
    pc = _pc(blood=10, mind=10)
    rules = get_rules_config({"rulesProfile": "Quickstart"})
    assert maybe_trigger_fallout(pc, "blood", rules, rng=lambda: 0.0) is None


def test_maybe_trigger_fallout_keeps_stress_when_clearing_disabled():
    pc = _pc(blood=9)
    rules = get_rules_config({"rulesProfile": "Custom", "customRules": {"clearStressOnFallout": False}})
    entry = maybe_trigger_fallout(pc, "blood", rules, rng=lambda: 0.0)
    assert entry["severity"] == "Severe"
    assert total_stress_for_fallout(pc) == 9
