"""
Stress and fallout rules for Spire campaigns.

Campaigns and player characters are the client's JSON documents, so every
function here takes plain mappings and keeps the client's camelCase keys
(``rulesProfile``, ``customRules``, ``stressFilled``).
"""
import logging
import math
import random
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

STRESS_TRACKS = ("blood", "mind", "silver", "shadow", "reputation")
MAX_STRESS_PER_TRACK = 10

DEFAULT_RULES = {
    "difficultyDowngrades": True,
    "falloutCheckOnStress": True,
    "clearStressOnFallout": True,
}

QUICKSTART_RULES = {
    "difficultyDowngrades": True,
    "falloutCheckOnStress": False,
    "clearStressOnFallout": False,
}


def _rule_overrides(custom_rules: Any) -> Dict[str, bool]:
    """Known switches with boolean values; anything else in the blob is ignored."""
    if not isinstance(custom_rules, Mapping):
        if custom_rules is not None:
            logger.warning(f"Ignoring customRules of type {type(custom_rules).__name__}")
        return {}
    return {
        key: value
        for key, value in custom_rules.items()
        if key in DEFAULT_RULES and isinstance(value, bool)
    }


def get_rules_config(campaign: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Resolve the rule switches for a campaign.

    ``Quickstart`` is a fixed preset, ``Custom`` overlays ``customRules`` on the
    defaults (override wins per key) and anything else, ``Core`` included,
    gets the defaults.
    """
    if not campaign:
        return dict(DEFAULT_RULES)

    profile = campaign.get("rulesProfile") or "Core"
    if profile == "Quickstart":
        return dict(QUICKSTART_RULES)
    if profile == "Custom":
        return {**DEFAULT_RULES, **_rule_overrides(campaign.get("customRules"))}
    return dict(DEFAULT_RULES)


def total_stress_for_fallout(pc: Mapping[str, Any]) -> int:
    """Sum filled stress boxes over the five tracks, each track capped at 10."""
    stress_filled = pc.get("stressFilled") or {}
    total = 0
    for track in STRESS_TRACKS:
        filled = stress_filled.get(track) or []
        total += min(MAX_STRESS_PER_TRACK, len(filled))
    return total


def fallout_severity_for_total_stress(total: int) -> str:
    if total >= 9:
        return "Severe"
    if total >= 5:
        return "Moderate"
    return "Minor"


def stress_clear_amount_for_severity(severity: str) -> int:
    if severity == "Severe":
        return 7
    if severity == "Moderate":
        return 5
    return 3


def clear_stress_for_fallout(pc: Dict[str, Any], amount: int, first_track: Optional[str] = None) -> int:
    """
    Remove up to ``amount`` filled stress boxes from ``pc`` in place.

    Boxes come off ``first_track`` first, then the remaining tracks in their
    fixed order; the most recently filled box of a track goes first.
    Returns how many boxes were cleared.
    """
    stress_filled = pc.setdefault("stressFilled", {})
    order: List[str] = list(STRESS_TRACKS)
    if first_track in order:
        order.remove(first_track)
        order.insert(0, first_track)

    cleared = 0
    for track in order:
        boxes = list(stress_filled.get(track) or [])
        while boxes and cleared < amount:
            boxes.pop()
            cleared += 1
        stress_filled[track] = boxes
        if cleared >= amount:
            break
    return cleared


def roll_d10(rng: Callable[[], float] = random.random) -> int:
    return math.floor(rng() * 10) + 1


def maybe_trigger_fallout(
    pc: Dict[str, Any],
    track: str,
    rules: Mapping[str, Any],
    rng: Callable[[], float] = random.random,
) -> Optional[Dict[str, Any]]:
    """
    Roll for fallout after ``pc`` takes stress on ``track``.

    Fallout happens when a d10 comes up strictly below the character's total
    stress. The new entry is appended to ``pc["fallout"]`` and returned; stress
    is cleared according to the severity when the rules ask for it.
    """
    if not rules.get("falloutCheckOnStress", True):
        return None

    total = total_stress_for_fallout(pc)
    roll = roll_d10(rng)
    if roll >= total:
        logger.debug(f"No fallout: rolled {roll} against total stress {total}")
        return None

    severity = fallout_severity_for_total_stress(total)
    entry = {
        "id": f"fallout-{uuid.uuid4().hex[:12]}",
        "severity": severity,
        "track": track,
        "roll": roll,
        "totalStress": total,
    }
    pc.setdefault("fallout", []).append(entry)

    if rules.get("clearStressOnFallout", True):
        entry["stressCleared"] = clear_stress_for_fallout(
            pc, stress_clear_amount_for_severity(severity), first_track=track
        )

    logger.info(f"{severity} fallout on {track} for pc {pc.get('id')} (roll {roll} < {total})")
    return entry
