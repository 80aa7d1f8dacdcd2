"""Defaults for the accusation engine and its scripts."""

from __future__ import annotations

from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = ROOT / "data"
ACCUSATION_PATH = DATA_DIR / "accusation.yml"
CLUES_PATH = DATA_DIR / "clues.yml"
STATE_DB_PATH = DATA_DIR / "accusation_state.db"
STATE_KEY = "accusation_state"

MAX_MISTAKES = 3
MAX_FAILED_ACCUSATIONS = 2

PENALTY_TIERS = (
    "Think carefully!",
    "You're running out of chances.",
    "One more wrong move and this accusation will fail!",
)

OUT_OF_ORDER_RESPONSE = (
    "Wait, that evidence is relevant, but we need to establish the basics first. "
    "Let's take this step by step."
)

SKIP_RESPONSE = "We have nothing to answer that with. Let's move on, but it costs us."

# Seconds each ending phase waits for a continue signal; None means dismissible only.
PLAYBACK_TIMEOUTS: dict[str, float | None] = {
    "confession": 12.0,
    "reaction": 7.0,
    "despair": 12.0,
    "door_unlock": 3.0,
    "summary": None,
    "failure_screen": None,
}
