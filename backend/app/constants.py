"""Centralized tuning constants shared across the engine."""
from __future__ import annotations

# Player ledger bounds and first-login defaults
MAX_PLAYER_HP = 100
MAX_PLAYER_MANA = 100
INITIAL_HP = 100
INITIAL_MANA = 100
INITIAL_GOLD = 100

# Night window (local clock hours): night when hour >= NIGHT_START_HOUR or < NIGHT_END_HOUR
NIGHT_START_HOUR = 20
NIGHT_END_HOUR = 6

# Stat label vocabularies. Labels are upper-cased and matched by substring;
# first table that matches wins, in the order of STAT_KEYWORD_TABLE.
HP_KEYWORDS = ("HP", "ZDRAVÍ", "HEALTH", "ŽIVOTY", "HEAL", "LÉČENÍ")
DAMAGE_KEYWORDS = ("DMG", "POŠKOZENÍ", "POSKOZENI", "ÚTOK", "UTOK", "ATTACK")
GOLD_KEYWORDS = ("GOLD", "KREDITY", "PENÍZE", "MINCE")
MANA_KEYWORDS = ("MANA", "ENERGIE", "ENERGY", "POWER")

# Unknown-code stub (generative fallback unavailable)
UNKNOWN_ARTIFACT_TITLE = "Neznámý Artefakt"
UNKNOWN_ARTIFACT_DESCRIPTION = "Skener zachytil kód, který neodpovídá žádnému známému záznamu."
UNKNOWN_ARTIFACT_FLAVOR = "Data jsou anomální. Artefakt vyzařuje slabou, ale stabilní energii."
UNKNOWN_ARTIFACT_STATS = (("HP", "+5"),)

# Merchant trade
ROGUE_STEAL_BONUS = 10
DEFAULT_STEAL_PENALTY_HP = 10
