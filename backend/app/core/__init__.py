"""Core engine: resolution pipeline, context adjuster, effects, ledger and card lifecycle."""
from .context_adjuster import adjust_event, effective_night, is_night
from .effects import apply_event_effects, classify_stat_label, parse_stat_value
from .ledger import PlayerLedger
from .lifecycle import CardLifecycle
from .resolution import ResolutionContext, ResolutionPipeline, ScanGate

__all__ = [
    "adjust_event",
    "effective_night",
    "is_night",
    "apply_event_effects",
    "classify_stat_label",
    "parse_stat_value",
    "PlayerLedger",
    "CardLifecycle",
    "ResolutionContext",
    "ResolutionPipeline",
    "ScanGate",
]
