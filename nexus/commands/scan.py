"""``nexus scan``: resolve a code offline and print the effective card as JSON."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from backend.app.content.inventory import Inventory
from backend.app.content.loader import load_event_documents, load_seed_events
from backend.app.content.repository import MasterCatalog
from backend.app.core.context_adjuster import effective_night
from backend.app.core.effects import collect_stat_effects
from backend.app.core.resolution import ResolutionContext, ResolutionPipeline
from backend.app.models.event import normalize_player_class
from backend.app.models.outcomes import NotFound


def register(subparsers) -> None:
    p = subparsers.add_parser("scan", help="Resolve a scanned code against the seed catalog")
    p.add_argument("code", help="Scanned code / card id")
    p.add_argument("--night", action="store_true", default=None, help="Force the night variant")
    p.add_argument("--day", dest="night", action="store_false", help="Force the day variant")
    p.add_argument("--class", dest="player_class", type=str, help="Player class (e.g. ROGUE, Zloděj)")
    p.add_argument("--catalog", type=str, help="YAML catalog to use instead of the bundled seed")
    p.set_defaults(func=run, night=None)


def run(args) -> int:
    player_class = None
    if args.player_class:
        player_class = normalize_player_class(args.player_class)
        if player_class is None:
            print(f"  ERROR: Unknown player class '{args.player_class}'")
            return 1

    if args.catalog:
        path = Path(args.catalog)
        if not path.exists():
            print(f"  ERROR: Catalog not found at {path}")
            return 1
        events = load_event_documents(path)
    else:
        events = load_seed_events()

    ctx = ResolutionContext(
        user_id="cli",
        inventory=Inventory("cli"),
        catalog=MasterCatalog(events, origin="seed"),
        admin_scope="admin",
        night=effective_night(args.night, datetime.now()),
        player_class=player_class,
        remote=False,
    )
    outcome = ResolutionPipeline().resolve(args.code, ctx)
    if isinstance(outcome, NotFound):
        print(f"  ERROR: '{args.code}' did not resolve")
        return 1

    effects = [
        {"target": e.target, "delta": e.delta, "label": e.label}
        for e in collect_stat_effects(outcome.event.stats)
    ]
    print(json.dumps(
        {
            "source": outcome.source.value,
            "night": ctx.night,
            "event": outcome.event.to_wire(),
            "effects": effects,
        },
        ensure_ascii=False,
        indent=2,
    ))
    return 0
