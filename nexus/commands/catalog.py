"""``nexus catalog``: list the cards in the seed catalog."""
from __future__ import annotations

from pathlib import Path

from backend.app.content.loader import load_event_documents, load_seed_events


def register(subparsers) -> None:
    p = subparsers.add_parser("catalog", help="List catalog card ids")
    p.add_argument("--catalog", type=str, help="YAML catalog to list instead of the bundled seed")
    p.add_argument("--type", dest="event_type", type=str, help="Only show cards of this type")
    p.set_defaults(func=run)


def run(args) -> int:
    if args.catalog:
        path = Path(args.catalog)
        if not path.exists():
            print(f"  ERROR: Catalog not found at {path}")
            return 1
        events = load_event_documents(path)
    else:
        events = load_seed_events()

    if args.event_type:
        wanted = args.event_type.strip().upper()
        events = [e for e in events if e.type.value == wanted]

    for ev in events:
        flags = []
        if ev.is_consumable:
            flags.append("consumable")
        if ev.is_locked:
            flags.append("locked")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"  {ev.id:<12} {ev.type.value:<10} {ev.title}{suffix}")
    print(f"\n  {len(events)} card(s)")
    return 0
