"""``nexus serve``: run the FastAPI backend with uvicorn."""
from __future__ import annotations

import os


def register(subparsers) -> None:
    p = subparsers.add_parser("serve", help="Start the FastAPI backend")
    p.add_argument("--host", type=str, default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    p.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    p.add_argument("--offline", action="store_true", help="Skip the remote store (sets NEXUS_OFFLINE=1)")
    p.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    p.set_defaults(func=run)


def run(args) -> int:
    if args.offline:
        os.environ["NEXUS_OFFLINE"] = "1"

    import uvicorn

    uvicorn.run("backend.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0
