"""Command registry for the nexus CLI.

Keeps command discovery/wiring in one place so the CLI entrypoint stays thin.
"""
from __future__ import annotations

from importlib import import_module
from types import ModuleType
from typing import Iterable

COMMAND_MODULES: tuple[str, ...] = (
    "scan",
    "catalog",
    "serve",
)


def iter_command_modules() -> Iterable[ModuleType]:
    """Yield command modules in stable registration order."""
    for name in COMMAND_MODULES:
        yield import_module(f"nexus.commands.{name}")


def register_all(subparsers) -> None:
    """Register all known command modules on the provided argparse subparsers."""
    for module in iter_command_modules():
        module.register(subparsers)
