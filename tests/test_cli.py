"""Smoke tests for the nexus CLI wrapper.

Run with: python -m pytest tests/test_cli.py -v
"""
from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]


def _run_cli(*args: str, timeout: int = 30) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(_ROOT), env.get("PYTHONPATH", "")]))
    return subprocess.run(
        [sys.executable, "-m", "nexus", *args],
        capture_output=True,
        text=True,
        timeout=timeout,
        cwd=str(_ROOT),
        env=env,
    )


class TestCLIHelp:
    """Verify that all subcommands register and print help without errors."""

    def test_main_help(self):
        result = _run_cli("--help")
        assert result.returncode == 0
        assert "scan" in result.stdout
        assert "catalog" in result.stdout
        assert "serve" in result.stdout

    def test_scan_help(self):
        result = _run_cli("scan", "--help")
        assert result.returncode == 0
        assert "--night" in result.stdout
        assert "--class" in result.stdout

    def test_serve_help(self):
        result = _run_cli("serve", "--help")
        assert result.returncode == 0
        assert "--offline" in result.stdout


class TestScan:
    def test_scan_seed_card_prints_json(self):
        result = _run_cli("scan", "item-01", "--day")
        assert result.returncode == 0, result.stderr
        body = json.loads(result.stdout)
        assert body["source"] == "catalog"
        assert body["event"]["id"] == "ITEM-01"
        assert body["effects"] == [{"target": "hp", "delta": 20, "label": "HP"}]

    def test_scan_night_variant(self):
        result = _run_cli("scan", "ENC-01", "--night")
        body = json.loads(result.stdout)
        assert body["night"] is True
        assert body["event"]["title"] == "Lovecký Dron"
        assert body["effects"][0]["delta"] == -20

    def test_unknown_code_gets_stub(self):
        result = _run_cli("scan", "QR-NOBODY-KNOWS", "--day")
        body = json.loads(result.stdout)
        assert body["source"] == "stub"
        assert body["event"]["title"] == "Neznámý Artefakt"

    def test_bad_class_is_rejected(self):
        result = _run_cli("scan", "ITEM-01", "--class", "bard")
        assert result.returncode == 1
        assert "ERROR" in result.stdout


class TestCatalog:
    def test_lists_seed_cards(self):
        result = _run_cli("catalog")
        assert result.returncode == 0
        assert "MERCH-01" in result.stdout
        assert "card(s)" in result.stdout

    def test_type_filter(self):
        result = _run_cli("catalog", "--type", "trap")
        assert "TRAP-01" in result.stdout
        assert "ITEM-01" not in result.stdout

    def test_missing_catalog_file(self):
        result = _run_cli("catalog", "--catalog", "/nonexistent/cards.yaml")
        assert result.returncode == 1
        assert "not found" in result.stdout.lower()
