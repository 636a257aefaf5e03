"""Tests for the command-line scripts."""

import importlib.util
import json
import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"


@pytest.fixture
def run_materializer():
    spec = importlib.util.spec_from_file_location(
        "run_materializer", SCRIPTS_DIR / "run_materializer.py"
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRunMaterializer:
    """Tests for scripts/run_materializer.py."""

    def test_writes_report(self, run_materializer, tmp_path) -> None:
        argv = ["--customers", "4", "--as-of", "2026-03-15", "--output-dir", str(tmp_path)]

        with patch.dict(os.environ, {}, clear=True):
            exit_code = run_materializer.main(argv)

        assert exit_code == 0
        report = json.loads((tmp_path / "materializer_report.json").read_text(encoding="utf-8"))
        assert set(report) == {"created", "updated", "totalOverduePayments"}
        assert report["updated"] == 0
        outcomes = json.loads((tmp_path / "materializer_outcomes.json").read_text(encoding="utf-8"))
        assert sum(o["created"] for o in outcomes) == report["created"]

    def test_bad_config(self, run_materializer, tmp_path, capsys) -> None:
        with patch.dict(os.environ, {"LEDGER_TOLERANCE": "abc"}, clear=True):
            exit_code = run_materializer.main(["--output-dir", str(tmp_path)])

        assert exit_code == 2
        assert "Invalid configuration" in capsys.readouterr().err

    def test_defaults_to_system_clock(self, run_materializer, tmp_path) -> None:
        """Test the run date comes from the ledger-zone clock when --as-of is absent."""
        now = datetime(2026, 3, 15, 0, 5, tzinfo=ZoneInfo("Asia/Tashkent"))

        with patch.dict(os.environ, {}, clear=True), patch.object(run_materializer, "SystemClock") as clock_cls:
            clock_cls.return_value.now.return_value = now
            exit_code = run_materializer.main(["--customers", "3", "--output-dir", str(tmp_path)])

        assert exit_code == 0
        clock_cls.assert_called_once_with(ZoneInfo("Asia/Tashkent"))
        assert (tmp_path / "materializer_report.json").exists()
