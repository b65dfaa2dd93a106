from datetime import datetime

import pytest

pytest.importorskip("reportlab")

import config
from reporting.pdf_report import generate_scoreboard_report
from tracking.ledger import ScoreRecord

GENERATED = datetime(2024, 5, 1, 18, 45, 10)


def test_report_written_with_timestamped_name(tmp_path):
    records = [
        ScoreRecord(1_500, datetime(2024, 5, 1, 9, 0)),
        ScoreRecord(30, datetime(2024, 5, 1, 10, 0), config.STOP_AUTO),
    ]

    path = generate_scoreboard_report(records, output_dir=tmp_path, generated_at=GENERATED)

    assert path == tmp_path / "scoreboard_20240501_184510.pdf"
    assert path.read_bytes().startswith(b"%PDF")


def test_empty_scoreboard(tmp_path):
    path = generate_scoreboard_report([], output_dir=tmp_path / "reports", generated_at=GENERATED)
    assert path.exists()


def test_long_scoreboard(tmp_path):
    records = [ScoreRecord(100 - i, datetime(2024, 5, 1, 9, 0)) for i in range(40)]
    path = generate_scoreboard_report(records, output_dir=tmp_path, generated_at=GENERATED)
    assert path.stat().st_size > 0
