from datetime import datetime

import pytest

import config
from tracking.analytics import compute_statistics, format_duration, generate_summary_text
from tracking.ledger import ScoreRecord

WHEN = datetime(2024, 5, 1, 8, 0, 0)


@pytest.mark.parametrize("seconds, expected", [
    (0, "00:00:00"),
    (59, "00:00:59"),
    (3_661, "01:01:01"),
    (90_000, "25:00:00"),
    (-5, "00:00:00"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_statistics():
    records = [
        ScoreRecord(120, WHEN),
        ScoreRecord(60, WHEN, config.STOP_AUTO),
        ScoreRecord(30, WHEN),
    ]
    stats = compute_statistics(records)

    assert stats["session_count"] == 3
    assert stats["best_seconds"] == 120
    assert stats["total_seconds"] == 210
    assert stats["average_seconds"] == 70.0
    assert stats["auto_stopped_count"] == 1
    assert stats["manual_stopped_count"] == 2


def test_statistics_empty():
    stats = compute_statistics([])
    assert stats["session_count"] == 0
    assert stats["best_seconds"] == 0
    assert stats["average_seconds"] == 0.0


def test_summary_without_sessions():
    assert "No focus sessions" in generate_summary_text(compute_statistics([]))


def test_summary_lists_best_and_total():
    text = generate_summary_text(compute_statistics([ScoreRecord(3_600, WHEN), ScoreRecord(600, WHEN)]))

    assert "Sessions: 2" in text
    assert "Best Session: 01:00:00" in text
    assert "Total Focus Time: 01:10:00" in text
    assert "Great discipline" in text


def test_summary_mentions_distractions():
    records = [ScoreRecord(30, WHEN, config.STOP_AUTO), ScoreRecord(30, WHEN, config.STOP_AUTO)]
    text = generate_summary_text(compute_statistics(records))

    assert "Ended by distraction: 2 of 2" in text
    assert "Distractions ended most sessions" in text
