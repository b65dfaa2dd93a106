"""Statistics over the score ledger."""

from typing import Any, Dict, Sequence

import config
from tracking.ledger import ScoreRecord


def format_duration(seconds: int) -> str:
    """
    Format seconds as HH:MM:SS for the timer and scoreboard.

    Hours are not wrapped at 24, so very long sessions still read correctly.
    """
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def compute_statistics(records: Sequence[ScoreRecord]) -> Dict[str, Any]:
    """
    Compute summary statistics for a set of completed sessions.

    Args:
        records: Ledger records (any order)

    Returns:
        Dictionary with session_count, best_seconds, total_seconds,
        average_seconds (float), auto_stopped_count and manual_stopped_count
    """
    durations = [record.duration_seconds for record in records]
    count = len(durations)
    total = sum(durations)
    auto_stopped = sum(1 for record in records if record.stop_reason == config.STOP_AUTO)

    return {
        "session_count": count,
        "best_seconds": max(durations) if durations else 0,
        "total_seconds": total,
        "average_seconds": (total / count) if count else 0.0,
        "auto_stopped_count": auto_stopped,
        "manual_stopped_count": count - auto_stopped,
    }


def generate_summary_text(stats: Dict[str, Any]) -> str:
    """
    Generate a short text summary of the focus history.

    Args:
        stats: Statistics dictionary from compute_statistics

    Returns:
        Human-readable summary string
    """
    count = stats["session_count"]
    if count == 0:
        return "No focus sessions recorded yet. Start one to get on the board!"

    summary = f"""Focus History:
Sessions: {count}
Best Session: {format_duration(stats['best_seconds'])}
Average Session: {format_duration(round(stats['average_seconds']))}
Total Focus Time: {format_duration(stats['total_seconds'])}
"""

    auto_stopped = stats["auto_stopped_count"]
    if auto_stopped:
        summary += f"Ended by distraction: {auto_stopped} of {count}\n"

    summary += "\n"

    # Share of sessions that ended on the user's own terms
    manual_pct = stats["manual_stopped_count"] / count * 100
    if manual_pct >= 80:
        summary += "Great discipline! Almost every session ended on your terms."
    elif manual_pct >= 50:
        summary += "Solid effort. Some sessions slipped away - try a tidier desk."
    else:
        summary += "Distractions ended most sessions. Put the phone out of reach next time."

    return summary
