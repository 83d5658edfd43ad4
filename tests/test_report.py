"""Tests for the participant Excel report."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import load_workbook

from ride_matcher.models import MatchedSegment, ParticipantMatch, ProximityResult
from ride_matcher.report import (
    PARTICIPANT_COLUMNS,
    PARTICIPANTS_SHEET,
    SEGMENT_COLUMNS,
    SEGMENTS_SHEET,
    participant_rows,
    segment_rows,
    write_participant_report,
)

UTC = timezone.utc


def _match(participant_id: str, completed: bool, segments=()) -> ParticipantMatch:
    return ParticipantMatch(
        ride_id="ride-1",
        participant_id=participant_id,
        track_file_path=f"{participant_id}.gpx",
        proximity=ProximityResult(
            matched_points=9 if completed else 2,
            total_organizer_points=10,
            proximity_score_pct=90.0 if completed else 20.0,
            is_completed=completed,
            matched_segments=tuple(segments),
        ),
        distance_km=12.3456,
        moving_time_s=3725,
        elevation_gain_m=101.26,
        average_speed_kmh=11.93,
    )


@pytest.fixture
def matches():
    segment = MatchedSegment(
        start_time=datetime(2024, 5, 1, 9, 0, tzinfo=UTC),
        end_time=datetime(2024, 5, 1, 9, 10, tzinfo=UTC),
        duration_s=600.0,
    )
    return [_match("alice", True, [segment]), _match("bob", False)]


def test_participant_rows_format_values(matches) -> None:
    rows = participant_rows(matches)

    assert list(rows[0]) == PARTICIPANT_COLUMNS
    assert rows[0]["Completed"] == "Yes"
    assert rows[1]["Completed"] == "No"
    assert rows[0]["Distance (km)"] == pytest.approx(12.35)
    assert rows[0]["Moving Time (h:mm:ss)"] == "1:02:05"
    assert rows[0]["Matched Segments"] == 1
    assert rows[1]["Matched Segments"] == 0


def test_segment_rows_use_naive_utc(matches) -> None:
    rows = segment_rows(matches)

    assert len(rows) == 1
    assert list(rows[0]) == SEGMENT_COLUMNS
    assert rows[0]["Start"] == datetime(2024, 5, 1, 9, 0)
    assert rows[0]["Start"].tzinfo is None
    assert rows[0]["Segment"] == 1


def test_write_participant_report(tmp_path: Path, matches) -> None:
    output = write_participant_report(tmp_path / "out" / "report.xlsx", matches)

    assert output.exists()
    participants = pd.read_excel(output, sheet_name=PARTICIPANTS_SHEET)
    assert list(participants.columns) == PARTICIPANT_COLUMNS
    assert list(participants["Participant"]) == ["alice", "bob"]
    assert list(participants["Completed"]) == ["Yes", "No"]

    segments = pd.read_excel(output, sheet_name=SEGMENTS_SHEET)
    assert list(segments.columns) == SEGMENT_COLUMNS
    assert segments.loc[0, "Duration (sec)"] == pytest.approx(600.0)

    workbook = load_workbook(output)
    header = workbook[PARTICIPANTS_SHEET]["A1"]
    assert header.font.bold is True


def test_empty_report_keeps_headers(tmp_path: Path) -> None:
    output = write_participant_report(tmp_path / "empty.xlsx", [])

    participants = pd.read_excel(output, sheet_name=PARTICIPANTS_SHEET)
    assert participants.empty
    assert list(participants.columns) == PARTICIPANT_COLUMNS
