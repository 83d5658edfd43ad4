"""Excel report of participant completion results."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .config import (
    EXCEL_AUTOSIZE_COLUMNS,
    EXCEL_AUTOSIZE_MAX_ROWS,
    EXCEL_AUTOSIZE_MAX_WIDTH,
    EXCEL_AUTOSIZE_MIN_WIDTH,
    EXCEL_AUTOSIZE_PADDING,
)
from .models import ParticipantMatch
from .utils import format_duration

PARTICIPANTS_SHEET = "Participants"
SEGMENTS_SHEET = "Matched Segments"

PARTICIPANT_COLUMNS = [
    "Participant",
    "Track File",
    "Completed",
    "Proximity (%)",
    "Matched Points",
    "Organizer Points",
    "Matched Segments",
    "Distance (km)",
    "Moving Time (h:mm:ss)",
    "Elevation Gain (m)",
    "Avg Speed (km/h)",
]
SEGMENT_COLUMNS = ["Participant", "Segment", "Start", "End", "Duration (sec)"]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFD9EAD3")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

LOGGER = logging.getLogger(__name__)

PathInput = str | Path | PathLike[str]


def _naive_utc(value: datetime) -> datetime:
    """Excel cannot store time zones; write UTC wall-clock times."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _round(value: Optional[float], digits: int) -> Optional[float]:
    return round(value, digits) if value is not None else None


def participant_rows(matches: Sequence[ParticipantMatch]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for match in matches:
        proximity = match.proximity
        rows.append(
            {
                "Participant": str(match.participant_id),
                "Track File": match.track_file_path,
                "Completed": "Yes" if proximity.is_completed else "No",
                "Proximity (%)": round(proximity.proximity_score_pct, 2),
                "Matched Points": proximity.matched_points,
                "Organizer Points": proximity.total_organizer_points,
                "Matched Segments": len(proximity.matched_segments),
                "Distance (km)": _round(match.distance_km, 2),
                "Moving Time (h:mm:ss)": (
                    format_duration(match.moving_time_s)
                    if match.moving_time_s is not None
                    else None
                ),
                "Elevation Gain (m)": _round(match.elevation_gain_m, 1),
                "Avg Speed (km/h)": _round(match.average_speed_kmh, 1),
            }
        )
    return rows


def segment_rows(matches: Sequence[ParticipantMatch]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for match in matches:
        for index, segment in enumerate(match.proximity.matched_segments, start=1):
            rows.append(
                {
                    "Participant": str(match.participant_id),
                    "Segment": index,
                    "Start": _naive_utc(segment.start_time),
                    "End": _naive_utc(segment.end_time),
                    "Duration (sec)": segment.duration_s,
                }
            )
    return rows


def _style_header(ws: Worksheet) -> None:
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _autosize(ws: Worksheet) -> None:
    if not EXCEL_AUTOSIZE_COLUMNS:
        return
    if ws.max_row > EXCEL_AUTOSIZE_MAX_ROWS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


def write_participant_report(
    path: PathInput, matches: Sequence[ParticipantMatch]
) -> Path:
    """Write participant results and their matched segments to a workbook."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    sheets = [
        (PARTICIPANTS_SHEET, pd.DataFrame(participant_rows(matches), columns=PARTICIPANT_COLUMNS)),
        (SEGMENTS_SHEET, pd.DataFrame(segment_rows(matches), columns=SEGMENT_COLUMNS)),
    ]
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for sheet_name, frame in sheets:
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
            ws = writer.sheets[sheet_name]
            _style_header(ws)
            _autosize(ws)
    LOGGER.info(
        "Participant report saved to %s (%d participants)", output_path, len(matches)
    )
    return output_path


__all__ = ["participant_rows", "segment_rows", "write_participant_report"]
