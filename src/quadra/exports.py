"""
Export module for quadra.
Writes fixtures, standings and brackets as CSV and standings as an Excel workbook.
"""

import csv
import io
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from quadra.io_csv import FIXTURE_COLUMNS, SCORE_COLUMNS
from quadra.models import AggregateStanding, Confronto, Fixture, StatRecord

STANDING_COLUMNS = [
    "Position", "Entrant_ID", "Entrant_Name", "Points", "Wins", "Losses",
    "Sets_W", "Sets_L", "Set_Balance", "Games_W", "Games_L", "Game_Balance", "Qualified",
]


def _standing_row(record: StatRecord, names: dict[str, str]) -> list:
    return [
        record.rank_position or "",
        record.entrant_id,
        names.get(record.entrant_id, record.entrant_id),
        record.points,
        record.wins,
        record.losses,
        record.sets_won,
        record.sets_lost,
        record.set_balance,
        record.games_won,
        record.games_lost,
        record.game_balance,
        "YES" if getattr(record, "qualified", False) else "NO",
    ]


def export_fixtures_csv(fixtures: list[Fixture], path: str):
    """Export fixtures to CSV with empty score columns, ready to be filled in.

    Args:
        fixtures: Fixtures to export
        path: Output CSV path
    """
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(FIXTURE_COLUMNS + SCORE_COLUMNS)

        for fixture in fixtures:
            writer.writerow([
                fixture.id,
                fixture.group_name or "",
                fixture.round_number or "",
                *fixture.side_a,
                *fixture.side_b,
                "",
                "",
            ])


def export_standings_csv(
    standings: dict[str, list[StatRecord]],
    path: str,
    names: Optional[dict[str, str]] = None,
):
    """Export ranked standings to CSV.

    Args:
        standings: Mapping of group name (or "Stage") to ranked records
        path: Output CSV path
        names: Optional entrant id -> display name mapping
    """
    names = names or {}
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Group"] + STANDING_COLUMNS)

        for group_name, records in standings.items():
            for record in records:
                writer.writerow([group_name] + _standing_row(record, names))


def export_bracket_csv(confrontos: list[Confronto], path: str):
    """Export bracket confrontos to CSV.

    Args:
        confrontos: Confrontos of one or more rounds
        path: Output CSV path
    """
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([
            "Round", "Ordinal", "Side_A", "Origin_A", "Side_B", "Origin_B",
            "Status", "Winner", "Games_A", "Games_B",
        ])

        for confronto in confrontos:
            writer.writerow([
                confronto.round_type.value,
                confronto.ordinal,
                confronto.side_a.name,
                confronto.side_a.origin,
                confronto.side_b.name if confronto.side_b else "BYE",
                confronto.side_b.origin if confronto.side_b else "",
                confronto.status.value,
                confronto.winner.name if confronto.winner else "",
                "" if confronto.games_a is None else confronto.games_a,
                "" if confronto.games_b is None else confronto.games_b,
            ])


def _style_header_row(ws, num_cols: int):
    """Apply consistent header styling to the first row."""
    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="333333", end_color="333333", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    thin_border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )
    for col in range(1, num_cols + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border


def _auto_width(ws):
    """Adjust column widths to their content."""
    for column_cells in ws.columns:
        max_length = max((len(str(cell.value)) for cell in column_cells if cell.value is not None), default=0)
        ws.column_dimensions[column_cells[0].column_letter].width = max(min(max_length + 3, 40), 8)


def generate_standings_excel(
    standings: dict[str, list[StatRecord]],
    names: Optional[dict[str, str]] = None,
    ranking: Optional[list[AggregateStanding]] = None,
) -> bytes:
    """
    Generate an Excel workbook with one sheet per group and an optional
    cross-stage ranking sheet.

    Returns: Excel file as bytes.
    """
    names = names or {}
    wb = Workbook()
    wb.remove(wb.active)

    for group_name, records in standings.items():
        ws = wb.create_sheet(title=str(group_name)[:31])
        ws.append(STANDING_COLUMNS)
        for record in records:
            ws.append(_standing_row(record, names))
        _style_header_row(ws, len(STANDING_COLUMNS))
        _auto_width(ws)

    if ranking is not None:
        ws = wb.create_sheet(title="Ranking")
        headers = ["Position", "Entrant_ID", "Entrant_Name", "Stages", "Points", "Wins",
                   "Losses", "Game_Balance", "Games_W", "Set_Balance"]
        ws.append(headers)
        for standing in ranking:
            ws.append([
                standing.rank_position or "",
                standing.entrant_id,
                names.get(standing.entrant_id, standing.entrant_id),
                standing.stages_played,
                standing.points,
                standing.wins,
                standing.losses,
                standing.game_balance,
                standing.games_won,
                standing.set_balance,
            ])
        _style_header_row(ws, len(headers))
        _auto_width(ws)

    if not wb.sheetnames:
        wb.create_sheet(title="Standings").append(STANDING_COLUMNS)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
