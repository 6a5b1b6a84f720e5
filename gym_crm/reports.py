import logging
from datetime import date
from typing import List, Tuple

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .date_utils import parse_date
from .models import CategorizationResult, MemberWithTransactions

MEMBER_COLUMNS = ["Member ID", "Name", "Email", "Phone", "Status", "Membership Type", "Join Date", "Latest Ending Date"]
INACTIVE_COLUMNS = ["Member ID", "Name", "Reason"]
BUCKET_SHEETS = (("active", "Active"), ("due_soon", "Due Soon"), ("overdue", "Overdue"))


def _latest_ending_date(entry: MemberWithTransactions):
    endings = [parse_date(t.ending_date) for t in entry.transactions]
    endings = [ending for ending in endings if ending]
    return max(endings).isoformat() if endings else None


def _cell_text(value):
    # openpyxl rejects control characters in cell strings
    return ILLEGAL_CHARACTERS_RE.sub("", value) if isinstance(value, str) else value


def _member_rows(entries: List[MemberWithTransactions]) -> pd.DataFrame:
    rows = [
        [
            entry.id,
            _cell_text(entry.name),
            _cell_text(entry.member.email),
            _cell_text(entry.member.phone),
            _cell_text(entry.member.status),
            _cell_text(entry.member.membership_type),
            _cell_text(entry.member.join_date),
            _latest_ending_date(entry),
        ]
        for entry in entries
    ]
    return pd.DataFrame(rows, columns=MEMBER_COLUMNS)


def _style_sheet(sheet, df: pd.DataFrame, title: str, header_row: int) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
    title_font = Font(bold=True, size=16)
    border_style = Side(style="thin", color="000000")
    thin_border = Border(left=border_style, right=border_style, top=border_style, bottom=border_style)

    sheet.cell(row=1, column=1, value=title).font = title_font
    for col_num, column_title in enumerate(df.columns, 1):
        cell = sheet.cell(row=header_row, column=col_num)
        cell.value = column_title
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border
        max_len = max([len(str(column_title))] + df[column_title].astype(str).map(len).tolist()) + 2
        sheet.column_dimensions[get_column_letter(col_num)].width = min(max_len, 50)

    for row_offset in range(len(df.index)):
        for col_idx in range(len(df.columns)):
            sheet.cell(row=header_row + 1 + row_offset, column=col_idx + 1).border = thin_border


def generate_categorization_excel(result: CategorizationResult, today: date, save_path: str) -> Tuple[bool, str]:
    """
    Writes the member categorization to an Excel workbook.
    The workbook has a summary sheet with de-duplicated counts and one sheet per bucket.
    """
    try:
        unique = result.deduplicated()
        counts = unique.counts(dedupe=False)
        summary_df = pd.DataFrame(
            {
                "Category": ["Active", "Due Soon", "Overdue", "Inactive"],
                "Members": [counts["active"], counts["due_soon"], counts["overdue"], counts["inactive"]],
            }
        )
        sheets = [(name, _member_rows(getattr(unique, bucket))) for bucket, name in BUCKET_SHEETS]
        inactive_df = pd.DataFrame(
            [[entry.member_id, _cell_text(entry.name), _cell_text(entry.reason)] for entry in unique.inactive],
            columns=INACTIVE_COLUMNS,
        )
        sheets.append(("Inactive", inactive_df))

        with pd.ExcelWriter(save_path, engine="openpyxl") as writer:
            summary_df.to_excel(writer, sheet_name="Summary", index=False, startrow=2)
            _style_sheet(writer.sheets["Summary"], summary_df, f"Member Categories - {today.isoformat()}", header_row=3)
            for sheet_name, df in sheets:
                df.to_excel(writer, sheet_name=sheet_name, index=False, startrow=1)
                _style_sheet(writer.sheets[sheet_name], df, f"{sheet_name} Members - {today.isoformat()}", header_row=2)

        logging.info(f"Categorization report written to {save_path}.")
        return True, f"Categorization report generated successfully: {save_path}"
    except Exception as e:
        logging.error(f"Failed to write categorization report to {save_path}: {e}", exc_info=True)
        return False, f"An error occurred during report generation: {str(e)}"
