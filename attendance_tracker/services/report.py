"""Attendance export: one row per user and subject."""
import io

import pandas as pd

from attendance_tracker.models.attendance import AttendanceSnapshot

REPORT_COLUMNS = ["User ID", "Email", "Subject", "Present", "Total", "Percentage"]


def build_report_frame(snapshots: list[AttendanceSnapshot]) -> pd.DataFrame:
    rows = []
    for snap in snapshots:
        for subject in sorted(snap.attendance):
            stats = snap.attendance[subject]
            rows.append(
                {
                    "User ID": snap.user_id,
                    "Email": snap.email or "",
                    "Subject": subject,
                    "Present": stats.present,
                    "Total": stats.total,
                    "Percentage": stats.percentage,
                }
            )
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def render_csv(df: pd.DataFrame) -> str:
    stream = io.StringIO()
    df.to_csv(stream, index=False)
    return stream.getvalue()


def render_excel(df: pd.DataFrame) -> io.BytesIO:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Attendance")
    output.seek(0)
    return output
