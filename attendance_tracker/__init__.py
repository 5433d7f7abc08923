"""Per-subject class attendance tracking over a weekly timetable."""
