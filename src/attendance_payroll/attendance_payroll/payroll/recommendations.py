from __future__ import annotations

from .model import AttendanceSummary, Recommendation


def build_recommendations(summary: AttendanceSummary) -> list[Recommendation]:
    """Advisory notes for the payroll reviewer; they never change the pay."""
    out: list[Recommendation] = []
    rate = summary.attendance_rate
    efficiency = summary.hours_efficiency

    if rate < 90:
        out.append(Recommendation(
            "Attendance", "High",
            f"Attendance rate is {rate:.1f}%. Needs improvement.",
            "Schedule meeting with HR to discuss attendance issues",
        ))
    elif rate < 95:
        out.append(Recommendation(
            "Attendance", "Medium",
            f"Attendance rate is {rate:.1f}%. Room for improvement.",
            "Monitor attendance closely and provide support if needed",
        ))

    if efficiency < 80:
        out.append(Recommendation(
            "Productivity", "High",
            f"Hours efficiency is {efficiency:.1f}%. Below expectations.",
            "Investigate productivity issues and provide training if necessary",
        ))

    if summary.overtime_hours > 30:
        out.append(Recommendation(
            "Work-Life Balance", "Medium",
            f"Excessive overtime: {summary.overtime_hours:.1f} hours this month.",
            "Review workload distribution and consider additional resources",
        ))

    if summary.discrepancy_count > 5:
        out.append(Recommendation(
            "Data Quality", "High",
            f"{summary.discrepancy_count} attendance discrepancies found.",
            "Review attendance tracking methods",
        ))

    if rate >= 98:
        out.append(Recommendation("Recognition", "Low", "Excellent attendance record!", "Consider for employee recognition program"))
    if efficiency >= 110:
        out.append(Recommendation(
            "Recognition", "Low",
            "Outstanding productivity and dedication!",
            "Consider for performance bonus or promotion",
        ))
    return out
