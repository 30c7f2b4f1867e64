"""Report tests — CSV rendering, export contents, admin gating, statistics."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from attendly.common.constants import AttendanceType, LeaveStatus
from attendly.common.exceptions import ForbiddenException
from attendly.reports.csv_export import build_csv, format_value
from attendly.reports.service import ReportService
from tests.conftest import (
    auth_headers,
    caller_for,
    make_attendance,
    make_leave_request,
    make_leave_type,
    make_user,
)


# ═════════════════════════════════════════════════════════════════════
# 1. CSV rendering
# ═════════════════════════════════════════════════════════════════════


class TestCsvRendering:

    def test_quotes_and_commas_escaped(self):
        out = build_csv(["Reason"], [['He said "hi", bye']])
        assert out == 'Reason\n"He said ""hi"", bye"\n'

    def test_plain_values_not_quoted(self):
        assert build_csv(["A", "B"], [["x", 1]]) == "A,B\nx,1\n"

    def test_newline_forces_quotes(self):
        assert build_csv(["A"], [["line1\nline2"]]) == 'A\n"line1\nline2"\n'

    def test_format_value(self):
        assert format_value(True) == "Yes"
        assert format_value(False) == "No"
        assert format_value(None) == "-"
        assert format_value("") == "-"
        assert format_value(date(2024, 1, 5)) == "2024-01-05"
        assert format_value(LeaveStatus.approved) == "approved"
        assert format_value(0) == "0"


# ═════════════════════════════════════════════════════════════════════
# 2. Exports
# ═════════════════════════════════════════════════════════════════════


class TestExports:

    async def test_my_attendance_csv(self, db: AsyncSession):
        user = await make_user(db)
        await make_attendance(db, user.id, date(2024, 1, 1), has_consent=True)
        await make_attendance(db, user.id, date(2024, 1, 2), has_consent=False)

        lines = (await ReportService.my_attendance_csv(db, user.id)).splitlines()

        assert lines[0] == "Date,Consent Given,Type,Submitted At"
        assert lines[1].startswith("2024-01-02,No,manual,")
        assert lines[2].startswith("2024-01-01,Yes,manual,")

    async def test_all_attendance_csv_admin_only(self, db: AsyncSession):
        user = await make_user(db, name="Zed", email="zed@example.com")
        admin = await make_user(db, name="Amy", email="amy@example.com", is_admin=True)
        await make_attendance(db, user.id, date(2024, 1, 1))
        await make_attendance(db, admin.id, date(2024, 1, 1), type=AttendanceType.leave)

        with pytest.raises(ForbiddenException):
            await ReportService.all_attendance_csv(db, caller_for(user))

        lines = (await ReportService.all_attendance_csv(db, caller_for(admin))).splitlines()
        assert lines[0] == "User Name,Email,Date,Consent Given,Type,Submitted At"
        assert lines[1].startswith("Amy,amy@example.com,2024-01-01,Yes,leave,")
        assert lines[2].startswith("Zed,zed@example.com,2024-01-01,Yes,manual,")

    async def test_my_leaves_csv_placeholders(self, db: AsyncSession):
        user = await make_user(db)
        lt = await make_leave_type(db, name="Annual Leave")
        await make_leave_request(
            db, user.id, lt.id, date(2024, 3, 11), date(2024, 3, 13),
            reason='He said "hi", bye',
        )

        lines = (await ReportService.my_leaves_csv(db, user.id)).splitlines()

        assert lines[0] == (
            "Leave Type,Start Date,End Date,Days,Reason,Status,"
            "Approved By,Submitted At,Decided At"
        )
        assert lines[1].startswith(
            'Annual Leave,2024-03-11,2024-03-13,3,"He said ""hi"", bye",pending,-,'
        )
        assert lines[1].endswith(",-")

    async def test_all_leaves_csv(self, db: AsyncSession):
        user = await make_user(db, name="Erin", email="erin@example.com")
        admin = await make_user(db, name="Ada", email="ada@example.com", is_admin=True)
        lt = await make_leave_type(db, name="Sick")
        req = await make_leave_request(
            db, user.id, lt.id, date(2024, 3, 11), date(2024, 3, 11),
            status=LeaveStatus.approved,
        )
        req.approved_by = admin.id
        await db.flush()

        lines = (await ReportService.all_leaves_csv(db, caller_for(admin))).splitlines()

        assert lines[0].startswith("Employee Name,Email,Leave Type,")
        assert lines[1].startswith("Erin,erin@example.com,Sick,2024-03-11,2024-03-11,1,-,approved,Ada,")

    async def test_all_leaves_csv_admin_only(self, db: AsyncSession):
        user = await make_user(db)
        with pytest.raises(ForbiddenException):
            await ReportService.all_leaves_csv(db, caller_for(user))


# ═════════════════════════════════════════════════════════════════════
# 3. Statistics
# ═════════════════════════════════════════════════════════════════════


class TestLeaveStatistics:

    async def test_counts(self, db: AsyncSession):
        erin = await make_user(db, name="Erin", email="erin@example.com")
        ada = await make_user(db, name="Ada", email="ada@example.com", is_admin=True)
        annual = await make_leave_type(db, name="Annual")
        sick = await make_leave_type(db, name="Sick")
        await make_leave_request(db, erin.id, annual.id, date(2024, 3, 11), date(2024, 3, 11))
        await make_leave_request(
            db, erin.id, sick.id, date(2024, 3, 12), date(2024, 3, 12),
            status=LeaveStatus.approved,
        )
        await make_leave_request(db, ada.id, annual.id, date(2024, 3, 11), date(2024, 3, 11))

        stats = await ReportService.leave_statistics(db, caller_for(ada))

        assert {s.label: s.count for s in stats.by_status} == {"approved": 1, "pending": 2}
        assert [(t.label, t.count) for t in stats.by_type] == [("Annual", 2), ("Sick", 1)]
        assert [(u.label, u.count) for u in stats.top_users] == [("Erin", 2), ("Ada", 1)]

    async def test_requires_admin(self, db: AsyncSession):
        user = await make_user(db)
        with pytest.raises(ForbiddenException):
            await ReportService.leave_statistics(db, caller_for(user))


# ═════════════════════════════════════════════════════════════════════
# 4. API endpoints
# ═════════════════════════════════════════════════════════════════════


class TestReportsAPI:

    async def test_my_attendance_download(self, client, db: AsyncSession):
        user = await make_user(db)
        await make_attendance(db, user.id, date(2024, 1, 1))
        await db.commit()

        resp = await client.get("/api/v1/reports/my-attendance", headers=auth_headers(user))

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert 'filename="my-attendance.csv"' in resp.headers["content-disposition"]
        assert resp.text.startswith("Date,Consent Given,Type,Submitted At\n2024-01-01,Yes,manual,")

    async def test_admin_reports_forbidden_for_employee(self, client, db: AsyncSession):
        user = await make_user(db)
        await db.commit()

        for path in ("all-attendance", "all-leaves", "leave-statistics"):
            resp = await client.get(f"/api/v1/reports/{path}", headers=auth_headers(user))
            assert resp.status_code == 403
