from __future__ import annotations

from datetime import date

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    def _date_arg(name: str, default: date) -> date:
        value = (request.args.get(name) or "").strip()
        return parse_iso_date(value) if value else default

    def _range() -> tuple[date, date]:
        single = (request.args.get("date") or "").strip()
        if single:
            d = parse_iso_date(single)
            return d, d
        today = now_local().date()
        start = _date_arg("start_date", today)
        end = _date_arg("end_date", max(start, today))
        return start, end

    @app.route("/api/employees", methods=["GET"], endpoint="employees_active")
    def employees_active():
        return jsonify(
            [
                {
                    "id": e.employee_id,
                    "staff_name": e.name,
                    "designation": e.designation,
                    "payment_per_day": str(e.daily_rate),
                }
                for e in container.directory.list_active()
            ]
        )

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    def attendance_list():
        start, end = _range()
        rows = container.attendance_service.list_records(
            start=start,
            end=end,
            search=request.args.get("q", ""),
            employee_id=(request.args.get("employee_id") or "").strip() or None,
        )
        return jsonify(rows)

    @app.route("/api/attendance/<int:record_id>", methods=["GET"], endpoint="attendance_detail")
    def attendance_detail(record_id: int):
        return jsonify(container.attendance_service.get_record(record_id).to_dict())

    @app.route("/api/attendance/employee/<employee_id>/history", methods=["GET"], endpoint="attendance_history")
    def attendance_history(employee_id: str):
        try:
            limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
        except ValueError:
            raise ValidationError("limit must be an integer")
        if limit <= 0:
            raise ValidationError("limit must be positive")
        return jsonify(container.attendance_service.get_history_ui(employee_id, limit=limit))

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    def attendance_summary():
        today = now_local().date()
        start = _date_arg("start_date", today.replace(day=1))
        end = _date_arg("end_date", today)
        data = container.report_service.build_summary(
            start=start,
            end=end,
            employee_id=(request.args.get("employee_id") or "").strip() or None,
        )
        return jsonify({"start_date": data.start.isoformat(), "end_date": data.end.isoformat(), "rows": data.rows})
