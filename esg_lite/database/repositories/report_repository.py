from datetime import datetime
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from esg_lite.database.connection import Database
from esg_lite.database.models import CalculationMethod, ReportRecord, ReportType
from esg_lite.reports.exceptions import ReportNotFoundError

_COLUMNS = """
    id, user_id, organization_id, name, report_type, period,
    report_period_start, report_period_end, submission_deadline, status,
    calculation_method, total_emissions, document_count, scope1, scope2, scope3,
    emission_data, created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> ReportRecord:
    return ReportRecord(
        id=row["id"],
        user_id=row["user_id"],
        organization_id=row["organization_id"],
        name=row["name"],
        report_type=ReportType(row["report_type"]),
        period=row["period"],
        report_period_start=row["report_period_start"],
        report_period_end=row["report_period_end"],
        submission_deadline=row["submission_deadline"],
        status=row["status"],
        calculation_method=CalculationMethod(row["calculation_method"]),
        total_emissions=row["total_emissions"],
        document_count=row["document_count"],
        scope1=row["scope1"],
        scope2=row["scope2"],
        scope3=row["scope3"],
        emission_data=row["emission_data"] or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ReportRepository:
    """Database operations for the reports table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, report: ReportRecord) -> ReportRecord:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO reports
                    (id, user_id, organization_id, name, report_type, period,
                     report_period_start, report_period_end, submission_deadline,
                     status, calculation_method, total_emissions, document_count,
                     scope1, scope2, scope3, emission_data)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                            %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        report.id,
                        report.user_id,
                        report.organization_id,
                        report.name,
                        report.report_type.value,
                        report.period,
                        report.report_period_start,
                        report.report_period_end,
                        report.submission_deadline,
                        report.status,
                        report.calculation_method.value,
                        report.total_emissions,
                        report.document_count,
                        report.scope1,
                        report.scope2,
                        report.scope3,
                        Jsonb(report.emission_data),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        assert row is not None
        return _to_record(row)

    def find_by_id(self, report_id: str, user_id: str) -> ReportRecord:
        """Find a report owned by ``user_id``.

        Raises:
            ReportNotFoundError: if no matching report exists.
        """
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM reports WHERE id = %s AND user_id = %s",
                    (report_id, user_id),
                )
                row = cur.fetchone()

        if row is None:
            raise ReportNotFoundError(f"Report {report_id} not found")
        return _to_record(row)

    def update_totals(self, report: ReportRecord) -> ReportRecord:
        """Overwrite name and computed totals of an existing report.

        Raises:
            ReportNotFoundError: if the report no longer exists.
        """
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE reports
                    SET name = %s, calculation_method = %s, total_emissions = %s,
                        document_count = %s, scope1 = %s, scope2 = %s, scope3 = %s,
                        emission_data = %s, updated_at = NOW()
                    WHERE id = %s AND user_id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (
                        report.name,
                        report.calculation_method.value,
                        report.total_emissions,
                        report.document_count,
                        report.scope1,
                        report.scope2,
                        report.scope3,
                        Jsonb(report.emission_data),
                        report.id,
                        report.user_id,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise ReportNotFoundError(f"Report {report.id} not found")
        return _to_record(row)

    def count_created_since(self, organization_id: str, since: datetime) -> int:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT COUNT(*) FROM reports
                    WHERE organization_id = %s AND created_at >= %s
                    """,
                    (organization_id, since),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0
