import re
from datetime import date, timedelta

from esg_lite.database.models import ReportType
from esg_lite.reports.exceptions import ReportValidationError

DEFAULT_DEADLINE_DAYS = 90
_YEAR = re.compile(r"\d{4}")


def parse_year(period: str) -> int:
    """Reporting periods are calendar years written as ``YYYY``."""
    cleaned = period.strip()
    if not _YEAR.fullmatch(cleaned):
        raise ReportValidationError(f"Invalid reporting period '{period}', expected a year")
    return int(cleaned)


def reporting_period(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def submission_deadline(report_type: ReportType, year: int, created_on: date) -> date:
    """296-FZ reports are due on 1 July of the following year."""
    if report_type is ReportType.REPORT_296FZ:
        return date(year + 1, 7, 1)
    return created_on + timedelta(days=DEFAULT_DEADLINE_DAYS)
