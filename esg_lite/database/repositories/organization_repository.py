from psycopg.rows import dict_row

from esg_lite.database.connection import Database
from esg_lite.database.models import OrganizationRecord


class OrganizationRepository:
    """Read access to the organizations table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_by_id(self, organization_id: str) -> OrganizationRecord | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, name, inn, subscription_tier, documents_per_month,
                           reports_per_month, is_blocked, can_generate_296fz
                    FROM organizations
                    WHERE id = %s
                    """,
                    (organization_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return OrganizationRecord(
            id=row["id"],
            name=row["name"],
            inn=row["inn"],
            subscription_tier=row["subscription_tier"],
            documents_per_month=row["documents_per_month"],
            reports_per_month=row["reports_per_month"],
            is_blocked=row["is_blocked"],
            can_generate_296fz=row["can_generate_296fz"],
        )
