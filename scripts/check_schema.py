"""
Check that the category tables and their triggers are installed

Usage:
  python scripts/check_schema.py
"""
import os
import sys

# Ensure project root is on sys.path so `cats_admin` can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from cats_admin.config import settings
import psycopg2

EXPECTED_TABLES = {"clubs", "club_memberships", "ens_names", "clubs_audit_log"}
EXPECTED_TRIGGERS = {
    "update_club_member_count",
    "sync_clubs_to_ens_names",
    "log_clubs_audit",
    "log_club_memberships_audit",
}


def main():
    conn = psycopg2.connect(settings.DATABASE_URL)
    cur = conn.cursor()
    try:
        cur.execute("SELECT tablename FROM pg_tables WHERE schemaname = 'public'")
        tables = {row[0] for row in cur.fetchall()}

        cur.execute("SELECT DISTINCT trigger_name FROM information_schema.triggers WHERE trigger_schema = 'public'")
        triggers = {row[0] for row in cur.fetchall()}
    finally:
        cur.close()
        conn.close()

    missing_tables = sorted(EXPECTED_TABLES - tables)
    missing_triggers = sorted(EXPECTED_TRIGGERS - triggers)

    print("tables:", sorted(tables & EXPECTED_TABLES))
    print("triggers:", sorted(triggers & EXPECTED_TRIGGERS))

    if missing_tables or missing_triggers:
        print("missing tables:", missing_tables)
        print("missing triggers:", missing_triggers)
        print("Run `alembic upgrade head`.")
        sys.exit(1)


if __name__ == '__main__':
    main()
