"""Create category tables and audit triggers

Revision ID: 3a7d5c1e9b20
Revises:
Create Date: 2026-02-03
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3a7d5c1e9b20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create clubs table
    op.create_table(
        "clubs",
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("classifications", postgresql.ARRAY(sa.String()), nullable=True),
        sa.Column("member_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_sales_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("avatar_image_key", sa.String(), nullable=True),
        sa.Column("header_image_key", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("name"),
        sa.CheckConstraint("name ~ '^[a-z0-9_]{2,50}$'", name="ck_clubs_name_format"),
        sa.CheckConstraint("char_length(description) <= 500", name="ck_clubs_description_length"),
    )

    # Create club_memberships table
    op.create_table(
        "club_memberships",
        sa.Column("club_name", sa.String(50), nullable=False),
        sa.Column("ens_name", sa.String(255), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["club_name"], ["clubs.name"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("club_name", "ens_name"),
    )
    op.create_index("ix_club_memberships_ens_name", "club_memberships", ["ens_name"])
    op.create_index(
        "ix_club_memberships_ens_name_lower",
        "club_memberships",
        [sa.text("LOWER(ens_name)")],
    )

    # Create ens_names table (name directory, populated externally)
    op.create_table(
        "ens_names",
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("clubs", postgresql.ARRAY(sa.String()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("name"),
    )
    op.create_index("ix_ens_names_name_lower", "ens_names", [sa.text("LOWER(name)")])

    # Create clubs_audit_log table
    op.create_table(
        "clubs_audit_log",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("table_name", sa.String(50), nullable=False),
        sa.Column("operation", sa.String(10), nullable=False),
        sa.Column("record_key", sa.String(), nullable=False),
        sa.Column("old_data", postgresql.JSONB(), nullable=True),
        sa.Column("new_data", postgresql.JSONB(), nullable=True),
        sa.Column("actor_address", sa.String(42), nullable=True),
        sa.Column("db_user", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clubs_audit_log_table_name", "clubs_audit_log", ["table_name"])
    op.create_index("ix_clubs_audit_log_actor_address", "clubs_audit_log", ["actor_address"])
    op.create_index("ix_clubs_audit_log_created_at", "clubs_audit_log", ["created_at"])

    # Recompute member_count from the membership table on every change
    op.execute(
        """
        CREATE OR REPLACE FUNCTION update_club_member_count()
        RETURNS TRIGGER AS $$
        DECLARE
            target_club TEXT;
        BEGIN
            IF TG_OP = 'DELETE' THEN
                target_club := OLD.club_name;
            ELSE
                target_club := NEW.club_name;
            END IF;

            UPDATE clubs
            SET
                member_count = (SELECT COUNT(*) FROM club_memberships WHERE club_name = target_club),
                updated_at = NOW()
            WHERE name = target_club;
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
        """
    )

    op.execute(
        """
        CREATE TRIGGER update_club_member_count
            AFTER INSERT OR DELETE ON club_memberships
            FOR EACH ROW EXECUTE FUNCTION update_club_member_count();
        """
    )

    # Keep ens_names.clubs in sync with memberships
    op.execute(
        """
        CREATE OR REPLACE FUNCTION sync_clubs_to_ens_names()
        RETURNS TRIGGER AS $$
        DECLARE
            target_name TEXT;
        BEGIN
            IF TG_OP = 'DELETE' THEN
                target_name := OLD.ens_name;
            ELSE
                target_name := NEW.ens_name;
            END IF;

            UPDATE ens_names
            SET clubs = (
                SELECT ARRAY_AGG(club_name ORDER BY club_name)
                FROM club_memberships
                WHERE LOWER(ens_name) = LOWER(target_name)
            )
            WHERE LOWER(name) = LOWER(target_name);
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
        """
    )

    op.execute(
        """
        CREATE TRIGGER sync_clubs_to_ens_names
            AFTER INSERT OR DELETE ON club_memberships
            FOR EACH ROW EXECUTE FUNCTION sync_clubs_to_ens_names();
        """
    )

    # Audit every change to clubs and club_memberships, attributed to the
    # transaction-local app.actor_address (NULL for system writes)
    op.execute(
        """
        CREATE OR REPLACE FUNCTION log_clubs_audit()
        RETURNS TRIGGER AS $$
        DECLARE
            row_key TEXT;
            actor TEXT;
        BEGIN
            actor := NULLIF(current_setting('app.actor_address', true), '');

            IF TG_TABLE_NAME = 'clubs' AND TG_OP = 'DELETE' THEN
                row_key := OLD.name;
            ELSIF TG_TABLE_NAME = 'clubs' THEN
                row_key := NEW.name;
            ELSIF TG_OP = 'DELETE' THEN
                row_key := OLD.club_name || ':' || OLD.ens_name;
            ELSE
                row_key := NEW.club_name || ':' || NEW.ens_name;
            END IF;

            INSERT INTO clubs_audit_log (table_name, operation, record_key, old_data, new_data, actor_address, db_user)
            VALUES (
                TG_TABLE_NAME,
                TG_OP,
                row_key,
                CASE WHEN TG_OP IN ('UPDATE', 'DELETE') THEN to_jsonb(OLD) END,
                CASE WHEN TG_OP IN ('INSERT', 'UPDATE') THEN to_jsonb(NEW) END,
                actor,
                current_user
            );
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
        """
    )

    op.execute(
        """
        CREATE TRIGGER log_clubs_audit
            AFTER INSERT OR UPDATE OR DELETE ON clubs
            FOR EACH ROW EXECUTE FUNCTION log_clubs_audit();
        """
    )

    op.execute(
        """
        CREATE TRIGGER log_club_memberships_audit
            AFTER INSERT OR UPDATE OR DELETE ON club_memberships
            FOR EACH ROW EXECUTE FUNCTION log_clubs_audit();
        """
    )


def downgrade():
    op.execute("DROP TRIGGER IF EXISTS log_club_memberships_audit ON club_memberships;")
    op.execute("DROP TRIGGER IF EXISTS log_clubs_audit ON clubs;")
    op.execute("DROP FUNCTION IF EXISTS log_clubs_audit;")

    op.execute("DROP TRIGGER IF EXISTS sync_clubs_to_ens_names ON club_memberships;")
    op.execute("DROP FUNCTION IF EXISTS sync_clubs_to_ens_names;")

    op.execute("DROP TRIGGER IF EXISTS update_club_member_count ON club_memberships;")
    op.execute("DROP FUNCTION IF EXISTS update_club_member_count;")

    op.drop_index("ix_clubs_audit_log_created_at", table_name="clubs_audit_log")
    op.drop_index("ix_clubs_audit_log_actor_address", table_name="clubs_audit_log")
    op.drop_index("ix_clubs_audit_log_table_name", table_name="clubs_audit_log")
    op.drop_table("clubs_audit_log")

    op.drop_index("ix_ens_names_name_lower", table_name="ens_names")
    op.drop_table("ens_names")

    op.drop_index("ix_club_memberships_ens_name_lower", table_name="club_memberships")
    op.drop_index("ix_club_memberships_ens_name", table_name="club_memberships")
    op.drop_table("club_memberships")

    op.drop_table("clubs")
