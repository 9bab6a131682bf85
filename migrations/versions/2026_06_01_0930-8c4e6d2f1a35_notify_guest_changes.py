"""Notify listeners on every change to the guests table.

Revision ID: 8c4e6d2f1a35
Revises: 3f1c2a9b7d10
Create Date: 2026-06-01 09:30:00.000000

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c4e6d2f1a35"
down_revision: str | None = "3f1c2a9b7d10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Must match settings.guests_notify_channel
CHANNEL = "guests_changes"


def upgrade() -> None:
    """Publish a JSON change event on the guests channel after each row change."""
    op.execute(
        f"""
        CREATE OR REPLACE FUNCTION notify_guests_change() RETURNS trigger AS $$
        DECLARE
            changed guests%ROWTYPE;
        BEGIN
            IF TG_OP = 'DELETE' THEN
                changed := OLD;
            ELSE
                changed := NEW;
            END IF;
            PERFORM pg_notify(
                '{CHANNEL}',
                json_build_object(
                    'type', TG_OP,
                    'table', TG_TABLE_NAME,
                    'id', changed.id,
                    'unit_id', changed.unit_id
                )::text
            );
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER guests_notify_change
        AFTER INSERT OR UPDATE OR DELETE ON guests
        FOR EACH ROW EXECUTE FUNCTION notify_guests_change();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS guests_notify_change ON guests")
    op.execute("DROP FUNCTION IF EXISTS notify_guests_change()")
