"""
Initial schema for tuneefy

- items (signed intents and permanent items)
- stats_listening / stats_viewing
- oauth_clients
- schema_version, stamped at 2 to match db.run_migrations

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    is_postgres = op.get_bind().dialect.name == "postgresql"
    pk_clause = "BIGSERIAL PRIMARY KEY" if is_postgres else "INTEGER PRIMARY KEY AUTOINCREMENT"
    id_type = "BIGINT" if is_postgres else "INTEGER"

    op.execute(
        f"""
        CREATE TABLE IF NOT EXISTS items (
            id {pk_clause},
            intent TEXT,
            object TEXT NOT NULL,
            track TEXT,
            album TEXT,
            artist TEXT,
            created_at TEXT NOT NULL,
            expires_at TEXT,
            signature TEXT NOT NULL,
            client_id TEXT
        );
        """
    )
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_items_intent ON items(intent);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_items_created_at ON items(created_at);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_items_client ON items(client_id);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_items_artist_upper ON items(UPPER(artist));")
    op.execute("CREATE INDEX IF NOT EXISTS idx_items_track ON items(track);")

    op.execute(
        f"""
        CREATE TABLE IF NOT EXISTS stats_listening (
            id {pk_clause},
            item_id {id_type},
            platform TEXT NOT NULL,
            "index" INTEGER,
            listened_at TEXT NOT NULL
        );
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_listening_platform ON stats_listening(platform);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_listening_item ON stats_listening(item_id);")

    op.execute(
        f"""
        CREATE TABLE IF NOT EXISTS stats_viewing (
            id {pk_clause},
            item_id {id_type} NOT NULL,
            referer TEXT,
            viewed_at TEXT NOT NULL
        );
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_viewing_item ON stats_viewing(item_id);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_viewing_viewed_at ON stats_viewing(viewed_at);")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS oauth_clients (
            client_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            client_secret TEXT NOT NULL,
            description TEXT,
            email TEXT,
            url TEXT,
            created_at TEXT NOT NULL
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TEXT
        );
        """
    )
    op.execute("INSERT INTO schema_version (version, applied_at) VALUES (1, CURRENT_TIMESTAMP);")
    op.execute("INSERT INTO schema_version (version, applied_at) VALUES (2, CURRENT_TIMESTAMP);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS schema_version;")
    op.execute("DROP TABLE IF EXISTS oauth_clients;")
    op.execute("DROP TABLE IF EXISTS stats_viewing;")
    op.execute("DROP TABLE IF EXISTS stats_listening;")
    op.execute("DROP TABLE IF EXISTS items;")
