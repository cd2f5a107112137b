# fuelogic/db/schema.py
"""
Table definitions used by the stores.

Kept to portable SQL so the same statements run on SQLite and PostgreSQL.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS threshold_config (
        owner_id VARCHAR(64) PRIMARY KEY,
        threshold_critico FLOAT NOT NULL,
        threshold_atencao FLOAT NOT NULL,
        updated_at VARCHAR(40) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS contacts (
        id VARCHAR(64) PRIMARY KEY,
        owner_id VARCHAR(64) NOT NULL,
        name VARCHAR(255) NOT NULL,
        phone VARCHAR(40),
        email VARCHAR(255),
        kind VARCHAR(20) NOT NULL DEFAULT 'interno',
        active BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS webhooks (
        id VARCHAR(36) PRIMARY KEY,
        position INTEGER NOT NULL,
        owner_id VARCHAR(64) NOT NULL,
        name VARCHAR(255) NOT NULL,
        url TEXT NOT NULL,
        integration VARCHAR(20) NOT NULL,
        event_type VARCHAR(40) NOT NULL,
        contact_ids TEXT NOT NULL,
        headers TEXT NOT NULL,
        active BOOLEAN NOT NULL,
        created_at VARCHAR(40) NOT NULL,
        updated_at VARCHAR(40) NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_webhooks_event_active ON webhooks (event_type, active)",
    # Listing order; a separate statement so existing tables get it too
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_webhooks_position ON webhooks (position)",
]


def init_schema(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    with engine.begin() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(text(statement))
