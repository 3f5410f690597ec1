"""Database engine setup and initialization."""

from pathlib import Path

import aiosqlite

from ..config import get_settings


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    settings = get_settings()
    if data_dir is None:
        data_dir = settings.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / settings.db_filename


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Run database migrations for schema updates."""
    # Tasks created before video references were kept as plain strings
    cursor = await db.execute("PRAGMA table_info(tasks)")
    columns = await cursor.fetchall()
    task_columns = {col[1] for col in columns}

    if "video_ref" not in task_columns:
        await db.execute("ALTER TABLE tasks ADD COLUMN video_ref TEXT")

    await db.commit()

    # Outbox rows created before retry timestamps were recorded
    cursor = await db.execute("PRAGMA table_info(outbox)")
    columns = await cursor.fetchall()
    outbox_columns = {col[1] for col in columns}

    if "last_retry" not in outbox_columns:
        await db.execute("ALTER TABLE outbox ADD COLUMN last_retry INTEGER")

    await db.commit()


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # Workouts reference tasks by ID; the list may contain dangling IDs
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workouts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                task_ids TEXT NOT NULL DEFAULT '[]',
                order_index INTEGER DEFAULT 0,
                last_modified INTEGER NOT NULL DEFAULT 0,
                device_id TEXT DEFAULT ''
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                tips TEXT DEFAULT '',
                instructions TEXT DEFAULT '',
                video_ref TEXT,
                default_sets INTEGER DEFAULT 3,
                default_reps INTEGER DEFAULT 10,
                order_index INTEGER DEFAULT 0,
                last_modified INTEGER NOT NULL DEFAULT 0,
                device_id TEXT DEFAULT ''
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS log_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL,
                date INTEGER NOT NULL,
                sets TEXT NOT NULL DEFAULT '[]',
                last_modified INTEGER NOT NULL DEFAULT 0,
                device_id TEXT DEFAULT '',
                FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
            )
        """)

        # Pending sync operations
        await db.execute("""
            CREATE TABLE IF NOT EXISTS outbox (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                operation TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                entity_payload TEXT NOT NULL DEFAULT '{}',
                timestamp INTEGER NOT NULL,
                retries INTEGER DEFAULT 0,
                status TEXT DEFAULT 'pending',
                last_error TEXT,
                last_retry INTEGER
            )
        """)

        # Per-install key/value state (device ID, token, remote document ID)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS local_state (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_log_entries_task
            ON log_entries(task_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_log_entries_date
            ON log_entries(date)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_outbox_status
            ON outbox(status, timestamp)
        """)

        await db.commit()

        # Run migrations for existing databases
        await _run_migrations(db)
