"""PostgreSQL schema for daybook"""

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        user_id TEXT PRIMARY KEY,
        theme TEXT NOT NULL DEFAULT 'light' CHECK (theme IN ('light', 'dark')),
        timezone TEXT NOT NULL DEFAULT 'UTC',
        auto_save BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS custom_field_templates (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        key TEXT NOT NULL,
        field_type TEXT NOT NULL DEFAULT 'text'
            CHECK (field_type IN ('text', 'number', 'currency', 'date', 'time', 'datetime', 'boolean')),
        order_index INTEGER NOT NULL DEFAULT 0,
        UNIQUE (user_id, key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_custom_fields (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT NOT NULL DEFAULT '',
        is_template BOOLEAN NOT NULL DEFAULT TRUE,
        field_type TEXT NOT NULL DEFAULT 'text',
        order_index INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, date, key)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_daily_custom_fields_user_key_date ON daily_custom_fields (user_id, key, date)",
    """
    CREATE TABLE IF NOT EXISTS daily_state (
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        previous_bedtime TEXT NOT NULL DEFAULT '',
        wake_time TEXT NOT NULL DEFAULT '',
        PRIMARY KEY (user_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_tasks (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        due_date TEXT,
        text TEXT NOT NULL,
        details TEXT,
        done BOOLEAN NOT NULL DEFAULT FALSE,
        points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
        pinned BOOLEAN NOT NULL DEFAULT FALSE,
        recurring BOOLEAN NOT NULL DEFAULT FALSE,
        order_index INTEGER NOT NULL DEFAULT 0,
        parent_task_id INTEGER REFERENCES daily_tasks(id) ON DELETE CASCADE,
        log_entry_id INTEGER,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        completed_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_daily_tasks_user_date ON daily_tasks (user_id, date)",
    """
    CREATE TABLE IF NOT EXISTS activity_entries (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        text TEXT NOT NULL,
        image TEXT,
        timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        order_index INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_activity_entries_user_date ON activity_entries (user_id, date)",
    """
    CREATE TABLE IF NOT EXISTS custom_counters (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        order_index INTEGER NOT NULL DEFAULT 0,
        UNIQUE (user_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS custom_counter_values (
        counter_id INTEGER NOT NULL REFERENCES custom_counters(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        value INTEGER NOT NULL DEFAULT 0 CHECK (value >= 0),
        PRIMARY KEY (counter_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS time_since_trackers (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        date TEXT NOT NULL,
        order_index INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS duration_trackers (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'timer',
        is_running BOOLEAN NOT NULL DEFAULT FALSE,
        is_locked BOOLEAN NOT NULL DEFAULT FALSE,
        start_time TIMESTAMPTZ,
        elapsed_ms BIGINT NOT NULL DEFAULT 0,
        value INTEGER NOT NULL DEFAULT 0,
        order_index INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS timer_daily_totals (
        tracker_id INTEGER NOT NULL REFERENCES duration_trackers(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        elapsed_ms BIGINT NOT NULL DEFAULT 0 CHECK (elapsed_ms >= 0),
        PRIMARY KEY (tracker_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS snapshot_settings (
        user_id TEXT PRIMARY KEY,
        max_days INTEGER NOT NULL DEFAULT 30,
        max_count INTEGER NOT NULL DEFAULT 100
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS snapshots (
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        document JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (user_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS points_redemptions (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        reward_description TEXT NOT NULL,
        points_cost INTEGER NOT NULL CHECK (points_cost > 0),
        redeemed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_points_redemptions_user ON points_redemptions (user_id, redeemed_at)",
]

# Tables whose rows carry an order_index that clients may rewrite
REORDERABLE_TABLES = frozenset({
    "custom_field_templates",
    "daily_custom_fields",
    "daily_tasks",
    "activity_entries",
    "custom_counters",
    "time_since_trackers",
    "duration_trackers",
})
