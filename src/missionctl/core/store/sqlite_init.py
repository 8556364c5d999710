"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引 + append-only 触发器。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    title            TEXT NOT NULL,
    description      TEXT NOT NULL DEFAULT '',
    assignee         TEXT NOT NULL DEFAULT 'me',
    priority         TEXT NOT NULL DEFAULT 'medium'
                     CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
    status           TEXT NOT NULL DEFAULT 'backlog'
                     CHECK (status IN ('backlog', 'recurring', 'in-progress', 'review', 'done')),
    rejection_count  INTEGER NOT NULL DEFAULT 0 CHECK (rejection_count >= 0),
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
"""

# 归档表：与 tasks 同构 + archived_at
_COMPLETED_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS completed_tasks (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id          INTEGER NOT NULL,
    title            TEXT NOT NULL,
    description      TEXT NOT NULL DEFAULT '',
    assignee         TEXT NOT NULL DEFAULT 'me',
    priority         TEXT NOT NULL DEFAULT 'medium',
    status           TEXT NOT NULL DEFAULT 'done',
    rejection_count  INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    archived_at      TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_completed_tasks_archived_at ON completed_tasks(archived_at);",
]

# activity_feed 表 DDL（事件日志）
_ACTIVITY_FEED_DDL = """
CREATE TABLE IF NOT EXISTS activity_feed (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id    TEXT NOT NULL,
    agent_name  TEXT NOT NULL,
    event_type  TEXT NOT NULL
                CHECK (event_type IN ('task_start', 'task_end', 'spawn', 'message',
                                      'approval', 'status_change', 'system')),
    title       TEXT NOT NULL,
    detail      TEXT,
    created_at  TEXT NOT NULL
);
"""

_ACTIVITY_FEED_INDEXES = [
    # 消费者查询：agent + 类型 + id 倒序
    (
        "CREATE INDEX IF NOT EXISTS idx_activity_agent_type_id "
        "ON activity_feed(agent_id, event_type, id DESC);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_activity_agent_id ON activity_feed(agent_id, id DESC);",
]

# append-only：禁止 UPDATE / DELETE
_ACTIVITY_FEED_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_activity_feed_no_update
    BEFORE UPDATE ON activity_feed
    BEGIN
        SELECT RAISE(ABORT, 'activity_feed is append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_activity_feed_no_delete
    BEFORE DELETE ON activity_feed
    BEGIN
        SELECT RAISE(ABORT, 'activity_feed is append-only');
    END;
    """,
]

# automation_cursors 表 DDL
_CURSORS_DDL = """
CREATE TABLE IF NOT EXISTS automation_cursors (
    key         TEXT PRIMARY KEY,
    value       INTEGER NOT NULL DEFAULT 0 CHECK (value >= 0),
    updated_at  TEXT NOT NULL
);
"""

# office_status 表 DDL
_OFFICE_STATUS_DDL = """
CREATE TABLE IF NOT EXISTS office_status (
    agent_id      TEXT PRIMARY KEY,
    agent_name    TEXT NOT NULL,
    role          TEXT NOT NULL DEFAULT '',
    current_task  TEXT NOT NULL DEFAULT '',
    status        TEXT NOT NULL DEFAULT 'idle'
                  CHECK (status IN ('working', 'idle', 'offline')),
    updated_at    TEXT NOT NULL
);
"""


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引 + 触发器

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_TASKS_DDL)
    await conn.execute(_COMPLETED_TASKS_DDL)
    await conn.execute(_ACTIVITY_FEED_DDL)
    await conn.execute(_CURSORS_DDL)
    await conn.execute(_OFFICE_STATUS_DDL)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _ACTIVITY_FEED_INDEXES:
        await conn.execute(idx_sql)

    for trigger_sql in _ACTIVITY_FEED_TRIGGERS:
        await conn.execute(trigger_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
