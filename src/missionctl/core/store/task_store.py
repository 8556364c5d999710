"""TaskStore SQLite 实现

tasks 表只在这里读写；状态机校验在 lifecycle 层完成，此处仅提供数据库操作。
所有方法都不提交事务，由 transaction() 统一管理。
"""

from datetime import UTC, datetime

import aiosqlite

from ..models.enums import TaskPriority, TaskStatus
from ..models.task import Task, TaskCreate

# update_task 允许写入的列
_UPDATABLE_COLUMNS = ("status", "assignee", "priority", "description", "rejection_count")


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, data: TaskCreate, now: datetime | None = None) -> int:
        """创建任务记录，返回新任务 id"""
        ts = (now or datetime.now(UTC)).isoformat()
        cursor = await self._conn.execute(
            """
            INSERT INTO tasks (title, description, assignee, priority, status,
                               rejection_count, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (
                data.title,
                data.description,
                data.assignee,
                data.priority.value,
                data.status.value,
                ts,
                ts,
            ),
        )
        return cursor.lastrowid

    async def get_task(self, task_id: int) -> Task | None:
        """根据 id 查询任务"""
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def find_by_title(self, title_match: str) -> Task | None:
        """按标题子串（不区分大小写）查找任务，多条命中时取 id 最大的一条"""
        cursor = await self._conn.execute(
            """
            SELECT * FROM tasks
            WHERE instr(lower(title), lower(?)) > 0
            ORDER BY id DESC LIMIT 1
            """,
            (title_match,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询任务列表，支持按状态筛选，按 id 倒序"""
        if status:
            cursor = await self._conn.execute(
                "SELECT * FROM tasks WHERE status = ? ORDER BY id DESC",
                (status,),
            )
        else:
            cursor = await self._conn.execute("SELECT * FROM tasks ORDER BY id DESC")
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task(
        self,
        task_id: int,
        fields: dict,
        now: datetime | None = None,
    ) -> bool:
        """部分更新任务字段并刷新 updated_at

        Returns:
            True 如果命中一行
        """
        unknown = set(fields) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unsupported task columns: {sorted(unknown)}")

        assignments = [f"{column} = ?" for column in fields]
        params = [
            value.value if isinstance(value, (TaskStatus, TaskPriority)) else value
            for value in fields.values()
        ]
        assignments.append("updated_at = ?")
        params.append((now or datetime.now(UTC)).isoformat())
        params.append(task_id)

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        return cursor.rowcount == 1

    async def resolve_reviews(
        self,
        rejected: bool,
        now: datetime | None = None,
    ) -> list[Task]:
        """批量结算所有 review 任务

        通过：review -> done；驳回：review -> backlog 且 rejection_count + 1。
        先读出待结算任务，再按 id 条件更新，返回结算前的快照。
        """
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE status = ? ORDER BY id ASC",
            (TaskStatus.REVIEW.value,),
        )
        rows = await cursor.fetchall()
        tasks = [self._row_to_task(row) for row in rows]
        if not tasks:
            return []

        ts = (now or datetime.now(UTC)).isoformat()
        placeholders = ", ".join("?" for _ in tasks)
        ids = [task.id for task in tasks]
        if rejected:
            await self._conn.execute(
                f"""
                UPDATE tasks
                SET status = ?, rejection_count = rejection_count + 1, updated_at = ?
                WHERE status = ? AND id IN ({placeholders})
                """,
                (TaskStatus.BACKLOG.value, ts, TaskStatus.REVIEW.value, *ids),
            )
        else:
            await self._conn.execute(
                f"""
                UPDATE tasks
                SET status = ?, updated_at = ?
                WHERE status = ? AND id IN ({placeholders})
                """,
                (TaskStatus.DONE.value, ts, TaskStatus.REVIEW.value, *ids),
            )
        return tasks

    async def archive_done(self, now: datetime | None = None) -> int:
        """把 done 任务复制到 completed_tasks 并从 tasks 删除

        Returns:
            归档的任务数
        """
        ts = (now or datetime.now(UTC)).isoformat()
        cursor = await self._conn.execute(
            """
            INSERT INTO completed_tasks (task_id, title, description, assignee, priority,
                                         status, rejection_count, created_at, updated_at,
                                         archived_at)
            SELECT id, title, description, assignee, priority,
                   status, rejection_count, created_at, updated_at, ?
            FROM tasks WHERE status = ?
            """,
            (ts, TaskStatus.DONE.value),
        )
        archived = cursor.rowcount
        await self._conn.execute(
            "DELETE FROM tasks WHERE status = ?",
            (TaskStatus.DONE.value,),
        )
        return archived

    async def count_archived(self) -> int:
        """completed_tasks 中的行数"""
        cursor = await self._conn.execute("SELECT COUNT(*) FROM completed_tasks")
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            assignee=row["assignee"],
            priority=TaskPriority(row["priority"]),
            status=TaskStatus(row["status"]),
            rejection_count=row["rejection_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
