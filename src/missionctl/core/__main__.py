"""CLI 入口模块 -- python -m missionctl.core <command>

支持的命令：
  archive-tasks  把 done 任务移入 completed_tasks
  list-cursors   列出所有自动化消费游标
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = """用法: python -m missionctl.core <command>
命令:
  archive-tasks  把 done 任务移入 completed_tasks
  list-cursors   列出所有自动化消费游标"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "archive-tasks":
        asyncio.run(archive_tasks())
    elif command == "list-cursors":
        asyncio.run(list_cursors())
    else:
        print(f"未知命令: {command}")
        print("可用命令: archive-tasks, list-cursors")
        sys.exit(1)


async def archive_tasks() -> None:
    """执行 done 任务归档"""
    from .store import create_store_group, transaction

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        async with transaction(store_group):
            archived = await store_group.task_store.archive_done()
        print(f"归档完成，共 {archived} 个任务")
    finally:
        await store_group.close()


async def list_cursors() -> None:
    """打印所有游标"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        cursors = await store_group.readers.cursor_store.list_cursors()
        if not cursors:
            print("暂无游标")
        for cursor in cursors:
            updated = cursor.updated_at.isoformat() if cursor.updated_at else "-"
            print(f"{cursor.key}\t{cursor.value}\t{updated}")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
