"""테스트용 인메모리 MySQL fake (aiomysql 커넥션/커서/풀 인터페이스)"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, Callable

import aiomysql
import pymysql
import pytest

from mysql_clone.errors import DBConnectionError
from mysql_clone.logger import LOGGER_NAME
from mysql_clone.pool import Role

_IDENT = r"`((?:[^`]|``)+)`"
SHOW_CREATE_RE = re.compile(rf"^SHOW CREATE TABLE {_IDENT}$")
DROP_RE = re.compile(rf"^DROP TABLE IF EXISTS {_IDENT}$")
CREATE_RE = re.compile(rf"^CREATE TABLE {_IDENT}")
SELECT_RE = re.compile(rf"^SELECT \* FROM {_IDENT}$")
INSERT_RE = re.compile(rf"^INSERT INTO {_IDENT} \((.*)\) VALUES \((.*)\)$")


def _unquote(name: str) -> str:
    return name.replace("``", "`")


def make_ddl(table: str, auto_increment: int | None = None) -> str:
    ai = f"AUTO_INCREMENT={auto_increment} " if auto_increment is not None else ""
    return (
        f"CREATE TABLE `{table}` (\n"
        "  `id` int NOT NULL AUTO_INCREMENT,\n"
        "  `name` varchar(64) DEFAULT NULL,\n"
        "  PRIMARY KEY (`id`)\n"
        f") ENGINE=InnoDB {ai}DEFAULT CHARSET=utf8mb4"
    )


class FakeDatabase:
    """테이블 이름 -> {"ddl": str, "rows": list[dict]}"""

    def __init__(self, tables: dict[str, dict] | None = None):
        self.tables: dict[str, dict] = tables or {}
        self.statements: list[str] = []
        # (query, args) -> 발생시킬 예외 (없으면 None)
        self.fail_hook: Callable[[str, Any], Exception | None] | None = None
        # 테이블별 SELECT 지연 (초)
        self.delays: dict[str, float] = {}

    def add_table(self, name: str, rows: list[dict] | None = None, auto_increment: int | None = None):
        self.tables[name] = {"ddl": make_ddl(name, auto_increment), "rows": list(rows or [])}

    def rows(self, name: str) -> list[dict]:
        return self.tables[name]["rows"]

    def snapshot(self) -> dict[str, tuple[str, list[dict]]]:
        return {name: (t["ddl"], [dict(r) for r in t["rows"]]) for name, t in self.tables.items()}


class FakeCursor:
    def __init__(self, db: FakeDatabase, as_dict: bool):
        self.db = db
        self.as_dict = as_dict
        self._result: list = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, query: str, args: Any = None):
        self.db.statements.append(query)
        if self.db.fail_hook is not None:
            error = self.db.fail_hook(query, args)
            if error is not None:
                raise error
        await asyncio.sleep(0)
        self._result = []

        if query == "SHOW TABLES":
            self._result = [(name,) for name in self.db.tables]
            return

        m = SHOW_CREATE_RE.match(query)
        if m:
            name = _unquote(m.group(1))
            if name not in self.db.tables:
                raise pymysql.err.ProgrammingError(1146, f"Table '{name}' doesn't exist")
            self._result = [(name, self.db.tables[name]["ddl"])]
            return

        m = DROP_RE.match(query)
        if m:
            self.db.tables.pop(_unquote(m.group(1)), None)
            return

        m = CREATE_RE.match(query)
        if m:
            name = _unquote(m.group(1))
            if name in self.db.tables:
                raise pymysql.err.OperationalError(1050, f"Table '{name}' already exists")
            self.db.tables[name] = {"ddl": query, "rows": []}
            return

        m = SELECT_RE.match(query)
        if m:
            name = _unquote(m.group(1))
            if name not in self.db.tables:
                raise pymysql.err.ProgrammingError(1146, f"Table '{name}' doesn't exist")
            delay = self.db.delays.get(name)
            if delay:
                await asyncio.sleep(delay)
            rows = self.db.tables[name]["rows"]
            self._result = list(rows) if self.as_dict else [tuple(r.values()) for r in rows]
            return

        m = INSERT_RE.match(query)
        if m:
            name = _unquote(m.group(1))
            columns = [_unquote(c.strip()[1:-1]) for c in m.group(2).split(",")]
            if name not in self.db.tables:
                raise pymysql.err.ProgrammingError(1146, f"Table '{name}' doesn't exist")
            assert m.group(3) == ", ".join(["%s"] * len(columns))
            self.db.tables[name]["rows"].append(dict(zip(columns, args)))
            return

        raise pymysql.err.ProgrammingError(1064, f"unsupported statement: {query}")

    async def fetchall(self):
        return self._result

    async def fetchone(self):
        return self._result[0] if self._result else None


class FakeConnection:
    def __init__(self, db: FakeDatabase):
        self.db = db

    def cursor(self, cursor_class=None):
        return FakeCursor(self.db, as_dict=cursor_class is aiomysql.DictCursor)


class FakeProvider:
    """ConnectionProvider fake - 체크아웃 수/동시 워커 수 기록"""

    def __init__(self, source: FakeDatabase, target: FakeDatabase):
        self.dbs = {Role.SOURCE: source, Role.TARGET: target}
        self.fail_acquire: set[tuple[Role, str | None]] = set()
        self.checked_out = {Role.SOURCE: 0, Role.TARGET: 0}
        self.active_workers = 0
        self.max_active_workers = 0
        self.drained = False

    @asynccontextmanager
    async def acquire(self, role: Role, table: str | None = None):
        if (role, table) in self.fail_acquire:
            raise DBConnectionError(role.value, "Can't connect to MySQL server", table=table)
        await asyncio.sleep(0)
        self.checked_out[role] += 1
        worker = role is Role.SOURCE and table is not None
        if worker:
            self.active_workers += 1
            self.max_active_workers = max(self.max_active_workers, self.active_workers)
        try:
            yield FakeConnection(self.dbs[role])
        finally:
            self.checked_out[role] -= 1
            if worker:
                self.active_workers -= 1

    async def drain(self):
        self.drained = True


@pytest.fixture
def source_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def target_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def provider(source_db, target_db) -> FakeProvider:
    return FakeProvider(source_db, target_db)


@pytest.fixture
def source_conn(source_db) -> FakeConnection:
    return FakeConnection(source_db)


@pytest.fixture
def target_conn(target_db) -> FakeConnection:
    return FakeConnection(target_db)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """테스트 간 환경변수 격리"""
    for key in [
        "LOG_LEVEL", "IGNORE_TABLES", "MAX_CONCURRENT", "SORT_TABLES",
        "SOURCE_DB_USERNAME", "SOURCE_DB_PASSWORD", "SOURCE_DB_HOST", "SOURCE_DB_PORT",
        "SOURCE_DB_DATABASE", "SOURCE_DB_CHARSET",
        "TARGET_DB_USERNAME", "TARGET_DB_PASSWORD", "TARGET_DB_HOST", "TARGET_DB_PORT",
        "TARGET_DB_DATABASE", "TARGET_DB_CHARSET", "TARGET_DB_DISABLE_FOREIGN_KEY_CHECKS",
    ]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def db_env(monkeypatch):
    """필수 소스/타겟 환경변수 설정"""
    values = {
        "SOURCE_DB_USERNAME": "reader",
        "SOURCE_DB_PASSWORD": "s3cret",
        "SOURCE_DB_HOST": "source.local",
        "SOURCE_DB_PORT": "3306",
        "SOURCE_DB_DATABASE": "app",
        "TARGET_DB_USERNAME": "writer",
        "TARGET_DB_PASSWORD": "t@rget",
        "TARGET_DB_HOST": "target.local",
        "TARGET_DB_PORT": "3307",
        "TARGET_DB_DATABASE": "app_copy",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return values


@pytest.fixture(autouse=True)
def reset_logger():
    """setup_logger가 추가한 핸들러 제거"""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
