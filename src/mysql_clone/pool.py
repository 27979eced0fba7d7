"""
소스/타겟 DB 커넥션 풀
- 시작 시 풀 생성, 모든 워커가 공유, 종료 시 drain
- 커넥션은 작업 단위로 체크아웃 후 반환
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator

import aiomysql
import pymysql

from mysql_clone.config import SourceDBSettings, TargetDBSettings
from mysql_clone.errors import DBConnectionError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    SOURCE = "source"
    TARGET = "target"


class ConnectionProvider:
    """소스/타겟 aiomysql 풀 관리"""

    def __init__(self, source_pool: aiomysql.Pool, target_pool: aiomysql.Pool):
        self._pools = {Role.SOURCE: source_pool, Role.TARGET: target_pool}
        self._closed = False

    @classmethod
    async def open(
        cls,
        source: SourceDBSettings,
        target: TargetDBSettings,
        max_concurrency: int,
    ) -> "ConnectionProvider":
        """풀 생성 - 워커당 소스/타겟 각 1개 + 테이블 목록 조회용 1개"""
        maxsize = max_concurrency + 1
        source_pool = await cls._create_pool(Role.SOURCE, source.to_dict(), maxsize)
        try:
            target_pool = await cls._create_pool(Role.TARGET, target.to_dict(), maxsize)
        except DBConnectionError:
            source_pool.close()
            await source_pool.wait_closed()
            raise
        logger.debug("커넥션 풀 생성: %s -> %s (maxsize=%d)", source.masked_url, target.masked_url, maxsize)
        return cls(source_pool, target_pool)

    @staticmethod
    async def _create_pool(role: Role, kwargs: dict, maxsize: int) -> aiomysql.Pool:
        try:
            return await aiomysql.create_pool(
                minsize=1,
                maxsize=maxsize,
                autocommit=True,
                **kwargs,
            )
        except (pymysql.err.MySQLError, OSError) as e:
            raise DBConnectionError(role.value, f"풀 생성 실패: {e}") from e

    def pool(self, role: Role) -> aiomysql.Pool:
        return self._pools[role]

    @asynccontextmanager
    async def acquire(self, role: Role, table: str | None = None) -> AsyncIterator[aiomysql.Connection]:
        """커넥션 체크아웃 - 모든 종료 경로에서 반환"""
        if self._closed:
            raise DBConnectionError(role.value, "이미 종료된 커넥션 풀", table=table)
        pool = self._pools[role]
        try:
            conn = await pool.acquire()
        except (pymysql.err.MySQLError, OSError) as e:
            raise DBConnectionError(role.value, f"커넥션 획득 실패: {e}", table=table) from e
        try:
            yield conn
        finally:
            pool.release(conn)

    async def drain(self):
        """사용 중인 커넥션 반환을 기다린 뒤 모든 풀 종료"""
        if self._closed:
            return
        self._closed = True
        for role, pool in self._pools.items():
            pool.close()
            await pool.wait_closed()
            logger.debug("커넥션 풀 종료: %s", role.value)
