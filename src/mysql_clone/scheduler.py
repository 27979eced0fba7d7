"""
테이블 복제 스케줄러
소스 테이블 목록 조회 -> 제외 테이블 필터링 -> 최대 동시 실행 수 이내로 워커 실행
완료된 워커 순서대로 결과 수집 및 진행률 갱신
"""

import asyncio
import logging
from typing import Awaitable, Callable

import pymysql

from mysql_clone.config import DEFAULT_MAX_CONCURRENT
from mysql_clone.errors import DBConnectionError
from mysql_clone.pool import ConnectionProvider, Role
from mysql_clone.progress import ProgressCounters, ProgressReporter
from mysql_clone.worker import CloneOutcome, CloneStage, clone_table

logger = logging.getLogger(__name__)

CloneFunc = Callable[[str, ConnectionProvider], Awaitable[CloneOutcome]]


class TableCloner:
    """소스 DB 전체 테이블을 타겟 DB로 병렬 복제"""

    def __init__(
        self,
        provider: ConnectionProvider,
        max_concurrency: int = DEFAULT_MAX_CONCURRENT,
        reporter: ProgressReporter | None = None,
        sort_tables: bool = False,
        clone_func: CloneFunc = clone_table,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency는 1 이상이어야 합니다: {max_concurrency}")
        self.provider = provider
        self.max_concurrency = max_concurrency
        self.reporter = reporter or ProgressReporter()
        self.sort_tables = sort_tables
        self.clone_func = clone_func

    async def list_tables(self) -> list[str]:
        """소스 DB의 모든 테이블 목록 조회"""
        async with self.provider.acquire(Role.SOURCE) as conn:
            try:
                async with conn.cursor() as cursor:
                    await cursor.execute("SHOW TABLES")
                    rows = await cursor.fetchall()
            except pymysql.err.MySQLError as e:
                raise DBConnectionError(Role.SOURCE.value, f"테이블 목록 조회 실패: {e}") from e
        return [row[0] for row in rows]

    def plan(self, tables: list[str], ignore_set: frozenset[str]) -> tuple[list[str], list[str]]:
        """복제 대상 / 제외 테이블 분리 (조회 순서 유지)"""
        admitted = []
        ignored = []
        for table in tables:
            if table in ignore_set:
                logger.info("제외 테이블: `%s`", table)
                ignored.append(table)
            else:
                admitted.append(table)

        if self.sort_tables:
            admitted.sort()
        return admitted, ignored

    async def run(self, ignore_set: frozenset[str] = frozenset()) -> list[CloneOutcome]:
        """전체 테이블 복제 - 테이블별 실패는 결과에 포함하고 계속 진행"""
        tables = await self.list_tables()
        admitted, _ = self.plan(tables, ignore_set)
        return await self.clone_tables(admitted)

    async def clone_tables(self, tables: list[str]) -> list[CloneOutcome]:
        """테이블 목록 복제 (최대 max_concurrency개 동시 실행)"""
        counters = ProgressCounters(total=len(tables))
        outcomes: list[CloneOutcome] = []

        if counters.total == 0:
            logger.info("복제할 테이블이 없습니다.")
            return outcomes

        logger.info("복제 대상: %d개 테이블 (동시 실행 %d개)", counters.total, self.max_concurrency)

        in_flight: dict[asyncio.Task, str] = {}
        self.reporter.start(counters.total)
        try:
            for table in tables:
                while len(in_flight) >= self.max_concurrency:
                    await self._drain_completed(in_flight, counters, outcomes)

                task = asyncio.create_task(self.clone_func(table, self.provider), name=f"clone:{table}")
                in_flight[task] = table

            while in_flight:
                await self._drain_completed(in_flight, counters, outcomes)
        finally:
            self.reporter.stop()

        return outcomes

    async def _drain_completed(
        self,
        in_flight: dict[asyncio.Task, str],
        counters: ProgressCounters,
        outcomes: list[CloneOutcome],
    ):
        """워커 1개 이상 완료까지 대기 후 결과 기록"""
        done, _ = await asyncio.wait(in_flight.keys(), return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            table = in_flight.pop(task)
            try:
                outcome = task.result()
            except Exception as e:
                # 워커가 처리하지 못한 예외도 해당 테이블 실패로만 기록
                logger.exception("테이블 `%s` 복제 중 예상치 못한 오류", table)
                outcome = CloneOutcome.failure(table, CloneStage.UNKNOWN, e)

            outcomes.append(outcome)
            counters.advance()
            self.reporter.on_outcome(counters)
