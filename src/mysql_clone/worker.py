"""
테이블 복제 워커
스키마 조회 -> 타겟 재생성 -> 데이터 조회 -> 데이터 삽입
실패는 예외가 아닌 CloneOutcome으로 반환
"""

import logging
from dataclasses import dataclass
from enum import Enum

from mysql_clone.errors import CloneError
from mysql_clone.pool import ConnectionProvider, Role
from mysql_clone.rows import fetch_rows, write_rows
from mysql_clone.schema import apply_schema, capture_schema

logger = logging.getLogger(__name__)


class CloneStage(str, Enum):
    START = "start"
    SCHEMA_CAPTURED = "schema_captured"
    SCHEMA_APPLIED = "schema_applied"
    ROWS_FETCHED = "rows_fetched"
    ROWS_WRITTEN = "rows_written"
    DONE = "done"
    # 워커 밖으로 새어 나온 예외 - 실패 단계를 알 수 없음
    UNKNOWN = "unknown"


@dataclass
class CloneOutcome:
    """테이블 1개의 복제 결과

    stage는 실패 시 실패 직전까지 완료된 단계
    """
    table: str
    stage: CloneStage
    error: Exception | None = None
    rows_written: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, table: str, rows_written: int = 0) -> "CloneOutcome":
        return cls(table=table, stage=CloneStage.DONE, rows_written=rows_written)

    @classmethod
    def failure(
        cls,
        table: str,
        stage: CloneStage,
        error: Exception,
        rows_written: int = 0,
    ) -> "CloneOutcome":
        return cls(table=table, stage=stage, error=error, rows_written=rows_written)


async def clone_table(table: str, provider: ConnectionProvider) -> CloneOutcome:
    """단일 테이블 복제"""
    stage = CloneStage.START
    try:
        async with provider.acquire(Role.SOURCE, table) as source_conn:
            async with provider.acquire(Role.TARGET, table) as target_conn:
                definition = await capture_schema(table, source_conn)
                stage = CloneStage.SCHEMA_CAPTURED

                await apply_schema(table, definition, target_conn)
                stage = CloneStage.SCHEMA_APPLIED

                rows = await fetch_rows(table, source_conn)
                stage = CloneStage.ROWS_FETCHED

                # 빈 테이블은 스키마만 전송
                written = await write_rows(table, rows, target_conn)
                stage = CloneStage.ROWS_WRITTEN
    except CloneError as e:
        logger.error("%s", e)
        rows_written = getattr(e, "rows_written", 0)
        return CloneOutcome.failure(table, stage, e, rows_written=rows_written)

    return CloneOutcome.success(table, rows_written=written)
