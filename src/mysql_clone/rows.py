"""
테이블 데이터 전송
소스 전체 조회 후 row 단위 INSERT (row마다 자신의 컬럼 목록 사용)
"""

import logging
from typing import Any

import aiomysql
import pymysql

from mysql_clone.errors import RowReadError, RowWriteError
from mysql_clone.schema import quote_identifier

logger = logging.getLogger(__name__)

# 이 건수를 넘으면 IGNORE_TABLES 추가 권고
LARGE_TABLE_THRESHOLD = 1_000_000


async def fetch_rows(table: str, conn) -> list[dict[str, Any]]:
    """소스 테이블 전체 조회 (단일 SELECT)"""
    try:
        async with conn.cursor(aiomysql.DictCursor) as cursor:
            await cursor.execute(f"SELECT * FROM {quote_identifier(table)}")
            rows = await cursor.fetchall()
    except (pymysql.err.MySQLError, UnicodeDecodeError) as e:
        # 컬럼 문자셋과 다른 바이트는 드라이버에서 UnicodeDecodeError로 올라옴
        raise RowReadError(table, str(e)) from e

    rows = list(rows)
    if len(rows) > LARGE_TABLE_THRESHOLD:
        logger.warning(
            "테이블 `%s`의 row가 %d건으로 100만 건을 초과합니다. IGNORE_TABLES에 추가를 고려하세요.",
            table,
            len(rows),
        )
    return rows


def build_insert(table: str, row: dict[str, Any]) -> tuple[str, tuple]:
    """row의 컬럼 목록으로 파라미터 INSERT 문 생성"""
    columns = list(row.keys())
    columns_str = ", ".join(quote_identifier(col) for col in columns)
    placeholders = ", ".join(["%s"] * len(columns))
    query = f"INSERT INTO {quote_identifier(table)} ({columns_str}) VALUES ({placeholders})"
    return query, tuple(row[col] for col in columns)


async def write_rows(table: str, rows: list[dict[str, Any]], conn) -> int:
    """row 단위 순차 INSERT - 첫 실패 row에서 중단 (롤백 없음)"""
    if not rows:
        return 0

    logger.debug("테이블 `%s` INSERT 시작: %d건", table, len(rows))

    written = 0
    async with conn.cursor() as cursor:
        for row_number, row in enumerate(rows, 1):
            query, params = build_insert(table, row)
            try:
                await cursor.execute(query, params)
            except pymysql.err.MySQLError as e:
                raise RowWriteError(table, row_number, written, str(e)) from e
            written += 1

    logger.debug("테이블 `%s` INSERT 완료: %d건", table, written)
    return written
