"""
테이블 스키마 전송
소스의 SHOW CREATE TABLE 결과를 정규화하여 타겟에 DROP 후 재생성
"""

import logging
import re

import pymysql

from mysql_clone.errors import SchemaReadError, SchemaWriteError

logger = logging.getLogger(__name__)

# 현재 AUTO_INCREMENT 카운터 (구조가 아닌 삽입 이력)
AUTO_INCREMENT_PATTERN = re.compile(r"AUTO_INCREMENT=\d+\s")


def quote_identifier(name: str) -> str:
    """MySQL 식별자 백틱 인용"""
    return "`" + name.replace("`", "``") + "`"


def normalize_schema(ddl: str) -> str:
    """CREATE TABLE 문에서 AUTO_INCREMENT=N 제거"""
    return AUTO_INCREMENT_PATTERN.sub("", ddl)


async def capture_schema(table: str, conn) -> str:
    """소스 테이블 스키마(CREATE TABLE) 조회 + 정규화"""
    try:
        async with conn.cursor() as cursor:
            await cursor.execute(f"SHOW CREATE TABLE {quote_identifier(table)}")
            row = await cursor.fetchone()
    except (pymysql.err.MySQLError, UnicodeDecodeError) as e:
        raise SchemaReadError(table, str(e)) from e

    if not row or len(row) < 2 or not row[1]:
        raise SchemaReadError(table, "SHOW CREATE TABLE 결과 없음")

    return normalize_schema(row[1])


async def apply_schema(table: str, definition: str, conn):
    """타겟 테이블 DROP 후 CREATE"""
    async with conn.cursor() as cursor:
        try:
            logger.debug("테이블 DROP: `%s`", table)
            await cursor.execute(f"DROP TABLE IF EXISTS {quote_identifier(table)}")

            logger.debug("테이블 CREATE: `%s`", table)
            await cursor.execute(definition)
        except pymysql.err.MySQLError as e:
            raise SchemaWriteError(table, str(e)) from e
