"""
테이블 복제 오류 정의
- ConfigurationError: 시작 시점 설정 오류 (치명적)
- CloneError 계열: 테이블 단위 오류 (워커 경계에서 실패 결과로 변환)
"""


class ConfigurationError(Exception):
    """필수 설정 누락 또는 잘못된 설정값"""


class CloneError(Exception):
    """테이블 단위 복제 오류의 기반 클래스"""

    stage_label = "clone"

    def __init__(self, table: str | None, message: str):
        self.table = table
        self.message = message
        super().__init__(self.__str__())

    def __str__(self) -> str:
        if self.table is None:
            return f"[{self.stage_label}] {self.message}"
        return f"[{self.stage_label}] `{self.table}`: {self.message}"


class DBConnectionError(CloneError):
    """커넥션 풀 생성/체크아웃 실패 (네트워크, 인증, 풀 고갈)"""

    stage_label = "connection"

    def __init__(self, role: str, message: str, table: str | None = None):
        self.role = role
        super().__init__(table, f"{role}: {message}")


class SchemaReadError(CloneError):
    """소스 스키마(SHOW CREATE TABLE) 조회 실패"""

    stage_label = "schema-read"


class SchemaWriteError(CloneError):
    """타겟 테이블 DROP/CREATE 실패"""

    stage_label = "schema-write"


class RowReadError(CloneError):
    """소스 데이터 조회 실패"""

    stage_label = "row-read"


class RowWriteError(CloneError):
    """타겟 INSERT 실패 - 첫 실패 row에서 해당 테이블 중단"""

    stage_label = "row-write"

    def __init__(self, table: str, row_number: int, rows_written: int, message: str):
        self.row_number = row_number
        self.rows_written = rows_written
        super().__init__(table, f"row {row_number}: {message} ({rows_written}건 삽입 후 중단)")
