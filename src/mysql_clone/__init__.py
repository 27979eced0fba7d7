"""
MySQL 테이블 복제 도구 (비동기 버전)
소스 DB의 모든 테이블을 타겟 DB로 스키마 재생성 + 전체 데이터 복사
aiomysql 기반 비동기 처리 + 최대 동시 실행 수 제한 병렬 복제
"""

from mysql_clone.scheduler import TableCloner
from mysql_clone.worker import CloneOutcome, CloneStage, clone_table

__all__ = ["TableCloner", "CloneOutcome", "CloneStage", "clone_table"]
