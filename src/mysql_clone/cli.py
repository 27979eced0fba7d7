#!/usr/bin/env python3
"""
MySQL 테이블 복제 CLI
- 환경변수(.env)로 소스/타겟 DB 지정
- 소스 DB의 모든 테이블을 타겟 DB에 DROP 후 재생성 + 전체 데이터 복사

종료 코드: 0 = 전체 성공, 1 = 일부 테이블 실패, 2 = 설정/연결 오류
"""

import asyncio
import sys
from functools import wraps
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from mysql_clone.config import (
    DEFAULT_ENV_FILE,
    LOG_LEVEL_NAMES,
    Settings,
    load_settings,
    load_yaml_config,
    parse_ignore_tables,
)
from mysql_clone.errors import ConfigurationError, DBConnectionError
from mysql_clone.logger import setup_logger
from mysql_clone.pool import ConnectionProvider
from mysql_clone.progress import ProgressReporter, RichProgressReporter
from mysql_clone.scheduler import TableCloner
from mysql_clone.worker import CloneOutcome

console = Console()

EXIT_TABLE_FAILURES = 1
EXIT_FATAL = 2


def async_command(f):
    """Click 명령어를 async로 실행하는 데코레이터"""
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def _load_settings_or_exit(env_file: str, config_file: str | None) -> Settings:
    try:
        settings = load_settings(env_file)
        if config_file:
            file_config = load_yaml_config(config_file)
            settings = settings.model_copy(update={"clone": file_config.apply(settings.clone)})
        return settings
    except ConfigurationError as e:
        console.print(f"오류: {e}", style="red", markup=False, soft_wrap=True)
        sys.exit(EXIT_FATAL)


@click.group()
def main():
    """MySQL 테이블 복제 도구"""
    pass


@main.command()
@click.option("--env-file", default=DEFAULT_ENV_FILE, show_default=True, help="환경변수 파일")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="복제 옵션 YAML 파일")
def show_config(env_file, config_file):
    """현재 DB 연결 설정 출력"""
    settings = _load_settings_or_exit(env_file, config_file)

    click.echo("현재 복제 설정 (환경변수 기반):")
    click.echo(f"\n[소스 DB]")
    click.echo(f"  URL: {settings.source.masked_url}")
    click.echo(f"\n[타겟 DB]")
    click.echo(f"  URL: {settings.target.masked_url}")
    click.echo(f"  FK 검사 비활성화: {settings.target.disable_foreign_key_checks}")
    click.echo(f"\n[복제 옵션]")
    click.echo(f"  로그 레벨: {settings.clone.log_level}")
    click.echo(f"  최대 동시 실행: {settings.clone.max_concurrent}")
    click.echo(f"  테이블 이름순 정렬: {settings.clone.sort_tables}")
    ignored = ", ".join(sorted(settings.clone.ignore_set)) or "(없음)"
    click.echo(f"  제외 테이블: {ignored}")


def print_results(outcomes: list[CloneOutcome]):
    """결과 출력"""
    if not outcomes:
        return

    table = Table(title="복제 결과", show_lines=False)
    table.add_column("테이블")
    table.add_column("상태")
    table.add_column("삽입 건수", justify="right")
    table.add_column("단계")

    for outcome in sorted(outcomes, key=lambda o: o.table):
        status = "[green]OK[/green]" if outcome.ok else "[red]NG[/red]"
        table.add_row(outcome.table, status, str(outcome.rows_written), outcome.stage.value)

    console.print(table)

    failures = [o for o in outcomes if not o.ok]
    success_count = len(outcomes) - len(failures)
    total_rows = sum(o.rows_written for o in outcomes)
    console.print(f"총계: {success_count}/{len(outcomes)}개 테이블 성공, {total_rows}건 삽입")

    if failures:
        console.print("\n[red]오류 목록:[/red]")
        for o in failures:
            console.print(f"  - {o.table}: {o.error}", markup=False, soft_wrap=True)


@main.command()
@click.option("--env-file", default=DEFAULT_ENV_FILE, show_default=True, help="환경변수 파일")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="복제 옵션 YAML 파일")
@click.option("--ignore", "ignore_tables", multiple=True, help="제외할 테이블 (여러 개 지정 가능, 콤마 구분 가능)")
@click.option("--max-concurrency", type=click.IntRange(min=1), default=None, help="동시 복제 테이블 수 (기본: MAX_CONCURRENT 또는 15)")
@click.option("--log-level", type=click.Choice(LOG_LEVEL_NAMES, case_sensitive=False), default=None, help="로그 레벨 (기본: LOG_LEVEL 또는 info)")
@click.option("--log-dir", type=click.Path(file_okay=False), default=None, help="로그 파일 저장 디렉토리")
@click.option("--sort-tables/--no-sort-tables", default=None, help="테이블 이름순으로 복제 (기본: 소스 조회 순서)")
@click.option("--no-progress", is_flag=True, help="진행률 바 표시 안 함")
@click.option("--dry-run", is_flag=True, help="실제 복제 없이 대상 테이블만 확인")
@async_command
async def run(
    env_file,
    config_file,
    ignore_tables,
    max_concurrency,
    log_level,
    log_dir,
    sort_tables,
    no_progress,
    dry_run,
):
    """소스 DB의 모든 테이블을 타겟 DB로 복제

    예시:
      mysql-clone run
      mysql-clone run --ignore audit_logs --ignore sessions
      mysql-clone run --config clone.yaml --max-concurrency 5
      mysql-clone run --dry-run
    """
    settings = _load_settings_or_exit(env_file, config_file)
    clone = settings.clone

    # CLI 옵션으로 설정 오버라이드
    level = log_level or clone.log_level
    concurrency = max_concurrency or clone.max_concurrent
    ordered = clone.sort_tables if sort_tables is None else sort_tables
    ignore_set = clone.ignore_set | parse_ignore_tables(list(ignore_tables))

    setup_logger(level, log_dir=log_dir, console=console)

    console.print(f"소스: {settings.source.masked_url}")
    console.print(f"타겟: {settings.target.masked_url}")
    console.print(f"동시 실행: {concurrency}개")

    try:
        provider = await ConnectionProvider.open(settings.source, settings.target, concurrency)
    except DBConnectionError as e:
        console.print(f"오류: {e}", style="red", markup=False, soft_wrap=True)
        sys.exit(EXIT_FATAL)

    reporter = ProgressReporter() if no_progress or dry_run else RichProgressReporter(console)
    cloner = TableCloner(provider, concurrency, reporter=reporter, sort_tables=ordered)

    try:
        try:
            tables = await cloner.list_tables()
        except DBConnectionError as e:
            console.print(f"오류: {e}", style="red", markup=False, soft_wrap=True)
            sys.exit(EXIT_FATAL)

        admitted, ignored = cloner.plan(tables, ignore_set)

        if dry_run:
            console.print("\n[yellow][DRY-RUN] 복제 대상 테이블:[/yellow]")
            for i, name in enumerate(admitted, 1):
                console.print(f"  {i}. {name}", markup=False)
            if ignored:
                console.print(f"제외: {', '.join(ignored)}", markup=False)
            return

        outcomes = await cloner.clone_tables(admitted)
    finally:
        await provider.drain()

    print_results(outcomes)

    if any(not o.ok for o in outcomes):
        sys.exit(EXIT_TABLE_FAILURES)


@main.command()
def init():
    """예시 YAML 설정 파일 생성"""
    example_yaml = """# 복제 옵션 설정 파일
# 사용법: mysql-clone run --config clone.yaml
# DB 연결 정보는 .env (SOURCE_DB_*, TARGET_DB_*)에서 읽음

# 복제에서 제외할 테이블 (IGNORE_TABLES에 추가됨)
ignore_tables:
  - large_log_table
  - sessions

# 동시 복제 테이블 수 (기본: 15)
max_concurrency: 15

# 테이블 이름순 복제 (기본: 소스 조회 순서)
sort_tables: false

# 로그 레벨: trace, debug, info, warn, error, off
log_level: info
"""

    output_path = Path("clone.yaml")
    if output_path.exists():
        if not click.confirm(f"'{output_path}'가 이미 존재합니다. 덮어쓰시겠습니까?"):
            click.echo("취소되었습니다.")
            return

    output_path.write_text(example_yaml, encoding="utf-8")
    console.print(f"예시 설정 파일 생성: [cyan]{output_path}[/cyan]")
    console.print("\n파일을 편집한 후 다음 명령어로 실행하세요:")
    console.print("  [green]mysql-clone run --config clone.yaml[/green]")


if __name__ == "__main__":
    main()
