"""로깅 설정"""

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from mysql_clone.errors import ConfigurationError

LOGGER_NAME = "mysql_clone"

# 로그 비활성화 (off)
LEVEL_OFF = logging.CRITICAL + 10

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": LEVEL_OFF,
}


def parse_log_level(name: str) -> int:
    """로그 레벨 이름을 logging 레벨로 변환"""
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"지원하지 않는 로그 레벨: {name!r} (가능: {', '.join(_LEVELS)})"
        ) from None


def setup_logger(
    level: str = "info",
    log_dir: str | Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """애플리케이션 로거 설정

    Args:
        level: 콘솔 로그 레벨 이름 (trace/debug/info/warn/error/off)
        log_dir: 지정 시 일자별 로그 파일에 DEBUG 레벨까지 기록
        console: rich 콘솔 (진행률 표시와 출력 공유)
    """
    console_level = parse_log_level(level)

    logger = logging.getLogger(LOGGER_NAME)

    # 재호출 시 기존 핸들러 교체
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # 콘솔 핸들러
    console_handler = RichHandler(
        console=console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    logger_level = console_level

    # 파일 핸들러
    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            log_path / f"mysql_clone_{datetime.now().strftime('%Y%m%d')}.log",
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)
        logger_level = logging.DEBUG

    logger.setLevel(logger_level)
    return logger
