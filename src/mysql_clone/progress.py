"""
복제 진행률
- ProgressCounters: 스케줄러만 갱신하는 처리/전체 카운터
- ProgressReporter: 완료 이벤트를 로그로 출력
- RichProgressReporter: rich 진행률 바 추가 표시
"""

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

logger = logging.getLogger(__name__)


@dataclass
class ProgressCounters:
    """처리 테이블 수 / 전체 테이블 수"""
    total: int
    processed: int = 0

    def advance(self):
        if self.processed >= self.total:
            raise ValueError(f"processed({self.processed})가 total({self.total})을 초과할 수 없습니다")
        self.processed += 1

    @property
    def percent(self) -> int:
        if self.total <= 0:
            raise ZeroDivisionError("total이 0이면 진행률을 계산할 수 없습니다")
        return round(self.processed / self.total * 100)


class ProgressReporter:
    """완료 이벤트마다 진행률 로그 출력"""

    def start(self, total: int):
        pass

    def on_outcome(self, counters: ProgressCounters):
        if counters.total <= 0:
            return
        logger.info(
            "진행률 %d%% (%d/%d)",
            counters.percent,
            counters.processed,
            counters.total,
        )

    def stop(self):
        pass


class RichProgressReporter(ProgressReporter):
    """진행률 로그 + rich 진행률 바"""

    def __init__(self, console: Console | None = None, description: str = "[cyan]전체 진행률"):
        self.console = console or Console()
        self.description = description
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
            expand=False,
        )
        self._task_id = None

    def start(self, total: int):
        self._task_id = self.progress.add_task(self.description, total=total)
        self.progress.start()

    def on_outcome(self, counters: ProgressCounters):
        super().on_outcome(counters)
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=counters.processed)

    def stop(self):
        self.progress.stop()

    def __enter__(self) -> "RichProgressReporter":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
