"""Reusable InputWritr middleware helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from inputwritr.handlers import HandlerRef
from inputwritr.history import InputHistory
from inputwritr.models import HistoryEntry
from inputwritr.service import InputWritr, InputWritrMiddleware

__all__ = [
    'InputWritrMiddleware',
    'LoggerInputWritrMiddleware',
    'HistoryArchiveLimitMiddleware',
]

logger = logging.getLogger('inputwritr.middleware')


class LoggerInputWritrMiddleware(InputWritrMiddleware):
    """Log every recorded entry and handler call, optionally appending a trace line per entry to a file."""

    def __init__(self, log_path: Path | str | None = None):
        self.log_path = Path(log_path) if log_path is not None else None
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def post_history_recorded(self, writr: InputWritr, entry: HistoryEntry) -> None:
        logger.info('📝 %s recorded %s', writr.name, entry)
        if self.log_path is not None:
            self._write_line(f'[{writr.name}] {entry}\n')

    def post_event_called(self, writr: InputWritr, handler_ref: HandlerRef, result: Any) -> None:
        logger.info('✅ %s called %s -> %r', writr.name, handler_ref, result)

    def post_history_restarted(self, writr: InputWritr, archived: InputHistory | None) -> None:
        if archived is not None:
            logger.info('📦 %s archived %s (%d archived)', writr.name, archived, len(writr.get_histories()))

    def _write_line(self, line: str) -> None:
        with self.log_path.open('a', encoding='utf-8') as fp:  # type: ignore[union-attr]
            fp.write(line)


class HistoryArchiveLimitMiddleware(InputWritrMiddleware):
    """Keep at most `max_archived` histories in the archive, dropping the oldest after each restart."""

    def __init__(self, max_archived: int = 50):
        assert max_archived >= 0, f'max_archived must be >= 0, got {max_archived}'
        self.max_archived = max_archived

    def post_history_restarted(self, writr: InputWritr, archived: InputHistory | None) -> None:
        histories = writr.get_histories()
        excess = len(histories) - self.max_archived
        if excess > 0:
            histories.drop_oldest(excess)
            logger.debug('🧹 %s dropped %d archived histories (limit %d)', writr.name, excess, self.max_archived)
