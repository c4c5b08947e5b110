"""Input-dispatch middleman: trigger groups, aliases, pipes, and recorded input history replay."""

from .clock import Clock, ManualClock, MonotonicClock
from .handlers import AliasReference, DirectHandler, HandlerRef, InputHandler, TriggerGroup
from .history import HistoryArchive, InputHistory
from .middlewares import HistoryArchiveLimitMiddleware, InputWritrMiddleware, LoggerInputWritrMiddleware
from .models import HistoryEntry, InputWritrConfig
from .scheduler import AsyncioScheduler, ManualCall, ManualScheduler, ScheduledCall, Scheduler
from .service import InputPipe, InputWritr

__all__ = [
    'InputWritr',
    'InputPipe',
    'InputWritrConfig',
    'InputWritrMiddleware',
    'LoggerInputWritrMiddleware',
    'HistoryArchiveLimitMiddleware',
    'InputHistory',
    'HistoryArchive',
    'HistoryEntry',
    'DirectHandler',
    'AliasReference',
    'HandlerRef',
    'InputHandler',
    'TriggerGroup',
    'Clock',
    'MonotonicClock',
    'ManualClock',
    'Scheduler',
    'ScheduledCall',
    'AsyncioScheduler',
    'ManualScheduler',
    'ManualCall',
]
