import logging
import os

import pytest

from inputwritr import InputWritr, ManualClock, ManualScheduler


@pytest.fixture(autouse=True)
def set_log_level():
    os.environ['INPUTWRITR_LOG_LEVEL'] = 'DEBUG'
    import inputwritr.service

    inputwritr.service.logger.setLevel(logging.DEBUG)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=1000.0)


@pytest.fixture
def scheduler(clock: ManualClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def make_writr(clock: ManualClock, scheduler: ManualScheduler):
    def factory(*args, **kwargs) -> InputWritr:
        kwargs.setdefault('clock', clock)
        kwargs.setdefault('scheduler', scheduler)
        return InputWritr(*args, **kwargs)

    return factory
