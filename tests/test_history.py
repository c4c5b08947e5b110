# pyright: basic
"""Tests for history restart, archiving and lookup."""

import pytest

from inputwritr import HistoryArchive, HistoryEntry, InputHistory, ManualClock


def noop(event_context):
    return None


@pytest.fixture
def writr(make_writr):
    return make_writr(triggers={'key-down': {'move-left': noop}}, aliases={'move-left': [37, 65]})


@pytest.fixture
def pipe(writr):
    return writr.make_pipe('key-down', 'keyCode')


def test_history_starts_empty(writr):
    assert isinstance(writr.get_history(), InputHistory)
    assert writr.get_history() == []
    assert writr.get_histories() == []


def test_restart_keeps_the_exact_history_object(writr, pipe, clock):
    for code in (37, 65, 37):
        pipe({'keyCode': code})
    recorded = writr.get_history()
    clock.advance(250)

    writr.restart_history(True)

    assert writr.get_histories()[-1] is recorded
    assert len(recorded) == 3
    assert writr.get_history() == []
    assert writr.get_history() is not recorded
    assert writr.starting_time == 1250


def test_restart_defaults_to_keeping_history(writr, pipe):
    pipe({'keyCode': 37})
    writr.restart_history()
    assert len(writr.get_histories()) == 1


def test_restart_without_keeping_discards_entries(writr, pipe, clock):
    pipe({'keyCode': 37})
    pipe({'keyCode': 65})
    clock.advance(40)

    writr.restart_history(False)

    assert writr.get_histories() == []
    assert writr.get_history() == []
    assert writr.starting_time == 1040


def test_entries_after_restart_are_not_before_session_start(writr, pipe, clock):
    clock.advance(75)
    writr.restart_history(keep_history=False)
    pipe({'keyCode': 37})
    assert writr.get_history()[0].timestamp >= writr.starting_time


def test_save_history_positional_and_named(writr, pipe):
    pipe({'keyCode': 37})
    writr.save_history()
    writr.save_history('level-1')

    histories = writr.get_histories()
    assert len(histories) == 2
    assert histories[0] is writr.get_history()
    assert histories[1] is writr.get_history()
    assert histories['level-1'] is writr.get_history()
    assert histories.names == ['level-1']


def test_get_history_by_index_and_name(writr, pipe):
    pipe({'keyCode': 37})
    first = writr.get_history()
    writr.save_history('first')
    writr.restart_history(False)
    pipe({'keyCode': 65})
    second = writr.get_history()
    writr.restart_history(True)

    assert writr.get_history(0) is first
    assert writr.get_history('first') is first
    assert writr.get_history(1) is second
    assert writr.get_history(-1) is second
    assert writr.get_history('missing') is None
    assert writr.get_history(7) is None


def test_saved_history_keeps_growing_until_restart(writr, pipe):
    writr.save_history('live')
    pipe({'keyCode': 37})
    assert writr.get_history('live') == [HistoryEntry(timestamp=1000, trigger='key-down', code=37)]


def test_archive_clear_and_membership():
    archive = HistoryArchive()
    history = InputHistory()
    archive.save(history, name='named')

    assert 'named' in archive
    assert history in archive
    assert archive.get('other') is None

    archive.clear()
    assert archive == []
    assert 'named' not in archive


def test_archive_drop_oldest_forgets_orphaned_names():
    archive = HistoryArchive()
    first, second, third = InputHistory(), InputHistory(), InputHistory()
    first.record(1, 'key-down', 1)
    second.record(2, 'key-down', 2)
    archive.save(first, name='first')
    archive.save(second, name='second')
    archive.save(third)

    dropped = archive.drop_oldest(1)

    assert dropped == [first]
    assert list(archive) == [second, third]
    assert archive.names == ['second']
    assert archive.drop_oldest(0) == []


def test_coerce_from_mapping_of_pairs():
    history = InputHistory.coerce({250: ['key-down', 65], '100': ('key-down', 37)})
    assert [entry.pair for entry in history.in_replay_order()] == [('key-down', 37), ('key-down', 65)]
    assert history.as_mapping() == {100: [('key-down', 37)], 250: [('key-down', 65)]}


def test_coerce_passes_histories_through_and_copies_entry_lists():
    history = InputHistory()
    assert InputHistory.coerce(history) is history

    entries = [HistoryEntry(timestamp=5, trigger='key-up', code='a')]
    coerced = InputHistory.coerce(entries)
    assert isinstance(coerced, InputHistory)
    assert coerced == entries


def test_coerce_rejects_malformed_values():
    with pytest.raises(AssertionError):
        InputHistory.coerce({100: 'key-down'})
    with pytest.raises(AssertionError):
        InputHistory.coerce([('key-down', 37)])


def test_fractional_session_start_never_postdates_entries(make_writr):
    clock = ManualClock(start=10.4)
    writr = make_writr(triggers={'key-down': {'a': noop}}, clock=clock)
    writr.make_pipe('key-down')('a')

    assert writr.starting_time == 10
    assert writr.get_history()[0].timestamp == 10
    assert writr.get_history()[0].timestamp >= writr.starting_time


def test_half_milliseconds_round_up(make_writr):
    clock = ManualClock(start=1000.5)
    writr = make_writr(triggers={'key-down': {'a': noop}}, clock=clock)
    writr.make_pipe('key-down')('a')
    clock.advance(1.0)
    writr.make_pipe('key-down')('a')

    assert writr.starting_time == 1001
    assert [entry.timestamp for entry in writr.get_history()] == [1001, 1002]
    assert InputHistory.coerce({'2.5': ('key-down', 'a')})[0].timestamp == 3


def test_restart_archives_an_empty_history(writr):
    writr.restart_history()
    assert writr.get_histories() == [[]]
