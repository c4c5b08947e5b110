from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, SupportsIndex, overload

from inputwritr.clock import round_ms
from inputwritr.models import HistoryEntry


class InputHistory(list[HistoryEntry]):
    """In-memory log of recorded dispatches with plain list behaviour, in insertion order."""

    __slots__ = ()

    def record(self, timestamp: int, trigger: str, code: Any) -> HistoryEntry:
        entry = HistoryEntry(timestamp=timestamp, trigger=trigger, code=code)
        self.append(entry)
        return entry

    def in_replay_order(self) -> list[HistoryEntry]:
        # sorted() is stable, so entries sharing a millisecond keep their insertion order
        return sorted(self, key=lambda entry: entry.timestamp)

    def as_mapping(self) -> dict[int, list[tuple[str, Any]]]:
        """Group (trigger, code) pairs by timestamp, e.g. {100: [('key-down', 37)]}."""
        grouped: dict[int, list[tuple[str, Any]]] = {}
        for entry in self.in_replay_order():
            grouped.setdefault(entry.timestamp, []).append(entry.pair)
        return grouped

    @classmethod
    def coerce(cls, history: InputHistory | Mapping[Any, Any] | Iterable[HistoryEntry]) -> InputHistory:
        """
        Accept the shapes callers hand to play_history():

            InputHistory([...])                              # returned as-is
            [HistoryEntry(...), ...]                         # copied into an InputHistory
            {100: ('key-down', 37), 250: ('key-down', 65)}   # timestamp -> (trigger, code)
        """
        if isinstance(history, InputHistory):
            return history

        coerced = cls()
        if isinstance(history, Mapping):
            for timestamp, value in history.items():
                coerced.append(_entry_from_mapping_value(timestamp, value))
            return coerced

        for entry in history:
            assert isinstance(entry, HistoryEntry), f'Invalid history entry: {entry!r}, expected HistoryEntry'
            coerced.append(entry)
        return coerced

    def __str__(self) -> str:
        return f'{self.__class__.__name__}({len(self)} entries)'


def _entry_from_mapping_value(timestamp: Any, value: Any) -> HistoryEntry:
    timestamp = round_ms(float(timestamp))
    if isinstance(value, HistoryEntry):
        return value.model_copy(update={'timestamp': timestamp})
    assert isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2, (
        f'Invalid history value at {timestamp}: {value!r}, expected a (trigger, code) pair'
    )
    trigger, code = value
    return HistoryEntry(timestamp=timestamp, trigger=trigger, code=code)


class HistoryArchive(list[InputHistory]):
    """
    Past histories, addressable by position and, when saved with a name, by that name.

    A named save keeps its positional copy too, so archive[-1] and archive['level-1']
    can be the same InputHistory object.
    """

    __slots__ = ('_named',)

    def __init__(self, histories: Iterable[InputHistory] = ()):
        super().__init__(histories)
        self._named: dict[str, InputHistory] = {}

    @overload
    def __getitem__(self, key: SupportsIndex) -> InputHistory: ...

    @overload
    def __getitem__(self, key: slice) -> list[InputHistory]: ...

    @overload
    def __getitem__(self, key: str) -> InputHistory: ...

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, str):
            return self._named[key]
        return super().__getitem__(key)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._named
        return super().__contains__(item)

    def get(self, key: str | int, default: InputHistory | None = None) -> InputHistory | None:
        try:
            return self[key]
        except (KeyError, IndexError, TypeError):
            return default

    def save(self, history: InputHistory, name: str | None = None) -> None:
        self.append(history)
        if name is not None:
            self._named[name] = history

    @property
    def names(self) -> list[str]:
        return list(self._named)

    def clear(self) -> None:
        super().clear()
        self._named.clear()

    def drop_oldest(self, count: int) -> list[InputHistory]:
        """Remove the `count` oldest positional entries, and any names left pointing at them."""
        if count <= 0:
            return []
        dropped = self[:count]
        del self[:count]
        for name, history in list(self._named.items()):
            if any(history is dropped_history for dropped_history in dropped) and not any(
                history is kept for kept in self
            ):
                del self._named[name]
        return dropped
