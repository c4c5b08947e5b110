import logging
from collections.abc import Callable, Hashable, Mapping, Sequence
from typing import Any, TypeGuard

from uuid_extensions import uuid7str  # pyright: ignore[reportMissingImports, reportUnknownVariableType]

uuid7str: Callable[[], str] = uuid7str  # pyright: ignore

from inputwritr.clock import Clock, MonotonicClock, round_ms
from inputwritr.handlers import (
    AliasReference,
    DirectHandler,
    HandlerRef,
    InputHandler,
    TriggerGroup,
    as_handler_ref,
    get_handler_name,
)
from inputwritr.history import HistoryArchive, InputHistory
from inputwritr.models import INPUTWRITR_LOG_LEVEL, HistoryEntry, InputWritrConfig
from inputwritr.scheduler import AsyncioScheduler, ScheduledCall, Scheduler

logger = logging.getLogger('inputwritr')
logger.setLevel(INPUTWRITR_LOG_LEVEL)

EVENT_CONTEXT_OPTION_NAMES = {'eventContext': 'event_context', 'event_information': 'event_context'}


class InputWritrMiddleware:
    """Hookable lifecycle interface for observing or extending InputWritr dispatch and recording."""

    def post_history_recorded(self, writr: 'InputWritr', entry: HistoryEntry) -> None:
        """Called right after a pipe dispatch appended an entry to the active history."""
        return None

    def post_event_called(self, writr: 'InputWritr', handler_ref: HandlerRef, result: Any) -> None:
        """Called after a handler returned, whether it was reached through a pipe or a replay."""
        return None

    def post_history_restarted(self, writr: 'InputWritr', archived: InputHistory | None) -> None:
        """Called after restart_history(); `archived` is the outgoing history if it was kept."""
        return None


def _is_middleware_class(candidate: object) -> TypeGuard[type[InputWritrMiddleware]]:
    return isinstance(candidate, type) and issubclass(candidate, InputWritrMiddleware)


def _normalize_option_names(options: Mapping[str, Any]) -> dict[str, Any]:
    """Fold the alternative spellings of event_context onto the field name, the last spelling given wins."""
    normalized: dict[str, Any] = {}
    for key, value in options.items():
        normalized[EVENT_CONTEXT_OPTION_NAMES.get(key, key)] = value
    return normalized


def _extract_code(occurrence: Any, code_field: str) -> Any:
    if isinstance(occurrence, Mapping):
        return occurrence.get(code_field)
    return getattr(occurrence, code_field, None)


def _call_prevent_default(occurrence: Any) -> None:
    for attr in ('prevent_default', 'preventDefault'):
        prevent_default = getattr(occurrence, attr, None)
        if callable(prevent_default):
            prevent_default()
            return


class InputPipe:
    """
    Dispatch function bound to one trigger group, fed directly by the host's input callbacks.

    >>> on_key_down = writr.make_pipe('key-down', 'key_code')
    >>> on_key_down({'key_code': 37})   # runs whatever is bound at triggers['key-down'][37]
    """

    __slots__ = ('writr', 'trigger', 'code_field', 'prevent_default', 'group')

    def __init__(
        self,
        writr: 'InputWritr',
        trigger: str,
        group: TriggerGroup,
        code_field: str | None = None,
        prevent_default: bool = False,
    ):
        self.writr = writr
        self.trigger = trigger
        self.group = group
        self.code_field = code_field
        self.prevent_default = prevent_default

    @property
    def __name__(self) -> str:
        return f'pipe_{self.trigger}'

    def __call__(self, occurrence: Any) -> Any:
        if self.prevent_default:
            _call_prevent_default(occurrence)

        code = occurrence if self.code_field is None else _extract_code(occurrence, self.code_field)

        try:
            handler = self.group.get(code)
        except TypeError:
            # unhashable codes can never be bound
            return None
        if handler is None:
            return None

        if self.writr.recording:
            self.writr._record(self.trigger, code)

        return self.writr.call_event(DirectHandler(handler=handler))

    def __repr__(self) -> str:
        field = f', code_field={self.code_field!r}' if self.code_field is not None else ''
        prevent = ', prevent_default=True' if self.prevent_default else ''
        return f'InputPipe({self.writr.name}.{self.trigger}{field}{prevent})'


class InputWritr:
    """
    Middleman between raw input codes and the application handlers that react to them.

    Features:
    - Trigger groups of handlers ("key-down", "key-up", ...) keyed by alias label or raw code
    - Aliases: one human label ("move-left") bound to many raw codes (37, 65)
    - Pipes: reusable dispatch functions fed by the host's raw input callbacks
    - Timestamped history of every dispatch, archivable and replayable with the original timing
    """

    name: str = 'InputWritr'
    id: str = '00000000-0000-0000-0000-000000000000'

    def __init__(
        self,
        config: InputWritrConfig | Mapping[str, Any] | None = None,
        *,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        name: str | None = None,
        middlewares: Sequence[InputWritrMiddleware | type[InputWritrMiddleware]] | None = None,
        **options: Any,
    ):
        self.id = uuid7str()
        self.name = name or f'{self.__class__.__name__}_{self.id[-8:]}'

        self.clock: Clock = clock or MonotonicClock()
        self.scheduler: Scheduler = scheduler or AsyncioScheduler()

        self._middlewares: list[InputWritrMiddleware] = []
        self.middlewares = list(middlewares or [])

        self._config = InputWritrConfig()
        self._history = InputHistory()
        self._histories = HistoryArchive()
        self._starting_time = 0

        self.reset(config, **options)

    def __str__(self) -> str:
        icon = '🔴' if self.recording else '⚪'
        return f'{self.name}{icon}({len(self.triggers)} triggers | {len(self.aliases)} aliases | {len(self._history)} recorded | {len(self._histories)} archived)'

    def __repr__(self) -> str:
        return str(self)

    @property
    def middlewares(self) -> list[InputWritrMiddleware]:
        return self._middlewares

    @middlewares.setter
    def middlewares(self, value: Sequence[InputWritrMiddleware | type[InputWritrMiddleware]]) -> None:
        instances: list[InputWritrMiddleware] = []
        for middleware in value:
            if isinstance(middleware, InputWritrMiddleware):
                instances.append(middleware)
            elif _is_middleware_class(middleware):
                instances.append(middleware())
            else:
                raise TypeError(f'Invalid middleware {middleware!r}. Expected InputWritrMiddleware instance or subclass.')
        self._middlewares = instances

    def _call_middleware_hook(self, method_name: str, *args: Any) -> None:
        for middleware in self._middlewares:
            method = getattr(middleware, method_name, None)
            if method is not None:
                method(self, *args)

    # Configuration store ------------------------------------------------- #

    def reset(self, config: InputWritrConfig | Mapping[str, Any] | None = None, **options: Any) -> None:
        """
        Replace the whole configuration, drop every archived history and start a fresh session.

        Accepts an InputWritrConfig, a plain mapping, or keyword options:
            writr.reset(triggers={'key-down': {'move-left': fn}}, aliases={'move-left': [37, 65]})
        """
        if isinstance(config, InputWritrConfig) and not options:
            new_config = config
        else:
            if isinstance(config, InputWritrConfig):
                base = {field: getattr(config, field) for field in InputWritrConfig.model_fields}
            else:
                base = _normalize_option_names(config or {})
            new_config = InputWritrConfig.model_validate({**base, **_normalize_option_names(options)})

        self._config = new_config
        self._histories = HistoryArchive()
        self.restart_history(keep_history=False)
        self.resolve_aliases()
        logger.debug(
            f'🔁 {self}.reset(triggers={list(self.triggers)}, aliases={list(self.aliases)}, recording={self.recording})'
        )

    @property
    def config(self) -> InputWritrConfig:
        return self._config

    @property
    def triggers(self) -> dict[str, TriggerGroup]:
        return self._config.triggers

    @property
    def aliases(self) -> dict[str, Sequence[Hashable]]:
        return self._config.aliases

    @property
    def recipients(self) -> dict[str, Any]:
        return self._config.recipients

    @property
    def recording(self) -> bool:
        return self._config.recording

    @recording.setter
    def recording(self, value: bool) -> None:
        self._config.recording = bool(value)

    @property
    def event_context(self) -> Any:
        return self._config.event_context

    @event_context.setter
    def event_context(self, value: Any) -> None:
        self._config.event_context = value

    def get_recording(self) -> bool:
        return self.recording

    def set_recording(self, recording: bool) -> None:
        self.recording = recording

    def get_event_context(self) -> Any:
        return self.event_context

    def set_event_context(self, event_context: Any) -> None:
        """Replace the object passed to every handler call from now on."""
        self.event_context = event_context

    # Alias resolution ---------------------------------------------------- #

    def resolve_aliases(self) -> None:
        """
        Copy the handler bound at each alias label onto each of the alias' raw codes,
        in every trigger group, so pipes can look raw codes up directly.

        A label with nothing bound copies that absence: the raw codes end up unbound too.
        """
        for label, codes in self.aliases.items():
            for group in self.triggers.values():
                for code in codes:
                    if label in group:
                        group[code] = group[label]
                    else:
                        group.pop(code, None)
            logger.debug(f'🔗 {self}.resolve_aliases() {label} -> {list(codes)}')

    # Dispatch ------------------------------------------------------------ #

    def make_pipe(self, trigger: str, code_field: str | None = None, prevent_default: bool = False) -> InputPipe | None:
        """
        Create the function the host should call with raw input for one trigger group.

        Examples:
                writr.make_pipe('key-up', 'key_code')  # code is occurrence['key_code'] / occurrence.key_code
                writr.make_pipe('context-menu', None, True)  # occurrence itself is the code, suppress its default
        """
        group = self.triggers.get(trigger)
        if group is None:
            logger.warning(f"⚠️ {self} No trigger of label '{trigger}' has been defined.")
            return None

        pipe = InputPipe(self, trigger, group, code_field=code_field, prevent_default=prevent_default)
        logger.debug(f'🚰 {self}.make_pipe() created {pipe!r}')
        return pipe

    def call_event(self, handler: HandlerRef | InputHandler | str | None, code: Any = None) -> Any:
        """
        Run one handler with the shared event context and return its result.

        The handler is either a direct reference or the one currently bound at triggers[trigger][code]:
                writr.call_event(DirectHandler(handler=fn))
                writr.call_event(AliasReference(trigger='key-down', code=37))
                writr.call_event('key-down', 37)  # same as the line above
        """
        handler_ref = as_handler_ref(handler, code)
        handler_func = self._resolve_handler(handler_ref)
        if handler_func is None:
            logger.warning(f'⚠️ {self} Blank event handler given ({handler_ref}), ignoring it.')
            return None

        logger.debug(f' ↳ {self}.call_event({handler_ref}, handler={get_handler_name(handler_func)})')
        result = handler_func(self.event_context)
        self._call_middleware_hook('post_event_called', handler_ref, result)
        return result

    def _resolve_handler(self, handler_ref: HandlerRef) -> InputHandler | None:
        if isinstance(handler_ref, DirectHandler):
            return handler_ref.handler
        group = self.triggers.get(handler_ref.trigger)
        if group is None:
            return None
        try:
            return group.get(handler_ref.code)
        except TypeError:
            return None

    # History ------------------------------------------------------------- #

    @property
    def starting_time(self) -> int:
        return self._starting_time

    def _record(self, trigger: str, code: Any) -> HistoryEntry:
        entry = self._history.record(round_ms(self.clock.now()), trigger, code)
        logger.debug(f'📝 {self} recorded {entry}')
        self._call_middleware_hook('post_history_recorded', entry)
        return entry

    def restart_history(self, keep_history: bool = True) -> None:
        """
        Start a new, empty history and a new session start time.

        Args:
            keep_history: whether the outgoing history is appended to the archive first
        """
        archived: InputHistory | None = None
        if keep_history:
            archived = self._history
            self._histories.save(archived)

        self._history = InputHistory()
        # rounded like entry timestamps, so an entry can never land before its session start
        self._starting_time = round_ms(self.clock.now())
        logger.debug(f'🆕 {self}.restart_history(keep_history={keep_history}) session starts at {self._starting_time}ms')
        self._call_middleware_hook('post_history_restarted', archived)

    def save_history(self, name: str | None = None) -> None:
        """Archive the active history (typically followed by restart_history(keep_history=False))."""
        self._histories.save(self._history, name=name)

    def get_history(self, name: str | int | None = None) -> InputHistory | None:
        """The active history, or with `name`, the archived history at that index or name (None if unknown)."""
        if name is None:
            return self._history
        return self._histories.get(name)

    def get_histories(self) -> HistoryArchive:
        return self._histories

    # Playback ------------------------------------------------------------ #

    def play_history(
        self, history: InputHistory | Mapping[Any, Any] | Sequence[HistoryEntry] | None = None
    ) -> list[ScheduledCall]:
        """
        Replay a history by scheduling each entry's handler at its recorded offset from the session start.

        Replays go straight to call_event(), never through a pipe, so they are never recorded themselves.
        Returns the scheduled-call handles; cancel() any of them to drop that replay.

        Note: the handlers that run are whatever is bound at replay time, called with whatever
        the event context is at replay time, not necessarily what they were when recorded.
        """
        entries = InputHistory.coerce(self._history if history is None else history)

        scheduled: list[ScheduledCall] = []
        for entry in entries.in_replay_order():
            delay = entry.timestamp - self._starting_time
            handler_ref = AliasReference(trigger=entry.trigger, code=entry.code)
            scheduled.append(self.scheduler.schedule_after(delay, self._make_replay_call(handler_ref)))

        logger.debug(f'▶️ {self}.play_history() scheduled {len(scheduled)} replays')
        return scheduled

    def _make_replay_call(self, handler_ref: AliasReference) -> Callable[[], Any]:
        def replay() -> Any:
            return self.call_event(handler_ref)

        replay.__name__ = f'replay_{handler_ref.trigger}'
        return replay

    def log_tree(self) -> str:
        """Multi-line summary of trigger groups and the active history, logged at INFO."""
        lines = [str(self)]
        for trigger_name, group in self.triggers.items():
            lines.append(f'├── {trigger_name}')
            for key, handler in group.items():
                handler_name = get_handler_name(handler) if handler is not None else '<blank>'
                lines.append(f'│   ├── {key!r} -> {handler_name}')
        lines.append(f'└── history @ {self._starting_time}ms')
        for entry in self._history:
            lines.append(f'    ├── {entry}')
        tree = '\n'.join(lines)
        logger.info(tree)
        return tree
