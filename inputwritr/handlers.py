import inspect
from collections.abc import Callable, Hashable
from typing import Annotated, Any, Literal, Protocol, TypeAlias, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


@runtime_checkable
class InputHandlerFunc(Protocol):
    """Protocol for handler callables, called with the shared event context"""

    def __call__(self, event_context: Any, /) -> Any: ...


InputHandler: TypeAlias = InputHandlerFunc | Callable[[Any], Any]

# A trigger group maps an alias label or a raw input code to its handler.
# None (or a missing key) means "nothing bound".
TriggerGroup: TypeAlias = dict[Hashable, InputHandler | None]


class DirectHandler(BaseModel):
    """Reference to a handler callable that is invoked as-is."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal['direct'] = 'direct'
    handler: Callable[..., Any] | None = None

    def __str__(self) -> str:
        return get_handler_name(self.handler) if self.handler is not None else '<blank>'


class AliasReference(BaseModel):
    """Reference to whatever handler is bound at triggers[trigger][code] when called."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal['alias'] = 'alias'
    trigger: str
    code: Any = None

    def __str__(self) -> str:
        return f'{self.trigger}[{self.code!r}]'


HandlerRef: TypeAlias = Annotated[DirectHandler | AliasReference, Field(discriminator='kind')]


def as_handler_ref(handler: 'HandlerRef | InputHandler | str | None', code: Any = None) -> DirectHandler | AliasReference:
    """
    Normalize the public calling conventions into a HandlerRef:

        as_handler_ref(DirectHandler(handler=fn))   # passed through
        as_handler_ref(fn)                          # DirectHandler(fn)
        as_handler_ref('key-down', 37)              # AliasReference('key-down', 37)
    """
    if isinstance(handler, (DirectHandler, AliasReference)):
        return handler
    if isinstance(handler, str):
        return AliasReference(trigger=handler, code=code)
    if handler is not None and not callable(handler):
        raise TypeError(f'Invalid handler: {handler!r} {type(handler)}, expected a callable or a trigger name')
    return DirectHandler(handler=handler)


def get_handler_name(handler: Callable[..., Any]) -> str:
    if inspect.ismethod(handler):
        return f'{type(handler.__self__).__name__}.{handler.__name__}'
    name = getattr(handler, '__qualname__', None) or getattr(handler, '__name__', None)
    if name is None:
        return repr(handler)
    module = getattr(handler, '__module__', None)
    return f'{module}.{name}' if module else name
