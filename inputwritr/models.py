import logging
import os
from collections.abc import Hashable, Mapping, Sequence
from typing import Annotated, Any, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SkipValidation, model_validator

logger = logging.getLogger('inputwritr')

INPUTWRITR_LOG_LEVEL = os.getenv('INPUTWRITR_LOG_LEVEL', 'WARNING')  # WARNING normally, otherwise DEBUG when testing

logger.setLevel(INPUTWRITR_LOG_LEVEL)


class InputWritrConfig(BaseModel):
    """
    Everything InputWritr.reset() replaces in one go.

    triggers, aliases and recipients are kept by reference rather than copied:
    alias resolution writes raw codes into the caller's own trigger group dicts.
    """

    model_config = ConfigDict(
        extra='forbid',
        arbitrary_types_allowed=True,
    )

    triggers: Annotated[dict[str, dict[Hashable, Any]], SkipValidation] = Field(default_factory=dict)
    recipients: Annotated[dict[str, Any], SkipValidation] = Field(default_factory=dict)
    aliases: Annotated[dict[str, Sequence[Hashable]], SkipValidation] = Field(default_factory=dict)
    event_context: Any = Field(
        default=None,
        validation_alias=AliasChoices('event_context', 'eventContext', 'event_information'),
    )
    recording: bool = True

    @model_validator(mode='after')
    def _check_shapes(self) -> Self:
        assert isinstance(self.triggers, Mapping), f'triggers must be a mapping, got {type(self.triggers).__name__}'
        for trigger_name, group in self.triggers.items():
            assert isinstance(trigger_name, str), f'Invalid trigger name: {trigger_name!r}'
            assert isinstance(group, dict), f'Trigger group {trigger_name!r} must be a dict, got {type(group).__name__}'

        assert isinstance(self.aliases, Mapping), f'aliases must be a mapping, got {type(self.aliases).__name__}'
        for label, codes in self.aliases.items():
            assert isinstance(codes, Sequence) and not isinstance(codes, (str, bytes)), (
                f'Alias {label!r} must map to a list of raw codes, got {codes!r}'
            )
        return self


class HistoryEntry(BaseModel):
    """One recorded dispatch: which trigger fired for which code, and when (ms)."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    timestamp: int
    trigger: str
    code: Any

    @property
    def pair(self) -> tuple[str, Any]:
        return (self.trigger, self.code)

    def __str__(self) -> str:
        return f'@{self.timestamp}ms {self.trigger}[{self.code!r}]'
