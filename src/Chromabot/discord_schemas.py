# discord_schemas.py

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class InteractionType(IntEnum):
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    APPLICATION_COMMAND_AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class ResponseType(IntEnum):
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7
    APPLICATION_COMMAND_AUTOCOMPLETE_RESULT = 8
    MODAL = 9


class OptionType(IntEnum):
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    NUMBER = 10


class ComponentType(IntEnum):
    ACTION_ROW = 1
    BUTTON = 2
    STRING_SELECT = 3
    TEXT_INPUT = 4


EPHEMERAL_FLAG = 1 << 6
MAX_AUTOCOMPLETE_CHOICES = 25

_ACTOR_REQUIRED = {
    InteractionType.APPLICATION_COMMAND,
    InteractionType.MESSAGE_COMPONENT,
    InteractionType.APPLICATION_COMMAND_AUTOCOMPLETE,
    InteractionType.MODAL_SUBMIT,
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class User(_Frozen):
    id: str
    username: str | None = None
    discriminator: str | None = None
    avatar: str | None = None
    global_name: str | None = None


class Member(_Frozen):
    user: User
    nick: str | None = None
    roles: list[str] = Field(default_factory=list)
    permissions: str | None = None


class CommandOption(_Frozen):
    name: str
    type: int
    value: str | int | float | bool | None = None
    # Only meaningful for autocomplete interactions
    focused: bool = False
    options: list["CommandOption"] | None = None


class ModalField(_Frozen):
    type: int
    custom_id: str | None = None
    value: str | None = None
    components: list["ModalField"] | None = None


class InteractionData(_Frozen):
    id: str | None = None
    name: str | None = None
    type: int | None = None
    options: list[CommandOption] | None = None
    # Components and modal submissions
    custom_id: str | None = None
    component_type: int | None = None
    values: list[str] | None = None
    components: list[ModalField] | None = None
    resolved: dict[str, Any] | None = None


class Message(_Frozen):
    id: str
    channel_id: str | None = None
    embeds: list[dict[str, Any]] = Field(default_factory=list)


class Interaction(_Frozen):
    id: str
    type: int
    token: str
    application_id: str
    locale: str | None = None
    guild_locale: str | None = None
    guild_id: str | None = None
    channel_id: str | None = None
    member: Member | None = None
    user: User | None = None
    data: InteractionData | None = None
    message: Message | None = None

    @model_validator(mode="after")
    def _one_actor(self) -> "Interaction":
        if self.member is not None and self.user is not None:
            raise ValueError("interaction carries both member and user")
        if self.type in _ACTOR_REQUIRED and self.member is None and self.user is None:
            raise ValueError("interaction carries neither member nor user")
        return self

    @property
    def kind(self) -> InteractionType | None:
        try:
            return InteractionType(self.type)
        except ValueError:
            return None

    @property
    def actor(self) -> User | None:
        if self.member is not None:
            return self.member.user
        return self.user

    @property
    def user_id(self) -> str | None:
        actor = self.actor
        return actor.id if actor else None

    @property
    def username(self) -> str:
        actor = self.actor
        if actor is None:
            return "Unknown"
        return actor.global_name or actor.username or actor.id

    @property
    def subcommand(self) -> str | None:
        opts = self.data.options if self.data is not None else None
        if opts and opts[0].type == OptionType.SUB_COMMAND:
            return opts[0].name
        return None

    def leaf_options(self) -> list[CommandOption]:
        """Options of the invoked (sub)command, one level of grouping unwrapped."""
        opts = list(self.data.options or []) if self.data is not None else []
        if opts and opts[0].type == OptionType.SUB_COMMAND:
            return list(opts[0].options or [])
        return opts

    def option_values(self) -> dict[str, Any]:
        return {o.name: o.value for o in self.leaf_options()}

    def modal_values(self) -> dict[str, str]:
        """Flatten submitted text inputs by their custom_id."""
        out: dict[str, str] = {}
        rows = self.data.components if self.data is not None else None
        for row in rows or []:
            for field in row.components or [row]:
                if field.custom_id:
                    out[field.custom_id] = field.value or ""
        return out
