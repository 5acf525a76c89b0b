# src/Chromabot/registration.py
"""Build the Discord application-command payload from the local registry."""

from __future__ import annotations

import types
from typing import Any, Literal, Union, get_args, get_origin

from pydantic.fields import FieldInfo

from Chromabot.autocomplete import ROUTES
from Chromabot.command_loader import load_all_commands
from Chromabot.commanding import Command, all_commands
from Chromabot.discord_schemas import OptionType

CMD_CHAT_INPUT = 1


def _unwrap(ann: Any) -> Any:
    # "X | None" registers as X; whether it is required comes from the default
    if get_origin(ann) in (Union, types.UnionType):
        args = [a for a in get_args(ann) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return ann


def _option_type(f: FieldInfo) -> OptionType:
    ann = _unwrap(f.annotation)
    if get_origin(ann) is Literal:
        ann = type(get_args(ann)[0])
    if ann is bool:
        return OptionType.BOOLEAN
    if ann is int:
        return OptionType.INTEGER
    if ann is float:
        return OptionType.NUMBER
    return OptionType.STRING


def _has_autocomplete(command: str, option: str) -> bool:
    return any(r.matches(command, option) for r in ROUTES)


def option_payload(command: str, field_name: str, f: FieldInfo) -> dict[str, Any]:
    opt_type = _option_type(f)
    out: dict[str, Any] = {
        "name": field_name,
        "description": (f.description or "").strip() or field_name,
        "type": int(opt_type),
        "required": f.is_required(),
    }
    ann = _unwrap(f.annotation)
    extra = f.json_schema_extra if isinstance(f.json_schema_extra, dict) else {}
    if "choices" in extra:
        out["choices"] = extra["choices"]
    elif get_origin(ann) is Literal:
        out["choices"] = [{"name": str(v), "value": v} for v in get_args(ann)]
    elif opt_type is OptionType.STRING and _has_autocomplete(command, field_name):
        out["autocomplete"] = True
    return out


def _options(cmd: Command) -> list[dict[str, Any]]:
    return [option_payload(cmd.name, n, f) for n, f in cmd.option_model.model_fields.items()]


def build_commands_payload() -> list[dict[str, Any]]:
    load_all_commands()
    by_name: dict[str, list[Command]] = {}
    for cmd in all_commands().values():
        by_name.setdefault(cmd.name, []).append(cmd)

    payload: list[dict[str, Any]] = []
    for name, cmds in sorted(by_name.items()):
        subs = [c for c in cmds if c.subcommand]
        if subs:
            options = [
                {
                    "type": int(OptionType.SUB_COMMAND),
                    "name": c.subcommand,
                    "description": c.description,
                    "options": _options(c),
                }
                for c in subs
            ]
            description = next(
                (c.metadata["group_description"] for c in subs if "group_description" in c.metadata),
                subs[0].description,
            )
        else:
            options = _options(cmds[0])
            description = cmds[0].description
        payload.append(
            {"name": name, "description": description, "type": CMD_CHAT_INPUT, "options": options}
        )
    return payload
