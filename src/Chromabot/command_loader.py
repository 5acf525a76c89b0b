# src/Chromabot/command_loader.py
import importlib
import pkgutil

import structlog

import Chromabot.commands as commands_pkg
from Chromabot.commanding import command_names

log = structlog.get_logger()


def load_all_commands() -> list[str]:
    """Import every module in ``Chromabot.commands`` so its decorators register."""
    loaded: list[str] = []
    for m in pkgutil.iter_modules(commands_pkg.__path__, commands_pkg.__name__ + "."):
        importlib.import_module(m.name)
        loaded.append(m.name.rsplit(".", 1)[-1])
    log.info("commands.loaded", modules=loaded, commands=command_names())
    return loaded
