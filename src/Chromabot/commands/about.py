from __future__ import annotations

from Chromabot import __version__
from Chromabot.commanding import Invocation, Option, has_command, slash_command
from Chromabot.responder import respond_message

BLURPLE = 0x5865F2

# (emoji, title, [(command, description), ...])
COMMAND_SECTIONS: list[tuple[str, str, list[tuple[str, str]]]] = [
    (
        "📚",
        "Dye Database",
        [
            ("/dye search", "Search dyes by name"),
            ("/dye info", "Get detailed dye information"),
        ],
    ),
    (
        "💾",
        "Your Data",
        [
            ("/favorites", "Save your favorite dyes"),
            ("/collection", "Create custom dye collections"),
        ],
    ),
    (
        "🌐",
        "Community",
        [("/preset", "Browse, submit and vote on community presets")],
    ),
    (
        "⚙️",
        "Utility",
        [
            ("/manual", "Show help guide"),
            ("/language", "Choose the reply language"),
            ("/about", "Bot information"),
            ("/stats", "Usage statistics (authorized only)"),
        ],
    ),
]


def _command_list() -> str:
    sections = []
    for emoji, title, commands in COMMAND_SECTIONS:
        rows = [
            f"`{cmd}` - {desc}" for cmd, desc in commands if has_command(cmd[1:].split(" ")[0])
        ]
        if rows:
            sections.append(f"{emoji} **{title}**\n" + "\n".join(rows))
    return "\n\n".join(sections)


@slash_command(name="about", description="Bot information and available commands.")
async def about(inv: Invocation, opts: Option):
    embed = {
        "title": f"Chromabot v{__version__}",
        "description": "Dye lookups, personal collections and community presets.",
        "color": BLURPLE,
        "fields": [{"name": "Commands", "value": _command_list() or "None", "inline": False}],
    }
    return respond_message(embeds=[embed])
