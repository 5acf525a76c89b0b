#!/usr/bin/env python3
"""
Discord Command Management Script

Registers, unregisters and reports the status of Chromabot's slash commands,
either globally or for a single guild.

Usage:
  python scripts/register_commands.py --status [--global|--guild [GUILD_ID]]
  python scripts/register_commands.py --register [--global|--guild [GUILD_ID]]
  python scripts/register_commands.py --unregister [--global|--guild [GUILD_ID]] [--commands a,b]

Environment Variables (read from .env.local, falling back to .env):
  - DISCORD_APP_ID: The application ID of the bot.
  - DISCORD_BOT_TOKEN: The bot token for authentication.
  - DISCORD_GUILD_ID (optional): Guild used when --guild is given without an ID.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

import httpx
import orjson
from dotenv import load_dotenv
from prettytable import PrettyTable

project_root = Path(__file__).parent.parent
env_local = project_root / ".env.local"
env_path = env_local if env_local.exists() else project_root / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

from Chromabot.config import load_settings  # noqa: E402
from Chromabot.registration import build_commands_payload  # noqa: E402


def _command_url(api_base: str, app_id: str, guild_id: str | None = None) -> str:
    base = f"{api_base}/applications/{app_id}"
    if guild_id:
        return f"{base}/guilds/{guild_id}/commands"
    return f"{base}/commands"


async def _fetch_commands(client: httpx.AsyncClient, url: str) -> list[dict]:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        print(f"Error while fetching commands from {url}: {e}")
        return []
    return response.json()


def format_options(options: list[dict], level: int = 0) -> list[str]:
    formatted = []
    indent = "  " * level
    for opt in options:
        required = "Required" if opt.get("required", False) else "Optional"
        formatted.append(f"{indent}- {opt['name']} ({required}): {opt.get('description', '')}")
        formatted.extend(format_options(opt.get("options", []), level + 1))
    return formatted


def print_status(local_commands: list[dict], registered: list[dict], scope: str) -> None:
    print(f"\nStatus for {scope} commands:")
    table = PrettyTable()
    table.field_names = ["Command Name", "Registered", "Description", "Options"]
    table.hrules = 1
    registered_names = {rc["name"] for rc in registered}
    for cmd in local_commands:
        table.add_row(
            [
                cmd["name"],
                "Yes" if cmd["name"] in registered_names else "No",
                cmd.get("description", ""),
                "\n".join(format_options(cmd.get("options", []))) or "No options",
            ]
        )
    print(table)


async def register(
    client: httpx.AsyncClient, url: str, commands: list[dict], *, overwrite: bool
) -> None:
    if overwrite:
        # Bulk overwrite also removes commands that no longer exist locally
        response = await client.put(url, content=orjson.dumps(commands))
        if response.status_code in (200, 201):
            print(f"Registered {len(commands)} command(s) at {url}")
        else:
            print(f"Failed to register commands at {url}. Status: {response.status_code}")
        return
    for cmd in commands:
        response = await client.post(url, content=orjson.dumps(cmd))
        if response.status_code in (200, 201):
            print(f"Registered: {cmd['name']}")
        else:
            print(f"Failed to register {cmd['name']}. Status: {response.status_code}")


async def unregister(client: httpx.AsyncClient, url: str, names: set[str] | None) -> None:
    for cmd in await _fetch_commands(client, url):
        if names is not None and cmd["name"] not in names:
            continue
        response = await client.delete(f"{url}/{cmd['id']}")
        if response.status_code == 204:
            print(f"Unregistered: {cmd['name']}")
        else:
            print(f"Failed to unregister {cmd['name']}. Status: {response.status_code}")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Manage Discord slash commands.")
    parser.add_argument("--status", action="store_true", help="Check the status of commands.")
    parser.add_argument("--register", action="store_true", help="Register commands.")
    parser.add_argument("--unregister", action="store_true", help="Unregister commands.")
    parser.add_argument("--global", action="store_true", dest="is_global", help="Global scope.")
    parser.add_argument(
        "--guild", nargs="?", const=True, dest="is_guild", help="Guild scope, optionally an ID."
    )
    parser.add_argument("--commands", help="Comma-separated list of commands to process.")
    args = parser.parse_args()

    settings = load_settings()
    if not settings.discord_app_id or settings.discord_bot_token is None:
        print("Error: DISCORD_APP_ID and DISCORD_BOT_TOKEN must be set.")
        return 1

    guild_id = None
    if args.is_guild:
        guild_id = os.environ.get("DISCORD_GUILD_ID") if args.is_guild is True else args.is_guild
        if not guild_id:
            print("Error: a guild ID is required for guild-scoped commands.")
            return 1
    url = _command_url(settings.discord_api_base, settings.discord_app_id, guild_id)
    scope = f"guild {guild_id}" if guild_id else "global"

    local_commands = build_commands_payload()
    wanted = set(args.commands.split(",")) if args.commands else None
    if wanted is not None:
        local_commands = [c for c in local_commands if c["name"] in wanted]

    headers = {
        "Authorization": f"Bot {settings.discord_bot_token.get_secret_value()}",
        "Content-Type": "application/json",
    }
    async with httpx.AsyncClient(headers=headers, timeout=10) as client:
        if args.register:
            await register(client, url, local_commands, overwrite=wanted is None)
        elif args.unregister:
            await unregister(client, url, wanted)
        if args.register or args.unregister:
            # Discord needs a moment before the listing reflects changes
            await asyncio.sleep(2)
        print_status(local_commands, await _fetch_commands(client, url), scope)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
