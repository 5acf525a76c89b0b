from __future__ import annotations

from datetime import datetime, timezone

from Chromabot.commanding import Invocation, Option, command_names, slash_command
from Chromabot.responder import respond_message

BLURPLE = 0x5865F2
RED = 0xED4245


@slash_command(name="stats", description="Usage statistics (authorized users only).")
async def stats(inv: Invocation, opts: Option):
    if inv.user_id not in inv.settings.stats_user_id_set():
        embed = {
            "title": "⛔ Access Denied",
            "description": "You do not have permission to view bot statistics.",
            "color": RED,
        }
        return respond_message(embeds=[embed], ephemeral=True)

    usage = await inv.services.stats.get_stats(command_names())
    top = sorted(usage.command_breakdown.items(), key=lambda kv: kv[1], reverse=True)[:5]
    top_text = (
        "\n".join(f"{i}. `/{name}` - {count:,} uses" for i, (name, count) in enumerate(top, 1))
        or "No commands executed yet"
    )
    embed = {
        "title": "📊 Bot Statistics",
        "color": BLURPLE,
        "fields": [
            {
                "name": "📈 Usage",
                "value": "\n".join(
                    [
                        f"**Total Commands:** {usage.total_commands:,}",
                        f"**Success Rate:** {usage.success_rate:.1f}%",
                        f"**Unique Users Today:** {usage.unique_users_today:,}",
                    ]
                ),
                "inline": True,
            },
            {"name": "⭐ Top Commands", "value": top_text, "inline": False},
        ],
        "footer": {"text": "Stats are kept for 30 days"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return respond_message(embeds=[embed], ephemeral=True)
