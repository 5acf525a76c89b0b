from __future__ import annotations

from pydantic import Field

from Chromabot.commanding import Invocation, Option, find_command, slash_command
from Chromabot.metrics import inc_counter
from Chromabot.responder import respond_ephemeral


class ManualOpts(Option):
    # Optional focus area; capped to keep payloads tiny.
    topic: str | None = Field(
        default=None,
        description="Optional topic to focus on (e.g., dye, favorites, preset, language)",
        max_length=24,
    )


def _has_command(name: str, sub: str | None = None) -> bool:
    cmd = find_command(name, sub)
    return cmd is not None and (sub is None or cmd.subcommand == sub)


def _build_manual_text(settings, user_id: str, topic: str | None) -> str:
    is_moderator = user_id in settings.moderator_id_set() if settings is not None else False
    lines: list[str] = ["Chromabot Quick Start", ""]

    show = (lambda name: topic is None or topic == name)

    if show("dye") and _has_command("dye", "search"):
        lines.append("Dyes:")
        lines.append("• Search by name: /dye search with a query such as 'snow'.")
        if _has_command("dye", "info"):
            lines.append("• Details: /dye info shows hex, category and id for one dye.")
        lines.append("")

    if show("favorites") and _has_command("favorites", "add"):
        lines.append("Favorites:")
        lines.append("• /favorites add and /favorites remove keep up to 20 favorite dyes.")
        lines.append("• /favorites list shows them; /favorites clear starts over.")
        lines.append("")

    if show("collection") and _has_command("collection", "create"):
        lines.append("Collections:")
        lines.append("• /collection create makes a named list (up to 50 per user).")
        lines.append("• /collection add and /collection remove edit its dyes (up to 20).")
        lines.append("• /collection show and /collection list display what you saved.")
        lines.append("")

    if show("preset") and _has_command("preset", "show"):
        lines.append("Presets:")
        lines.append("• /preset show fetches a community preset by name.")
        lines.append("• /preset list and /preset random browse approved presets by category.")
        lines.append("• /preset submit shares your own; /preset vote toggles your vote.")
        if is_moderator and _has_command("preset", "moderate"):
            lines.append("• Moderators: /preset moderate reviews the pending queue.")
        if is_moderator and _has_command("preset", "ban_user"):
            lines.append("• Moderators: /preset ban_user and /preset unban_user manage authors.")
        lines.append("")

    if show("language") and _has_command("language", "set"):
        lines.append("Language:")
        lines.append("• /language set picks the reply language; /language reset follows Discord.")
        lines.append("")

    lines.append("Troubleshooting:")
    lines.append("• Invalid options: commands validate inputs and reply with a brief correction.")
    lines.append("• Too fast? Each command has a per-minute quota; wait and try again.")
    lines.append("")
    lines.append("Responses are ephemeral to reduce channel noise.")
    return "\n".join(lines)


@slash_command(
    name="manual",
    description="Show the Chromabot help guide.",
    option_model=ManualOpts,
)
async def manual(inv: Invocation, opts: ManualOpts):
    inc_counter("manual.view")
    topic = (opts.topic or "").strip().lower() or None
    return respond_ephemeral(_build_manual_text(inv.settings, inv.user_id, topic))
