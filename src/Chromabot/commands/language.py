from __future__ import annotations

from pydantic import Field

from Chromabot.commanding import Invocation, Option, slash_command
from Chromabot.i18n import SUPPORTED_LOCALES, LocaleInfo, locale_info, match_locale, t
from Chromabot.responder import error_embed, respond_message

GREEN = 0x57F287
BLURPLE = 0x5865F2


class SetOpts(Option):
    locale: str = Field(
        min_length=2,
        max_length=10,
        description="Language for bot replies",
        json_schema_extra={
            "choices": [
                {"name": f"{info.flag} {info.native_name}", "value": info.code}
                for info in SUPPORTED_LOCALES
            ]
        },
    )


def _display(info: LocaleInfo) -> str:
    return f"{info.flag} {info.name} ({info.native_name})"


@slash_command(
    name="language",
    subcommand="set",
    description="Choose the language for bot replies.",
    group_description="Manage your language preference.",
    option_model=SetOpts,
)
async def language_set(inv: Invocation, opts: SetOpts):
    code = opts.locale.strip().lower()
    if not await inv.services.preferences.set(inv.user_id, code):
        valid = ", ".join(f"`{info.code}`" for info in SUPPORTED_LOCALES)
        return respond_message(
            embeds=[
                error_embed(
                    t(inv.locale, "common.error"),
                    t(inv.locale, "language.invalid", locale=opts.locale, valid=valid),
                )
            ],
            ephemeral=True,
        )
    info = locale_info(code)
    assert info is not None
    # Confirm in the newly chosen language
    text = "\n\n".join(
        [t(code, "language.updated", language=_display(info)), t(code, "language.update_note")]
    )
    embed = {"title": f"✅ {t(code, 'common.success')}", "description": text, "color": GREEN}
    return respond_message(embeds=[embed], ephemeral=True)


@slash_command(
    name="language",
    subcommand="show",
    description="Show which language the bot uses for you.",
)
async def language_show(inv: Invocation, opts: Option):
    preference = await inv.services.preferences.get(inv.user_id)
    discord_locale = inv.interaction.locale
    from_discord = match_locale(discord_locale)
    effective = preference or from_discord or "en"

    lines = []
    if preference:
        pref_info = locale_info(preference)
        shown = _display(pref_info) if pref_info else preference
        lines.append(f"**{t(inv.locale, 'language.your_preference')}:** {shown}")
    else:
        lines.append(
            f"**{t(inv.locale, 'language.your_preference')}:** {t(inv.locale, 'language.not_set')}"
        )
    if discord_locale:
        discord_info = locale_info(from_discord) if from_discord else None
        shown = (
            _display(discord_info)
            if discord_info
            else f"{discord_locale} ({t(inv.locale, 'language.unsupported')})"
        )
        lines.append(f"**{t(inv.locale, 'language.discord_locale')}:** {shown}")

    effective_info = locale_info(effective)
    shown = _display(effective_info) if effective_info else effective
    lines.append(f"\n**{t(inv.locale, 'language.effective')}:** {shown}")
    lines.append(f"\n**{t(inv.locale, 'language.supported')}:**")
    for info in SUPPORTED_LOCALES:
        marker = " ✓" if info.code == effective else ""
        lines.append(f"{info.flag} `{info.code}` - {info.name} ({info.native_name}){marker}")

    embed = {
        "title": t(inv.locale, "language.title"),
        "description": "\n".join(lines),
        "color": BLURPLE,
    }
    return respond_message(embeds=[embed], ephemeral=True)


@slash_command(
    name="language",
    subcommand="reset",
    description="Go back to your Discord language.",
)
async def language_reset(inv: Invocation, opts: Option):
    await inv.services.preferences.clear(inv.user_id)
    locale = inv.interaction.locale
    text = t(locale, "language.reset") + "\n\n" + t(locale, "language.reset_note")
    embed = {"title": f"✅ {t(locale, 'common.success')}", "description": text, "color": GREEN}
    return respond_message(embeds=[embed], ephemeral=True)
