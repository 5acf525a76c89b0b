"""User-facing strings, resolved from the caller's language.

The language comes from the user's stored preference when one exists,
otherwise from the Discord client locale, otherwise English. Keys missing
from a translation fall back to the English template.
"""

from __future__ import annotations

from typing import NamedTuple

DEFAULT_LOCALE = "en"


class LocaleInfo(NamedTuple):
    code: str
    flag: str
    name: str
    native_name: str


SUPPORTED_LOCALES: tuple[LocaleInfo, ...] = (
    LocaleInfo("en", "🇺🇸", "English", "English"),
    LocaleInfo("ja", "🇯🇵", "Japanese", "日本語"),
    LocaleInfo("de", "🇩🇪", "German", "Deutsch"),
    LocaleInfo("fr", "🇫🇷", "French", "Français"),
    LocaleInfo("ko", "🇰🇷", "Korean", "한국어"),
    LocaleInfo("zh", "🇨🇳", "Chinese", "中文"),
)

_LOCALE_INFO = {info.code: info for info in SUPPORTED_LOCALES}

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "error.generic": "An error occurred while processing your command.",
        "error.deferred.title": "Something went wrong",
        "error.deferred.body": "We couldn't finish this request. Please try again later.",
        "error.invalid_options": "Invalid options for `/{command}`.",
        "command.not_implemented": "The `/{command}` command is not yet implemented.",
        "component.unsupported": "This component type is not yet supported.",
        "button.unknown": "This button is not recognized.",
        "button.invalid": "Invalid button interaction.",
        "modal.unknown": "Unknown modal submission.",
        "modal.invalid": "Invalid modal submission.",
        "rate_limit.wait": (
            "You're using this command too quickly! Please wait **{seconds} {unit}** "
            "before trying again."
        ),
        "unit.second": "second",
        "unit.seconds": "seconds",
        "permission.denied": "You don't have permission to do that.",
        "permission.denied_action": "You don't have permission to do that ({action}).",
        "common.error": "Error",
        "common.success": "Success",
        "field.action": "Action",
        "field.reason": "Reason",
        "field.error": "Error",
        "field.name": "Name",
        "field.category": "Category",
        "field.dyes": "Dyes",
        "dye.not_found": "No dye named **{name}**.",
        # Community presets
        "preset.title": "Community Presets",
        "preset.none_found": "No presets found.",
        "preset.none_in_category": "No presets found in this category.",
        "preset.not_found_title": "Preset not found",
        "preset.not_found": "No preset matches **{query}**.",
        "preset.votes": "{count} votes",
        "preset.by": "by {name}",
        "preset.official": "Official",
        "preset.showing": "📊 Showing {shown} of {total} presets",
        "preset.show_tip": "Use `/preset show` to see a preset's dyes.",
        "preset.load_failed": "Failed to load presets.",
        "preset.random_title": "Random Preset",
        "preset.not_enough_dyes": "A preset needs at least 2 dyes.",
        "preset.duplicate_title": "⚠️ Preset Already Exists",
        "preset.duplicate_body": (
            "A preset with the same dyes already exists:\n"
            '**"{name}"** by {author} ({votes}★)'
        ),
        "preset.duplicate_voted": "✅ Your vote was added to the existing preset.",
        "preset.submitted": "Preset Submitted",
        "preset.submitted_approved": "Your preset is now live!",
        "preset.submitted_pending": "Your preset is awaiting moderation.",
        "preset.submit_failed": "Failed to submit preset.",
        "preset.dye_count": "{count} colors",
        "preset.vote_added": "Vote added!",
        "preset.vote_removed": "Vote removed.",
        "preset.current_votes": "This preset now has {count} votes.",
        "preset.vote_failed": "Failed to process vote.",
        # Moderation
        "moderation.channel_only": "This command can only be used in the moderation channel.",
        "moderation.pending_title": "📋 Pending Presets",
        "moderation.no_pending": "No presets are waiting for review.",
        "moderation.pending_count": "{count} preset(s) awaiting review.",
        "moderation.pending_footer": "Use /preset moderate approve <id> or reject <id> <reason>",
        "moderation.missing_id": "Please provide a preset ID.",
        "moderation.missing_reason": "Please provide a reason for rejection.",
        "moderation.approved_title": "✅ Preset Approved",
        "moderation.approved_desc": "**{name}** is now live.",
        "moderation.approved_by": "Approved by {name}",
        "moderation.approve_failed": "Failed to approve: {error}",
        "moderation.rejected_title": "❌ Preset Rejected",
        "moderation.rejected_desc": "**{name}** has been rejected.",
        "moderation.rejected_by": "Rejected by {name}",
        "moderation.reject_failed": "Failed to reject: {error}",
        "moderation.stats_title": "📊 Moderation Statistics",
        "moderation.stat_pending": "🟡 Pending",
        "moderation.stat_approved": "🟢 Approved",
        "moderation.stat_rejected": "🔴 Rejected",
        "moderation.stat_flagged": "🟠 Flagged",
        "moderation.stat_actions": "📈 Actions (7d)",
        "moderation.unknown_author": "Unknown",
        "moderation.failed": "Moderation action failed.",
        "moderation.log_approved_title": "✅ {name} - Approved",
        "moderation.log_approved_body": "Preset approved by {name}",
        "reject.modal_title": "Reject Preset",
        "reject.reason_label": "Reason for rejection",
        "reject.reason_placeholder": "Please provide a clear reason for rejecting this preset...",
        "reject.reason_too_short": (
            "Please provide a valid rejection reason (at least {min} characters)."
        ),
        # Author bans
        "ban.user_not_found": "User not found or has no presets.",
        "ban.confirm_title": "⚠️ Confirm User Ban",
        "ban.confirm_body": (
            "Are you sure you want to ban this user from community presets?\n\n"
            "This will **hide all their presets** and prevent new submissions."
        ),
        "ban.confirm_footer": 'Click "Yes" to proceed with the ban, or "Cancel" to stop.',
        "ban.confirm_button": "Yes, Ban User",
        "ban.cancel_button": "Cancel",
        "ban.field_username": "Username",
        "ban.field_discord_id": "Discord ID",
        "ban.field_total": "Total Presets",
        "ban.field_recent": "Recent Presets",
        "ban.no_presets": "_No presets found_",
        "ban.modal_title": "Ban Reason",
        "ban.reason_label": "Reason for banning this user",
        "ban.reason_placeholder": "Explain why this user is being banned from community presets...",
        "ban.reason_too_short": "Please provide a valid ban reason (at least {min} characters).",
        "ban.cancelled_title": "❌ Ban Cancelled",
        "ban.cancelled_body": "The ban action was cancelled.",
        "ban.done_title": "🔨 User Banned",
        "ban.done_body": "**{username}** has been banned. {count} preset(s) hidden.",
        "ban.failed_title": "Ban failed",
        "ban.failed": "Failed to ban user.",
        "ban.not_banned": "User is not currently banned.",
        "ban.unbanned_title": "✅ User Unbanned",
        "ban.unbanned_body": "Successfully unbanned **{username}**. {count} preset(s) restored.",
        "ban.unban_failed": "Failed to unban user.",
        # Favorites
        "favorites.title": "⭐ Your Favorites",
        "favorites.count": "{count}/{max}",
        "favorites.added": "Added **{name}** to your favorites.",
        "favorites.removed": "Removed **{name}** from your favorites.",
        "favorites.already": "**{name}** is already in your favorites.",
        "favorites.not_in": "**{name}** is not in your favorites.",
        "favorites.limit": "You can have at most {max} favorites. Remove one first.",
        "favorites.empty": "You have no favorite dyes yet.",
        "favorites.add_hint": "Use `/favorites add` to save one.",
        "favorites.cleared": "Cleared {count} favorite(s).",
        # Language
        "language.title": "🌐 Language Settings",
        "language.updated": "Language set to **{language}**.",
        "language.update_note": "Bot replies will now use this language.",
        "language.invalid": "Unsupported language `{locale}`. Choose one of: {valid}.",
        "language.your_preference": "Your preference",
        "language.not_set": "Not set (using Discord's language)",
        "language.discord_locale": "Discord language",
        "language.unsupported": "not supported",
        "language.effective": "Bot language",
        "language.supported": "Supported languages",
        "language.reset": "Your language preference was cleared.",
        "language.reset_note": "Replies will follow your Discord language again.",
    },
    "de": {
        "error.generic": "Beim Verarbeiten deines Befehls ist ein Fehler aufgetreten.",
        "error.deferred.title": "Etwas ist schiefgelaufen",
        "error.deferred.body": "Die Anfrage konnte nicht abgeschlossen werden. Bitte versuche es später erneut.",
        "rate_limit.wait": (
            "Du nutzt diesen Befehl zu schnell! Bitte warte **{seconds} {unit}**, "
            "bevor du es erneut versuchst."
        ),
        "unit.second": "Sekunde",
        "unit.seconds": "Sekunden",
        "permission.denied": "Dazu hast du keine Berechtigung.",
        "common.error": "Fehler",
        "common.success": "Erfolg",
        "favorites.title": "⭐ Deine Favoriten",
        "favorites.added": "**{name}** wurde zu deinen Favoriten hinzugefügt.",
        "favorites.removed": "**{name}** wurde aus deinen Favoriten entfernt.",
        "favorites.empty": "Du hast noch keine Lieblingsfarben.",
        "language.title": "🌐 Spracheinstellungen",
        "language.updated": "Sprache auf **{language}** gesetzt.",
        "language.update_note": "Der Bot antwortet jetzt in dieser Sprache.",
        "language.your_preference": "Deine Einstellung",
        "language.not_set": "Nicht gesetzt (Discord-Sprache wird verwendet)",
        "language.discord_locale": "Discord-Sprache",
        "language.unsupported": "nicht unterstützt",
        "language.effective": "Bot-Sprache",
        "language.supported": "Unterstützte Sprachen",
        "language.reset": "Deine Spracheinstellung wurde gelöscht.",
    },
    "fr": {
        "error.generic": "Une erreur s'est produite lors du traitement de votre commande.",
        "error.deferred.title": "Un problème est survenu",
        "error.deferred.body": "Impossible de terminer cette demande. Veuillez réessayer plus tard.",
        "rate_limit.wait": (
            "Vous utilisez cette commande trop rapidement ! Veuillez patienter "
            "**{seconds} {unit}** avant de réessayer."
        ),
        "unit.second": "seconde",
        "unit.seconds": "secondes",
        "permission.denied": "Vous n'avez pas la permission de faire cela.",
        "common.error": "Erreur",
        "common.success": "Succès",
        "favorites.title": "⭐ Vos favoris",
        "favorites.added": "**{name}** a été ajouté à vos favoris.",
        "favorites.removed": "**{name}** a été retiré de vos favoris.",
        "favorites.empty": "Vous n'avez encore aucune teinture favorite.",
        "language.title": "🌐 Paramètres de langue",
        "language.updated": "Langue définie sur **{language}**.",
        "language.update_note": "Le bot répondra désormais dans cette langue.",
        "language.your_preference": "Votre préférence",
        "language.not_set": "Non définie (langue de Discord utilisée)",
        "language.discord_locale": "Langue de Discord",
        "language.unsupported": "non prise en charge",
        "language.effective": "Langue du bot",
        "language.supported": "Langues prises en charge",
        "language.reset": "Votre préférence de langue a été effacée.",
    },
    "ja": {
        "error.generic": "コマンドの処理中にエラーが発生しました。",
        "error.deferred.title": "問題が発生しました",
        "error.deferred.body": "リクエストを完了できませんでした。しばらくしてから再度お試しください。",
        "rate_limit.wait": "コマンドの使用が速すぎます！**{seconds}{unit}**待ってから再度お試しください。",
        "unit.second": "秒",
        "unit.seconds": "秒",
        "permission.denied": "この操作を行う権限がありません。",
        "common.error": "エラー",
        "common.success": "成功",
        "favorites.title": "⭐ お気に入り",
        "favorites.added": "**{name}**をお気に入りに追加しました。",
        "favorites.removed": "**{name}**をお気に入りから削除しました。",
        "favorites.empty": "お気に入りの染料はまだありません。",
        "language.title": "🌐 言語設定",
        "language.updated": "言語を**{language}**に設定しました。",
        "language.update_note": "今後、ボットはこの言語で返信します。",
        "language.your_preference": "あなたの設定",
        "language.not_set": "未設定（Discordの言語を使用）",
        "language.discord_locale": "Discordの言語",
        "language.unsupported": "未対応",
        "language.effective": "ボットの言語",
        "language.supported": "対応言語",
        "language.reset": "言語設定をリセットしました。",
    },
    "ko": {
        "error.generic": "명령을 처리하는 중 오류가 발생했습니다.",
        "unit.second": "초",
        "unit.seconds": "초",
        "common.error": "오류",
        "common.success": "성공",
        "language.title": "🌐 언어 설정",
        "language.updated": "언어가 **{language}**(으)로 설정되었습니다.",
        "language.reset": "언어 설정이 초기화되었습니다.",
    },
    "zh": {
        "error.generic": "处理命令时发生错误。",
        "unit.second": "秒",
        "unit.seconds": "秒",
        "common.error": "错误",
        "common.success": "成功",
        "language.title": "🌐 语言设置",
        "language.updated": "语言已设置为**{language}**。",
        "language.reset": "语言偏好已清除。",
    },
}


def locale_info(code: str) -> LocaleInfo | None:
    return _LOCALE_INFO.get(code)


def match_locale(locale: str | None) -> str | None:
    """Supported language for a Discord locale (``en-US``, ``zh-TW``), or None."""
    if not locale:
        return None
    lang = locale.split("-", 1)[0].lower()
    return lang if lang in _LOCALE_INFO else None


def resolve_locale(locale: str | None) -> str:
    return match_locale(locale) or DEFAULT_LOCALE


def t(locale: str | None, key: str, **params: object) -> str:
    lang = resolve_locale(locale)
    template = MESSAGES[lang].get(key) or MESSAGES[DEFAULT_LOCALE].get(key, key)
    return template.format(**params) if params else template
