"""Slash command handlers; each module registers itself with ``slash_command``."""
