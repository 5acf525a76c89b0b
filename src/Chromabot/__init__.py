"""Chromabot: Discord interactions service for dye lookups and community presets."""

__version__ = "0.1.0"
