"""View rendering module for Discord embeds.

Views turn the canonical playback state into message payloads, separate
from the sync logic that decides where those payloads go.
"""
