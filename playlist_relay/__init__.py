"""AI Playlist Relay: Spotify + OpenAI backend for playlist suggestions."""

__version__ = '0.3.0'
