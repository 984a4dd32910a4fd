"""
BijliTrack AI assistant.

Streaming chat client, LLM gateway relay and terminal front end for the
BijliTrack electricity dashboard assistant.
"""

__version__ = "0.3.0"
