"""
MoodAI - a wellness companion service.

This package provides a mood classifier for free-text chat messages, a FastAPI
application that turns detected moods into recommendations, replies and a mood
history, and a small CLI for talking to a running server.
"""

__version__ = "0.1.0"
