"""Focusphere assistant: chat-driven task and goal actions with confirmation."""

__version__ = "0.1.0"
