"""Relay chat messages to an OpenAI assistant over the Assistants API."""

__version__ = "0.1.0"
