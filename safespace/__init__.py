"""Safespace: chat-request routing between users and specialists."""

__version__ = "0.1.0"
