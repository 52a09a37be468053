"""Chatroom: a real-time, single-room chat relay."""

__version__ = "0.1.0"
