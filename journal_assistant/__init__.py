"""Conversational journaling assistant backend."""
