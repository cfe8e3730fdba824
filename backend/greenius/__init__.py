"""Greenius - multi-session chat orchestration backed by a remote completion API."""

__version__ = "1.0.0"
