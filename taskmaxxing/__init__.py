"""Taskmaxxing: weekly planner, habit tracker, notes and budget log."""

__version__ = "0.1.0"
