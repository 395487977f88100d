"""Incremental file sync planner for Jib container builds."""

__version__ = "0.1.0"
