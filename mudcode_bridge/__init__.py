"""Mudcode bridge - forwards local coding-assistant events to Discord."""

__version__ = "0.1.0"
