"""Presentation layer: rich console output for the CLI.

Public API
----------
- :class:`ConsoleRenderer` -- rich (or plain-text) rendering of replies,
  governance decisions, scores, memory and health views
"""

from golddigger.presentation.console import ConsoleRenderer

__all__ = ["ConsoleRenderer"]
