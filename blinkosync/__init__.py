"""Incremental one-way sync of Blinko notes into a local Markdown vault."""

from blinkosync.version import get_version

__version__ = get_version()
