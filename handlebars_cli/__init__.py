"""Render Handlebars templates with JSON data from the command line."""

from __future__ import annotations

from handlebars_cli.version import VERSION

__all__ = ('VERSION',)
