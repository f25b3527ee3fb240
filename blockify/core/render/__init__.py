"""Markup emission for canonical block trees."""

from .html import HtmlRenderer, render_attributes

__all__ = ["HtmlRenderer", "render_attributes"]
