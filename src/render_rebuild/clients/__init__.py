"""Clients for external services."""

from .render import DEFAULT_BASE_URL, RenderClient

__all__ = ["DEFAULT_BASE_URL", "RenderClient"]
