"""Route group exports."""

from . import health, issues, postcodes, routes, runs, subscriptions

__all__ = ["health", "issues", "postcodes", "routes", "runs", "subscriptions"]
