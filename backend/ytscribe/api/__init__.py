"""API routes for the transcript service."""

from ytscribe.api import payment_routes, routes

__all__ = ["routes", "payment_routes"]
