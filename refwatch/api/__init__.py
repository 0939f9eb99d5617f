"""HTTP surface: the poll notification endpoint."""

from refwatch.api.notify import create_app, create_notify_router

__all__ = ["create_app", "create_notify_router"]
