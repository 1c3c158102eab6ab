"""HTTP notification server for host applications."""

from clipforge.server.app import create_app

__all__ = ["create_app"]
