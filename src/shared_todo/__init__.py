"""
Shared to-do list where every visitor is identified by network address.

Exposes the ASGI app and the factory used to build it with custom settings
or an injected store.
"""

from .main import app, create_app  # noqa: F401
