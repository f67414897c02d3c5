"""
Inbound HTTP surface of the relay.
"""

from relay.proxy.router import RequestRouter, is_valid_action
from relay.proxy.server import RelayServer, create_app

__all__ = [
    "RelayServer",
    "RequestRouter",
    "create_app",
    "is_valid_action",
]
