"""
Protocol bridge for termhook.

Local clients connect over loopback TCP and exchange newline-delimited
JSON-RPC frames. The bridge answers handshake, ping and listing requests
itself and forwards operation calls to the command router.
"""

from termhook.bridge.client import BridgeClient
from termhook.bridge.models import RpcRequest, RpcResponse
from termhook.bridge.protocol import BridgeProtocol
from termhook.bridge.server import BridgeServer

__all__ = [
    "BridgeClient",
    "BridgeProtocol",
    "BridgeServer",
    "RpcRequest",
    "RpcResponse",
]
