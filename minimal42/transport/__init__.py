"""
Transport layer for host access.
"""

from minimal42.transport.base import NullTransport, Transport
from minimal42.transport.local import LocalTransport

__all__ = ["Transport", "NullTransport", "LocalTransport"]
