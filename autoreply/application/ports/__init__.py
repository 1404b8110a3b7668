"""Application ports package.

Re-exports the ports the completion client depends on.
"""

from autoreply.application.ports.provider_adapter_port import ProviderAdapter
from autoreply.application.ports.transport_port import TransportPort

__all__ = [
    "ProviderAdapter",
    "TransportPort",
]
