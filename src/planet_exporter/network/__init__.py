"""Host network state - socket enumeration and local address discovery."""

from planet_exporter.network.enumerator import NetworkEnumerator
from planet_exporter.network.local import default_local_address
from planet_exporter.network.models import ListeningSocket, NetworkSnapshot, PeeredSocket

__all__ = [
    "ListeningSocket",
    "NetworkEnumerator",
    "NetworkSnapshot",
    "PeeredSocket",
    "default_local_address",
]
