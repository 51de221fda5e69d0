"""Default local address discovery."""

import socket

from planet_exporter.common.exceptions import LocalAddressError

DEFAULT_PROBE_ADDRESS = "8.8.8.8"
DEFAULT_PROBE_PORT = 53


def default_local_address(
    probe_address: str = DEFAULT_PROBE_ADDRESS,
    probe_port: int = DEFAULT_PROBE_PORT,
) -> str:
    """Return the local address the host would use to reach the outside.

    Connecting a UDP socket only selects a route; no packet is sent.

    Raises:
        LocalAddressError: No route could be selected.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect((probe_address, probe_port))
            return sock.getsockname()[0]
    except OSError as e:
        raise LocalAddressError(
            details={"probe": f"{probe_address}:{probe_port}", "error": str(e)},
            cause=e,
        ) from e
