"""Custom exceptions for Planet Exporter.

Provides a hierarchy of exceptions raised by the collection tasks.
The scheduler contains them per cycle; none of them is process-fatal.
"""

from typing import Any


class PlanetError(Exception):
    """Base exception for all Planet Exporter errors."""

    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize exception with optional details.

        Args:
            message: Human-readable error message.
            details: Additional error details for debugging.
            cause: Original exception that caused this error.
        """
        self.message = message or self.message
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging and health output."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# Configuration errors
class ConfigurationError(PlanetError):
    """A required setting is missing or unusable."""

    error_code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


class InvalidInventoryFormatError(ConfigurationError):
    """Unknown inventory encoding requested."""

    error_code = "INVALID_INVENTORY_FORMAT"
    message = "Invalid inventory format"


# Transport errors abort the current cycle
class TransportError(PlanetError):
    """I/O failure that aborts the current collection cycle."""

    error_code = "TRANSPORT_ERROR"
    message = "Collection transport failed"


class InventoryFetchError(TransportError):
    """Inventory feed could not be retrieved."""

    error_code = "INVENTORY_FETCH_ERROR"
    message = "Failed to fetch inventory"


class EnumerationError(TransportError):
    """Local sockets could not be enumerated."""

    error_code = "ENUMERATION_ERROR"
    message = "Failed to enumerate sockets"


class LocalAddressError(TransportError):
    """The default local address could not be determined."""

    error_code = "LOCAL_ADDRESS_ERROR"
    message = "Failed to determine default local address"


# Decode errors
class InventoryDecodeError(PlanetError):
    """Inventory document is unusable as a whole."""

    error_code = "INVENTORY_DECODE_ERROR"
    message = "Failed to decode inventory data"
