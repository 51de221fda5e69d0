"""Inventory feed decoding.

Two encodings are accepted:

- ``arrayjson``: a single JSON array of host objects.
- ``ndjson``: consecutive JSON objects with no enclosing array.

Decoding is strict per entry (unknown fields reject the entry) but
partial-success per batch: a bad entry is logged and skipped, the rest of
the feed is still used.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from planet_exporter.common.exceptions import InvalidInventoryFormatError, InventoryDecodeError
from planet_exporter.common.logging import get_logger
from planet_exporter.common.metrics import INVENTORY_ENTRIES_SKIPPED
from planet_exporter.inventory.models import Host, HostEntry

logger = get_logger(__name__)

FORMAT_ARRAYJSON = "arrayjson"
FORMAT_NDJSON = "ndjson"

_WHITESPACE = " \t\r\n"


def parse_hosts(fmt: str, data: str | bytes) -> list[Host]:
    """Parse inventory data as a list of hosts.

    Args:
        fmt: Inventory encoding, ``arrayjson`` or ``ndjson``.
        data: Raw response body.

    Returns:
        Hosts in feed order.

    Raises:
        InvalidInventoryFormatError: Unknown encoding.
        InventoryDecodeError: The arrayjson document is not a JSON array.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")

    if fmt == FORMAT_NDJSON:
        hosts = _parse_ndjson(data)
    elif fmt == FORMAT_ARRAYJSON:
        hosts = _parse_arrayjson(data)
    else:
        raise InvalidInventoryFormatError(
            f"Unknown inventory format: {fmt!r}",
            details={"format": fmt},
        )

    logger.debug("Parsed inventory hosts", count=len(hosts), format=fmt)
    return hosts


def _decode_entry(raw: Any) -> Host | None:
    try:
        return HostEntry.model_validate(raw).to_host()
    except ValidationError as e:
        logger.error(
            "Skip an inventory host entry due to parser error",
            error=str(e),
            entry=raw,
        )
        INVENTORY_ENTRIES_SKIPPED.labels(reason="invalid_entry").inc()
        return None


def _skip_whitespace(data: str, pos: int) -> int:
    while pos < len(data) and data[pos] in _WHITESPACE:
        pos += 1
    return pos


def _parse_ndjson(data: str) -> list[Host]:
    decoder = json.JSONDecoder()
    hosts: list[Host] = []

    pos = _skip_whitespace(data, 0)
    while pos < len(data):
        try:
            raw, pos = decoder.raw_decode(data, pos)
        except json.JSONDecodeError as e:
            logger.error(
                "Skip an inventory host entry due to parser error",
                error=str(e),
                line=e.lineno,
            )
            INVENTORY_ENTRIES_SKIPPED.labels(reason="malformed_json").inc()
            # The error may be reported lines past a truncated entry, so
            # resume on the line after the one the entry started on
            newline = data.find("\n", pos)
            if newline == -1:
                break
            pos = _skip_whitespace(data, newline)
            continue

        host = _decode_entry(raw)
        if host is not None:
            hosts.append(host)
        pos = _skip_whitespace(data, pos)

    return hosts


def _parse_arrayjson(data: str) -> list[Host]:
    decoder = json.JSONDecoder()

    start = _skip_whitespace(data, 0)
    try:
        raw, end = decoder.raw_decode(data, start)
    except json.JSONDecodeError as e:
        raise InventoryDecodeError(
            "Error decoding arrayjson inventory data",
            details={"error": str(e)},
            cause=e,
        ) from e

    if not isinstance(raw, list):
        raise InventoryDecodeError(
            "Expected a JSON array of inventory hosts",
            details={"type": type(raw).__name__},
        )

    # Only a single JSON array is expected, additional data is discarded
    remaining = data[end:].strip()
    if remaining:
        logger.warning(
            "Unexpected remaining data while parsing inventory hosts",
            remaining_bytes=len(remaining.encode("utf-8")),
        )

    hosts: list[Host] = []
    for item in raw:
        host = _decode_entry(item)
        if host is not None:
            hosts.append(host)
    return hosts
