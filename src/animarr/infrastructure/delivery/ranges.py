"""Client ``Range`` header parsing for locally computed partial responses."""

from __future__ import annotations

import re

from animarr.domain.entities import ByteRange

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


class RangeNotSatisfiable(ValueError):
    """The requested range lies outside the resource."""


def parse_range(header: str | None, size: int) -> ByteRange | None:
    """Inclusive range for a single-range header, None for a full response.

    Supports ``bytes=a-b``, ``bytes=a-`` and the suffix form ``bytes=-n``.
    Multi-range and malformed headers are ignored (full response).

    Raises:
        RangeNotSatisfiable: start beyond the end of the resource.
    """
    if not header:
        return None
    m = _RANGE_RE.match(header)
    if m is None:
        return None
    first, last = m.group(1), m.group(2)
    if not first and not last:
        return None

    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(header)
        return ByteRange(start=max(0, size - suffix), end=size - 1)

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or end < start:
        raise RangeNotSatisfiable(header)
    return ByteRange(start=start, end=min(end, size - 1))
