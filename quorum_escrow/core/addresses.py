"""Address-format validation.

Addresses are opaque lowercase alphanumeric strings (bech32 data charset plus
the human-readable prefix). Validation never normalizes: an address that is
not already in canonical form is rejected, so the same account can never be
stored under two spellings.
"""

import re

from quorum_escrow.core.config import settings
from quorum_escrow.core.errors import InvalidAddress

_ADDRESS_RE = re.compile(r"^[a-z0-9]+$")


def validate_address(
    raw: str,
    error: type[InvalidAddress] = InvalidAddress,
    *,
    prefix: str | None = None,
) -> str:
    """Return ``raw`` if it is a well-formed address, otherwise raise ``error``."""
    prefix = settings.address_prefix if prefix is None else prefix

    if not isinstance(raw, str) or not raw:
        raise error(str(raw), "empty")
    if raw != raw.strip().lower():
        raise error(raw, "not normalized")
    if not settings.address_min_length <= len(raw) <= settings.address_max_length:
        raise error(raw, "invalid length")
    if not _ADDRESS_RE.match(raw):
        raise error(raw, "invalid characters")
    if prefix and not raw.startswith(f"{prefix}1"):
        raise error(raw, f"expected prefix {prefix!r}")
    return raw
