"""Type aliases used across the LensMap pipeline."""

from __future__ import annotations

from typing import Any

# Normalized header -> raw string value, as read from the input file.
RawRecord = dict[str, str]
# Canonical field key -> scalar output value.
CanonicalRow = dict[str, Any]
