"""Content digests for snapshot tables."""

import hashlib
import json
from typing import Any, Dict, List, Optional


def canonical_json(rows: List[Dict[str, Any]]) -> str:
    """Serialize rows compactly, keeping row order and field order."""
    return json.dumps(rows, separators=(",", ":"), ensure_ascii=False)


def digest(rows: List[Dict[str, Any]]) -> str:
    """Return the hex SHA-256 digest of ``rows``."""
    return hashlib.sha256(canonical_json(rows).encode("utf-8")).hexdigest()


def verify(rows: List[Dict[str, Any]], expected: Optional[str]) -> bool:
    return digest(rows) == expected
