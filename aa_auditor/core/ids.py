"""Content-derived stable ids, so reruns on unchanged input produce identical output."""

import hashlib


def stable_id(parts: list[str]) -> str:
    """First 12 hex chars of SHA-1 over the '::'-joined parts."""
    return hashlib.sha1('::'.join(parts).encode('utf-8')).hexdigest()[:12]
