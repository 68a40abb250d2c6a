"""Hashing helpers for level store change detection."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, Optional

from shared.logging.logger import get_logger

log = get_logger("shared.utils.hashing")


def stable_hash_for_paths(paths: Iterable[Path]) -> Optional[str]:
    """Compute a deterministic content hash for the files backing a level store.

    Paths are hashed in sorted order so callers may pass them in any order.
    Missing files contribute a placeholder token, which makes a later
    creation of the file register as a change. Returns ``None`` when every
    file is missing.
    """

    digest = hashlib.sha256()
    seen = False

    for path in sorted(Path(p) for p in paths):
        digest.update(str(path).encode("utf-8"))
        try:
            if path.exists():
                seen = True
                digest.update(path.read_bytes())
            else:
                digest.update(b"<missing>")
        except OSError as exc:
            log.warning(f"Failed to hash level store path {path}: {exc}")
            digest.update(f"<error:{exc}>".encode("utf-8"))

    if not seen:
        return None

    return digest.hexdigest()
