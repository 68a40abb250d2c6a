"""
======================================================================
 GuildLevels Permission Runtime — Version v0.1.0 (Build 2026.10)
======================================================================
"""

"""
Permission level validation script.

Checks a JSON level store document offline, before it is deployed or
picked up by the hot-reload watcher. The runtime itself tolerates every
problem reported here (bad entries are skipped, unknown names dropped);
this script makes them visible.

Usage:
    python scripts/validate_levels.py [path/to/permission_levels.json]

Design rules:
- No side effects on import
- No runtime startup
- Validation only (no mutation)
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from shared.config.permissions import load_permissions_config
from services.discord.permissions.builtin import build_default_registry
from services.discord.permissions.capabilities import CapabilityRegistry
from services.discord.permissions.flags import normalize_native_permission
from services.discord.permissions.loader import LevelStoreLoader


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _error(msg: str):
    print(f"[LEVELS ERROR] {msg}", file=sys.stderr)


def _names(raw: Any) -> List[Any]:
    return list(raw) if isinstance(raw, (list, tuple)) else []


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_levels_document(payload: Any, registry: CapabilityRegistry) -> List[str]:
    """
    Return a list of human-readable problems found in a level document.

    Expected shape:
    {
        "permission_levels": [ {level record}, ... ]
    }
    """
    if not isinstance(payload, dict):
        return ["root JSON value must be an object"]

    levels = payload.get("permission_levels")
    if not isinstance(levels, list):
        return ["'permission_levels' must be a list"]

    loader = LevelStoreLoader(store=None, registry=registry)
    problems: List[str] = []
    seen_ids = set()

    for position, entry in enumerate(levels):
        if not isinstance(entry, dict):
            problems.append(f"entry #{position}: must be an object")
            continue

        label = f"level {entry.get('id', f'#{position}')}"

        level_id = entry.get("id")
        if level_id is not None and not isinstance(level_id, (str, int)):
            problems.append(f"{label}: id must be a string or integer")
        elif level_id is not None:
            if level_id in seen_ids:
                problems.append(f"{label}: duplicate id")
            seen_ids.add(level_id)

        try:
            definition = loader.normalize(entry)
        except ValueError as exc:
            problems.append(f"{label}: {exc}")
            continue

        for name in _names(entry.get("granted_system_permissions")):
            if registry.resolve_name(name) is None:
                problems.append(f"{label}: unknown system permission {name!r}")

        for name in _names(entry.get("granted_discord_permissions")):
            if normalize_native_permission(name) is None:
                problems.append(f"{label}: unknown Discord permission {name!r}")

        if not definition.subjects and not definition.disabled:
            problems.append(f"{label}: no users, roles or everyone flag; it grants nothing")

    return problems


def validate_levels_file(path: Path, registry: CapabilityRegistry) -> List[str]:
    if not path.exists():
        return [f"{path}: file not found"]
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        return [f"{path.name}: invalid JSON ({e})"]
    return validate_levels_document(payload, registry)


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate a permission level JSON document")
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=None,
        help="Level document (default: configured level store path)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_permissions_config()
    path = args.path or Path(config.store.path)

    problems = validate_levels_file(path, build_default_registry(config))
    for problem in problems:
        _error(problem)

    if problems:
        print("Permission level validation failed.", file=sys.stderr)
        return 1

    print("Permission level validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
