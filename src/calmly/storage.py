from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _backup_corrupt(path: Path, raw: bytes, err: Exception) -> None:
    backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
    logger.warning("Data file %s is corrupt (%s); backed up to %s", path, type(err).__name__, backup)
    try:
        backup.write_bytes(raw)
    except OSError as be:
        logger.warning("Could not write backup %s: %s", backup, be)


def read_json_file(path: Path) -> dict[str, Any]:
    """
    Tolerant read of the data file:
    - missing or blank -> {}
    - not UTF-8, unparsable or nested too deep -> raw bytes copied to <name>.corrupt-<epoch>.json, then {}
    - valid JSON that is not an object -> {}
    Never writes the target file itself.
    """
    path = Path(path)
    if not path.exists():
        return {}

    raw = path.read_bytes()
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        _backup_corrupt(path, raw, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Data file %s does not hold a JSON object; ignoring it", path)
        return {}
    return data


def write_json_file(path: Path, data: Any) -> None:
    """
    Atomic write: temp file in the same directory, fsync, os.replace,
    then chmod 0600 best-effort.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    tmp = path.with_name(path.name + ".tmp")

    with open(tmp, "w", encoding="utf-8") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)

    try:
        os.chmod(path, 0o600)
    except OSError:
        logger.debug("chmod 0600 failed for %s", path)
