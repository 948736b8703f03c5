import json
import logging
import os
from typing import List, Optional, Tuple

from pydantic import ValidationError

from .config import DATA_FILE, SETTINGS_FILE, STORE_KEY
from .models import GroupRecord, ScannerSettings


logger = logging.getLogger(__name__)


def _read_json(path: str) -> Tuple[Optional[object], Optional[str]]:
    if not os.path.exists(path):
        return None, None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f), None
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None, f"Could not read {os.path.basename(path)}; using defaults"


def _write_json(path: str, payload: object) -> bool:
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Could not write %s: %s", path, e)
        return False


def load_settings(path: str = SETTINGS_FILE) -> Tuple[ScannerSettings, Optional[str]]:
    """Load persisted settings, falling back to defaults on any problem.

    Returns (settings, status) where status is a user-facing note when the
    stored file existed but could not be used.
    """
    data, status = _read_json(path)
    if not isinstance(data, dict):
        if data is not None:
            status = "Stored settings were not an object; using defaults"
        return ScannerSettings(), status

    defaults = ScannerSettings().model_dump(by_alias=True)
    aliases = {name: field.alias or name for name, field in ScannerSettings.model_fields.items()}
    for k, v in data.items():
        k = aliases.get(k, k)
        if k in defaults:
            defaults[k] = v
    try:
        return ScannerSettings.model_validate(defaults), status
    except ValidationError as e:
        logger.warning("Invalid settings in %s: %s", path, e)
        return ScannerSettings(), "Stored settings were invalid; using defaults"


def save_settings(settings: ScannerSettings, path: str = SETTINGS_FILE) -> bool:
    return _write_json(path, settings.model_dump(mode="json", by_alias=True))


def load_records(path: str = DATA_FILE) -> Tuple[List[GroupRecord], Optional[str]]:
    """Load a saved record set in its stored order.

    Individual malformed entries are dropped; a missing file, wrong key or
    corrupt JSON yields an empty list.
    """
    data, status = _read_json(path)
    if not isinstance(data, dict) or data.get("key") != STORE_KEY:
        if data is not None:
            status = "Stored records were not recognized; starting empty"
        return [], status

    groups = data.get("groups") or []
    if not isinstance(groups, list):
        return [], "Stored records were not recognized; starting empty"

    records: List[GroupRecord] = []
    for raw in groups:
        try:
            records.append(GroupRecord.model_validate(raw))
        except ValidationError:
            continue
    return records, status


def save_records(records: List[GroupRecord], path: str = DATA_FILE) -> bool:
    payload = {
        "key": STORE_KEY,
        "groups": [r.model_dump(mode="json", by_alias=True) for r in records],
    }
    return _write_json(path, payload)
