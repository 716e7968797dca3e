import json
import logging
from typing import Any, Dict, List

from ..errors import ImportDecodeError

logger = logging.getLogger(__name__)

BUCKET_KEYS = ("prospects", "prices", "outreach")


def _objects_only(items: List[Any], label: str) -> List[Dict[str, Any]]:
    objects = [item for item in items if isinstance(item, dict)]
    if len(objects) != len(items):
        logger.info("Ignored %d non-object entries in %s", len(items) - len(objects), label)
    return objects


def process_json(file_content: bytes) -> Dict[str, List[Dict[str, Any]]]:
    """
    Deserialize a JSON import payload.

    Two shapes are accepted:
    - a flat array of objects, returned under the ``"records"`` key for the
      classifier to sort out row by row;
    - an object with optional ``prospects``/``prices``/``outreach`` arrays,
      returned under those keys and routed straight to their normalizers.

    Raises:
        ImportDecodeError: Payload is not UTF-8, not valid JSON, or neither shape
    """
    try:
        data = json.loads(file_content.decode("utf-8-sig"))
    except UnicodeDecodeError as e:
        raise ImportDecodeError(f"File is not valid UTF-8 text ({e.reason})") from e
    except json.JSONDecodeError as e:
        raise ImportDecodeError(f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}") from e
    except RecursionError as e:
        raise ImportDecodeError("JSON is nested too deeply") from e

    if isinstance(data, list):
        return {"records": _objects_only(data, "records")}

    if isinstance(data, dict):
        buckets: Dict[str, List[Dict[str, Any]]] = {}
        for key in BUCKET_KEYS:
            section = data.get(key)
            if section is None:
                continue
            if not isinstance(section, list):
                raise ImportDecodeError(f"JSON field '{key}' must be an array of objects")
            buckets[key] = _objects_only(section, key)
        return buckets

    raise ImportDecodeError("JSON must contain an object or array of objects")
