"""JSON encoding for map- and list-valued fields stored as Text."""

import json
from typing import Any


def decode_map(value: Any) -> dict:
    if not value:
        return {}
    if isinstance(value, dict):
        return dict(value)
    return json.loads(value)


def decode_list(value: Any) -> list:
    if not value:
        return []
    if isinstance(value, list):
        return list(value)
    return json.loads(value)


def encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)
