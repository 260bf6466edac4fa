"""JSON serialization utilities."""

from __future__ import annotations

import base64
import dataclasses
import datetime
import json
from pathlib import PurePath


def json_default(obj: object) -> object:
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(obj).decode("ascii")
    if isinstance(obj, PurePath):
        return obj.as_posix()
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        # repr keeps credential fields masked
        return repr(obj)
    return str(obj)


def dumps(payload: object, *, indent: int | None = None) -> str:
    return json.dumps(payload, default=json_default, ensure_ascii=False, indent=indent)
