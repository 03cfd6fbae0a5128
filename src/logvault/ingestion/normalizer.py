"""Decodes bus payloads into canonical records."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable

from logvault.errors import DecodeError
from logvault.ingestion.models import Level, Record

logger = logging.getLogger(__name__)

# Short field names used on the wire: {"L": "<level>", "S": "<body>"}
LEVEL_FIELD = "L"
BODY_FIELD = "S"


class RecordNormalizer:
    """Turns one JSON payload into a ``Record``.

    Extra fields are ignored. A missing or non-string ``L``/``S`` is a
    ``DecodeError``. The record time is read from ``clock`` after a
    successful decode; nothing in the payload is used for it.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def decode(self, payload: bytes) -> Record:
        try:
            data = json.loads(payload)
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"Invalid payload: {e}") from e
        except RecursionError as e:
            raise DecodeError("Invalid payload: nested too deeply") from e

        if not isinstance(data, dict):
            raise DecodeError(f"Payload is not an object: {type(data).__name__}")

        level_text = self._string_field(data, LEVEL_FIELD)
        body = self._string_field(data, BODY_FIELD)

        level = Level.lookup(level_text)
        if level is None:
            logger.debug("Unknown level %r, recording as INFO", level_text)
            level = Level.INFO

        return Record(level=level, body=body, event_time=self._clock())

    @staticmethod
    def _string_field(data: dict, name: str) -> str:
        if name not in data:
            raise DecodeError(f"Missing field {name!r}")
        value = data[name]
        if not isinstance(value, str):
            raise DecodeError(
                f"Field {name!r} must be a string, got {type(value).__name__}"
            )
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise DecodeError(f"Field {name!r} is not valid UTF-8: {e.reason}") from e
        return value
