"""
Relay data types and the wire field names of relayed records.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping


# Renamed top-level keys of every relayed record
FIELD_TIMESTAMP = "Timestamp"
FIELD_LEVEL = "Level"
FIELD_PAYLOAD = "Payload"
FIELD_FUNC = "Func"

RESERVED_FIELDS = (FIELD_TIMESTAMP, FIELD_LEVEL, FIELD_PAYLOAD, FIELD_FUNC)


class StreamKind(str, Enum):
    """Container output channels"""
    STDOUT = "stdout"
    STDERR = "stderr"


STREAM_LEVELS: Mapping[str, int] = MappingProxyType({
    StreamKind.STDOUT.value: logging.INFO,
    StreamKind.STDERR.value: logging.ERROR,
})


@dataclass(frozen=True)
class ContainerContext:
    """
    A container captured once per relay session.

    Labels are copied into a read-only mapping so later changes to the
    caller's dict do not leak into the session.
    """
    container_id: str
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels or {})))

    @property
    def short_id(self) -> str:
        return self.container_id[:12]

    def relay_fields(self, allow_list: Iterable[str]) -> Dict[str, str]:
        """Labels restricted to the allow-list, in allow-list order."""
        fields = {}
        for key in allow_list:
            if key in self.labels:
                fields[key] = self.labels[key]
        return fields
