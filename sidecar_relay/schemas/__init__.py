from .relay import (
    ContainerContext,
    StreamKind,
    STREAM_LEVELS,
    FIELD_TIMESTAMP,
    FIELD_LEVEL,
    FIELD_PAYLOAD,
    FIELD_FUNC,
)

__all__ = [
    "ContainerContext",
    "StreamKind",
    "STREAM_LEVELS",
    "FIELD_TIMESTAMP",
    "FIELD_LEVEL",
    "FIELD_PAYLOAD",
    "FIELD_FUNC",
]
