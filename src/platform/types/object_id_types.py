"""
Catalog object id type

Principals and products are owned by external services that key them with
24-character hex object ids. We never mint these, only validate their shape.
Hex is case-insensitive, so ids are lowercased on the way in: every store key,
session pair and lease-per-product index sees one spelling per entity.
"""

import re
from typing import Annotated

from pydantic import StringConstraints


OBJECT_ID_PATTERN = r'^[0-9a-fA-F]{24}$'
_OBJECT_ID_RE = re.compile(OBJECT_ID_PATTERN)

ObjectIdStr = Annotated[
    str, StringConstraints(strip_whitespace=True, to_lower=True, pattern=OBJECT_ID_PATTERN)
]


def is_valid_object_id(value: object) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def normalize_object_id(value: str) -> str:
    return value.strip().lower()
