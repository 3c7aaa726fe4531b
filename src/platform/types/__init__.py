from src.platform.types.object_id_types import (
    OBJECT_ID_PATTERN,
    ObjectIdStr,
    is_valid_object_id,
    normalize_object_id,
)
from src.platform.types.uuid7_utils_types import UtilsUUID7


__all__ = [
    'OBJECT_ID_PATTERN',
    'ObjectIdStr',
    'UtilsUUID7',
    'is_valid_object_id',
    'normalize_object_id',
]
