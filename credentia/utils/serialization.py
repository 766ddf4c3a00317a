"""
Helpers for MongoDB ObjectId values.
"""

from typing import Union

from bson import ObjectId


def to_object_id(value: Union[str, ObjectId, None]) -> Union[ObjectId, None]:
    """
    Parse an id coming from a caller. Malformed ids yield None so lookups
    can report not-found instead of failing on the parse.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None
