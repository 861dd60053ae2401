"""
Scope identifier validation.

A scope narrows statistics to one project. It must be a well-formed
MongoDB ObjectId before any cache or database work happens.
"""

from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

from utils.errors import InvalidScopeError


def validate_scope(scope: Optional[str]) -> ObjectId:
    """
    Parse a scope identifier.

    Args:
        scope: Raw value from the query string

    Returns:
        ObjectId: The parsed project identifier

    Raises:
        InvalidScopeError: If the scope is missing, blank or not a 24-char hex ObjectId
    """
    if scope is None or not scope.strip():
        raise InvalidScopeError("Query parameter 'scope' is required.")

    scope = scope.strip()
    # ObjectId() also accepts 12-byte strings; only the hex form is a valid scope
    if len(scope) != 24 or not ObjectId.is_valid(scope):
        raise InvalidScopeError(f"Invalid scope identifier: {scope[:40]!r}.")

    try:
        return ObjectId(scope)
    except InvalidId as exc:
        raise InvalidScopeError(f"Invalid scope identifier: {scope[:40]!r}.") from exc
