from typing import Any, Optional


def get_move_object_fields(object_response: dict) -> Optional[dict]:
    """Returns the Move struct fields of a `sui_getObject` response.

    Deleted or missing objects come back with an "error" entry instead of
    "data", and packages have no struct content. Both yield None, as does a
    null result.
    """
    if not isinstance(object_response, dict):
        return None
    data = object_response.get("data") or {}
    content = data.get("content") or {}
    if content.get("dataType") != "moveObject":
        return None
    fields = content.get("fields")
    return fields if isinstance(fields, dict) else None


def get_url_field(value: Any) -> Optional[str]:
    # `sui::url::Url` is rendered as a plain string by most fullnodes and as
    # a nested struct by older ones.
    if isinstance(value, dict):
        value = value.get("url")
    return value if isinstance(value, str) else None
