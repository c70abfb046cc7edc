# habitflow/schemas/common.py
from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case fields on the Python side, camelCase keys on the wire."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


def dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, (list, tuple)):
        return [dump(v) for v in value]
    return value


def envelope(data: Any = None, message: Optional[str] = None, count: bool = False, **extra) -> dict:
    """Success body: ``{"success": true, "data": ..., "count"?: n, "message"?: str}``."""
    body = {"success": True}
    if data is not None:
        body["data"] = dump(data)
        if count:
            body["count"] = len(data)
    if message:
        body["message"] = message
    for key, value in extra.items():
        if value is not None:
            body[key] = dump(value)
    return body
