from typing import Any

NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate"}
JSON_MEDIA_TYPE = "application/json; charset=utf-8"


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, **payload}


def error_response(message: str, extra: dict[str, Any] | None = None, envelope: bool = True) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message, **(extra or {})}
    if envelope:
        return {"success": False, **body}
    return body
