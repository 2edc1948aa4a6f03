from typing import Any, Dict, List, Optional


def ok(data: Any = None, message: str = "", **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data, "message": message}
    body.update(extra)
    return body


def fail(message: str, errors: Optional[List[Dict[str, Any]]] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "data": None, "message": message}
    if errors is not None:
        body["errors"] = errors
    body.update(extra)
    return body
