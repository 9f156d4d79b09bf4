from http import HTTPStatus
from typing import Any, Optional

from flask import jsonify


def json_response(status_code: int, data: Optional[Any] = None, message: str = ""):
    """Wraps a payload in the API envelope used by every endpoint."""
    status_code = int(status_code)
    try:
        status_text = HTTPStatus(status_code).phrase
    except ValueError:
        status_text = str(status_code)

    body = {"status": status_text, "status_code": status_code}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status_code


def success(data: Any, message: str = ""):
    return json_response(HTTPStatus.OK, data, message)


def error(status_code: int, message: str, data: Optional[Any] = None):
    return json_response(status_code, data, message)
