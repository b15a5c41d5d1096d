"""Request body parsing shared by the resource routers."""

import json
from typing import Any

from fastapi import Request

from payroll_api.config import settings
from payroll_api.errors import ApiError, ValidationFailed
from payroll_api.schemas import FieldError

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_payload(request: Request) -> Any:
    """Return the body as a mapping, whether it was sent as JSON or as a form.

    Blank form fields are treated as missing values. Bodies sent without a
    Content-Length get the same size cap as the front door applies.
    """
    body = await request.body()
    if len(body) > settings.MAX_BODY_SIZE:
        raise ApiError("Request entity too large", 413)

    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        # The cached body is replayed to the form parser
        form = await request.form()
        return {key: value for key, value in form.items() if value != ""}

    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError:
        raise ValidationFailed(
            [FieldError(field="body", message="Malformed JSON")],
            message="Invalid request body",
        )
