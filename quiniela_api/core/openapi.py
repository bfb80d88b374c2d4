"""OpenAPI customization: tags and the documented 429 response.

Every rate limited operation may answer ``429 Too Many Requests`` with the
flat ``{"error", "message"}`` body and the ``RateLimit-*`` headers; this
module documents that once instead of on every route.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from quiniela_api.core.config import settings

RATE_LIMIT_HEADERS = {
    "RateLimit-Limit": "Requests allowed in the current window.",
    "RateLimit-Remaining": "Requests left in the current window.",
    "RateLimit-Reset": "Seconds until the current window resets.",
    "Retry-After": "Seconds to wait before retrying.",
}

TOO_MANY_REQUESTS_RESPONSE: Dict[str, Any] = {
    "description": "Rate limit exceeded",
    "headers": {
        name: {"description": description, "schema": {"type": "integer"}}
        for name, description in RATE_LIMIT_HEADERS.items()
    },
    "content": {
        "application/json": {
            "schema": {
                "type": "object",
                "properties": {
                    "error": {"type": "string", "example": "RATE_LIMIT_EXCEEDED"},
                    "message": {"type": "string"},
                },
                "required": ["error", "message"],
            }
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses.

    The health endpoint is skipped: it bypasses the general API limiter.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Health",
                "description": "Liveness checks (never rate limited).",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path == settings.app.health_path:
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429", TOO_MANY_REQUESTS_RESPONSE
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
