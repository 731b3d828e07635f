"""OpenAPI schema customization.

Adds the ``X-API-Key`` security scheme and marks only the management
operations as requiring it; capture, redirect and health routes stay public.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

SECURITY_SCHEME = "ApiKeyAuth"
PROTECTED_PREFIX = "/v1/"

TAGS_METADATA = [
    {"name": "Lenses", "description": "Create, connect and share lenses (bot-facing)."},
    {"name": "Capture", "description": "Public lens status and frame upload."},
    {"name": "Links", "description": "Short link redirects."},
    {"name": "Health", "description": "Liveness and queue metrics."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch the app's OpenAPI generation with auth and tag metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {})[SECURITY_SCHEME] = {
            "type": "apiKey",
            "in": "header",
            "name": "X-API-Key",
            "description": "Management API key (APP_API_KEYS).",
        }

        existing = {t.get("name") for t in schema.get("tags", [])}
        schema.setdefault("tags", []).extend(
            tag for tag in TAGS_METADATA if tag["name"] not in existing
        )

        for path, methods in schema.get("paths", {}).items():
            requirement = [{SECURITY_SCHEME: []}] if path.startswith(PROTECTED_PREFIX) else []
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = requirement

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
