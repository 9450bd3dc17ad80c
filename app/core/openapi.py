"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- An HTTP Basic security scheme applied to the ``/admin`` endpoints only

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

SECURITY_SCHEME_NAME = "AdminBasicAuth"


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and admin security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            SECURITY_SCHEME_NAME,
            {
                "type": "http",
                "scheme": "basic",
                "description": "Admin identity and secret (APP_ADMIN_USERNAME / APP_ADMIN_PASSWORD).",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {"name": "Signals", "description": "Public read and submission of signals."},
            {"name": "Admin", "description": "Moderation of pending signals."},
            {"name": "Health", "description": "Liveness checks."},
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/admin"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = [{SECURITY_SCHEME_NAME: []}]

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
