"""JSON Schema definitions for the AEM tools."""

from __future__ import annotations

CONNECTION_PROPERTIES: dict[str, object] = {
    "authorUrl": {
        "type": "string",
        "description": "AEM author URL. Falls back to AEM_AUTHOR_URL.",
    },
    "server": {"type": "string", "description": "Alias for authorUrl."},
    "username": {"type": "string", "description": "AEM username for basic authentication."},
    "password": {"type": "string", "description": "AEM password for basic authentication."},
    "token": {
        "type": "string",
        "description": "Bearer token (alternative to username/password).",
    },
}


def _schema(
    properties: dict[str, object],
    required: tuple[str, ...] = (),
) -> dict[str, object]:
    schema: dict[str, object] = {
        "type": "object",
        "properties": {**properties, **CONNECTION_PROPERTIES},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = list(required)
    return schema


_STRING_MAP = {"type": "object", "additionalProperties": True}

CREATE_MICROSITE_SCHEMA = _schema(
    {
        "siteTitle": {
            "type": "string",
            "minLength": 1,
            "description": 'Display title of the site, e.g. "My Awesome Site".',
        },
        "siteName": {
            "type": "string",
            "description": "Node name; derived from siteTitle when omitted.",
        },
        "templateType": {
            "type": "string",
            "enum": ["standard", "basic"],
            "default": "standard",
        },
        "pages": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "description": 'Initial pages (default: ["main", "about", "contact"]).',
        },
        "parentPath": {"type": "string", "default": "/content"},
        "language": {"type": "string", "default": "en"},
        "country": {"type": "string", "default": "US"},
        "overwrite": {
            "type": "boolean",
            "default": False,
            "description": "Delete whatever exists at the site path, then recreate it.",
        },
    },
    required=("siteTitle",),
)

CREATE_PAGE_SCHEMA = _schema(
    {
        "sitePath": {"type": "string", "minLength": 1},
        "pageName": {"type": "string", "minLength": 1},
        "pageTitle": {"type": "string"},
        "templatePath": {"type": "string"},
    },
    required=("sitePath", "pageName"),
)

LIST_TEMPLATES_SCHEMA = _schema(
    {
        "includeRemote": {
            "type": "boolean",
            "default": False,
            "description": "Also query the author instance for its template listing.",
        },
    }
)

LIST_SITES_SCHEMA = _schema({"parentPath": {"type": "string", "default": "/content"}})

SITE_PATH_SCHEMA = _schema(
    {"sitePath": {"type": "string", "minLength": 1}},
    required=("sitePath",),
)

DELETE_SITE_SCHEMA = _schema(
    {
        "sitePath": {"type": "string", "minLength": 1},
        "confirm": {
            "type": "boolean",
            "description": "Must be true; deletion is refused otherwise.",
        },
    },
    required=("sitePath",),
)

CREATE_COMPONENT_SCHEMA = _schema(
    {
        "componentName": {"type": "string", "minLength": 1},
        "componentTitle": {"type": "string", "minLength": 1},
        "componentPath": {
            "type": "string",
            "minLength": 1,
            "description": "Parent folder, e.g. /apps/mysite/components.",
        },
        "componentGroup": {"type": "string", "default": "Custom Components"},
        "properties": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "type": {
                        "type": "string",
                        "enum": [
                            "textfield",
                            "textarea",
                            "pathfield",
                            "checkbox",
                            "select",
                            "multifield",
                        ],
                    },
                    "label": {"type": "string"},
                    "required": {"type": "boolean"},
                },
                "required": ["name", "type", "label"],
            },
        },
    },
    required=("componentName", "componentTitle", "componentPath"),
)

CREATE_CONTENT_FRAGMENT_SCHEMA = _schema(
    {
        "fragmentTitle": {"type": "string", "minLength": 1},
        "fragmentPath": {"type": "string", "minLength": 1},
        "modelPath": {"type": "string", "minLength": 1},
        "fields": _STRING_MAP,
    },
    required=("fragmentTitle", "fragmentPath", "modelPath"),
)

UPLOAD_ASSET_SCHEMA = _schema(
    {
        "assetName": {"type": "string", "minLength": 1},
        "damPath": {"type": "string", "minLength": 1},
        "assetUrl": {"type": "string", "description": "URL to download the asset from."},
        "assetData": {"type": "string", "description": "Base64-encoded asset bytes."},
        "mimeType": {"type": "string", "default": "application/octet-stream"},
        "metadata": _STRING_MAP,
    },
    required=("assetName", "damPath"),
)

START_WORKFLOW_SCHEMA = _schema(
    {
        "workflowModel": {
            "type": "string",
            "minLength": 1,
            "description": 'e.g. "/var/workflow/models/dam/update_asset".',
        },
        "payloadPath": {"type": "string", "minLength": 1},
        "workflowTitle": {"type": "string"},
        "workflowData": _STRING_MAP,
    },
    required=("workflowModel", "payloadPath"),
)

SEARCH_ASSETS_SCHEMA = _schema(
    {
        "query": {
            "type": "string",
            "description": (
                "Matches the file name and dc:title, dc:description, dc:subject, "
                "product:brand, product:sku."
            ),
        },
        "filename": {"type": "string"},
        "title": {"type": "string"},
        "damPath": {"type": "string", "default": "/content/dam"},
        "limit": {"type": "integer", "minimum": 1, "default": 50},
        "offset": {"type": "integer", "minimum": 0, "default": 0},
        "searchValue": {
            "type": "string",
            "description": "Replace this value (case-insensitive) in returned metadata.",
        },
        "replaceValue": {"type": "string"},
    }
)

RENAME_ASSET_SCHEMA = _schema(
    {
        "assetPath": {"type": "string", "minLength": 1},
        "newName": {"type": "string", "minLength": 1},
    },
    required=("assetPath", "newName"),
)

UPDATE_ASSET_METADATA_SCHEMA = _schema(
    {
        "assetPath": {"type": "string", "minLength": 1},
        "metadata": {"type": "object", "minProperties": 1},
        "merge": {"type": "boolean", "default": True},
    },
    required=("assetPath", "metadata"),
)
