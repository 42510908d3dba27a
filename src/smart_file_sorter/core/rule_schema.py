"""JSON schema and validation for the settings file."""

import json
from pathlib import Path
from typing import Any, Dict, List

import jsonschema

from ..models.sorting_rule import MatchType

# JSON Schema for a single sorting rule (persisted camelCase keys)
RULE_SCHEMA = {
    "type": "object",
    "required": ["name", "destinationFolder"],
    "properties": {
        "id": {
            "type": "string",
            "description": "Stable identifier, survives edits"
        },
        "name": {
            "type": "string",
            "description": "Display label"
        },
        "enabled": {"type": "boolean", "default": True},
        "destinationFolder": {
            "type": "string",
            "description": "Vault-relative folder the document is moved to"
        },
        "createSubfolders": {"type": "boolean", "default": False},
        "subfolderProperty": {
            "type": "string",
            "description": "Property whose value becomes an extra folder segment"
        },
        "propertyName": {"type": "string"},
        "propertyValue": {"type": ["string", "number", "boolean"]},
        "matchType": {
            "type": "string",
            "enum": [m.value for m in MatchType],
            "default": MatchType.EQUALS.value
        },
        "caseSensitive": {"type": "boolean", "default": False},
        "useTags": {"type": "boolean", "default": False},
        "tagValue": {
            "type": "string",
            "description": "Tag to match when useTags is set; without it the rule matches by property"
        }
    }
}

SETTINGS_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "rules": {
            "type": "array",
            "items": RULE_SCHEMA
        },
        "enableAutoSort": {"type": "boolean"},
        "sortOnModify": {"type": "boolean"},
        "sortOnCreate": {"type": "boolean"},
        "showNotifications": {"type": "boolean"},
        "excludedFolders": {
            "type": "array",
            "items": {"type": "string"}
        },
        "verboseLogging": {"type": "boolean"}
    }
}


def validate_settings_json(data: Dict[str, Any]) -> List[str]:
    """Validate a settings JSON object.

    Args:
        data: The decoded settings document

    Returns:
        List of validation error messages, empty when valid
    """
    validator = jsonschema.Draft7Validator(
        SETTINGS_SCHEMA, format_checker=jsonschema.Draft7Validator.FORMAT_CHECKER
    )
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"Validation error at {path}: {error.message}")
    return errors


def validate_settings_file(file_path: Path) -> List[str]:
    """Validate a settings JSON file.

    Args:
        file_path: Path to the settings file

    Returns:
        List of validation error messages, empty when valid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return [f"JSON parsing error: {e.msg} at line {e.lineno}, column {e.colno}"]
    except OSError as e:
        return [f"Error reading file: {e}"]
    return validate_settings_json(data)
