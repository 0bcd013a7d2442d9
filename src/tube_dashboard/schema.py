"""Helpers to load and validate the webhook response schemas."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaValidationError

from .errors import GenerationError

TITLES_RESPONSE = "titles_response"
THUMBNAIL_RESPONSE = "thumbnail_response"

# Schema name -> workflow named in error messages.
_WORKFLOWS = {
    TITLES_RESPONSE: "title generation",
    THUMBNAIL_RESPONSE: "thumbnail generation",
}


def schemas_dir() -> Path:
    """Directory holding the bundled JSON schema files."""
    return Path(__file__).resolve().parent / "schemas"


@lru_cache(maxsize=None)
def load_schema(name: str, directory: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache one schema by file stem."""
    base = Path(directory) if directory else schemas_dir()
    return json.loads((base / f"{name}.json").read_text(encoding="utf-8"))


def _body_path(error: SchemaValidationError) -> str:
    path = "body"
    for piece in error.absolute_path:
        path += f"[{piece}]" if isinstance(piece, int) else f".{piece}"
    return path


def describe_errors(errors: Iterable[SchemaValidationError], name: str) -> str:
    """One message for a rejected webhook body, e.g.
    ``Title generation response rejected: body[0] 1 is not of type 'string'``.
    """
    workflow = _WORKFLOWS.get(name, name)
    problems = "; ".join(f"{_body_path(err)} {err.message}" for err in errors)
    return f"{workflow.capitalize()} response rejected: {problems}"


def validate_response(payload: Any, name: str) -> Any:
    """Return ``payload`` if it matches the named schema, else raise GenerationError."""
    errors = list(Draft202012Validator(load_schema(name)).iter_errors(payload))
    if errors:
        raise GenerationError(describe_errors(errors, name))
    return payload
