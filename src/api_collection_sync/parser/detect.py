"""Load API description documents and detect their dialect."""

import logging
from enum import Enum
from pathlib import Path

import yaml

from api_collection_sync.errors import InvalidSpecificationError

logger = logging.getLogger(__name__)


class Dialect(str, Enum):
    OPENAPI2 = "openapi2"
    OPENAPI3 = "openapi3"
    POSTMAN = "postman"


def load_document(file_path: Path) -> dict:
    """Read a JSON or YAML document into a mapping.

    YAML is a superset of JSON, so one loader covers both.
    """
    text = file_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidSpecificationError(f"Invalid specification: {e}") from e
    if not isinstance(data, dict):
        raise InvalidSpecificationError()
    return data


def detect_dialect(document: dict) -> Dialect:
    """Detect which transformer a parsed document belongs to.

    Raises InvalidSpecificationError when the document is neither OpenAPI
    nor a Postman collection.
    """
    if not isinstance(document, dict):
        raise InvalidSpecificationError()

    if "components" in document or "openapi" in document:
        dialect = Dialect.OPENAPI3
    elif "definitions" in document or "swagger" in document:
        dialect = Dialect.OPENAPI2
    elif isinstance(document.get("info"), dict) and isinstance(document.get("item"), list):
        dialect = Dialect.POSTMAN
    else:
        raise InvalidSpecificationError()

    logger.debug("Detected %s document", dialect.value)
    return dialect


def has_refs_section(document: dict) -> bool:
    """Whether the document carries a section ``$ref`` pointers can target."""
    return "components" in document or "definitions" in document
