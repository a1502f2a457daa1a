"""OpenAPI 3.0 transformer.

Turns the ``paths`` of a (ref-resolved) OpenAPI 3.0 document into request
items grouped into one folder per tag.
"""

import json
import logging
import re

from api_collection_sync.config import LOCAL_BASE_URL

from .base import (
    BodyMode,
    CollectionItem,
    KeyValue,
    RequestMetaData,
    utcnow,
)
from .common import (
    HTTP_METHODS,
    apply_security,
    ensure_placeholders,
    file_part,
    first_tag,
    group_into_folders,
    host_base_url,
    merge_parameters,
    parameter_value,
    request_item,
    route_parameter,
    schema_properties,
    security_requirements,
    template_url,
)
from .examples import as_text, synthesize

logger = logging.getLogger(__name__)

SERVER_VARIABLE = re.compile(r"\{([^}]+)\}")


def transform_openapi3(
    document: dict,
    acting_user: str,
    local_base_url: str = LOCAL_BASE_URL,
) -> dict[str, CollectionItem]:
    """Transform an OpenAPI 3.0 document into ``{tag: folder}``."""
    now = utcnow()
    components = document.get("components")
    schemes = {}
    if isinstance(components, dict):
        schemes = components.get("securitySchemes") or {}
    entries: list[tuple[str, CollectionItem]] = []

    for path_name, path_item in (document.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if str(method).lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            request = _transform_operation(
                str(path_name), str(method), operation, path_item.get("parameters"), document, schemes
            )
            description = operation.get("summary") or operation.get("description") or ""
            entries.append(
                (first_tag(operation), request_item(str(path_name), description, request, acting_user, now))
            )

    logger.debug("Transformed %d OpenAPI 3.0 operations", len(entries))
    return group_into_folders(entries, document, server_base_url(document, local_base_url), acting_user, now)


def server_base_url(document: dict, local_base_url: str) -> str:
    """Base URL from ``servers[0]``, falling back to ``host``/local base.

    Server variables are replaced by their declared defaults; a relative
    server URL is appended to the local base.
    """
    servers = document.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict) and servers[0].get("url"):
        server = servers[0]
        variables = server.get("variables") or {}

        def substitute(match: re.Match) -> str:
            variable = variables.get(match.group(1))
            if isinstance(variable, dict) and "default" in variable:
                return str(variable["default"])
            return match.group(0)

        url = SERVER_VARIABLE.sub(substitute, str(server["url"])).rstrip("/")
        if "://" in url:
            return url
        return local_base_url + url
    return host_base_url(document, local_base_url)


def _transform_operation(
    path_name: str,
    method: str,
    operation: dict,
    shared_parameters,
    document: dict,
    schemes: dict,
) -> RequestMetaData:
    url, path_params, _ = template_url(path_name)
    request = RequestMetaData(
        method=method.upper(),
        url=url,
        operation_id=str(operation.get("operationId") or ""),
        path_params=path_params,
    )

    request_body = operation.get("requestBody")
    if isinstance(request_body, dict) and isinstance(request_body.get("content"), dict):
        _apply_content(request, request_body["content"])

    apply_security(request, security_requirements(operation, document), schemes)

    for param in merge_parameters(shared_parameters, operation.get("parameters")):
        route_parameter(request, param["in"], str(param.get("name", "")), parameter_value(param))

    ensure_placeholders(request)
    return request


def _apply_content(request: RequestMetaData, content: dict) -> None:
    """Fill the body from every supported media type.

    The first supported media type (in declaration order) becomes the
    selected body type.
    """
    selected = None
    for media_type, media in content.items():
        schema = media.get("schema") if isinstance(media, dict) else None
        mode = _fill_body(request, str(media_type).split(";")[0].strip().lower(), schema)
        if selected is None and mode is not None:
            selected = mode
    if selected is not None:
        request.selected_request_body_type = selected


def _fill_body(request: RequestMetaData, media_type: str, schema) -> BodyMode | None:
    if media_type == "application/json":
        if isinstance(schema, dict):
            request.body.raw = json.dumps(synthesize(schema))
        return BodyMode.JSON

    if media_type == "application/x-www-form-urlencoded":
        for name, prop in schema_properties(schema).items():
            request.body.urlencoded.append(KeyValue(key=name, value=as_text(synthesize(prop)), checked=False))
        return BodyMode.URLENCODED

    if media_type == "multipart/form-data":
        for name, prop in schema_properties(schema).items():
            if not isinstance(prop, dict) or prop.get("type") not in ("string", "object"):
                continue
            if prop.get("format") == "binary":
                request.body.formdata.file.append(file_part(name))
            else:
                value = as_text(prop["example"]) if "example" in prop else ""
                request.body.formdata.text.append(KeyValue(key=name, value=value, checked=False))
        return BodyMode.FORMDATA

    if media_type == "application/octet-stream":
        request.body.formdata.file.append(file_part("file"))
        return BodyMode.FORMDATA

    return None
