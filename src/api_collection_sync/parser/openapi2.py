"""Swagger / OpenAPI 2.0 transformer.

Turns the ``paths`` of a (ref-resolved) Swagger 2.0 document into request
items grouped into one folder per tag.
"""

import json
import logging

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
    security_requirements,
    template_url,
)
from .examples import synthesize

logger = logging.getLogger(__name__)

# Checked in this order; the first media type the operation consumes wins.
CONSUMES_BODY_MODES = (
    ("application/json", BodyMode.JSON),
    ("application/javascript", BodyMode.JAVASCRIPT),
    ("text/html", BodyMode.HTML),
    ("application/xml", BodyMode.XML),
    ("text/xml", BodyMode.XML),
    ("application/x-www-form-urlencoded", BodyMode.URLENCODED),
    ("multipart/form-data", BodyMode.FORMDATA),
)


def transform_openapi2(
    document: dict,
    acting_user: str,
    local_base_url: str = LOCAL_BASE_URL,
) -> dict[str, CollectionItem]:
    """Transform a Swagger 2.0 document into ``{tag: folder}``."""
    now = utcnow()
    schemes = document.get("securityDefinitions") or {}
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

    logger.debug("Transformed %d Swagger 2.0 operations", len(entries))
    return group_into_folders(entries, document, host_base_url(document, local_base_url), acting_user, now)


def _consumed_body_mode(consumes) -> BodyMode:
    if not isinstance(consumes, list):
        return BodyMode.NONE
    for media_type, mode in CONSUMES_BODY_MODES:
        if media_type in consumes:
            return mode
    return BodyMode.NONE


def _transform_operation(
    path_name: str,
    method: str,
    operation: dict,
    shared_parameters,
    document: dict,
    schemes: dict,
) -> RequestMetaData:
    url, path_params, query_params = template_url(path_name, inline_query=True)
    request = RequestMetaData(
        method=method.upper(),
        url=url,
        operation_id=str(operation.get("operationId") or ""),
        path_params=path_params,
        query_params=query_params,
    )
    body_mode = _consumed_body_mode(operation.get("consumes") or document.get("consumes"))
    request.selected_request_body_type = body_mode

    apply_security(request, security_requirements(operation, document), schemes)

    for param in merge_parameters(shared_parameters, operation.get("parameters")):
        location = param["in"]
        name = str(param.get("name", ""))
        if location == "body":
            _apply_body_parameter(request, param)
        elif location == "formData":
            _apply_form_parameter(request, param, name)
        else:
            route_parameter(request, location, name, parameter_value(param))

    ensure_placeholders(request)
    return request


def _apply_body_parameter(request: RequestMetaData, param: dict) -> None:
    schema = param.get("schema")
    if not isinstance(schema, dict):
        return
    # A body parameter implies JSON unless consumes said otherwise.
    if request.selected_request_body_type in (BodyMode.NONE, BodyMode.JSON):
        request.body.raw = json.dumps(synthesize(schema))
        request.selected_request_body_type = BodyMode.JSON


def _apply_form_parameter(request: RequestMetaData, param: dict, name: str) -> None:
    mode = request.selected_request_body_type
    if mode == BodyMode.FORMDATA or (mode == BodyMode.NONE and param.get("type") == "file"):
        if param.get("type") == "file":
            request.body.formdata.file.append(file_part(name))
        else:
            request.body.formdata.text.append(KeyValue(key=name, value=parameter_value(param), checked=False))
        request.selected_request_body_type = BodyMode.FORMDATA
    elif mode in (BodyMode.NONE, BodyMode.URLENCODED):
        request.body.urlencoded.append(KeyValue(key=name, value=parameter_value(param), checked=False))
        request.selected_request_body_type = BodyMode.URLENCODED
