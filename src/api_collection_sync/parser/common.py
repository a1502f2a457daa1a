"""Helpers shared by the OpenAPI 2.0, OpenAPI 3.0 and Postman transformers."""

from datetime import datetime

from .base import (
    AddTo,
    AuthMode,
    CollectionItem,
    FormDataFile,
    ItemType,
    KeyValue,
    RequestMetaData,
    SourceType,
)
from .examples import as_text, synthesize

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

DEFAULT_TAG = "default"

FILE_PART_MARKER = "#@#"


def first_tag(operation: dict) -> str:
    tags = operation.get("tags")
    if isinstance(tags, list) and tags and isinstance(tags[0], str):
        return tags[0]
    return DEFAULT_TAG


def template_url(path: str, inline_query: bool = False) -> tuple[str, list[KeyValue], list[KeyValue]]:
    """Split a raw path into a templated URL plus the params it declares.

    ``{name}`` segments become path params. With ``inline_query`` a segment
    such as ``status=sold`` is taken out of the URL and kept as a query
    param instead (a Swagger 2.0 habit).
    """
    url = ""
    path_params: list[KeyValue] = []
    query_params: list[KeyValue] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if inline_query and "=" in segment:
            key, _, value = segment.partition("=")
            query_params.append(KeyValue(key=key, value=value, checked=True))
            continue
        if segment.startswith("{") and segment.endswith("}"):
            name = segment[1:-1]
            url += "/{" + name + "}"
            path_params.append(KeyValue(key=name, value="", checked=False))
        else:
            url += "/" + segment
    return url or "/", path_params, query_params


def merge_parameters(shared: list | None, own: list | None) -> list[dict]:
    """Combine path-level and operation-level parameters.

    Operation-level entries replace path-level ones with the same name and
    location. Entries without a location (unresolved refs) are skipped.
    """
    merged: dict[tuple[str, str], dict] = {}
    for param in list(shared or []) + list(own or []):
        if not isinstance(param, dict) or "in" not in param:
            continue
        merged[(str(param.get("name", "")), str(param["in"]))] = param
    return list(merged.values())


def parameter_value(param: dict) -> str:
    if "example" in param:
        return as_text(param["example"])
    schema = param.get("schema")
    if not isinstance(schema, dict):
        schema = param
    return as_text(synthesize(schema))


def route_parameter(request: RequestMetaData, location: str, name: str, value: str) -> None:
    """Place a header/query/path parameter into the matching request section."""
    if location == "header":
        request.headers.append(KeyValue(key=name, value=value, checked=True))
    elif location == "query":
        request.query_params.append(KeyValue(key=name, value=value, checked=False))
    elif location == "path":
        for row in request.path_params:
            if row.key == name:
                row.value = value
                return
        request.path_params.append(KeyValue(key=name, value=value, checked=False))


def schema_properties(schema) -> dict:
    """Properties of an object schema, including those of ``allOf`` branches."""
    if not isinstance(schema, dict):
        return {}
    properties: dict = {}
    for branch in schema.get("allOf") or []:
        properties.update(schema_properties(branch))
    own = schema.get("properties")
    if isinstance(own, dict):
        properties.update(own)
    return properties


def file_part(name: str) -> FormDataFile:
    return FormDataFile(key=name, value="", checked=False, base=FILE_PART_MARKER)


def security_requirements(operation: dict, document: dict) -> list:
    """Operation-level security overrides the document default."""
    if "security" in operation:
        requirements = operation["security"]
    else:
        requirements = document.get("security")
    return requirements if isinstance(requirements, list) else []


def apply_security(request: RequestMetaData, requirements: list, schemes: dict) -> None:
    """Wire the first usable security scheme into auth, headers and query."""
    if not isinstance(schemes, dict):
        return
    for requirement in requirements:
        if not isinstance(requirement, dict):
            continue
        for scheme_name in requirement:
            scheme = schemes.get(scheme_name)
            if isinstance(scheme, dict) and _apply_scheme(request, scheme):
                return


def _apply_scheme(request: RequestMetaData, scheme: dict) -> bool:
    kind = scheme.get("type")
    http_scheme = str(scheme.get("scheme", "")).lower()

    if kind == "apiKey":
        key_name = str(scheme.get("name", ""))
        request.auth.api_key.auth_key = key_name
        request.selected_request_auth_type = AuthMode.API_KEY
        if scheme.get("in") == "query":
            request.query_params.append(KeyValue(key=key_name, value="", checked=False))
            request.auth.api_key.add_to = AddTo.QUERY_PARAMETER
        else:
            if scheme.get("in") == "header":
                request.headers.append(KeyValue(key=key_name, value="", checked=False))
            request.auth.api_key.add_to = AddTo.HEADER
        return True

    if kind == "basic" or (kind == "http" and http_scheme == "basic"):
        request.selected_request_auth_type = AuthMode.BASIC
        return True

    if kind in ("oauth2", "openIdConnect") or (kind == "http" and http_scheme == "bearer"):
        request.selected_request_auth_type = AuthMode.BEARER
        return True

    return False


def ensure_placeholders(request: RequestMetaData) -> None:
    """Give every editable section at least one (empty) row."""
    if not request.headers:
        request.headers.append(KeyValue())
    if not request.query_params:
        request.query_params.append(KeyValue())
    if not request.body.formdata.text:
        request.body.formdata.text.append(KeyValue())
    if not request.body.formdata.file:
        request.body.formdata.file.append(FormDataFile())
    if not request.body.urlencoded:
        request.body.urlencoded.append(KeyValue())


def request_item(
    name: str,
    description: str,
    request: RequestMetaData,
    acting_user: str,
    now: datetime,
) -> CollectionItem:
    return CollectionItem(
        name=name,
        description=description,
        type=ItemType.REQUEST,
        source=SourceType.SPEC,
        request=request,
        created_at=now,
        updated_at=now,
        created_by=acting_user,
        updated_by=acting_user,
    )


def group_into_folders(
    entries: list[tuple[str, CollectionItem]],
    document: dict,
    base_url: str,
    acting_user: str,
    now: datetime,
) -> dict[str, CollectionItem]:
    """Group (tag, request) pairs into one folder per tag, in first-seen order.

    The base URL is prefixed to every request URL on the way in.
    """
    descriptions = {}
    for tag in document.get("tags") or []:
        if isinstance(tag, dict) and isinstance(tag.get("name"), str):
            descriptions[tag["name"]] = str(tag.get("description") or "")

    folders: dict[str, CollectionItem] = {}
    for tag, item in entries:
        if item.request is not None:
            item.request.url = base_url + item.request.url
        folder = folders.get(tag)
        if folder is None:
            folder = CollectionItem(
                name=tag,
                description=descriptions.get(tag, ""),
                type=ItemType.FOLDER,
                source=SourceType.SPEC,
                created_at=now,
                updated_at=now,
                created_by=acting_user,
                updated_by=acting_user,
            )
            folders[tag] = folder
        folder.items.append(item)
    return folders


def host_base_url(document: dict, local_base_url: str) -> str:
    """``scheme://host + basePath``, or the local placeholder without a host."""
    base_path = str(document.get("basePath") or "").rstrip("/")
    host = document.get("host")
    if host:
        schemes = document.get("schemes")
        scheme = schemes[0] if isinstance(schemes, list) and schemes else "https"
        return f"{scheme}://{host}{base_path}"
    return local_base_url + base_path
