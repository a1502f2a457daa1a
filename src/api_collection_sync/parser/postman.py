"""Postman Collection v2.1 transformer.

Walks the literal ``item`` tree of a Postman export. An entry with a nested
``item`` array is a folder; anything else is a request. Requests whose
method is not in ``VALID_METHODS`` are dropped.
"""

import logging
from datetime import datetime

from .base import (
    AddTo,
    ApiKeyAuth,
    Auth,
    AuthMode,
    BasicAuth,
    BodyMode,
    CollectionItem,
    FormData,
    FormDataFile,
    ItemType,
    KeyValue,
    RequestBody,
    RequestMetaData,
    SourceType,
    utcnow,
)
from .common import ensure_placeholders, request_item

logger = logging.getLogger(__name__)

VALID_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH"}

RAW_LANGUAGE_MODES = {
    "json": BodyMode.JSON,
    "xml": BodyMode.XML,
    "javascript": BodyMode.JAVASCRIPT,
    "text": BodyMode.TEXT,
    "html": BodyMode.HTML,
}

AUTH_MODES = {
    "bearer": AuthMode.BEARER,
    "basic": AuthMode.BASIC,
    "apikey": AuthMode.API_KEY,
}


def transform_postman(document: dict, acting_user: str, flatten: bool = False) -> dict[str, CollectionItem]:
    """Transform a Postman collection into ``{item id: root item}``.

    Root items may be folders or requests, so they are keyed by id.
    """
    now = utcnow()
    items = _convert_items(document.get("item") or [], document.get("auth"), acting_user, now)
    if flatten:
        items = flatten_folders(items)
    return {item.id: item for item in items}


def collection_info(document: dict) -> tuple[str, str]:
    """Name and description of a Postman collection."""
    info = document.get("info") or {}
    return str(info.get("name") or ""), _description(info.get("description"))


def _description(value) -> str:
    if isinstance(value, dict):
        return str(value.get("content") or "")
    return str(value or "")


def _convert_items(raw_items, inherited_auth, acting_user: str, now: datetime) -> list[CollectionItem]:
    converted = []
    for raw in raw_items if isinstance(raw_items, list) else []:
        if not isinstance(raw, dict):
            continue
        item = _convert_item(raw, inherited_auth, acting_user, now)
        if item is not None:
            converted.append(item)
    return converted


def _convert_item(raw: dict, inherited_auth, acting_user: str, now: datetime) -> CollectionItem | None:
    name = str(raw.get("name") or "")
    description = _description(raw.get("description"))

    if isinstance(raw.get("item"), list):
        auth = raw.get("auth") or inherited_auth
        return CollectionItem(
            name=name,
            description=description,
            type=ItemType.FOLDER,
            source=SourceType.SPEC,
            items=_convert_items(raw["item"], auth, acting_user, now),
            created_at=now,
            updated_at=now,
            created_by=acting_user,
            updated_by=acting_user,
        )

    request = raw.get("request")
    if isinstance(request, str):
        request = {"method": "GET", "url": request}
    if not isinstance(request, dict):
        return None

    method = str(request.get("method") or "GET").upper()
    if method not in VALID_METHODS:
        logger.debug("Skipping %s request %r", method, name)
        return None

    if description == "":
        description = _description(request.get("description"))
    return request_item(name, description, _convert_request(request, method, inherited_auth), acting_user, now)


def _convert_request(request: dict, method: str, inherited_auth) -> RequestMetaData:
    url = request.get("url")
    query, variables = [], []
    if isinstance(url, dict):
        query = url.get("query") or []
        variables = url.get("variable") or []
        url = url.get("raw") or ""

    headers = request.get("header")
    if not isinstance(headers, list):
        headers = []

    body = request.get("body")
    # A missing or null request auth inherits from the enclosing folder/collection.
    auth, auth_mode = _convert_auth(request.get("auth") or inherited_auth)

    converted = RequestMetaData(
        method=method,
        url=str(url or ""),
        body=_convert_body(body),
        headers=_convert_rows(headers),
        query_params=_convert_rows(query),
        path_params=_convert_rows(variables),
        auth=auth,
        selected_request_body_type=_body_type(body, headers),
        selected_request_auth_type=auth_mode,
    )
    ensure_placeholders(converted)
    return converted


def _convert_rows(rows) -> list[KeyValue]:
    """Convert Postman header/query/variable rows into key-value rows."""
    if not isinstance(rows, list):
        return []
    return [
        KeyValue(
            key=str(row.get("key") or row.get("name") or ""),
            value=str(row.get("value") or ""),
            checked=not row.get("disabled", False),
        )
        for row in rows
        if isinstance(row, dict)
    ]


def _convert_body(body) -> RequestBody:
    if not isinstance(body, dict):
        return RequestBody()

    mode = str(body.get("mode") or "").lower()
    if mode == "formdata":
        parts = [part for part in body.get("formdata") or [] if isinstance(part, dict)]
        return RequestBody(
            formdata=FormData(
                text=[
                    KeyValue(key=str(part.get("key") or ""), value=str(part.get("value") or ""), checked=False)
                    for part in parts
                    if part.get("type", "text") == "text"
                ],
                file=[
                    FormDataFile(
                        key=str(part.get("key") or ""),
                        value=_file_source(part.get("src")),
                        checked=False,
                        base=str(part.get("base") or ""),
                    )
                    for part in parts
                    if part.get("type") == "file"
                ],
            )
        )
    if mode == "urlencoded":
        return RequestBody(urlencoded=_convert_rows(body.get("urlencoded")))
    return RequestBody(raw=str(body.get("raw") or ""))


def _file_source(src) -> str:
    if isinstance(src, list):
        return str(src[0]) if src else ""
    return str(src or "")


def _content_type_mode(headers: list) -> BodyMode | None:
    for header in headers:
        if isinstance(header, dict) and str(header.get("key", "")).lower() == "content-type":
            media_type = str(header.get("value") or "").split(";")[0].strip().lower()
            try:
                mode = BodyMode(media_type)
            except ValueError:
                return None
            return None if mode == BodyMode.NONE else mode
    return None


def _body_type(body, headers: list) -> BodyMode:
    """Map a Postman body mode (plus Content-Type header) to a BodyMode."""
    if not isinstance(body, dict) or not body.get("mode"):
        return _content_type_mode(headers) or BodyMode.NONE

    mode = body["mode"]
    if mode == "raw":
        options = body.get("options")
        raw_options = options.get("raw") if isinstance(options, dict) else None
        language = raw_options.get("language") if isinstance(raw_options, dict) else None
        if isinstance(language, str) and language in RAW_LANGUAGE_MODES:
            return RAW_LANGUAGE_MODES[language]
        return _content_type_mode(headers) or BodyMode.TEXT
    if mode == "formdata":
        return BodyMode.FORMDATA
    if mode == "urlencoded":
        return BodyMode.URLENCODED
    return BodyMode.NONE


def _auth_params(auth: dict, kind: str) -> dict:
    """Postman stores auth settings as ``[{key, value}]``; older exports use a dict."""
    params = auth.get(kind)
    if isinstance(params, dict):
        return params
    if isinstance(params, list):
        return {entry.get("key"): entry.get("value") for entry in params if isinstance(entry, dict)}
    return {}


def _convert_auth(auth) -> tuple[Auth, AuthMode]:
    if not isinstance(auth, dict):
        return Auth(), AuthMode.NONE

    bearer = _auth_params(auth, "bearer")
    basic = _auth_params(auth, "basic")
    apikey = _auth_params(auth, "apikey")
    converted = Auth(
        bearer_token=str(bearer.get("token") or ""),
        basic_auth=BasicAuth(
            username=str(basic.get("username") or ""),
            password=str(basic.get("password") or ""),
        ),
        api_key=ApiKeyAuth(
            auth_key=str(apikey.get("key") or ""),
            auth_value=str(apikey.get("value") or ""),
            add_to=AddTo.QUERY_PARAMETER if apikey.get("in") == "query" else AddTo.HEADER,
        ),
    )
    return converted, AUTH_MODES.get(str(auth.get("type") or "noauth"), AuthMode.NONE)


def flatten_folders(items: list[CollectionItem]) -> list[CollectionItem]:
    """Keep first-level folders and dissolve everything nested below them.

    Requests from nested folders move up into their first-level folder,
    renamed ``sub/subsub/request`` so their origin stays visible.
    """
    flattened = []
    for item in items:
        if item.type == ItemType.FOLDER:
            flattened.append(item.model_copy(update={"items": _dissolve(item.items, "")}))
        else:
            flattened.append(item)
    return flattened


def _dissolve(items: list[CollectionItem], prefix: str) -> list[CollectionItem]:
    result = []
    for item in items:
        name = f"{prefix}/{item.name}" if prefix else item.name
        if item.type == ItemType.FOLDER:
            result.extend(_dissolve(item.items, name))
        else:
            result.append(item.model_copy(update={"name": name}))
    return result
