"""Unified data models for imported API collections.

All transformers (OpenAPI 2.0, OpenAPI 3.0, Postman) convert their input
into these standard models; the sync engine reconciles trees of them.
Models serialise with camelCase aliases to match the stored document shape.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from api_collection_sync.errors import InvalidItemError


class ItemType(str, Enum):
    FOLDER = "FOLDER"
    REQUEST = "REQUEST"
    WEBSOCKET = "WEBSOCKET"


class SourceType(str, Enum):
    SPEC = "SPEC"
    USER = "USER"


class BodyMode(str, Enum):
    NONE = "none"
    JSON = "application/json"
    XML = "application/xml"
    URLENCODED = "application/x-www-form-urlencoded"
    FORMDATA = "multipart/form-data"
    JAVASCRIPT = "application/javascript"
    TEXT = "text/plain"
    HTML = "text/html"


class AuthMode(str, Enum):
    NONE = "No Auth"
    BEARER = "Bearer Token"
    BASIC = "Basic Auth"
    API_KEY = "API Key"


class AddTo(str, Enum):
    HEADER = "Header"
    QUERY_PARAMETER = "Query Parameter"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyValue(CamelModel):
    """A single editable row (header, query param, path param, form field)."""

    key: str = ""
    value: str = ""
    checked: bool = False


class FormDataFile(CamelModel):
    key: str = ""
    value: str = ""
    checked: bool = False
    base: str = ""


class FormData(CamelModel):
    text: list[KeyValue] = []
    file: list[FormDataFile] = []


class RequestBody(CamelModel):
    raw: str = ""
    urlencoded: list[KeyValue] = []
    formdata: FormData = Field(default_factory=FormData)


class BasicAuth(CamelModel):
    username: str = ""
    password: str = ""


class ApiKeyAuth(CamelModel):
    auth_key: str = ""
    auth_value: str = ""
    add_to: AddTo = AddTo.HEADER


class Auth(CamelModel):
    bearer_token: str = ""
    basic_auth: BasicAuth = Field(default_factory=BasicAuth)
    api_key: ApiKeyAuth = Field(default_factory=ApiKeyAuth)


class RequestMetaData(CamelModel):
    """Everything needed to pre-fill an HTTP request."""

    method: str  # GET / POST / PUT / DELETE / PATCH
    url: str  # https://host/base/users/{id}
    operation_id: str = ""
    body: RequestBody = Field(default_factory=RequestBody)
    selected_request_body_type: BodyMode = BodyMode.NONE
    selected_request_auth_type: AuthMode = AuthMode.NONE
    headers: list[KeyValue] = []
    query_params: list[KeyValue] = []
    path_params: list[KeyValue] = []
    auth: Auth = Field(default_factory=Auth)


class WebSocketMetaData(CamelModel):
    url: str = ""
    message: str = ""
    headers: list[KeyValue] = []
    query_params: list[KeyValue] = []


class CollectionItem(CamelModel):
    """A folder, request or websocket node in a collection tree."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    type: ItemType
    source: SourceType = SourceType.SPEC
    is_deleted: bool = False
    items: list["CollectionItem"] = []
    request: RequestMetaData | None = None
    websocket: WebSocketMetaData | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str = ""
    updated_by: str = ""

    def identity_key(self) -> str:
        """Key used to match this item against a freshly imported tree.

        Folders match on name; requests on name + method, so the same path
        with two methods stays two items.
        """
        if self.type == ItemType.FOLDER:
            return self.name
        if self.type == ItemType.WEBSOCKET:
            return self.name + ItemType.WEBSOCKET.value
        if self.request is None or not self.request.method:
            raise InvalidItemError(f"Request item '{self.name}' has no method")
        return self.name + self.request.method.upper()


CollectionItem.model_rebuild()


class BranchRef(CamelModel):
    id: str
    name: str


class Collection(CamelModel):
    id: str | None = None
    name: str
    description: str = ""
    workspace_id: str = ""
    items: list[CollectionItem] = []
    total_requests: int = 0
    active_sync: bool = False
    active_sync_url: str = ""
    branches: list[BranchRef] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str = ""
    updated_by: str = ""


class Branch(CamelModel):
    id: str | None = None
    name: str
    collection_id: str
    items: list[CollectionItem] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str = ""
    updated_by: str = ""


def count_requests(items: list[CollectionItem]) -> int:
    """Count requests the way ``Collection.total_requests`` is defined.

    Root-level requests/websockets count one each; a folder counts its
    immediate children. Deeper levels are not walked.
    """
    total = 0
    for item in items:
        if item.type == ItemType.FOLDER:
            total += len(item.items)
        else:
            total += 1
    return total
