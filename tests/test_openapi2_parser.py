import json
from pathlib import Path

from api_collection_sync.parser.base import AddTo, AuthMode, BodyMode
from api_collection_sync.parser.common import template_url
from api_collection_sync.parser.detect import load_document
from api_collection_sync.parser.openapi2 import transform_openapi2
from api_collection_sync.parser.refs import resolve_refs

FIXTURES = Path(__file__).parent / "fixtures"


def _folders():
    return transform_openapi2(resolve_refs(load_document(FIXTURES / "petstore_v2.json")), "alice")


def _by_operation(folders, operation_id):
    for folder in folders.values():
        for item in folder.items:
            if item.request.operation_id == operation_id:
                return item
    raise AssertionError(f"no operation {operation_id}")


class TestTemplateUrl:
    def test_path_params_are_templated(self):
        url, path_params, query_params = template_url("/users/{id}/posts")
        assert url == "/users/{id}/posts"
        assert [p.key for p in path_params] == ["id"]
        assert query_params == []

    def test_inline_query_segment_is_lifted(self):
        url, _, query_params = template_url("/pet/findByStatus/status=sold", inline_query=True)
        assert url == "/pet/findByStatus"
        assert query_params[0].key == "status"
        assert query_params[0].value == "sold"
        assert query_params[0].checked is True

    def test_root_path(self):
        assert template_url("/")[0] == "/"


class TestOpenApi2Transformer:
    def test_folders_follow_tags(self):
        folders = _folders()
        assert list(folders) == ["pet", "store", "default"]
        assert len(folders["pet"].items) == 5
        assert len(folders["store"].items) == 1
        assert folders["default"].items[0].name == "/health"
        assert folders["store"].description == "Access to Petstore orders"

    def test_base_url_from_host_and_first_scheme(self):
        item = _by_operation(_folders(), "getInventory")
        assert item.request.url == "https://petstore.swagger.io/v2/store/inventory"

    def test_local_base_url_without_host(self):
        document = {"swagger": "2.0", "basePath": "/api/", "paths": {"/ping": {"get": {}}}}
        folders = transform_openapi2(document, "alice", local_base_url="http://localhost:{{PORT}}")
        assert folders["default"].items[0].request.url == "http://localhost:{{PORT}}/api/ping"

    def test_body_parameter_becomes_json(self):
        item = _by_operation(_folders(), "addPet")
        assert item.request.selected_request_body_type == BodyMode.JSON
        assert json.loads(item.request.body.raw) == {
            "id": 0,
            "category": {"id": 0, "name": ""},
            "name": "doggie",
            "available": False,
            "photoUrls": [],
        }

    def test_header_api_key(self):
        item = _by_operation(_folders(), "addPet")
        assert item.request.selected_request_auth_type == AuthMode.API_KEY
        assert item.request.auth.api_key.add_to == AddTo.HEADER
        assert item.request.headers[0].key == "api_key"

    def test_query_api_key_and_inline_query(self):
        item = _by_operation(_folders(), "findPetsByStatus")
        req = item.request
        assert req.url == "https://petstore.swagger.io/v2/pet/findByStatus"
        assert [(q.key, q.value) for q in req.query_params] == [
            ("status", "available"),
            ("token", ""),
            ("limit", "0"),
        ]
        assert req.auth.api_key.add_to == AddTo.QUERY_PARAMETER
        assert req.auth.api_key.auth_key == "token"

    def test_header_parameter_is_checked(self):
        item = _by_operation(_folders(), "findPetsByStatus")
        header = item.request.headers[0]
        assert header.key == "X-Request-Id"
        assert header.checked is True

    def test_path_level_parameters_are_shared(self):
        item = _by_operation(_folders(), "getPetById")
        assert [(p.key, p.value) for p in item.request.path_params] == [("petId", "0")]

    def test_urlencoded_form_parameters(self):
        item = _by_operation(_folders(), "updatePetWithForm")
        req = item.request
        assert req.selected_request_body_type == BodyMode.URLENCODED
        assert [row.key for row in req.body.urlencoded] == ["name", "status"]

    def test_multipart_form_parameters(self):
        item = _by_operation(_folders(), "uploadFile")
        req = item.request
        assert req.selected_request_body_type == BodyMode.FORMDATA
        assert [row.key for row in req.body.formdata.text] == ["additionalMetadata"]
        assert req.body.formdata.file[0].key == "file"
        assert req.body.formdata.file[0].base == "#@#"

    def test_every_request_has_placeholder_rows(self):
        for folder in _folders().values():
            for item in folder.items:
                assert item.request.headers
                assert item.request.query_params
                assert item.request.body.urlencoded
                assert item.request.body.formdata.text
                assert item.request.body.formdata.file
