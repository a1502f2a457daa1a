import json
from pathlib import Path

import pytest

from api_collection_sync.errors import InvalidSpecificationError
from api_collection_sync.parser.base import AddTo, AuthMode, BodyMode, ItemType, SourceType
from api_collection_sync.parser.detect import Dialect, detect_dialect, load_document
from api_collection_sync.parser.openapi3 import server_base_url, transform_openapi3
from api_collection_sync.parser.refs import resolve_refs

FIXTURES = Path(__file__).parent / "fixtures"


def _petstore() -> dict:
    return resolve_refs(load_document(FIXTURES / "petstore.yaml"))


def _requests(folders) -> list:
    return [item for folder in folders.values() for item in folder.items]


class TestDetectDialect:
    def test_detect_openapi3_yaml(self):
        assert detect_dialect(load_document(FIXTURES / "petstore.yaml")) == Dialect.OPENAPI3

    def test_detect_swagger2_json(self):
        assert detect_dialect(load_document(FIXTURES / "petstore_v2.json")) == Dialect.OPENAPI2

    def test_detect_postman(self):
        assert detect_dialect(load_document(FIXTURES / "sample.postman.json")) == Dialect.POSTMAN

    def test_version_key_without_components_is_openapi3(self):
        assert detect_dialect({"openapi": "3.0.3", "paths": {}}) == Dialect.OPENAPI3

    def test_unknown_document_is_rejected(self):
        with pytest.raises(InvalidSpecificationError, match="Invalid specification"):
            detect_dialect({"title": "not an api"})

    def test_non_mapping_file_is_rejected(self, tmp_path):
        f = tmp_path / "doc.md"
        f.write_text("# API Docs\nSome text")
        with pytest.raises(InvalidSpecificationError):
            load_document(f)


class TestOpenApi3Transformer:
    def test_groups_requests_by_first_tag(self):
        folders = transform_openapi3(_petstore(), "alice")
        assert list(folders) == ["pets"]
        folder = folders["pets"]
        assert folder.type == ItemType.FOLDER
        assert folder.source == SourceType.SPEC
        assert folder.description == "Everything about your Pets"
        assert len(folder.items) == 3

    def test_one_request_per_path_and_method(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        keys = {(r.name, r.request.method) for r in requests}
        assert keys == {("/pets", "GET"), ("/pets", "POST"), ("/pets/{petId}", "GET")}
        assert all(r.request.url for r in requests)

    def test_server_url_is_prefixed(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        get_pet = [r for r in requests if r.name == "/pets/{petId}"][0]
        assert get_pet.request.url == "https://petstore.example.com/v1/pets/{petId}"

    def test_query_parameter_routing(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        list_pets = [r for r in requests if r.request.operation_id == "listPets"][0]
        assert list_pets.description == "List all pets"
        assert list_pets.request.query_params[0].key == "limit"
        assert list_pets.request.query_params[0].value == "0"

    def test_path_parameter_uses_example(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        get_pet = [r for r in requests if r.name == "/pets/{petId}"][0]
        assert len(get_pet.request.path_params) == 1
        assert get_pet.request.path_params[0].key == "petId"
        assert get_pet.request.path_params[0].value == "42"

    def test_json_body_is_synthesized(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        create = [r for r in requests if r.request.method == "POST"][0]
        assert create.request.selected_request_body_type == BodyMode.JSON
        assert json.loads(create.request.body.raw) == {"name": "Fido", "tag": "", "age": 0}

    def test_api_key_security_adds_header(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        create = [r for r in requests if r.request.method == "POST"][0]
        assert create.request.headers[0].key == "X-API-KEY"
        assert create.request.auth.api_key.auth_key == "X-API-KEY"
        assert create.request.auth.api_key.add_to == AddTo.HEADER
        assert create.request.selected_request_auth_type == AuthMode.API_KEY

    def test_operation_without_security_has_no_auth(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        list_pets = [r for r in requests if r.request.operation_id == "listPets"][0]
        assert list_pets.request.selected_request_auth_type == AuthMode.NONE

    def test_empty_sections_get_placeholder_rows(self):
        requests = _requests(transform_openapi3(_petstore(), "alice"))
        get_pet = [r for r in requests if r.name == "/pets/{petId}"][0]
        req = get_pet.request
        assert len(req.headers) == 1 and req.headers[0].key == ""
        assert len(req.query_params) == 1 and req.query_params[0].key == ""
        assert len(req.body.urlencoded) == 1
        assert len(req.body.formdata.text) == 1
        assert len(req.body.formdata.file) == 1

    def test_audit_fields_use_acting_user(self):
        folders = transform_openapi3(_petstore(), "alice")
        folder = folders["pets"]
        assert folder.created_by == "alice"
        assert folder.items[0].updated_by == "alice"
        assert folder.items[0].created_at is not None


class TestOpenApi3Bodies:
    def _single(self, content: dict, **operation):
        document = {
            "openapi": "3.0.3",
            "info": {"title": "t"},
            "paths": {"/upload": {"post": {"requestBody": {"content": content}, **operation}}},
        }
        return transform_openapi3(document, "bob")["default"].items[0].request

    def test_urlencoded_rows_per_property(self):
        req = self._single({
            "application/x-www-form-urlencoded": {
                "schema": {"type": "object", "properties": {"user": {"type": "string"}, "age": {"type": "integer"}}}
            }
        })
        assert req.selected_request_body_type == BodyMode.URLENCODED
        assert [(r.key, r.value) for r in req.body.urlencoded] == [("user", ""), ("age", "0")]

    def test_multipart_splits_text_and_file_parts(self):
        req = self._single({
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "caption": {"type": "string"},
                        "image": {"type": "string", "format": "binary"},
                        "count": {"type": "integer"},
                    },
                }
            }
        })
        assert req.selected_request_body_type == BodyMode.FORMDATA
        assert [r.key for r in req.body.formdata.text] == ["caption"]
        assert [r.key for r in req.body.formdata.file] == ["image"]
        assert req.body.formdata.file[0].base == "#@#"

    def test_octet_stream_is_single_file_part(self):
        req = self._single({"application/octet-stream": {}})
        assert req.selected_request_body_type == BodyMode.FORMDATA
        assert req.body.formdata.file[0].key == "file"

    def test_all_of_and_one_of(self):
        req = self._single({
            "application/json": {
                "schema": {
                    "allOf": [
                        {"properties": {"a": {"type": "string"}}},
                        {"properties": {"b": {"oneOf": [{"type": "integer"}, {"type": "string"}]}}},
                    ]
                }
            }
        })
        assert json.loads(req.body.raw) == {"a": "", "b": 0}

    def test_unmatched_content_type_leaves_default_body(self):
        req = self._single({"application/xml": {"schema": {"type": "object"}}})
        assert req.selected_request_body_type == BodyMode.NONE
        assert req.body.raw == ""

    def test_bearer_security(self):
        document = {
            "openapi": "3.0.3",
            "components": {"securitySchemes": {"jwt": {"type": "http", "scheme": "bearer"}}},
            "security": [{"jwt": []}],
            "paths": {"/me": {"get": {}}, "/public": {"get": {"security": []}}},
        }
        requests = transform_openapi3(document, "bob")["default"].items
        assert requests[0].request.selected_request_auth_type == AuthMode.BEARER
        assert requests[1].request.selected_request_auth_type == AuthMode.NONE


class TestServerBaseUrl:
    def test_falls_back_to_local_placeholder(self):
        assert server_base_url({}, "http://localhost:{{PORT}}") == "http://localhost:{{PORT}}"

    def test_relative_server_is_appended_to_local_base(self):
        document = {"servers": [{"url": "/api/v3"}]}
        assert server_base_url(document, "http://localhost:{{PORT}}") == "http://localhost:{{PORT}}/api/v3"

    def test_host_without_servers(self):
        document = {"host": "api.example.com", "basePath": "/v1"}
        assert server_base_url(document, "http://localhost:{{PORT}}") == "https://api.example.com/v1"
