"""Tests for the HTTP adapter's request and response bodies."""

from __future__ import annotations

import ast
import importlib
import inspect

import pytest
from starlette import status as st_status

from porkbun_gateway.models import DNSRecord, ErrorKind
from porkbun_gateway.responses import ImportRequest, ReconcileResponse


class TestReconcileResponse:
    """Tests for the response envelope."""

    def test_success_response(self):
        record = DNSRecord(id="7", domain="example.com", type="A", content="192.0.2.1")
        response = ReconcileResponse.success("Record created", "create", record=record)
        assert response.status == "success"
        assert response.code == st_status.HTTP_200_OK
        assert response.action == "create"
        assert response.kind is None
        assert response.record is record

    def test_error_response(self):
        response = ReconcileResponse.error(
            st_status.HTTP_404_NOT_FOUND,
            "Record does not exist",
            kind=ErrorKind.NOT_FOUND,
        )
        assert response.status == "error"
        assert response.code == st_status.HTTP_404_NOT_FOUND
        assert response.kind == ErrorKind.NOT_FOUND
        assert response.action is None

    def test_dump_excludes_none(self):
        response = ReconcileResponse.error(st_status.HTTP_502_BAD_GATEWAY, "boom")
        dumped = response.model_dump(mode="json", exclude_none=True)
        assert dumped == {"status": "error", "code": 502, "message": "boom"}


class TestImportRequest:
    """Tests for ImportRequest."""

    def test_id_field(self):
        assert ImportRequest(id="example.com/42").id == "example.com/42"

    def test_id_is_required(self):
        with pytest.raises(ValueError, match="id"):
            ImportRequest()


@pytest.mark.parametrize(
    "module_name",
    [
        "porkbun_gateway.models",
        "porkbun_gateway.exceptions",
        "porkbun_gateway.names",
        "porkbun_gateway.importer",
        "porkbun_gateway.client",
        "porkbun_gateway.reconcilers.base",
        "porkbun_gateway.reconcilers.records",
        "porkbun_gateway.reconcilers.nameservers",
    ],
)
def test_core_modules_do_not_import_http_adapter(module_name):
    tree = ast.parse(inspect.getsource(importlib.import_module(module_name)))
    imported = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            imported.update(alias.name.split(".")[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            imported.add(node.module.split(".")[0])
            if node.module.startswith("porkbun_gateway"):
                assert node.module not in {
                    "porkbun_gateway.responses",
                    "porkbun_gateway.server",
                }
    assert not imported & {"fastapi", "starlette", "uvicorn"}
