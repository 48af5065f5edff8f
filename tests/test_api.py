"""
FastAPI endpoint tests for the Route Optimizer API.

Uses httpx + FastAPI TestClient — no real server needed, no AI calls.
"""

from __future__ import annotations

import io
import json

import api
import pytest
from api import XLSX_MEDIA_TYPE, app
from fastapi.testclient import TestClient
from openpyxl import Workbook, load_workbook

from route_optimizer.config import Settings
from route_optimizer.llm_client import OpenAITextGenerator
from route_optimizer.pipeline import AddressSession

client = TestClient(app)


# ─── Sample data ────────────────────────────────────────────────────


def _xlsx() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Customer", "Address Line 1", "City"])
    sheet.append(["Acme", "1 Elm St", "Springfield"])
    sheet.append(["Globex", "2 Oak Ave", "Shelbyville"])
    sheet.append(["Initech", "99 Nowhere", "Atlantis"])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _item(address: str, valid: bool = True, error: str | None = None) -> dict:
    item = {
        "originalAddress": address,
        "houseNumber": address.split()[0],
        "streetName": " ".join(address.split(",")[0].split()[1:]),
        "city": address.split(", ")[1],
        "state": "IL",
        "zip": "62701",
        "isValid": valid,
    }
    if error:
        item["error"] = error
    return item


VALIDATION_RESPONSE = "```json\n" + json.dumps([
    _item("1 Elm St, Springfield"),
    _item("2 Oak Ave, Shelbyville"),
    _item("99 Nowhere, Atlantis", valid=False, error="City does not exist"),
]) + "\n```"

ROUTE_RESPONSE = json.dumps({"optimizedRoute": [{"id": 1}, {"id": 0}]})


def _upload(content: bytes | None = None):
    return client.post(
        "/addresses",
        files={"file": ("addresses.xlsx", content if content is not None else _xlsx(), XLSX_MEDIA_TYPE)},
    )


@pytest.fixture
def use_generator(make_generator):
    """Install a session whose AI service replays the given responses."""

    def _install(*responses):
        generator = make_generator(*responses)
        api._session = AddressSession(generator=generator, settings=Settings(api_key=""))
        return generator

    yield _install
    api._session = None


class TestHealthEndpoint:
    def test_health_returns_200(self, use_generator) -> None:
        use_generator()
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "version": "1.0.0", "addresses_loaded": 0}

    def test_health_without_session_returns_503(self) -> None:
        api._session = None
        assert client.get("/health").status_code == 503


class TestUploadEndpoint:
    def test_upload_validates_addresses(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE)
        resp = _upload()
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert data["validated_count"] == 2
        assert data["error_count"] == 1
        assert data["addresses"][0]["status"] == "VALIDATED"
        assert data["addresses"][0]["original_data"]["Customer"] == "Acme"
        assert data["addresses"][2]["error"] == "City does not exist"

    def test_listing_returns_current_set(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE)
        _upload()
        data = client.get("/addresses").json()
        assert [a["id"] for a in data["addresses"]] == [0, 1, 2]

    def test_bad_file_returns_422(self, use_generator) -> None:
        generator = use_generator()
        resp = _upload(b"not a workbook")
        assert resp.status_code == 422
        assert resp.json()["detail"]["code"] == "SPREADSHEET_INVALID"
        assert generator.calls == []

    def test_empty_ai_response_returns_502_and_clears(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE, "   ")
        _upload()
        resp = _upload()
        assert resp.status_code == 502
        assert resp.json()["detail"]["code"] == "EMPTY_RESPONSE"
        assert client.get("/addresses").json()["total"] == 0

    def test_malformed_ai_response_hides_raw_text(self, use_generator) -> None:
        use_generator("<html>upstream error</html>")
        resp = _upload()
        assert resp.status_code == 502
        detail = resp.json()["detail"]
        assert detail["code"] == "INVALID_RESPONSE"
        assert "upstream" not in detail["message"]

    def test_unconfigured_service_returns_503(self) -> None:
        api._session = AddressSession(
            generator=OpenAITextGenerator(Settings(api_key="")),
            settings=Settings(api_key=""),
        )
        try:
            resp = _upload()
        finally:
            api._session = None
        assert resp.status_code == 503
        assert resp.json()["detail"]["code"] == "SERVICE_NOT_CONFIGURED"

    def test_reset_clears_addresses(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE)
        _upload()
        resp = client.delete("/addresses")
        assert resp.status_code == 200
        assert resp.json()["total"] == 0


class TestRouteEndpoint:
    def test_route_orders_validated_addresses(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE, ROUTE_RESPONSE)
        _upload()
        resp = client.post("/route")
        assert resp.status_code == 200
        data = resp.json()
        assert data["stops"] == 2
        assert [a["id"] for a in data["route"]] == [1, 0]

    def test_route_without_addresses_returns_400(self, use_generator) -> None:
        generator = use_generator()
        resp = client.post("/route")
        assert resp.status_code == 400
        assert resp.json()["detail"]["message"] == (
            "At least two valid addresses are required to optimize a route."
        )
        assert generator.calls == []

    def test_route_failure_returns_502_and_keeps_addresses(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE, "")
        _upload()
        resp = client.post("/route")
        assert resp.status_code == 502
        assert resp.json()["detail"]["message"] == (
            "The AI service failed to optimize the route. Please try again."
        )
        assert client.get("/addresses").json()["total"] == 3


class TestExportEndpoint:
    def test_export_downloads_workbook(self, use_generator) -> None:
        use_generator(VALIDATION_RESPONSE)
        _upload()
        resp = client.get("/export")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == XLSX_MEDIA_TYPE
        assert "route_optimizer_results.xlsx" in resp.headers["content-disposition"]

        rows = list(load_workbook(io.BytesIO(resp.content)).active.iter_rows(values_only=True))
        assert "Validation Status" in rows[0]
        assert len(rows) == 4
