import pytest
from fastapi.testclient import TestClient

from conftest import VIN
from gateway.api import create_app


def _make_app(monkeypatch, provider):
    monkeypatch.setenv("ACCU_TRADE_API_KEY", "test-key")
    monkeypatch.setenv("ACCU_TRADE_BASE_URL", "https://provider.test")
    monkeypatch.setenv("LOG_FORMAT", "text")
    return create_app(transport=provider.transport)


@pytest.fixture
def client(monkeypatch, provider):
    with TestClient(_make_app(monkeypatch, provider)) as c:
        yield c


# ── Gateway routes ──────────────────────────────────────────────────


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_correlation_id_round_trip(client):
    resp = client.get("/health", headers={"X-Correlation-ID": "trace-42"})
    assert resp.headers.get("X-Correlation-ID") == "trace-42"
    assert "X-Correlation-ID" in client.get("/health").headers


def test_decode_vin(client):
    resp = client.post("/vehicle/vin", json={"vin": VIN})
    assert resp.status_code == 200
    body = resp.json()
    assert [c["gid"] for c in body] == ["G100", "G101"]
    assert body[0]["style"] == "EX 4D Sedan"


def test_decode_vin_invalid(client, provider):
    resp = client.post("/vehicle/vin", json={"vin": "12345"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid VIN"}
    assert provider.calls == []


def test_decode_vin_no_match(client, provider):
    provider.add("GET", f"/vehicleByVIN/{VIN}", [])
    resp = client.post("/vehicle/vin", json={"vin": VIN})
    assert resp.status_code == 404
    assert "error" in resp.json()


def test_missing_credential_is_500(client, provider, monkeypatch):
    monkeypatch.delenv("ACCU_TRADE_API_KEY")
    resp = client.get("/vehicle/gid/G100")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Valuation provider is not configured"}
    assert provider.calls == []


def test_vehicle_by_gid(client):
    resp = client.get("/vehicle/gid/G100")
    assert resp.status_code == 200
    assert resp.json() == {"gid": "G100", "tradeInValue": 5400, "basePrice": 5200, "marketValue": 6900}


def test_vehicle_value_includes_raw(client):
    body = client.get("/vehicle/gid/G100/value").json()
    assert body["marketValue"] == 6900
    assert body["rawResponse"]["avgMileage"] == 120000


def test_partial_pricing_is_502(client, provider):
    provider.add("GET", "/vehicle/G200", {"market": 100})
    resp = client.get("/vehicle/gid/G200")
    assert resp.status_code == 502


def test_upstream_status_passthrough(client, provider):
    provider.add("GET", "/vehicle/G201", {"message": "nope"}, status=422)
    assert client.get("/vehicle/gid/G201").status_code == 422
    provider.add("GET", "/vehicle/G202", {"message": "nope"}, status=503)
    assert client.get("/vehicle/gid/G202").status_code == 502


def test_mileage_adjustment(client):
    body = client.get("/vehicle/gid/G100/mileage/50000").json()
    assert body == {"adjustment": 7000, "desirable": True, "baseMiles": 120000, "currentMiles": 50000}


@pytest.mark.parametrize("mileage", ["lots", "\u00b2", "-1"])
def test_mileage_adjustment_rejects_non_numbers(client, provider, mileage):
    resp = client.get(f"/vehicle/gid/G100/mileage/{mileage}")
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert provider.calls == []


def test_quote(client):
    body = client.get("/vehicle/gid/G100/quote", params={"mileage": "50000"}).json()
    assert body["basePrice"] == 5200
    assert body["priceAdjustment"] == 7000
    assert body["desirable"] is True


def test_catalog_routes(client, provider):
    provider.add("GET", "/makes/byYear/2022", [{"make": "Audi"}])
    provider.add("GET", "/models/2022/Audi", ["A4"])
    provider.add("GET", "/styles/2022/Audi/A4", [{"style": "Komfort", "gid": "A4-1"}])

    assert client.get("/vehicle/makes", params={"year": "2022"}).json() == [{"value": "audi", "label": "Audi"}]
    assert client.get("/vehicle/models", params={"year": "2022", "make": "audi"}).json() == ["A4"]
    trims = client.get("/vehicle/trims", params={"year": "2022", "make": "audi", "model": "A4"}).json()
    assert trims == [{"trim": "Komfort", "gid": "A4-1"}]


def test_catalog_requires_selectors(client):
    resp = client.get("/vehicle/models", params={"year": "2022"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Make is required"}


def test_manual_lookup_routes(client, provider):
    provider.add("GET", "/vehicle/manual/2022/Audi/A4", [{"gid": "A4-1", "make": "Audi", "model": "A4", "style": "Komfort"}])
    provider.add("POST", "/vehicle/manual", [{"gid": "A4-2", "make": "Audi", "model": "A4", "style": "Technik"}])

    resp = client.get("/vehicle/manual", params={"year": "2022", "make": "Audi", "model": "A4"})
    assert resp.json()[0]["gid"] == "A4-1"
    resp = client.post("/vehicle/manual", json={"year": "2022", "make": "Audi", "model": "A4", "trim": "Technik"})
    assert resp.json()[0]["gid"] == "A4-2"


# ── Wizard sessions ─────────────────────────────────────────────────


CONTACT = {
    "first_name": "Jo",
    "last_name": "Tremblay",
    "phone": "514-555-0199",
    "email": "jo@example.com",
    "accept_terms": True,
}


def _new_session(client) -> str:
    resp = client.post("/wizard/sessions")
    assert resp.status_code == 201
    return resp.json()["sessionId"]


def test_wizard_session_full_flow(client, provider):
    resp = client.post("/wizard/sessions")
    assert resp.status_code == 201
    view = resp.json()
    sid = view["sessionId"]
    assert view["step"] == "vehicle"
    assert view["submit"] == {"label": "Find A Vehicle", "enabled": False}

    resp = client.post(f"/wizard/sessions/{sid}/vehicle/vin", json={"vin": VIN})
    assert resp.status_code == 200, resp.json()
    view = resp.json()
    assert len(view["candidates"]) == 2
    assert view["submit"] == {"label": "Get Vehicle Value", "enabled": False}

    resp = client.post(f"/wizard/sessions/{sid}/vehicle", json={"candidate_index": 0, "mileage": 50000})
    assert resp.status_code == 200
    view = resp.json()
    assert view["step"] == "specs"
    assert view["state"]["outputs"]["vehicle"]["vehicle_price_adjustment"] == 7000

    for step, body in [
        ("specs", {"exterior_color": "rapid-red"}),
        ("financing", {"financing_status": "financed"}),
        ("damage", {}),
        ("additional", {"has_winter_tires": True}),
        ("contact", CONTACT),
    ]:
        resp = client.post(f"/wizard/sessions/{sid}/steps/{step}", json=body)
        assert resp.status_code == 200, resp.json()
    assert resp.json()["step"] == "report"

    report = client.get(f"/wizard/sessions/{sid}/report").json()
    assert report["estimated_value"] == {
        "min": 10980.0,
        "max": 12200.0,
        "black_book_value": 5200.0,
        "tax_savings": 676.0,
        "total_benefit": 5876.0,
    }
    assert report["mileage_status"] == "Below Average"
    assert report["disclosures"]["specs"]["exterior_color"] == "rapid-red"


def test_wizard_unresolved_vehicle_rejected(client, provider):
    sid = _new_session(client)
    resp = client.post(
        f"/wizard/sessions/{sid}/vehicle",
        json={"year": "2022", "make": "Audi", "model": "A4", "mileage": 10000},
    )
    assert resp.status_code == 422
    assert "gid" in resp.json()["fields"]
    assert provider.calls == []
    assert client.get(f"/wizard/sessions/{sid}").json()["step"] == "vehicle"


def test_wizard_negative_mileage_is_422(client):
    sid = _new_session(client)
    resp = client.post(f"/wizard/sessions/{sid}/vehicle", json={"candidate_index": 0, "mileage": -1})
    assert resp.status_code == 422
    assert "error" in resp.json()


def test_wizard_step_order_enforced(client):
    sid = _new_session(client)
    resp = client.post(f"/wizard/sessions/{sid}/steps/specs", json={})
    assert resp.status_code == 409
    resp = client.post(f"/wizard/sessions/{sid}/steps/vehicle", json={})
    assert resp.status_code == 409
    assert client.get(f"/wizard/sessions/{sid}/report").status_code == 409
    assert client.post(f"/wizard/sessions/{sid}/back").status_code == 409


def _session_at_specs(client) -> str:
    sid = _new_session(client)
    resp = client.post(f"/wizard/sessions/{sid}/vehicle/vin", json={"vin": VIN})
    assert resp.status_code == 200, resp.json()
    resp = client.post(f"/wizard/sessions/{sid}/vehicle", json={"candidate_index": 0, "mileage": 50000})
    assert resp.status_code == 200, resp.json()
    assert resp.json()["step"] == "specs"
    return sid


def test_wizard_invalid_step_body(client):
    sid = _session_at_specs(client)

    resp = client.post(f"/wizard/sessions/{sid}/steps/specs", json={"sunroof": True})
    assert resp.status_code == 422
    assert "body" in resp.json()["fields"]

    resp = client.post(f"/wizard/sessions/{sid}/steps/specs", json={"interior_color": "tartan"})
    assert resp.status_code == 422
    assert "interior_color" in resp.json()["fields"]


def test_wizard_wrong_field_types_are_422(client):
    sid = _session_at_specs(client)
    for step, body in [("specs", {}), ("financing", {})]:
        resp = client.post(f"/wizard/sessions/{sid}/steps/{step}", json=body)
        assert resp.status_code == 200, resp.json()

    resp = client.post(f"/wizard/sessions/{sid}/steps/damage", json={"has_accident": True, "accident_details": None})
    assert resp.status_code == 422
    body = resp.json()
    assert "error" in body
    assert "accident_details" in body["fields"]
    assert client.get(f"/wizard/sessions/{sid}").json()["step"] == "damage"


def test_wizard_back_returns_saved_output(client):
    sid = _session_at_specs(client)
    resp = client.post(f"/wizard/sessions/{sid}/steps/specs", json={"interior_color": "cognac"})
    assert resp.status_code == 200, resp.json()

    view = client.post(f"/wizard/sessions/{sid}/back").json()
    assert view["step"] == "specs"
    assert view["current"]["interior_color"] == "cognac"


def test_wizard_session_not_found_and_discard(client):
    assert client.get("/wizard/sessions/missing").status_code == 404
    assert client.get("/wizard/sessions/missing").json() == {"error": "Wizard session not found"}

    sid = _new_session(client)
    assert client.delete(f"/wizard/sessions/{sid}").status_code == 204
    assert client.get(f"/wizard/sessions/{sid}").status_code == 404
    assert client.delete(f"/wizard/sessions/{sid}").status_code == 404
