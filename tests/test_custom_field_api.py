import uuid
from http import HTTPStatus

from fastapi.testclient import TestClient

RISK_TIER = {
    "entity_type": "contract",
    "name": "riskTier",
    "label": "Risk tier",
    "field_type": "select_single_dropdown",
    "select_options": ["low", "medium", "high"],
    "is_required": True,
}


def _create(client: TestClient, **overrides) -> dict:
    response = client.post("/custom-field-definitions", json={**RISK_TIER, **overrides})
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


def test_definition_crud_flow(client: TestClient) -> None:
    response = client.post(
        "/custom-field-definitions",
        json=RISK_TIER,
        headers={"X-Actor-Id": "admin-1"},
    )
    assert response.status_code == HTTPStatus.CREATED
    created = response.json()
    assert created["created_by"] == "admin-1"
    assert created["select_options"] == ["low", "medium", "high"]
    assert created["is_active"] is True

    response = client.get(f"/custom-field-definitions/{created['id']}")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["name"] == "riskTier"

    response = client.patch(
        f"/custom-field-definitions/{created['id']}",
        json={"label": "Risk level", "help_text": "Assessed at signing"},
    )
    assert response.status_code == HTTPStatus.OK
    assert response.json()["label"] == "Risk level"

    response = client.get("/custom-field-definitions", params={"entity_type": "contract"})
    assert [item["name"] for item in response.json()] == ["riskTier"]

    response = client.delete(f"/custom-field-definitions/{created['id']}")
    assert response.status_code == HTTPStatus.NO_CONTENT
    assert client.get("/custom-field-definitions", params={"entity_type": "contract"}).json() == []
    inactive = client.get(
        "/custom-field-definitions", params={"entity_type": "contract", "include_inactive": True}
    ).json()
    assert [item["is_active"] for item in inactive] == [False]

    response = client.post(f"/custom-field-definitions/{created['id']}/reactivate")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["is_active"] is True

    response = client.delete(f"/custom-field-definitions/{created['id']}/hard")
    assert response.status_code == HTTPStatus.NO_CONTENT
    response = client.get(f"/custom-field-definitions/{created['id']}")
    assert response.status_code == HTTPStatus.NOT_FOUND


def test_definition_error_statuses(client: TestClient) -> None:
    _create(client)

    response = client.post("/custom-field-definitions", json=RISK_TIER)
    assert response.status_code == HTTPStatus.CONFLICT
    assert "already exists" in response.json()["detail"]

    response = client.post(
        "/custom-field-definitions",
        json={**RISK_TIER, "name": "other", "select_options": None},
    )
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

    response = client.post("/custom-field-definitions", json={**RISK_TIER, "name": "has space"})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

    response = client.patch(f"/custom-field-definitions/{uuid.uuid4()}", json={"label": "x"})
    assert response.status_code == HTTPStatus.NOT_FOUND


def test_reorder_definitions(client: TestClient) -> None:
    first = _create(client, name="first", display_order=1)
    second = _create(client, name="second", display_order=2)

    response = client.put(
        "/custom-field-definitions/reorder/contract",
        json=[{"id": first["id"], "display_order": 5}, {"id": second["id"], "display_order": 3}],
    )
    assert response.status_code == HTTPStatus.NO_CONTENT

    listed = client.get("/custom-field-definitions", params={"entity_type": "contract"}).json()
    assert [item["name"] for item in listed] == ["second", "first"]

    response = client.put(
        "/custom-field-definitions/reorder/client",
        json=[{"id": first["id"], "display_order": 0}],
    )
    assert response.status_code == HTTPStatus.NOT_FOUND


def test_values_write_and_read(client: TestClient) -> None:
    _create(client)
    _create(client, name="seats", label="Seats", field_type="number_integer", select_options=None, is_required=False)
    entity_id = uuid.uuid4()

    response = client.put(f"/custom-field-values/contract/{entity_id}", json={"values": {}})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["detail"] == {
        "message": "Custom field validation failed",
        "errors": {"riskTier": "Risk tier is required"},
    }

    response = client.put(
        f"/custom-field-values/contract/{entity_id}",
        json={"values": {"riskTier": "high", "seats": "12"}},
        headers={"X-Actor-Id": "sales-7"},
    )
    assert response.status_code == HTTPStatus.OK, response.text
    body = response.json()
    assert body["values"] == {"riskTier": "high", "seats": 12}
    assert [field["display"] for field in body["fields"]] == ["high", "12"]

    response = client.patch(f"/custom-field-values/contract/{entity_id}", json={"values": {"seats": "abc"}})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["detail"]["errors"] == {"seats": "Must be a valid integer"}

    response = client.patch(f"/custom-field-values/contract/{entity_id}", json={"values": {"seats": 15}})
    assert response.status_code == HTTPStatus.OK
    assert response.json()["values"] == {"riskTier": "high", "seats": 15}

    response = client.delete(f"/custom-field-values/contract/{entity_id}")
    assert response.status_code == HTTPStatus.NO_CONTENT
    response = client.get(f"/custom-field-values/contract/{entity_id}")
    assert response.json()["values"] == {"riskTier": None, "seats": None}


def test_validate_is_a_dry_run(client: TestClient) -> None:
    _create(client)
    response = client.post("/custom-field-values/contract/validate", json={"values": {"riskTier": "extreme"}})
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["values"] == {}
    assert body["errors"]["riskTier"]["code"] == "validation"

    response = client.post("/custom-field-values/contract/validate", json={"values": {"riskTier": "low"}})
    assert response.json() == {"values": {"riskTier": "low"}, "errors": {}}


def test_toggle_endpoint(client: TestClient) -> None:
    _create(
        client,
        name="regions",
        label="Regions",
        field_type="select_multi_checkbox",
        select_options=["emea", "apac"],
        is_required=False,
    )
    entity_id = uuid.uuid4()

    toggles = {"toggles": [{"name": "regions", "option": "apac"}]}
    response = client.post(f"/custom-field-values/contract/{entity_id}/toggle", json=toggles)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["values"] == {"regions": ["apac"]}

    response = client.post(f"/custom-field-values/contract/{entity_id}/toggle", json=toggles)
    assert response.json()["values"] == {"regions": None}


def test_form_endpoints(client: TestClient) -> None:
    _create(client)
    _create(client, name="budget", label="Budget", field_type="currency", select_options=None, is_required=False)
    entity_id = uuid.uuid4()
    client.put(f"/custom-field-values/contract/{entity_id}", json={"values": {"riskTier": "low", "budget": "2500"}})

    response = client.get("/custom-field-forms/contract", params={"entity_id": str(entity_id)})
    assert response.status_code == HTTPStatus.OK
    controls = {control["name"]: control for control in response.json()}
    assert controls["budget"]["prefix"] == "SAR"
    assert controls["budget"]["value"] == "2500"
    assert controls["riskTier"]["options"] == ["low", "medium", "high"]

    response = client.get(f"/custom-field-forms/contract/{entity_id}/display")
    assert [item["text"] for item in response.json()] == ["low", "SAR 2,500.00"]

    response = client.post(
        "/custom-field-forms/contract/evaluate",
        json={"values": {"budget": "abc"}, "validate_all": False},
    )
    body = response.json()
    assert body["is_valid"] is False
    assert body["states"] == {"riskTier": "pristine", "budget": "invalid"}

    response = client.post(
        "/custom-field-forms/contract/evaluate",
        json={"values": {"budget": "10", "riskTier": "medium"}, "validate_all": True},
    )
    body = response.json()
    assert body["is_valid"] is True
    assert body["errors"] == {}
    assert body["values"] == {"riskTier": "medium", "budget": "10"}
