def test_list_seeded_types(client):
    response = client.get("/api/v1/proposal-types")

    assert response.status_code == 200
    assert [t["id"] for t in response.json()["data"]] == ["budget-type", "equipment-type", "hiring-type"]
    assert response.json()["data"][0]["requiredFields"][0]["name"] == "budget"


def test_options_and_fields(client):
    options = client.get("/api/v1/proposal-types/options").json()["data"]
    fields = client.get("/api/v1/proposal-types/EQUIPMENT/fields").json()["data"]
    other = client.get("/api/v1/proposal-types/OTHER/fields").json()["data"]

    assert options[0] == {"label": "Budget Request", "value": "BUDGET"}
    assert len(options) == 7
    assert [f["id"] for f in fields] == ["equipment-cost", "equipment-justification", "equipment-timeline"]
    assert other == []


def test_admin_manages_custom_types(client):
    created = client.post(
        "/api/v1/proposal-types",
        json={
            "name": "Travel Request",
            "description": "Conference travel",
            "requiredFields": [
                {"id": "destination", "name": "destination", "label": "Destination", "type": "TEXT"}
            ],
        },
        headers={"X-Actor-Id": "user3"},
    )
    assert created.status_code == 201
    type_id = created.json()["data"]["id"]
    assert created.json()["data"]["createdBy"] == "user3"

    renamed = client.patch(
        f"/api/v1/proposal-types/{type_id}", json={"name": "Travel"}, headers={"X-Actor-Id": "user3"}
    )
    assert renamed.json()["data"]["name"] == "Travel"
    assert client.get(f"/api/v1/proposal-types/{type_id}/fields").json()["data"][0]["id"] == "destination"

    deleted = client.delete(f"/api/v1/proposal-types/{type_id}", headers={"X-Actor-Id": "user3"})
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/proposal-types/{type_id}").status_code == 404


def test_non_admin_cannot_create_type(client):
    response = client.post(
        "/api/v1/proposal-types", json={"name": "Mine"}, headers={"X-Actor-Id": "user1"}
    )

    assert response.status_code == 403
    assert response.json()["context"]["expected"] == "ADMIN"


def test_users_directory_endpoints(client):
    approvers = client.get("/api/v1/users", params={"role": "APPROVER"}).json()["data"]
    registrar = client.get("/api/v1/users/user8").json()["data"]
    missing = client.get("/api/v1/users/ghost")

    assert [u["id"] for u in approvers] == ["user5", "user6", "user7"]
    assert registrar["role"] == "REGISTRAR"
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "USER_NOT_FOUND"
