def _as(actor_id: str) -> dict[str, str]:
    return {"X-Actor-Id": actor_id}


def _create(client, title: str = "New monitors") -> dict:
    response = client.post(
        "/api/v1/proposals",
        json={"title": title, "description": "Two monitors", "assignedTo": "user2", "type": "EQUIPMENT"},
        headers=_as("user1"),
    )
    assert response.status_code == 201
    return response.json()["data"]


def test_list_returns_seeded_demo_proposals(client):
    response = client.get("/api/v1/proposals", headers=_as("user3"))

    assert response.status_code == 200
    body = response.json()
    assert body["contract_version"] == "v1"
    assert body["correlation_id"]
    assert [p["id"] for p in body["data"]] == ["proposal1", "proposal2", "proposal3"]


def test_attention_scope_for_superior(client):
    response = client.get("/api/v1/proposals", params={"scope": "attention"}, headers=_as("user2"))

    assert [p["id"] for p in response.json()["data"]] == ["proposal1"]


def test_create_returns_camel_case_proposal(client):
    created = _create(client)

    assert created["status"] == "PENDING_SUPERIOR"
    assert created["assignedTo"] == "user2"
    assert created["createdByName"] == "John Doe"
    assert created["approvalSteps"] == []
    assert client.get(f"/api/v1/proposals/{created['id']}", headers=_as("user1")).status_code == 200


def test_missing_actor_header_returns_401_problem(client):
    response = client.get("/api/v1/proposals")

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["error_code"] == "UNAUTHENTICATED"


def test_unknown_actor_returns_403(client):
    response = client.get("/api/v1/proposals", headers=_as("intruder"))

    assert response.status_code == 403
    assert response.json()["error_code"] == "UNKNOWN_ACTOR"


def test_wrong_actor_returns_403_with_context(client):
    response = client.post("/api/v1/proposals/proposal1/approve", headers=_as("user4"))

    assert response.status_code == 403
    body = response.json()
    assert body["error_code"] == "NOT_AUTHORIZED"
    assert body["context"]["operation"] == "approve"
    assert body["context"]["proposal_id"] == "proposal1"
    assert body["context"]["precondition"] == "role"


def test_wrong_state_returns_409(client):
    response = client.post(
        "/api/v1/proposals/proposal2/registrar/reject", json={"reason": "late"}, headers=_as("user8")
    )

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "INVALID_STATE"
    assert body["context"]["actual"] == "APPROVED"
    assert body["context"]["expected"] == ["PENDING_REGISTRAR"]


def test_unknown_proposal_returns_404(client):
    response = client.get("/api/v1/proposals/missing", headers=_as("user1"))

    assert response.status_code == 404
    assert response.json()["error_code"] == "PROPOSAL_NOT_FOUND"


def test_missing_reason_returns_422(client):
    response = client.post("/api/v1/proposals/proposal1/reject", json={}, headers=_as("user2"))

    assert response.status_code == 422
    assert response.json()["error_code"] == "REASON_REQUIRED"


def test_approve_without_body_moves_to_admin(client):
    response = client.post("/api/v1/proposals/proposal1/approve", headers=_as("user2"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "PENDING_ADMIN"
    assert data["assignedTo"] == "user3"
    assert data["approvedBySuperior"] is True


def test_resubmit_rejected_demo_proposal_returns_to_first_superior(client):
    response = client.post("/api/v1/proposals/proposal3/resubmit", headers=_as("user1"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "PENDING_SUPERIOR"
    assert data["assignedTo"] == "user4"
    assert data["rejectionReason"] is None
    assert data["resubmitted"] is True


def test_update_and_delete(client):
    created = _create(client)

    patched = client.patch(
        f"/api/v1/proposals/{created['id']}",
        json={"budget": "$900", "fieldValues": {"quantity": 2}},
        headers=_as("user1"),
    )
    assert patched.status_code == 200
    assert patched.json()["data"]["budget"] == "$900"
    assert patched.json()["data"]["fieldValues"] == {"quantity": 2}

    forbidden = client.delete(f"/api/v1/proposals/{created['id']}", headers=_as("user5"))
    assert forbidden.status_code == 403

    deleted = client.delete(f"/api/v1/proposals/{created['id']}", headers=_as("user1"))
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/proposals/{created['id']}", headers=_as("user1")).status_code == 404


def test_comments_are_listed_by_kind(client):
    posted = client.post(
        "/api/v1/proposals/proposal3/comments", json={"text": "I will add detail"}, headers=_as("user1")
    )
    assert posted.status_code == 201

    workflow = client.get(
        "/api/v1/proposals/proposal3/comments", params={"kind": "workflow"}, headers=_as("user1")
    ).json()["data"]
    conversation = client.get(
        "/api/v1/proposals/proposal3/comments", params={"kind": "conversation"}, headers=_as("user1")
    ).json()["data"]

    assert [c["id"] for c in workflow] == ["comment3"]
    assert [c["text"] for c in conversation] == ["I will add detail"]
    assert conversation[0]["userName"] == "John Doe"


def test_blank_comment_returns_422(client):
    response = client.post(
        "/api/v1/proposals/proposal1/comments", json={"text": "  "}, headers=_as("user1")
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "COMMENT_REQUIRED"


def test_progress_and_allowed_actions(client):
    progress = client.get("/api/v1/proposals/proposal2/progress", headers=_as("user1")).json()["data"]
    assert progress == {
        "proposalId": "proposal2",
        "percentage": 100,
        "completedSteps": 4,
        "totalSteps": 4,
        "pendingApprovers": [],
    }

    actions = client.get("/api/v1/proposals/proposal1/actions", headers=_as("user2")).json()["data"]
    assert actions == ["approve", "reject", "request_revision", "add_comment"]

    creator_actions = client.get("/api/v1/proposals/proposal3/actions", headers=_as("user1")).json()
    assert "resubmit" in creator_actions["data"]


def test_assign_approvers_requires_admin_stage(client):
    response = client.post(
        "/api/v1/proposals/proposal1/approvers", json={"approverIds": ["user5"]}, headers=_as("user3")
    )

    assert response.status_code == 409


def test_creator_self_assignment_returns_422(client):
    created = _create(client)

    response = client.patch(
        f"/api/v1/proposals/{created['id']}", json={"assignedTo": "user1"}, headers=_as("user1")
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ASSIGNEE_NOT_SUPERIOR"
    assert client.get(f"/api/v1/proposals/{created['id']}", headers=_as("user1")).json()["data"][
        "assignedTo"
    ] == "user2"
