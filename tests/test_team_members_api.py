NEW_MEMBER = {"name": "Umama", "email": "umama@example.com", "password": "password123", "team": "SMD"}


def test_create_and_list_member(client):
    created = client.post("/api/team-members", json=NEW_MEMBER)

    assert created.status_code == 200
    body = created.json()
    assert body["email"] == "umama@example.com"
    assert body["role"] == "team_member"
    assert body["isActive"] is True
    assert "password" not in body
    assert "password_hash" not in body

    listed = client.get("/api/team-members").json()
    assert [m["id"] for m in listed] == [body["id"]]


def test_create_requires_all_fields(client):
    response = client.post("/api/team-members", json={"name": "Umama", "email": "umama@example.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "All fields are required"


def test_list_filters_by_team(client):
    client.post("/api/team-members", json=NEW_MEMBER)
    client.post("/api/team-members", json={**NEW_MEMBER, "email": "q@example.com", "team": "QAC"})

    assert [m["email"] for m in client.get("/api/team-members?team=QAC").json()] == ["q@example.com"]


def test_update_member(client):
    member_id = client.post("/api/team-members", json=NEW_MEMBER).json()["id"]

    response = client.put(f"/api/team-members/{member_id}", json={"team": "Class Ops"})

    assert response.status_code == 200
    assert response.json()["member"]["team"] == "Class Ops"
    assert response.json()["member"]["name"] == "Umama"


def test_deactivated_member_is_hidden_and_cannot_log_in(client):
    member_id = client.post("/api/team-members", json=NEW_MEMBER).json()["id"]

    client.put(f"/api/team-members/{member_id}", json={"isActive": False})

    assert client.get("/api/team-members").json() == []
    login = client.post("/api/auth/team-login", json={"email": "umama@example.com", "password": "password123"})
    assert login.status_code == 401


def test_update_unknown_member_is_404(client):
    response = client.put("/api/team-members/missing", json={"name": "x"})

    assert response.status_code == 404


def test_delete_member(client):
    member_id = client.post("/api/team-members", json=NEW_MEMBER).json()["id"]

    response = client.delete(f"/api/team-members/{member_id}")

    assert response.status_code == 200
    assert response.json() == {"message": "Team member deleted successfully"}
    assert client.get("/api/team-members").json() == []
    assert client.delete(f"/api/team-members/{member_id}").status_code == 404
