from conftest import auth_headers


def add_skill(client, admin, **overrides):
    body = {"name": "Python", "category": "programming", "description": "General purpose language"}
    body.update(overrides)
    return client.post("/api/admin/skills", json=body, headers=auth_headers(admin))


def test_create_and_public_list(client, admin):
    assert add_skill(client, admin).status_code == 201
    add_skill(client, admin, name="Docker", category="tool")
    add_skill(client, admin, name="COBOL", isActive=False)

    skills = client.get("/api/skills").json()["skills"]
    assert sorted(s["name"] for s in skills) == ["Docker", "Python"]
    assert "usageCount" not in skills[0]

    tools = client.get("/api/skills?category=tool").json()["skills"]
    assert [s["name"] for s in tools] == ["Docker"]
    found = client.get("/api/skills?search=general").json()["skills"]
    assert [s["name"] for s in found] == ["Python"]


def test_public_list_orders_by_usage(client, db, admin):
    add_skill(client, admin, name="Alpha")
    add_skill(client, admin, name="Beta")
    db.skills.update_one({"name": "Beta"}, {"$set": {"usageCount": 5}})
    assert [s["name"] for s in client.get("/api/skills").json()["skills"]] == ["Beta", "Alpha"]


def test_duplicate_name_case_insensitive(client, admin):
    add_skill(client, admin)
    assert add_skill(client, admin, name="python").status_code == 400


def test_invalid_category(client, admin):
    assert add_skill(client, admin, category="hobby").status_code == 422


def test_update_and_delete(client, admin):
    headers = auth_headers(admin)
    python = add_skill(client, admin).json()["skill"]
    docker = add_skill(client, admin, name="Docker", category="tool").json()["skill"]

    r = client.put(f"/api/admin/skills/{docker['_id']}", json={"name": "Python", "category": "tool"},
                   headers=headers)
    assert r.status_code == 400

    r = client.put(f"/api/admin/skills/{python['_id']}",
                   json={"name": "Python", "category": "programming", "level": "advanced"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["skill"]["level"] == "advanced"

    assert client.delete(f"/api/admin/skills/{python['_id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/admin/skills/{python['_id']}", headers=headers).status_code == 404


def test_admin_routes_need_admin(client, interviewer):
    assert client.get("/api/admin/skills", headers=auth_headers(interviewer)).status_code == 403
