from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from conftest import auth_headers, create_project, register


@pytest.fixture
def users(client: TestClient) -> Dict[str, Dict[str, str]]:
    return {
        "alice": register(client, "alice@sitecollab.io", "Alice"),
        "bob": register(client, "bob@sitecollab.io", "Bob"),
        "carol": register(client, "carol@sitecollab.io", "Carol"),
    }


def _grant(client, project: Dict[str, Any], owner, email: str, permission: str):
    return client.post(
        f"/projects/{project['id']}/permissions",
        json={"email": email, "permission": permission},
        headers=auth_headers(owner),
    )


def test_create_and_list_projects(client, users) -> None:
    alice, bob = users["alice"], users["bob"]
    project = create_project(client, alice, "Portfolio")

    assert project["ownerId"] == alice["id"]
    assert project["isArchived"] is False
    assert project["linkAccess"] == "none"
    assert project["permissions"] == [{"userId": alice["id"], "permission": "write"}]

    assert [p["id"] for p in client.get("/projects", headers=auth_headers(alice)).json()] == [project["id"]]
    assert client.get("/projects", headers=auth_headers(bob)).json() == []

    _grant(client, project, alice, "bob@sitecollab.io", "read")
    assert [p["id"] for p in client.get("/projects", headers=auth_headers(bob)).json()] == [project["id"]]


def test_project_access_levels(client, users) -> None:
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    project = create_project(client, alice)
    _grant(client, project, alice, "bob@sitecollab.io", "read")
    url = f"/projects/{project['id']}"

    assert client.get(url, headers=auth_headers(bob)).status_code == 200
    assert client.get(url, headers=auth_headers(carol)).status_code == 403
    assert client.get("/projects/missing", headers=auth_headers(alice)).status_code == 404

    assert client.patch(url, json={"name": "Renamed"}, headers=auth_headers(bob)).status_code == 403
    response = client.patch(url, json={"name": "Renamed", "description": "New"}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["description"] == "New"


def test_archive_and_delete_are_owner_only(client, users) -> None:
    alice, bob = users["alice"], users["bob"]
    project = create_project(client, alice)
    _grant(client, project, alice, "bob@sitecollab.io", "write")
    url = f"/projects/{project['id']}"

    assert client.patch(url + "/archive", json={"isArchived": True}, headers=auth_headers(bob)).status_code == 403
    response = client.patch(url + "/archive", json={"isArchived": True}, headers=auth_headers(alice))
    assert response.json()["isArchived"] is True

    assert client.delete(url, headers=auth_headers(bob)).status_code == 403
    assert client.delete(url, headers=auth_headers(alice)).status_code == 204
    assert client.get(url, headers=auth_headers(alice)).status_code == 404


def test_delete_cascades_to_pages_and_versions(client, users) -> None:
    alice = users["alice"]
    project = create_project(client, alice)
    headers = auth_headers(alice)
    client.post("/pages", json={"projectId": project["id"], "clientId": "p1", "name": "Home"}, headers=headers)
    client.post(f"/projects/{project['id']}/versions", json={"snapshot": {"a": 1}}, headers=headers)

    assert client.delete(f"/projects/{project['id']}", headers=headers).status_code == 204
    assert client.get(f"/pages?projectId={project['id']}", headers=headers).status_code == 404


def test_link_access_configuration(client, users) -> None:
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    project = create_project(client, alice)
    url = f"/projects/{project['id']}/link-access"

    assert client.patch(url, json={"linkAccess": "read"}, headers=auth_headers(bob)).status_code == 403

    first = client.patch(url, json={"linkAccess": "read"}, headers=auth_headers(alice)).json()
    assert first["linkAccess"] == "read"
    assert first["linkToken"]

    same = client.patch(url, json={}, headers=auth_headers(alice)).json()
    assert same["linkToken"] == first["linkToken"]

    rotated = client.patch(url, json={"regenerate": True}, headers=auth_headers(alice)).json()
    assert rotated["linkToken"] != first["linkToken"]

    project_url = f"/projects/{project['id']}"
    assert client.get(project_url, headers=auth_headers(carol)).status_code == 403
    response = client.get(project_url + f"?linkToken={rotated['linkToken']}", headers=auth_headers(carol))
    assert response.status_code == 200


def test_permissions_management(client, users) -> None:
    alice, bob = users["alice"], users["bob"]
    project = create_project(client, alice)

    response = _grant(client, project, alice, "bob@sitecollab.io", "read")
    assert response.json() == {"userId": bob["id"], "permission": "read"}

    # Повторная выдача обновляет существующую строку
    assert _grant(client, project, alice, "bob@sitecollab.io", "write").json()["permission"] == "write"
    listed = client.get(f"/projects/{project['id']}/permissions", headers=auth_headers(bob)).json()
    assert sorted((p["userId"], p["permission"]) for p in listed) == sorted([
        (alice["id"], "write"), (bob["id"], "write"),
    ])

    assert _grant(client, project, alice, "alice@sitecollab.io", "read").status_code == 400
    assert _grant(client, project, alice, "nobody@sitecollab.io", "read").status_code == 404
    assert _grant(client, project, bob, "carol@sitecollab.io", "read").status_code == 403

    url = f"/projects/{project['id']}/permissions/{bob['id']}"
    assert client.delete(url, headers=auth_headers(alice)).status_code == 204
    assert client.get(f"/projects/{project['id']}", headers=auth_headers(bob)).status_code == 403


def test_versions_are_append_only(client, users) -> None:
    alice, bob = users["alice"], users["bob"]
    project = create_project(client, alice)
    _grant(client, project, alice, "bob@sitecollab.io", "read")
    url = f"/projects/{project['id']}/versions"

    response = client.post(url, json={"comment": "v1", "snapshot": {"pages": ["p1"]}}, headers=auth_headers(alice))
    assert response.status_code == 201
    v1 = response.json()
    assert v1["createdById"] == alice["id"]

    assert client.post(url, json={"snapshot": {}}, headers=auth_headers(bob)).status_code == 403

    restored = client.post(f"{url}/{v1['id']}/restore", headers=auth_headers(alice)).json()
    assert restored["id"] != v1["id"]
    assert restored["snapshot"] == {"pages": ["p1"]}
    assert restored["comment"] == f"Restored from version {v1['id']}"

    listed = client.get(url, headers=auth_headers(bob)).json()
    assert [v["id"] for v in listed] == [restored["id"], v1["id"]]
    assert client.get(f"{url}/{v1['id']}", headers=auth_headers(bob)).json()["comment"] == "v1"

    other = create_project(client, alice, "Other")
    response = client.get(f"/projects/{other['id']}/versions/{v1['id']}", headers=auth_headers(alice))
    assert response.status_code == 404


def test_locking(client, users) -> None:
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    project = create_project(client, alice)
    _grant(client, project, alice, "bob@sitecollab.io", "write")
    url = f"/projects/{project['id']}/locking"

    assert client.post(url + "/lock", headers=auth_headers(carol)).status_code == 403

    response = client.post(url + "/lock", headers=auth_headers(alice))
    assert response.json() == {"isLocked": True, "lockedById": alice["id"]}
    locked_at = client.get(f"/projects/{project['id']}", headers=auth_headers(alice)).json()["lockedAt"]
    assert locked_at is not None

    # Повторный захват владельцем блокировки обновляет время
    assert client.post(url + "/lock", headers=auth_headers(alice)).status_code == 200

    response = client.post(url + "/lock", headers=auth_headers(bob))
    assert response.status_code == 409
    assert response.json() == {"detail": "Project is already locked by another user"}
    assert client.post(url + "/unlock", headers=auth_headers(bob)).status_code == 409

    response = client.post(url + "/unlock", headers=auth_headers(alice))
    assert response.json() == {"isLocked": False, "lockedById": None}
    project_state = client.get(f"/projects/{project['id']}", headers=auth_headers(alice)).json()
    assert project_state["lockedById"] is None
    assert project_state["lockedAt"] is None

    assert client.post(url + "/lock", headers=auth_headers(bob)).json()["lockedById"] == bob["id"]
