import pytest

from conftest import auth_headers, create_project, register


@pytest.fixture
def workspace(client):
    alice = register(client, "alice@sitecollab.io", "Alice")
    project = create_project(client, alice)
    return alice, project


def _create_page(client, user, project_id: str, client_id: str, name: str, **extra):
    return client.post(
        "/pages",
        json={"projectId": project_id, "clientId": client_id, "name": name, **extra},
        headers=auth_headers(user),
    )


def test_page_crud_flow(client, workspace) -> None:
    alice, project = workspace
    headers = auth_headers(alice)

    response = _create_page(client, alice, project["id"], "p1", "Home", html="<h1>Home</h1>")
    assert response.status_code == 201
    home = response.json()
    assert home["clientId"] == "p1"
    assert home["isDefault"] is True
    assert home["isDeleted"] is False

    about = _create_page(client, alice, project["id"], "p2", "About").json()
    assert about["isDefault"] is False

    assert client.get(f"/pages/{home['id']}", headers=headers).json()["html"] == "<h1>Home</h1>"
    by_client = client.get(f"/pages/by-client-id/p2?projectId={project['id']}", headers=headers)
    assert by_client.json()["id"] == about["id"]

    response = client.put(f"/pages/{about['id']}", json={"name": "About us", "isDefault": True}, headers=headers)
    assert response.json()["name"] == "About us"
    assert response.json()["isDefault"] is True
    assert client.get(f"/pages/{home['id']}", headers=headers).json()["isDefault"] is False

    response = client.delete(f"/pages/{about['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["isDeleted"] is True

    pages = client.get(f"/pages?projectId={project['id']}", headers=headers).json()
    assert [(p["clientId"], p["isDefault"]) for p in pages] == [("p1", True)]

    response = client.post(f"/pages/restore/{about['id']}", headers=headers)
    assert response.json()["isDeleted"] is False
    pages = client.get(f"/pages?projectId={project['id']}", headers=headers).json()
    assert [p["clientId"] for p in pages] == ["p1", "p2"]
    assert sum(p["isDefault"] for p in pages) == 1


def test_duplicate_client_id_conflicts(client, workspace) -> None:
    alice, project = workspace
    _create_page(client, alice, project["id"], "p1", "Home")

    response = _create_page(client, alice, project["id"], "p1", "Home again")
    assert response.status_code == 409


def test_last_page_cannot_be_deleted(client, workspace) -> None:
    alice, project = workspace
    home = _create_page(client, alice, project["id"], "p1", "Home").json()

    response = client.delete(f"/pages/{home['id']}", headers=auth_headers(alice))
    assert response.status_code == 400
    assert response.json() == {"detail": "Cannot delete the only page in the project"}


def test_page_routes_check_project_access(client, workspace) -> None:
    alice, project = workspace
    home = _create_page(client, alice, project["id"], "p1", "Home").json()
    mallory = register(client, "mallory@sitecollab.io", "Mallory")
    headers = auth_headers(mallory)

    assert client.get(f"/pages?projectId={project['id']}", headers=headers).status_code == 403
    assert client.get(f"/pages/{home['id']}", headers=headers).status_code == 403
    assert client.put(f"/pages/{home['id']}", json={"name": "x"}, headers=headers).status_code == 403
    assert _create_page(client, mallory, project["id"], "p9", "Mine").status_code == 403
    assert client.get("/pages/unknown", headers=auth_headers(alice)).status_code == 404
