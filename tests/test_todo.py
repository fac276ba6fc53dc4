import pytest

pytestmark = pytest.mark.anyio


@pytest.fixture
async def owner_id(client):
    user = await client.post("/users/", json={"name": "Bob", "email": "bob@example.com"})
    return user.json()["id"]


async def test_create_and_get_todo(client, owner_id):
    todo_payload = {"title": "Buy milk", "owner_id": owner_id}
    res = await client.post("/todos/", json=todo_payload)
    assert res.status_code == 201
    todo_id = res.json()["id"]

    res = await client.get(f"/todos/{todo_id}")
    assert res.status_code == 200
    assert res.json()["title"] == "Buy milk"
    assert res.json()["completed"] is False


async def test_replace_todo(client, owner_id):
    res = await client.post("/todos/", json={"title": "Buy milk", "owner_id": owner_id})
    todo_id = res.json()["id"]

    res = await client.put(
        f"/todos/{todo_id}",
        json={"title": "Buy bread", "completed": True, "owner_id": owner_id},
    )
    assert res.status_code == 200
    assert res.json() == {"id": todo_id, "title": "Buy bread", "completed": True, "owner_id": owner_id}


async def test_patch_todo_keeps_other_fields(client, owner_id):
    res = await client.post("/todos/", json={"title": "Walk dog", "owner_id": owner_id})
    todo_id = res.json()["id"]

    res = await client.patch(f"/todos/{todo_id}", json={"completed": True})
    assert res.status_code == 200
    assert res.json()["title"] == "Walk dog"
    assert res.json()["completed"] is True

    res = await client.get("/todos/")
    assert [t["completed"] for t in res.json()] == [True]


async def test_patch_empty_body_returns_current(client, owner_id):
    res = await client.post("/todos/", json={"title": "Read", "owner_id": owner_id})
    todo_id = res.json()["id"]

    res = await client.patch(f"/todos/{todo_id}", json={})
    assert res.status_code == 200
    assert res.json()["title"] == "Read"


async def test_missing_todo(client, owner_id):
    res = await client.put("/todos/123", json={"title": "x", "owner_id": owner_id})
    assert res.status_code == 404
    res = await client.patch("/todos/123", json={"title": "x"})
    assert res.status_code == 404


async def test_delete_todo(client, owner_id):
    res = await client.post("/todos/", json={"title": "Trash", "owner_id": owner_id})
    todo_id = res.json()["id"]

    res = await client.delete(f"/todos/{todo_id}")
    assert res.status_code == 204
    res = await client.get(f"/todos/{todo_id}")
    assert res.status_code == 404
