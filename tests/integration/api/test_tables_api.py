"""API tests for the table routes."""

import pytest

BASE = "/api/v1/tables"

ITEMS = {
    "name": "Items",
    "columns": [
        {"name": "title", "type": "Text", "is_required": True},
        {"name": "stock", "type": "integer", "default_value": "0"},
    ],
}


async def _create(client, headers, **overrides):
    response = await client.post(BASE, json={**ITEMS, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_table(client, alice_headers):
    body = await _create(client, alice_headers)

    assert body["owner"] == {"kind": "user", "id": "alice"}
    assert body["visibility"] == "private"
    assert [(c["name"], c["type"], c["position"]) for c in body["columns"]] == [
        ("title", "text", 0),
        ("stock", "integer", 1),
    ]


@pytest.mark.asyncio
async def test_create_sale_table_marks_protected_columns(client, alice_headers):
    body = await _create(client, alice_headers, name="Shop", table_type="sale")

    protected = {c["name"] for c in body["columns"] if c["is_protected"]}
    assert protected == {"price", "qty"}


@pytest.mark.asyncio
async def test_create_requires_identity(client):
    response = await client.post(BASE, json=ITEMS)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_with_both_identities_rejected(client):
    response = await client.post(BASE, json=ITEMS, headers={"X-User-Id": "alice", "X-Api-Token-Id": "tok"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_invalid_visibility(client, alice_headers):
    response = await client.post(BASE, json={**ITEMS, "visibility": "hidden"}, headers=alice_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "ValidationError"
    assert body["field_errors"][0]["field"] == "visibility"


@pytest.mark.asyncio
async def test_create_duplicate_column_names(client, alice_headers):
    columns = [{"name": "title", "type": "text"}, {"name": "TITLE", "type": "text"}]

    response = await client.post(BASE, json={"name": "Dup", "columns": columns}, headers=alice_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_private_table_hidden_from_others(client, alice_headers, bob_headers):
    table = await _create(client, alice_headers)

    assert (await client.get(f"{BASE}/{table['id']}", headers=alice_headers)).status_code == 200
    response = await client.get(f"{BASE}/{table['id']}", headers=bob_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Read access to this table is required"


@pytest.mark.asyncio
async def test_admin_reads_private_table(client, alice_headers, admin_headers):
    table = await _create(client, alice_headers)

    response = await client.get(f"{BASE}/{table['id']}", headers=admin_headers)

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_missing_table(client, alice_headers):
    response = await client.get(f"{BASE}/missing", headers=alice_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "visibility,headers,expected",
    [
        ("private", {"X-User-Id": "alice"}, "admin"),
        ("private", {"X-User-Id": "bob"}, "none"),
        ("public", {}, "read"),
        ("public", {"X-User-Id": "bob"}, "read"),
        ("shared", {}, "read"),
        ("shared", {"X-User-Id": "bob"}, "write"),
        ("private", {"X-User-Id": "root", "X-User-Role": "admin"}, "admin"),
    ],
)
async def test_access_endpoint(client, alice_headers, visibility, headers, expected):
    table = await _create(client, alice_headers, visibility=visibility)

    response = await client.get(f"{BASE}/{table['id']}/access", headers=headers)

    assert response.status_code == 200
    assert response.json()["access"] == expected


@pytest.mark.asyncio
async def test_list_tables(client, alice_headers, bob_headers):
    await _create(client, alice_headers, name="Private")
    await _create(client, alice_headers, name="Public", visibility="public")
    await _create(client, bob_headers, name="Bobs")

    response = await client.get(BASE, headers=bob_headers, params={"sort_by": "name", "sort_order": "asc"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [t["name"] for t in body["items"]] == ["Bobs", "Public"]

    owned = await client.get(BASE, headers=bob_headers, params={"owned": True})
    assert [t["name"] for t in owned.json()["items"]] == ["Bobs"]


@pytest.mark.asyncio
async def test_update_visibility(client, alice_headers, bob_headers):
    table = await _create(client, alice_headers)

    response = await client.patch(f"{BASE}/{table['id']}", json={"visibility": "shared"}, headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["visibility"] == "shared"
    assert (await client.get(f"{BASE}/{table['id']}", headers=bob_headers)).status_code == 200


@pytest.mark.asyncio
async def test_update_requires_admin_access(client, alice_headers, bob_headers):
    table = await _create(client, alice_headers, visibility="shared")

    response = await client.patch(f"{BASE}/{table['id']}", json={"name": "Mine"}, headers=bob_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access to this table is required"


@pytest.mark.asyncio
async def test_delete_table(client, alice_headers):
    table = await _create(client, alice_headers)

    response = await client.delete(f"{BASE}/{table['id']}", headers=alice_headers)

    assert response.status_code == 204
    assert (await client.get(f"{BASE}/{table['id']}", headers=alice_headers)).status_code == 404


@pytest.mark.asyncio
async def test_clone_table(client, alice_headers, bob_headers):
    table = await _create(client, alice_headers, visibility="public")

    response = await client.post(f"{BASE}/clone", json={"table_id": table["id"]}, headers=bob_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Items Copy"
    assert body["owner"]["id"] == "bob"
    assert [c["name"] for c in body["columns"]] == ["title", "stock"]


@pytest.mark.asyncio
async def test_clone_needs_read_access(client, alice_headers, bob_headers):
    table = await _create(client, alice_headers)

    response = await client.post(f"{BASE}/clone", json={"table_id": table["id"]}, headers=bob_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_mass_action(client, alice_headers, bob_headers):
    mine = await _create(client, alice_headers, name="Mine")
    theirs = await _create(client, bob_headers, name="Theirs")

    response = await client.post(
        f"{BASE}/mass-action",
        json={"action": "make_public", "ids": [mine["id"], theirs["id"]]},
        headers=alice_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"action": "make_public", "requested": 2, "affected": 1}


@pytest.mark.asyncio
async def test_mass_action_unknown_action(client, alice_headers):
    response = await client.post(
        f"{BASE}/mass-action", json={"action": "archive", "ids": ["x"]}, headers=alice_headers
    )

    assert response.status_code == 400
    assert response.json()["field_errors"][0]["code"] == "action_invalid"
