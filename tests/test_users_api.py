"""
API tests for user listing, patching, deletion and flat assignment.
"""


class TestUserList:
    """Test GET /users."""

    async def test_list_requires_token(self, client):
        response = await client.get("/api/users")

        assert response.status_code == 401

    async def test_list_includes_requester(self, client, test_user, auth_headers):
        response = await client.get("/api/users", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["items"][0]["email"] == test_user["email"]
        assert body["requester"]["id"] == test_user["id"]
        assert body["requester"]["first_name"] == test_user["first_name"]

    async def test_filters(self, client, register_user, auth_headers):
        await register_user(email="levan@example.com", first_name="Levan", last_name="Gelashvili")
        await register_user(email="mariam@example.com", first_name="Mariam", last_name="Gelovani")

        by_email = await client.get("/api/users", params={"email": "LEVAN@example.com"}, headers=auth_headers)
        by_last_name = await client.get("/api/users", params={"last_name": "gel"}, headers=auth_headers)
        paged = await client.get("/api/users", params={"limit": 1, "skip": 0}, headers=auth_headers)

        assert [u["first_name"] for u in by_email.json()["items"]] == ["Levan"]
        assert by_last_name.json()["count"] == 2
        assert len(paged.json()["items"]) == 1
        assert paged.json()["count"] == 3


class TestUserDetail:
    """Test GET, PATCH and DELETE /users/{id}."""

    async def test_get_user(self, client, test_user, auth_headers):
        response = await client.get(f"/api/users/{test_user['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == test_user["email"]

    async def test_get_unknown_user(self, client, auth_headers):
        response = await client.get("/api/users/00000000-0000-0000-0000-000000000000", headers=auth_headers)

        assert response.status_code == 404

    async def test_patch_ignores_fields_outside_allow_list(self, client, test_user, auth_headers):
        response = await client.patch(
            f"/api/users/{test_user['id']}",
            json={"first_name": " Salome ", "flats": ["x"], "hashed_password": "plain", "id": "other"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == test_user["id"]
        assert body["first_name"] == "Salome"
        assert body["flats"] == []

    async def test_patch_password_is_rehashed(self, client, test_user, auth_headers, login):
        response = await client.patch(
            f"/api/users/{test_user['id']}",
            json={"password": "new-secret"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        tokens = await login(test_user["email"], "new-secret")
        assert tokens["access_token"]

    async def test_patch_validates_values(self, client, test_user, auth_headers):
        response = await client.patch(
            f"/api/users/{test_user['id']}",
            json={"age": 500, "email": "nope"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert len(response.json()["error"]["details"]) == 2

    async def test_patch_email_clash(self, client, test_user, register_user, auth_headers):
        other, _ = await register_user()

        response = await client.patch(
            f"/api/users/{test_user['id']}",
            json={"email": other["email"]},
            headers=auth_headers,
        )

        assert response.status_code == 409

    async def test_delete_user(self, client, register_user, auth_headers):
        other, _ = await register_user()

        response = await client.delete(f"/api/users/{other['id']}", headers=auth_headers)
        again = await client.delete(f"/api/users/{other['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Deleted"}
        assert again.status_code == 404


class TestFlatAssignment:
    """Test POST /assign-flat and GET /users-with-flats."""

    async def test_assign_twice(self, client, test_user, auth_headers, create_flat):
        flat = await create_flat()
        payload = {"user_id": test_user["id"], "flat_id": flat["id"]}

        first = await client.post("/api/assign-flat", json=payload, headers=auth_headers)
        second = await client.post("/api/assign-flat", json=payload, headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["total_flats"] == 1
        assert second.status_code == 400
        assert second.json()["error"]["message"] == "Flat is already assigned to this user."

        user = (await client.get(f"/api/users/{test_user['id']}", headers=auth_headers)).json()
        assert [f["id"] for f in user["flats"]] == [flat["id"]]
        assert user["flats"][0]["square"] == 50

    async def test_assign_requires_both_ids(self, client, test_user, auth_headers):
        response = await client.post(
            "/api/assign-flat",
            json={"user_id": test_user["id"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "user_id and flat_id are required"

    async def test_assign_unknown_flat(self, client, test_user, auth_headers):
        response = await client.post(
            "/api/assign-flat",
            json={"user_id": test_user["id"], "flat_id": "00000000-0000-0000-0000-000000000000"},
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_users_with_flats_by_age(self, client, register_user, auth_headers):
        await register_user(age=20)

        younger = await client.get("/api/users-with-flats", params={"age": 25}, headers=auth_headers)
        none = await client.get("/api/users-with-flats", params={"age": 5}, headers=auth_headers)

        body = younger.json()
        assert body["count"] == 1
        assert [u["age"] for u in body["users"]] == [20]
        assert none.status_code == 404
        assert none.json()["error"]["message"] == "No users found"
