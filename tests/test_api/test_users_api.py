import uuid

from fastapi import status


class TestUserEndpoints:
    """Test /api/users."""

    def test_create_hides_password(self, test_client, sample_user_data):
        response = test_client.post("/api/users", json=sample_user_data)

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["message"] == "User created successfully"
        data = body["data"]
        assert data["email"] == "ada@example.com"
        assert data["loginMode"] == "email"
        assert "password" not in data
        assert "passwordHash" not in data

    def test_duplicate_is_conflict(self, test_client, create_user, sample_user_data):
        create_user()

        response = test_client.post(
            "/api/users", json={**sample_user_data, "email": "other@example.com"}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {
            "success": False,
            "error": "User with this email or username already exists",
        }
        assert test_client.get("/api/users").json()["pagination"]["total"] == 1

    def test_invalid_fields(self, test_client):
        response = test_client.post(
            "/api/users",
            json={"name": "A", "username": "no spaces!", "email": "nope", "password": "1"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        fields = {d["field"] for d in response.json()["details"]}
        assert fields == {"name", "username", "email", "password"}

    def test_lookups(self, test_client, create_user):
        user = create_user()

        assert test_client.get(f"/api/users/{user['id']}").json()["data"]["id"] == user["id"]
        assert test_client.get("/api/users/email/ada@example.com").json()["data"]["id"] == user["id"]
        assert test_client.get("/api/users/username/ada_l").json()["data"]["id"] == user["id"]
        assert test_client.get("/api/users/username/ghost").status_code == 404
        assert test_client.get(f"/api/users/{uuid.uuid4()}").status_code == 404
        assert test_client.get("/api/users/not-an-id").status_code == 400

    def test_search(self, test_client, create_user):
        create_user()

        response = test_client.get("/api/users/search", params={"q": "ada"})
        assert response.json()["pagination"]["total"] == 1

        missing_query = test_client.get("/api/users/search")
        assert missing_query.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_and_delete(self, test_client, create_user):
        user = create_user()

        updated = test_client.put(f"/api/users/{user['id']}", json={"bio": "Analyst"})
        assert updated.status_code == status.HTTP_200_OK
        assert updated.json()["data"]["bio"] == "Analyst"
        assert updated.json()["data"]["username"] == user["username"]

        deleted = test_client.delete(f"/api/users/{user['id']}")
        assert deleted.json() == {
            "success": True,
            "message": "User deleted successfully",
            "data": {"id": user["id"]},
        }


class TestLogin:
    """Test POST /api/login."""

    def test_email_login(self, test_client, create_user):
        user = create_user()

        response = test_client.post(
            "/api/login",
            json={"email": "ADA@example.com", "loginMode": "email", "password": "engine42"},
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["id"] == user["id"]
        assert "passwordHash" not in body["data"]

    def test_bad_password(self, test_client, create_user):
        create_user()

        response = test_client.post(
            "/api/login",
            json={"email": "ada@example.com", "loginMode": "email", "password": "nope"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "Invalid email or password"

    def test_unknown_github_user(self, test_client):
        response = test_client.post(
            "/api/login", json={"email": "octo@example.com", "loginMode": "github"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "GitHub user not found"

    def test_missing_fields(self, test_client):
        response = test_client.post("/api/login", json={"password": "x"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert {d["field"] for d in response.json()["details"]} == {"email", "loginMode"}

    def test_unknown_login_mode(self, test_client):
        response = test_client.post(
            "/api/login", json={"email": "a@example.com", "loginMode": "fax"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
