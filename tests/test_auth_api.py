from datetime import timedelta

from vadash.api.dependencies import create_access_token


class TestAuth:

    def test_register_login_and_me(self, client):
        response = client.post("/api/v1/auth/register", json={
            "email": "New.Hire@acme-books.com",
            "password": "s3cure-pass",
            "full_name": "New Hire"
        })
        assert response.status_code == 201
        assert response.json()["email"] == "new.hire@acme-books.com"
        assert "hashed_password" not in response.json()

        response = client.post("/api/v1/auth/login", json={
            "email": "new.hire@acme-books.com",
            "password": "s3cure-pass"
        })
        assert response.status_code == 200
        token = response.json()["access_token"]
        assert response.json()["token_type"] == "bearer"

        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["full_name"] == "New Hire"
        assert response.json()["last_login"] is not None

    def test_register_duplicate_email(self, client, user):
        response = client.post("/api/v1/auth/register", json={
            "email": user.email,
            "password": "another-pass"
        })
        assert response.status_code == 409
        assert response.json()["error"] == "Email already registered"

    def test_login_wrong_password(self, client, user):
        response = client.post("/api/v1/auth/login", json={
            "email": user.email,
            "password": "wrong-password"
        })
        assert response.status_code == 401

    def test_login_inactive_user(self, client, db, user):
        user.is_active = False
        db.commit()
        response = client.post("/api/v1/auth/login", json={
            "email": user.email,
            "password": "correct-horse-1"
        })
        assert response.status_code == 401

    def test_missing_or_bad_token(self, client, user):
        assert client.get("/api/v1/auth/me").status_code == 401
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token(self, client, user):
        token = create_access_token(user, expires_delta=timedelta(minutes=-5))
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
