"""Tests for user, follow and micropost endpoints."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from chirp.models.micropost import Micropost
from chirp.models.relationship import Relationship
from chirp.models.user import Role, User


class TestProfile:
    """Tests for reading and updating users."""

    def test_get_me(self, client: TestClient, make_user, auth_headers):
        user = make_user()
        response = client.get("/api/v1/users/me", headers=auth_headers(user))
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "test@example.com"
        assert data["role"] == "user"
        assert data["activated"] is True
        assert "password_digest" not in data
        assert "remember_digest" not in data

    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/v1/users/me").status_code == 401

    def test_update_me(self, client: TestClient, make_user, auth_headers):
        user = make_user()
        response = client.patch(
            "/api/v1/users/me",
            json={"name": "Renamed", "gender": "female"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["gender"] == "female"

    def test_update_me_invalid_email(self, client: TestClient, make_user, auth_headers):
        user = make_user()
        response = client.patch("/api/v1/users/me", json={"email": "nope"}, headers=auth_headers(user))
        assert response.status_code == 422

    def test_list_users_ordered_by_id(self, client: TestClient, make_user, auth_headers):
        first = make_user(email="a@example.com")
        make_user(email="b@example.com")
        make_user(email="c@example.com", activated=False)
        response = client.get("/api/v1/users/", headers=auth_headers(first))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [u["id"] for u in data["items"]] == sorted(u["id"] for u in data["items"])

    def test_get_user_not_found(self, client: TestClient):
        assert client.get("/api/v1/users/9999").status_code == 404


class TestPagination:
    """Tests for limit and offset bounds on list endpoints."""

    @pytest.mark.parametrize("params", [{"limit": -1}, {"limit": 0}, {"limit": 101}, {"offset": -1}])
    @pytest.mark.parametrize("path", ["/api/v1/users/", "/api/v1/microposts/feed", "/api/v1/users/{id}/microposts"])
    def test_out_of_range_rejected(self, client: TestClient, make_user, auth_headers, path, params):
        user = make_user()
        response = client.get(path.format(id=user.id), params=params, headers=auth_headers(user))
        assert response.status_code == 422

    def test_limit_and_offset_slice_the_listing(self, client: TestClient, make_user, auth_headers):
        user = make_user()
        for content in ("one", "two", "three"):
            client.post("/api/v1/microposts/", json={"content": content}, headers=auth_headers(user))
        response = client.get(
            f"/api/v1/users/{user.id}/microposts", params={"limit": 1, "offset": 1}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        assert len(response.json()["items"]) == 1
        assert response.json()["total"] == 3


class TestFollowApi:
    """Tests for follow endpoints."""

    def test_follow_unfollow(self, client: TestClient, make_user, auth_headers, db_session: Session):
        u = make_user(email="u@example.com")
        v = make_user(email="v@example.com")
        headers = auth_headers(u)

        assert client.post(f"/api/v1/users/{v.id}/follow", headers=headers).json() == {"following": True}
        assert client.post(f"/api/v1/users/{v.id}/follow", headers=headers).status_code == 200
        assert db_session.query(Relationship).count() == 1

        detail = client.get(f"/api/v1/users/{v.id}", headers=headers).json()
        assert detail["followers_count"] == 1
        assert detail["is_following"] is True

        followers = client.get(f"/api/v1/users/{v.id}/followers", headers=headers).json()
        assert [f["id"] for f in followers["items"]] == [u.id]

        assert client.delete(f"/api/v1/users/{v.id}/follow", headers=headers).json() == {"following": False}
        assert client.delete(f"/api/v1/users/{v.id}/follow", headers=headers).status_code == 200
        assert db_session.query(Relationship).count() == 0

    def test_self_follow_rejected(self, client: TestClient, make_user, auth_headers):
        u = make_user()
        response = client.post(f"/api/v1/users/{u.id}/follow", headers=auth_headers(u))
        assert response.status_code == 422

    def test_follow_unknown_user(self, client: TestClient, make_user, auth_headers):
        u = make_user()
        assert client.post("/api/v1/users/9999/follow", headers=auth_headers(u)).status_code == 404


class TestMicropostsApi:
    """Tests for micropost endpoints and the feed."""

    def test_create_and_feed(self, client: TestClient, make_user, auth_headers, clock):
        u = make_user(email="u@example.com")
        v = make_user(email="v@example.com")
        w = make_user(email="w@example.com")
        client.post(f"/api/v1/users/{v.id}/follow", headers=auth_headers(u))

        for author, content in ((u, "P1"), (v, "P2"), (w, "P3")):
            clock.advance(seconds=1)
            response = client.post("/api/v1/microposts/", json={"content": content}, headers=auth_headers(author))
            assert response.status_code == 201

        feed = client.get("/api/v1/microposts/feed", headers=auth_headers(u)).json()
        assert [p["content"] for p in feed["items"]] == ["P2", "P1"]

    def test_create_blank_micropost(self, client: TestClient, make_user, auth_headers):
        u = make_user()
        response = client.post("/api/v1/microposts/", json={"content": " "}, headers=auth_headers(u))
        assert response.status_code == 422
        assert response.json()["detail"][0]["field"] == "content"

    def test_delete_own_micropost_only(self, client: TestClient, make_user, auth_headers, db_session: Session):
        u = make_user(email="u@example.com")
        v = make_user(email="v@example.com")
        post_id = client.post("/api/v1/microposts/", json={"content": "hi"}, headers=auth_headers(u)).json()["id"]

        assert client.delete(f"/api/v1/microposts/{post_id}", headers=auth_headers(v)).status_code == 404
        assert client.delete(f"/api/v1/microposts/{post_id}", headers=auth_headers(u)).status_code == 200
        assert db_session.query(Micropost).count() == 0

    def test_list_user_microposts(self, client: TestClient, make_user, auth_headers):
        u = make_user()
        client.post("/api/v1/microposts/", json={"content": "one"}, headers=auth_headers(u))
        response = client.get(f"/api/v1/users/{u.id}/microposts")
        assert response.status_code == 200
        assert response.json()["total"] == 1


class TestAdmin:
    """Tests for admin-only user deletion."""

    def test_non_admin_cannot_delete(self, client: TestClient, make_user, auth_headers):
        u = make_user(email="u@example.com")
        v = make_user(email="v@example.com")
        assert client.delete(f"/api/v1/users/{v.id}", headers=auth_headers(u)).status_code == 403

    def test_admin_deletes_user_with_posts_and_edges(
        self, client: TestClient, make_user, auth_headers, db_session: Session
    ):
        admin = make_user(email="admin@example.com")
        admin.role = Role.ADMIN
        db_session.commit()
        v = make_user(email="v@example.com")
        v_id = v.id
        client.post(f"/api/v1/users/{v_id}/follow", headers=auth_headers(admin))
        client.post("/api/v1/microposts/", json={"content": "hi"}, headers=auth_headers(v))

        response = client.delete(f"/api/v1/users/{v_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert db_session.get(User, v_id) is None
        assert db_session.query(Relationship).count() == 0
        assert db_session.query(Micropost).count() == 0
