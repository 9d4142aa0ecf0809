"""Tests for per-user settings (upsert, fetch, delete)."""

MISSING_ID = "0" * 24


class TestUserSettings:
    def test_first_save_fills_defaults(self, auth_client, user):
        resp = auth_client.post("/api/user-settings", json={"userId": user["_id"], "theme": "dark"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["theme"] == "dark"
        assert data["language"] == "en"
        assert data["notifications"] == {"email": True, "sms": False, "push": True}
        assert data["privacy"] == {"profileVisibility": "public"}

    def test_second_save_merges(self, auth_client, user):
        auth_client.post("/api/user-settings", json={"userId": user["_id"], "theme": "dark"})
        resp = auth_client.post("/api/user-settings", json={
            "userId": user["_id"],
            "language": "fr",
            "notifications": {"sms": True},
        })
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["theme"] == "dark"
        assert data["language"] == "fr"
        assert data["notifications"] == {"email": True, "sms": True, "push": True}

    def test_one_document_per_user(self, app, auth_client, user):
        from db_stores import UserSettingsStoreDB

        auth_client.post("/api/user-settings", json={"userId": user["_id"]})
        auth_client.post("/api/user-settings", json={"userId": user["_id"], "theme": "dark"})
        assert UserSettingsStoreDB.count(userId=user["_id"]) == 1

    def test_unknown_user(self, auth_client):
        resp = auth_client.post("/api/user-settings", json={"userId": MISSING_ID})
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "User not found"

    def test_invalid_visibility(self, auth_client, user):
        resp = auth_client.post("/api/user-settings", json={
            "userId": user["_id"], "privacy": {"profileVisibility": "secret"},
        })
        assert resp.status_code == 400

    def test_notifications_must_be_object(self, auth_client, user):
        resp = auth_client.post("/api/user-settings", json={"userId": user["_id"], "notifications": "all"})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "notifications must be an object"

    def test_get(self, auth_client, user):
        auth_client.post("/api/user-settings", json={"userId": user["_id"]})
        resp = auth_client.get(f"/api/user-settings/{user['_id']}")
        assert resp.status_code == 200
        assert resp.get_json()["userId"] == user["_id"]

    def test_get_missing(self, auth_client, user):
        resp = auth_client.get(f"/api/user-settings/{user['_id']}")
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "User settings not found"

    def test_delete(self, auth_client, user):
        auth_client.post("/api/user-settings", json={"userId": user["_id"]})
        resp = auth_client.delete(f"/api/user-settings/{user['_id']}")
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "User settings deleted successfully"
        assert auth_client.get(f"/api/user-settings/{user['_id']}").status_code == 404

    def test_delete_missing(self, auth_client, user):
        resp = auth_client.delete(f"/api/user-settings/{user['_id']}")
        assert resp.status_code == 404

    def test_channel_flags_must_be_booleans(self, app, auth_client, user):
        from db_stores import UserSettingsStoreDB

        resp = auth_client.post("/api/user-settings", json={
            "userId": user["_id"], "notifications": {"email": "nope"},
        })
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "notifications.email must be true or false"
        assert UserSettingsStoreDB.find_by_user(user["_id"]) is None

    def test_unknown_channel_rejected(self, auth_client, user):
        resp = auth_client.post("/api/user-settings", json={
            "userId": user["_id"], "notifications": {"hack": [1]},
        })
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "notifications.hack is not a recognised setting"

    def test_unknown_privacy_key_rejected(self, auth_client, user):
        resp = auth_client.post("/api/user-settings", json={
            "userId": user["_id"], "privacy": {"profileVisibility": "private", "shareGrades": True},
        })
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "privacy.shareGrades is not a recognised setting"

    def test_theme_must_be_string(self, auth_client, user):
        resp = auth_client.post("/api/user-settings", json={"userId": user["_id"], "theme": {"dark": True}})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "theme must be a string"

    def test_bad_update_leaves_stored_settings(self, auth_client, user):
        auth_client.post("/api/user-settings", json={"userId": user["_id"], "language": "de"})
        resp = auth_client.post("/api/user-settings", json={"userId": user["_id"], "language": ["fr"]})
        assert resp.status_code == 400
        assert auth_client.get(f"/api/user-settings/{user['_id']}").get_json()["language"] == "de"
