"""Tests for subject routes, reference checks and populated responses."""

MISSING_ID = "0" * 24


class TestCreateSubject:
    def test_create(self, auth_client, user, teacher, semester):
        resp = auth_client.post("/api/subject", json={
            "subjectTitle": "Chemistry",
            "targetGrade": 85,
            "room": "C3",
            "uid": user["_id"],
            "t_uid": teacher["_id"],
            "semester_id": semester["_id"],
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["subjectTitle"] == "Chemistry"
        assert data["uid"] == user["_id"]
        assert data["created_at"]

    def test_optional_references_may_be_omitted(self, auth_client, user):
        resp = auth_client.post("/api/subject", json={"subjectTitle": "Art", "uid": user["_id"]})
        assert resp.status_code == 201
        assert resp.get_json()["t_uid"] is None

    def test_missing_owner(self, auth_client):
        resp = auth_client.post("/api/subject", json={"subjectTitle": "Art"})
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "User not found"

    def test_unknown_owner(self, auth_client):
        resp = auth_client.post("/api/subject", json={"subjectTitle": "Art", "uid": MISSING_ID})
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "User not found"

    def test_unknown_teacher(self, auth_client, user):
        resp = auth_client.post("/api/subject", json={
            "subjectTitle": "Art", "uid": user["_id"], "t_uid": MISSING_ID,
        })
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Teacher not found"

    def test_owner_checked_before_other_references(self, auth_client):
        resp = auth_client.post("/api/subject", json={
            "subjectTitle": "Art", "uid": MISSING_ID, "t_uid": MISSING_ID,
        })
        assert resp.get_json()["message"] == "User not found"

    def test_unknown_semester(self, auth_client, user):
        resp = auth_client.post("/api/subject", json={
            "subjectTitle": "Art", "uid": user["_id"], "semester_id": MISSING_ID,
        })
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Semester not found"

    def test_missing_title(self, auth_client, user):
        resp = auth_client.post("/api/subject", json={"uid": user["_id"]})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "subjectTitle is required"

    def test_target_grade_must_be_number(self, auth_client, user):
        resp = auth_client.post("/api/subject", json={
            "subjectTitle": "Art", "uid": user["_id"], "targetGrade": "high",
        })
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "targetGrade must be a number"

    def test_nothing_written_on_failure(self, app, auth_client, user):
        from db_stores import SubjectStoreDB

        auth_client.post("/api/subject", json={
            "subjectTitle": "Art", "uid": user["_id"], "t_uid": MISSING_ID,
        })
        assert SubjectStoreDB.count() == 0


class TestReadSubjects:
    def test_get_populates_references(self, auth_client, user, teacher, semester, subject):
        resp = auth_client.get(f"/api/subjects/{subject['_id']}")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["uid"] == {
            "_id": user["_id"], "firstName": "Test", "lastName": "Student", "email": "test@example.com",
        }
        assert data["t_uid"] == {
            "_id": teacher["_id"], "first_name": "Ada", "last_name": "Lovelace",
            "school_email": "ada@school.edu",
        }
        assert data["semester_id"] == {"_id": semester["_id"], "title": "Fall 2026"}

    def test_dangling_reference_populates_as_null(self, auth_client, teacher, subject):
        auth_client.delete(f"/api/teachers/{teacher['_id']}")
        resp = auth_client.get(f"/api/subjects/{subject['_id']}")
        assert resp.status_code == 200
        assert resp.get_json()["t_uid"] is None

    def test_get_missing(self, auth_client):
        resp = auth_client.get(f"/api/subjects/{MISSING_ID}")
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Subject not found"

    def test_list_by_owner(self, auth_client, user, other_user, subject):
        from db_stores import SubjectStoreDB

        SubjectStoreDB.insert({"subjectTitle": "History", "uid": other_user["_id"]})
        resp = auth_client.get(f"/api/subjects/user/{user['_id']}")
        assert resp.status_code == 200
        titles = [s["subjectTitle"] for s in resp.get_json()]
        assert titles == ["Biology"]

    def test_list_by_unknown_owner(self, auth_client):
        resp = auth_client.get(f"/api/subjects/user/{MISSING_ID}")
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "User not found"

    def test_list_all(self, auth_client, subject):
        resp = auth_client.get("/api/subjects")
        assert resp.status_code == 200
        assert [s["_id"] for s in resp.get_json()] == [subject["_id"]]


class TestUpdateSubject:
    def test_update_replaces_optional_fields(self, auth_client, user, subject):
        resp = auth_client.put(f"/api/subjects/{subject['_id']}", json={"subjectTitle": "Marine Biology"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["subjectTitle"] == "Marine Biology"
        assert data["t_uid"] is None
        assert data["room"] is None
        assert data["uid"] == user["_id"]

    def test_update_keeps_required_when_omitted(self, auth_client, subject):
        resp = auth_client.put(f"/api/subjects/{subject['_id']}", json={"room": "Lab 2"})
        assert resp.status_code == 200
        assert resp.get_json()["subjectTitle"] == "Biology"
        assert resp.get_json()["room"] == "Lab 2"

    def test_update_checks_references(self, auth_client, subject):
        resp = auth_client.put(f"/api/subjects/{subject['_id']}", json={"t_uid": MISSING_ID})
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Teacher not found"

    def test_update_missing(self, auth_client):
        resp = auth_client.put(f"/api/subjects/{MISSING_ID}", json={"subjectTitle": "X"})
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Subject not found"

    def test_update_refreshes_timestamp(self, auth_client, subject):
        resp = auth_client.put(f"/api/subjects/{subject['_id']}", json={"subjectTitle": "Bio II"})
        assert resp.get_json()["updated_at"] >= subject["updated_at"]
        assert resp.get_json()["created_at"] == subject["created_at"]


class TestDeleteSubject:
    def test_delete(self, auth_client, subject):
        resp = auth_client.delete(f"/api/subjects/{subject['_id']}")
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Subject deleted successfully"
        assert auth_client.get(f"/api/subjects/{subject['_id']}").status_code == 404

    def test_delete_missing(self, auth_client):
        resp = auth_client.delete(f"/api/subjects/{MISSING_ID}")
        assert resp.status_code == 404


class TestMalformedSubjectValues:
    def test_object_title_on_create(self, auth_client, user):
        resp = auth_client.post("/api/subject", json={"subjectTitle": {"a": 1}, "uid": user["_id"]})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "subjectTitle must be a string, number or boolean"

    def test_list_room_on_update(self, auth_client, subject):
        resp = auth_client.put(f"/api/subjects/{subject['_id']}", json={"room": ["B12", "B13"]})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "room must be a string, number or boolean"
