"""
DB-backed document stores for the academic platform.

Every collection is served by a ``DocumentStore`` subclass that declares its
table, writable fields and the display fields other documents get when they
populate a reference to it. Documents travel as plain dicts keyed by the
wire-format field names; nested objects are stored as JSON text.
"""

from __future__ import annotations

import copy
import json
import secrets
from typing import Any, ClassVar, Optional

from database import get_db, utcnow

# label -> store class, filled in by DocumentStore.__init_subclass__
STORES: dict[str, type[DocumentStore]] = {}


def new_id() -> str:
    """24 hex chars, the same shape clients already handle for ids."""
    return secrets.token_hex(12)


def store_for(label: str) -> type[DocumentStore]:
    return STORES[label]


class DocumentStore:
    """Generic find/insert/update/delete over a single table."""

    table: ClassVar[str] = ""
    label: ClassVar[str] = ""
    fields: ClassVar[tuple[str, ...]] = ()
    json_fields: ClassVar[tuple[str, ...]] = ()
    bool_fields: ClassVar[tuple[str, ...]] = ()
    defaults: ClassVar[dict[str, Any]] = {}
    owner_field: ClassVar[Optional[str]] = "uid"
    # fk field -> label of the referenced store
    references: ClassVar[dict[str, str]] = {}
    # fields exposed when another document populates a reference to this one
    summary_fields: ClassVar[tuple[str, ...]] = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.label:
            STORES[cls.label] = cls

    # ── row mapping ──────────────────────────────────────────────

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        return ("_id",) + cls.fields + ("created_at", "updated_at")

    @classmethod
    def _to_row(cls, field: str, value: Any) -> Any:
        if field in cls.json_fields and value is not None:
            return json.dumps(value)
        if field in cls.bool_fields and value is not None:
            return 1 if value else 0
        return value

    @classmethod
    def _row_to_doc(cls, row) -> dict:
        doc = {key: row[key] for key in row.keys()}
        for f in cls.json_fields:
            if doc.get(f) is not None:
                doc[f] = json.loads(doc[f])
        for f in cls.bool_fields:
            if doc.get(f) is not None:
                doc[f] = bool(doc[f])
        return doc

    @classmethod
    def default_for(cls, field: str) -> Any:
        value = cls.defaults.get(field)
        if callable(value):
            return value()
        return copy.deepcopy(value)

    @classmethod
    def _where(cls, filters: dict[str, Any]) -> tuple[str, list]:
        unknown = set(filters) - set(cls.columns())
        if unknown:
            raise KeyError(f"Unknown {cls.table} field(s): {', '.join(sorted(unknown))}")
        if not filters:
            return "", []
        clause = " AND ".join(f"{k} = ?" for k in filters)
        return f" WHERE {clause}", [cls._to_row(k, v) for k, v in filters.items()]

    # ── queries ──────────────────────────────────────────────────

    @classmethod
    def find_by_id(cls, doc_id: str) -> Optional[dict]:
        if not doc_id:
            return None
        row = get_db().execute(
            f"SELECT * FROM {cls.table} WHERE _id = ?", (str(doc_id),)
        ).fetchone()
        return cls._row_to_doc(row) if row else None

    @classmethod
    def exists(cls, doc_id: str) -> bool:
        if not doc_id:
            return False
        row = get_db().execute(
            f"SELECT 1 FROM {cls.table} WHERE _id = ?", (str(doc_id),)
        ).fetchone()
        return row is not None

    @classmethod
    def find(cls, **filters: Any) -> list[dict]:
        where, params = cls._where(filters)
        rows = get_db().execute(
            f"SELECT * FROM {cls.table}{where} ORDER BY created_at, rowid", params
        ).fetchall()
        return [cls._row_to_doc(r) for r in rows]

    @classmethod
    def find_one(cls, **filters: Any) -> Optional[dict]:
        where, params = cls._where(filters)
        row = get_db().execute(
            f"SELECT * FROM {cls.table}{where} LIMIT 1", params
        ).fetchone()
        return cls._row_to_doc(row) if row else None

    @classmethod
    def count(cls, **filters: Any) -> int:
        where, params = cls._where(filters)
        row = get_db().execute(
            f"SELECT COUNT(*) AS cnt FROM {cls.table}{where}", params
        ).fetchone()
        return row["cnt"] if row else 0

    # ── writes ───────────────────────────────────────────────────

    @classmethod
    def insert(cls, doc: dict) -> dict:
        """Persist a new document with server-assigned id and timestamps."""
        now = utcnow()
        record = {"_id": new_id()}
        for f in cls.fields:
            value = doc.get(f)
            record[f] = cls.default_for(f) if value is None else value
        record["created_at"] = now
        record["updated_at"] = now

        cols = cls.columns()
        db = get_db()
        db.execute(
            f"INSERT INTO {cls.table} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})",
            [cls._to_row(c, record[c]) for c in cols],
        )
        db.commit()
        return cls.find_by_id(record["_id"])

    @classmethod
    def update(cls, doc_id: str, changes: dict) -> Optional[dict]:
        """Overwrite the given fields and refresh updated_at.

        Returns the stored document, or None if no document has that id.
        """
        changes = {k: v for k, v in changes.items() if k in cls.fields}
        changes["updated_at"] = utcnow()
        sets = ", ".join(f"{k} = ?" for k in changes)
        vals = [cls._to_row(k, v) for k, v in changes.items()]
        vals.append(str(doc_id))
        db = get_db()
        cur = db.execute(f"UPDATE {cls.table} SET {sets} WHERE _id = ?", vals)
        db.commit()
        if cur.rowcount == 0:
            return None
        return cls.find_by_id(doc_id)

    @classmethod
    def delete(cls, doc_id: str) -> Optional[dict]:
        doc = cls.find_by_id(doc_id)
        if doc is None:
            return None
        db = get_db()
        db.execute(f"DELETE FROM {cls.table} WHERE _id = ?", (str(doc_id),))
        db.commit()
        return doc

    # ── population ───────────────────────────────────────────────

    @classmethod
    def summary(cls, doc_id: str) -> Optional[dict]:
        """Shallow projection used when another document references this one."""
        doc = cls.find_by_id(doc_id)
        if doc is None:
            return None
        return {"_id": doc["_id"], **{f: doc.get(f) for f in cls.summary_fields}}

    @classmethod
    def populated(cls, doc: dict) -> dict:
        """Replace each reference id with the referenced document's summary.

        A reference to a record that no longer exists populates as None.
        """
        out = dict(doc)
        for field, label in cls.references.items():
            if out.get(field):
                out[field] = store_for(label).summary(out[field])
        return out

    @classmethod
    def public(cls, doc: dict) -> dict:
        return doc


# ── Users ────────────────────────────────────────────────────────────


class UserStoreDB(DocumentStore):
    table = "users"
    label = "User"
    fields = ("userName", "firstName", "lastName", "email", "password", "role")
    defaults = {"role": "student", "userName": "", "firstName": "", "lastName": ""}
    owner_field = None
    summary_fields = ("firstName", "lastName", "email")

    @classmethod
    def find_by_email(cls, email: str) -> Optional[dict]:
        return cls.find_one(email=email)

    @classmethod
    def public(cls, doc: dict) -> dict:
        """Projection that is safe to return to clients (no password hash)."""
        return {k: v for k, v in doc.items() if k != "password"}


# ── Academic records ─────────────────────────────────────────────────


class SubjectStoreDB(DocumentStore):
    table = "subjects"
    label = "Subject"
    fields = ("subjectTitle", "targetGrade", "room", "uid", "t_uid", "semester_id")
    references = {"uid": "User", "t_uid": "Teacher", "semester_id": "Semester"}
    summary_fields = ("subjectTitle",)


class GradeStoreDB(DocumentStore):
    table = "grades"
    label = "Grade"
    fields = ("grade", "outOf", "s_id", "a_id", "uid", "notes", "date")
    defaults = {"date": utcnow}
    references = {"s_id": "Subject", "a_id": "Assignment", "uid": "User"}
    summary_fields = ("grade", "outOf")


class AssignmentStoreDB(DocumentStore):
    table = "assignments"
    label = "Assignment"
    fields = ("name", "s_id", "uid", "g_id", "due_date")
    references = {"s_id": "Subject", "uid": "User", "g_id": "Grade"}
    summary_fields = ("name",)


class SemesterStoreDB(DocumentStore):
    table = "semesters"
    label = "Semester"
    fields = ("title", "startDate", "endDate", "uid")
    references = {"uid": "User"}
    summary_fields = ("title",)


class TeacherStoreDB(DocumentStore):
    table = "teachers"
    label = "Teacher"
    fields = ("first_name", "last_name", "phone", "school_email", "uid")
    references = {"uid": "User"}
    summary_fields = ("first_name", "last_name", "school_email")

    @classmethod
    def find_by_school_email(cls, school_email: str) -> Optional[dict]:
        return cls.find_one(school_email=school_email)


class TimeTableStoreDB(DocumentStore):
    table = "timetable"
    label = "TimeTable"
    fields = ("subject_id", "day_of_week", "start_time", "end_time", "room", "t_uid", "note", "uid")
    defaults = {"room": "", "note": ""}
    references = {"subject_id": "Subject", "t_uid": "Teacher", "uid": "User"}


# ── Notifications, settings, events ──────────────────────────────────


class NotificationStoreDB(DocumentStore):
    table = "notifications"
    label = "Notification"
    fields = ("title", "message", "uid", "type", "read")
    bool_fields = ("read",)
    defaults = {"type": "info", "read": False}
    references = {"uid": "User"}

    @classmethod
    def mark_read(cls, doc_id: str) -> Optional[dict]:
        return cls.update(doc_id, {"read": True})


def _default_notification_channels() -> dict:
    return {"email": True, "sms": False, "push": True}


def _default_privacy() -> dict:
    return {"profileVisibility": "public"}


class UserSettingsStoreDB(DocumentStore):
    table = "user_settings"
    label = "UserSettings"
    fields = ("userId", "theme", "notifications", "language", "privacy")
    json_fields = ("notifications", "privacy")
    defaults = {
        "theme": "light",
        "notifications": _default_notification_channels,
        "language": "en",
        "privacy": _default_privacy,
    }
    owner_field = "userId"

    @classmethod
    def find_by_user(cls, user_id: str) -> Optional[dict]:
        return cls.find_one(userId=user_id)


class EventStoreDB(DocumentStore):
    table = "events"
    label = "Event"
    fields = ("name", "type", "description", "date", "user_id", "related_id", "relatedModel")
    owner_field = "user_id"
    references = {"user_id": "User"}

    @classmethod
    def populated(cls, doc: dict) -> dict:
        out = super().populated(doc)
        model = out.get("relatedModel")
        if out.get("related_id") and model in STORES:
            out["related_id"] = store_for(model).summary(out["related_id"])
        return out

