"""
Resource services — validate, resolve references, then write.

``ResourceService`` implements create / get / list-by-owner / list-all /
update / delete once; each entity subclass only declares its store, its
references and whatever extra rules it has (unique fields, enums, defaults).

Every operation is a strictly ordered sequence of store calls. A failed
check raises before anything is written, so nothing needs rolling back.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, ClassVar, Optional

from werkzeug.security import generate_password_hash

from db_stores import (
    AssignmentStoreDB,
    DocumentStore,
    EventStoreDB,
    GradeStoreDB,
    NotificationStoreDB,
    SemesterStoreDB,
    STORES,
    SubjectStoreDB,
    TeacherStoreDB,
    TimeTableStoreDB,
    UserSettingsStoreDB,
    UserStoreDB,
)
from errors import Conflict, InternalError, NotFound, ValidationError
from validation import (
    Reference,
    check_references,
    is_blank,
    require_choice,
    require_email,
    require_fields,
    require_flags,
    require_number,
    require_scalars,
)

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("info", "reminder", "alert", "success")
EVENT_TYPES = ("Assignment", "Exam", "Reminder")
EVENT_RELATED_MODELS = ("Subject", "Grade", "Assignment", "User")
PROFILE_VISIBILITY = ("public", "private", "friends")
NOTIFICATION_CHANNELS = ("email", "sms", "push")


@contextmanager
def store_errors(message: str, conflict_message: str = "Resource already exists"):
    """Map store failures to API errors: unique violations to Conflict, the rest to 500."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e).upper():
            raise Conflict(conflict_message) from e
        raise InternalError(message, detail=str(e)) from e
    except sqlite3.Error as e:
        raise InternalError(message, detail=str(e)) from e


class ResourceService:
    store: ClassVar[type[DocumentStore]]
    noun: ClassVar[str] = ""
    plural: ClassVar[str] = ""
    not_found_label: ClassVar[str] = ""
    references: ClassVar[tuple[Reference, ...]] = ()
    required: ClassVar[tuple[str, ...]] = ()
    numeric: ClassVar[tuple[str, ...]] = ()
    # fields a PUT never touches
    immutable: ClassVar[tuple[str, ...]] = ("uid",)
    conflict_message: ClassVar[str] = "Resource already exists"

    @property
    def label(self) -> str:
        return self.not_found_label or self.store.label

    def not_found(self) -> NotFound:
        return NotFound.for_entity(self.label)

    def _store_errors(self, action: str, noun: Optional[str] = None):
        return store_errors(f"Error {action} {noun or self.noun}", self.conflict_message)

    # ── hooks ────────────────────────────────────────────────────

    def validate(self, doc: dict) -> None:
        require_scalars(doc, [f for f in self.store.fields if f not in self.store.json_fields])
        require_number(doc, self.numeric)

    def prepare_create(self, doc: dict) -> dict:
        return doc

    def prepare_update(self, changes: dict, existing: dict) -> dict:
        return changes

    def present(self, doc: dict) -> dict:
        return self.store.public(self.store.populated(doc))

    # ── operations ───────────────────────────────────────────────

    def create(self, payload: dict) -> dict:
        doc = {f: payload.get(f) for f in self.store.fields}
        check_references(doc, self.references)
        require_fields(doc, self.required)
        self.validate(doc)
        doc = self.prepare_create(doc)
        with self._store_errors("creating"):
            created = self.store.insert(doc)
        logger.info("created %s %s", self.noun, created["_id"])
        return created

    def get(self, doc_id: str) -> dict:
        with self._store_errors("fetching"):
            doc = self.store.find_by_id(doc_id)
            if doc is None:
                raise self.not_found()
            return self.present(doc)

    def list_by_owner(self, owner_id: str) -> list[dict]:
        with self._store_errors("fetching", self.plural or f"{self.noun}s"):
            if not UserStoreDB.exists(owner_id):
                raise NotFound.for_entity(UserStoreDB.label)
            docs = self.store.find(**{self.store.owner_field: owner_id})
            return [self.present(d) for d in docs]

    def list_all(self) -> list[dict]:
        with self._store_errors("fetching", self.plural or f"{self.noun}s"):
            return [self.present(d) for d in self.store.find()]

    def updatable_fields(self) -> tuple[str, ...]:
        return tuple(f for f in self.store.fields if f not in self.immutable)

    def required_references(self) -> tuple[str, ...]:
        return tuple(r.field for r in self.references if r.required)

    def update(self, doc_id: str, payload: dict) -> dict:
        """Replace every updatable field with the payload's value.

        Optional fields left out of the payload, or sent as null, fall back
        to their defaults. Required fields cannot be unset: left out or
        null, they keep the stored value; sent as an empty string, they
        are rejected.
        """
        check_references(payload, [r for r in self.references if r.field not in self.immutable],
                         partial=True)
        with self._store_errors("updating"):
            existing = self.store.find_by_id(doc_id)
        if existing is None:
            raise self.not_found()

        kept = self.required + self.required_references()
        changes: dict[str, Any] = {}
        for f in self.updatable_fields():
            if payload.get(f) is not None:
                changes[f] = payload[f]
            elif f in kept:
                changes[f] = existing[f]
            else:
                changes[f] = self.store.default_for(f)
        require_fields(changes, [f for f in kept if f in changes])
        self.validate(changes)
        changes = self.prepare_update(changes, existing)

        with self._store_errors("updating"):
            updated = self.store.update(doc_id, changes)
        if updated is None:
            raise self.not_found()
        logger.info("updated %s %s", self.noun, doc_id)
        return self.store.public(updated)

    def delete(self, doc_id: str) -> dict:
        with self._store_errors("deleting"):
            deleted = self.store.delete(doc_id)
        if deleted is None:
            raise self.not_found()
        logger.info("deleted %s %s", self.noun, doc_id)
        return {"message": f"{self.label} deleted successfully"}


# ── Users ────────────────────────────────────────────────────────────


class UserService(ResourceService):
    store = UserStoreDB
    noun = "user"
    required = ("email", "password")
    immutable = ("password",)
    conflict_message = "Email already in use"

    def validate(self, doc: dict) -> None:
        super().validate(doc)
        if "email" in doc:
            require_email(doc["email"])
        if "password" in doc and not isinstance(doc["password"], str):
            raise ValidationError("password must be a string")

    def prepare_create(self, doc: dict) -> dict:
        doc["email"] = doc["email"].strip().lower()
        if self.store.find_by_email(doc["email"]):
            raise Conflict(self.conflict_message)
        doc["password"] = generate_password_hash(doc["password"])
        return doc

    def prepare_update(self, changes: dict, existing: dict) -> dict:
        changes["email"] = changes["email"].strip().lower()
        other = self.store.find_by_email(changes["email"])
        if other and other["_id"] != existing["_id"]:
            raise Conflict(self.conflict_message)
        return changes


# ── Academic records ─────────────────────────────────────────────────


class SubjectService(ResourceService):
    store = SubjectStoreDB
    noun = "subject"
    references = (
        Reference("uid", "User", required=True),
        Reference("t_uid", "Teacher"),
        Reference("semester_id", "Semester"),
    )
    required = ("subjectTitle",)
    numeric = ("targetGrade",)


class GradeService(ResourceService):
    store = GradeStoreDB
    noun = "grade"
    references = (
        Reference("uid", "User", required=True),
        Reference("s_id", "Subject", required=True),
        Reference("a_id", "Assignment"),
    )
    required = ("grade", "outOf")
    numeric = ("grade", "outOf")


class AssignmentService(ResourceService):
    store = AssignmentStoreDB
    noun = "assignment"
    references = (
        Reference("uid", "User", required=True),
        Reference("s_id", "Subject", required=True),
        Reference("g_id", "Grade"),
    )
    required = ("name",)


class SemesterService(ResourceService):
    store = SemesterStoreDB
    noun = "semester"
    references = (Reference("uid", "User", required=True),)
    required = ("startDate", "endDate")

    def prepare_create(self, doc: dict) -> dict:
        if is_blank(doc.get("title")):
            doc["title"] = f"Semester {self.store.count() + 1}"
        return doc

    def prepare_update(self, changes: dict, existing: dict) -> dict:
        if is_blank(changes.get("title")):
            changes["title"] = existing["title"]
        return changes


class TeacherService(ResourceService):
    store = TeacherStoreDB
    noun = "teacher"
    references = (Reference("uid", "User", required=True),)
    required = ("first_name", "last_name", "phone", "school_email")
    conflict_message = "School email already in use"

    def validate(self, doc: dict) -> None:
        super().validate(doc)
        if "school_email" in doc:
            require_email(doc["school_email"])

    def prepare_create(self, doc: dict) -> dict:
        doc["school_email"] = doc["school_email"].strip().lower()
        if self.store.find_by_school_email(doc["school_email"]):
            raise Conflict(self.conflict_message)
        return doc

    def prepare_update(self, changes: dict, existing: dict) -> dict:
        changes["school_email"] = changes["school_email"].strip().lower()
        other = self.store.find_by_school_email(changes["school_email"])
        if other and other["_id"] != existing["_id"]:
            raise Conflict(self.conflict_message)
        return changes


class TimeTableService(ResourceService):
    store = TimeTableStoreDB
    noun = "timetable entry"
    plural = "timetable entries"
    not_found_label = "Timetable entry"
    references = (
        Reference("uid", "User", required=True),
        Reference("subject_id", "Subject", required=True),
        Reference("t_uid", "Teacher"),
    )
    required = ("day_of_week", "start_time", "end_time")


# ── Notifications & events ───────────────────────────────────────────


class NotificationService(ResourceService):
    store = NotificationStoreDB
    noun = "notification"
    references = (Reference("uid", "User", required=True),)
    required = ("title", "message")
    # ``read`` only ever moves false -> true, through mark_read or a PUT with read=true
    immutable = ("uid", "read")

    def validate(self, doc: dict) -> None:
        super().validate(doc)
        require_choice(doc.get("type"), NOTIFICATION_TYPES, "type")

    def update(self, doc_id: str, payload: dict) -> dict:
        payload = dict(payload)
        mark = payload.pop("read", None) is True
        updated = super().update(doc_id, payload)
        if mark and not updated["read"]:
            return self.mark_read(doc_id)
        return updated

    def mark_read(self, doc_id: str) -> dict:
        with store_errors("Error marking notification as read"):
            updated = self.store.mark_read(doc_id)
        if updated is None:
            raise self.not_found()
        return updated


class EventService(ResourceService):
    store = EventStoreDB
    noun = "event"
    references = (Reference("user_id", "User", required=True),)
    required = ("name", "type", "date")
    immutable = ("user_id",)

    def validate(self, doc: dict) -> None:
        super().validate(doc)
        require_choice(doc.get("type"), EVENT_TYPES, "type")
        self._check_related(doc)

    def _check_related(self, doc: dict) -> None:
        related_id, model = doc.get("related_id"), doc.get("relatedModel")
        if is_blank(related_id) and is_blank(model):
            return
        if is_blank(related_id) or is_blank(model):
            raise ValidationError("related_id and relatedModel must be given together")
        if model not in EVENT_RELATED_MODELS:
            raise ValidationError("Invalid related model")
        if not STORES[model].exists(str(related_id)):
            raise NotFound.for_entity(model)


# ── User settings (one per user, upsert) ─────────────────────────────


class UserSettingsService:
    store = UserSettingsStoreDB
    label = "User settings"

    def _store_errors(self, action: str):
        return store_errors(f"Error {action} user settings", "User settings already exist")

    def _validate(self, payload: dict) -> None:
        for field in ("theme", "language"):
            value = payload.get(field)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{field} must be a string")
        if payload.get("notifications") is not None:
            require_flags(payload["notifications"], NOTIFICATION_CHANNELS, "notifications")
        privacy = payload.get("privacy")
        if privacy is not None:
            if not isinstance(privacy, dict):
                raise ValidationError("privacy must be an object")
            for key in privacy:
                if key != "profileVisibility":
                    raise ValidationError(f"privacy.{key} is not a recognised setting")
            require_choice(privacy.get("profileVisibility"), PROFILE_VISIBILITY,
                           "privacy.profileVisibility")

    def upsert(self, payload: dict) -> dict:
        """Create the user's settings, or overwrite the fields that were sent."""
        user_id = payload.get("userId")
        check_references(payload, (Reference("userId", "User", required=True),))
        self._validate(payload)

        with self._store_errors("saving"):
            existing = self.store.find_by_user(user_id)
            if existing is None:
                doc = {
                    "userId": user_id,
                    "theme": payload.get("theme"),
                    "language": payload.get("language"),
                    "notifications": {**self.store.default_for("notifications"),
                                      **(payload.get("notifications") or {})},
                    "privacy": {**self.store.default_for("privacy"),
                                **(payload.get("privacy") or {})},
                }
                saved = self.store.insert(doc)
                logger.info("created settings for user %s", user_id)
                return saved

            changes = {
                "theme": payload.get("theme") or existing["theme"],
                "language": payload.get("language") or existing["language"],
                "notifications": {**existing["notifications"], **(payload.get("notifications") or {})},
                "privacy": {**existing["privacy"], **(payload.get("privacy") or {})},
            }
            return self.store.update(existing["_id"], changes)

    def get_for_user(self, user_id: str) -> dict:
        with self._store_errors("fetching"):
            settings = self.store.find_by_user(user_id)
        if settings is None:
            raise NotFound.for_entity(self.label)
        return settings

    def delete_for_user(self, user_id: str) -> dict:
        with self._store_errors("deleting"):
            settings = self.store.find_by_user(user_id)
            if settings is not None:
                self.store.delete(settings["_id"])
        if settings is None:
            raise NotFound.for_entity(self.label)
        return {"message": f"{self.label} deleted successfully"}


users = UserService()
subjects = SubjectService()
grades = GradeService()
assignments = AssignmentService()
semesters = SemesterService()
teachers = TeacherService()
timetable = TimeTableService()
notifications = NotificationService()
events = EventService()
user_settings = UserSettingsService()
