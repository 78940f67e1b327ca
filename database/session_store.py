# backend/database/session_store.py
"""
=====================================================
session_store.py
-----------------------------------------------------
Interview session, intake draft and answer
persistence on top of PyMongo collections. Patches
are last-write-wins; only status changes are
conditional.
=====================================================
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from config import Config
from database.db_connection import get_collection
from database.models import (
    new_answer_document,
    new_draft_document,
    new_session_document,
    now_ms,
    serialize_document,
)
from utils.errors import AnswerNotFoundError, DraftNotFoundError, SessionNotFoundError

logger = logging.getLogger(__name__)

SESSIONS_COLLECTION = "interview_sessions"
DRAFTS_COLLECTION = "intake_drafts"
ANSWERS_COLLECTION = "user_answers"


def _object_id(value: str, not_found=SessionNotFoundError) -> ObjectId:
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise not_found(value) from None


class SessionStore:
    def __init__(self, collection=None):
        self.collection = collection if collection is not None else get_collection(SESSIONS_COLLECTION)

    def create(self, user_id: str, **fields) -> Dict[str, Any]:
        doc = new_session_document(user_id, **fields)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("created session %s (status=%s)", result.inserted_id, doc["status"])
        return serialize_document(doc)

    def get(self, session_id: str) -> Dict[str, Any]:
        doc = self.collection.find_one({"_id": _object_id(session_id)})
        if doc is None:
            raise SessionNotFoundError(session_id)
        return serialize_document(doc)

    def update(self, session_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Patch fields without looking at the current status."""
        updates = dict(updates)
        updates["updatedAt"] = now_ms()
        doc = self.collection.find_one_and_update(
            {"_id": _object_id(session_id)},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise SessionNotFoundError(session_id)
        return serialize_document(doc)

    def update_if_status(self, session_id: str, expected_status: str,
                         updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Patch only while the stored status equals `expected_status`; None otherwise."""
        updates = dict(updates)
        updates["updatedAt"] = now_ms()
        doc = self.collection.find_one_and_update(
            {"_id": _object_id(session_id), "status": expected_status},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return serialize_document(doc)

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"userId": user_id}).sort("createdAt", DESCENDING)
        return [serialize_document(doc) for doc in cursor]


class DraftStore:
    def __init__(self, collection=None):
        self.collection = collection if collection is not None else get_collection(DRAFTS_COLLECTION)
        try:
            self.collection.create_index("createdAt", expireAfterSeconds=Config.DRAFT_TTL_SECONDS)
        except Exception:
            logger.exception("could not ensure TTL index on intake drafts (nonfatal)")

    def create(self, user_id: str, **fields) -> Dict[str, Any]:
        doc = new_draft_document(user_id, **fields)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_document(doc)

    def get(self, draft_id: str) -> Dict[str, Any]:
        doc = self.collection.find_one({"_id": _object_id(draft_id, DraftNotFoundError)})
        if doc is None:
            raise DraftNotFoundError(draft_id)
        return serialize_document(doc)

    def update(self, draft_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        doc = self.collection.find_one_and_update(
            {"_id": _object_id(draft_id, DraftNotFoundError)},
            {"$set": dict(updates)},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise DraftNotFoundError(draft_id)
        return serialize_document(doc)

    def delete(self, draft_id: str) -> None:
        self.collection.delete_one({"_id": _object_id(draft_id, DraftNotFoundError)})


class AnswerStore:
    """Candidate answers saved one question at a time, with optional feedback and rating."""

    def __init__(self, collection=None):
        self.collection = collection if collection is not None else get_collection(ANSWERS_COLLECTION)

    def create(self, session_id: str, user_id: str, question: str, user_answer: str,
               feedback: Optional[str] = None, rating: Optional[float] = None) -> Dict[str, Any]:
        doc = new_answer_document(session_id, user_id, question, user_answer, feedback, rating)
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_document(doc)

    def list_by_session(self, session_id: str) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"sessionId": session_id}).sort("createdAt", ASCENDING)
        return [serialize_document(doc) for doc in cursor]

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.collection.find({"userId": user_id}).sort("createdAt", DESCENDING)
        return [serialize_document(doc) for doc in cursor]

    def update_feedback(self, answer_id: str, feedback: str, rating: float) -> Dict[str, Any]:
        doc = self.collection.find_one_and_update(
            {"_id": _object_id(answer_id, AnswerNotFoundError)},
            {"$set": {"feedback": feedback, "rating": rating}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise AnswerNotFoundError(answer_id)
        return serialize_document(doc)
