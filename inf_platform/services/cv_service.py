"""
CV Service - student CV storage in MongoDB.

Collection: student_cvs
- original file bytes, extracted text, filename, content type
- student_id references profiles.id in PostgreSQL

PostgreSQL keeps only the document id (profiles.cv_document_id).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from bson import Binary, ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection

from inf_platform.db.mongodb import get_collection, COLLECTIONS
from inf_platform.db.postgres import execute_raw_sql
from inf_platform.utils.file_upload import ExtractedFile

logger = logging.getLogger(__name__)


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


class StudentCVService:
    """
    Handles CV document storage.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["student_cvs"])

    def insert(self, student_id: str, upload: ExtractedFile) -> str:
        """
        Store an uploaded CV.

        Returns:
            MongoDB ObjectId as string (stored on the profile)
        """
        doc = {
            "student_id": str(student_id),
            "filename": upload.filename,
            "content_type": upload.content_type,
            "content": Binary(upload.content),
            "cv_text": upload.text,
            "uploaded_at": datetime.now(timezone.utc),
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def get_by_id(self, document_id: str) -> Optional[dict]:
        try:
            oid = ObjectId(document_id)
        except InvalidId:
            return None
        return serialize_doc(self.collection.find_one({"_id": oid}))

    def get_latest(self, student_id: str) -> Optional[dict]:
        """Most recent CV of a student."""
        doc = self.collection.find_one(
            {"student_id": str(student_id)},
            sort=[("uploaded_at", -1)]
        )
        return serialize_doc(doc)


def get_cv_service() -> StudentCVService:
    return StudentCVService()


# ============================================================
# POSTGRES SIDE
# ============================================================

def store_student_cv(student_id: str, upload: ExtractedFile) -> str:
    """Save the file in MongoDB and point the profile at it."""
    document_id = get_cv_service().insert(student_id, upload)
    execute_raw_sql(
        "UPDATE profiles SET cv_document_id = :doc_id, updated_at = NOW() WHERE id = :id",
        {"doc_id": document_id, "id": str(student_id)},
    )
    logger.info("Stored CV %s for student %s (%d bytes)", document_id, student_id, len(upload.content))
    return document_id


def company_can_view_cv(company_id: str, student_id: str) -> bool:
    """A company sees a student's CV only once the student booked one of its slots."""
    rows = execute_raw_sql(
        """
        SELECT 1
        FROM bookings b
        JOIN event_slots es ON es.id = b.slot_id
        WHERE es.company_id = :company_id AND b.student_id = :student_id
        LIMIT 1
        """,
        {"company_id": str(company_id), "student_id": str(student_id)},
    )
    return bool(rows)


def get_student_cv(student_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        "SELECT cv_document_id FROM profiles WHERE id = :id",
        {"id": str(student_id)},
    )
    if not rows or not rows[0]["cv_document_id"]:
        return None
    return get_cv_service().get_by_id(rows[0]["cv_document_id"])
