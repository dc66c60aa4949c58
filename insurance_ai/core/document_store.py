"""
Document store for customer, insurer and policy records plus uploaded policy files.
Records live in MongoDB collections; files live in GridFS and are exposed to the
LLM provider through this service's /api/files endpoints.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import gridfs
from bson import ObjectId
from gridfs.grid_file import GridOut
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from insurance_ai.config import Settings
from insurance_ai.core.mongodb_client import Collections, get_database
from insurance_ai.errors import ContextNotFoundError


logger = logging.getLogger(__name__)


def _object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return a JSON-friendly copy of a record with a string _id."""
    if doc is None:
        return None
    doc = dict(doc)
    doc["_id"] = str(doc["_id"])
    return doc


class DocumentStore:
    """
    Query / mutation / storage access used by the assistant and API layer.
    Every method is a single MongoDB operation; no locks are held across calls.
    """

    def __init__(self, database: Database, public_base_url: str):
        self.db = database
        self.files = gridfs.GridFS(database)
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocumentStore":
        return cls(get_database(settings), settings.public_base_url)

    def ping(self) -> bool:
        """True when the database answers a ping."""
        try:
            self.db.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB connection check failed: {e}")
            return False

    # ---- queries -------------------------------------------------------

    def get_policy(self, policy_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(policy_id)
        if oid is None:
            return None
        return _serialize(self.db[Collections.POLICIES].find_one({"_id": oid}))

    def list_policies(self) -> List[Dict[str, Any]]:
        return [_serialize(doc) for doc in self.db[Collections.POLICIES].find({})]

    def get_customer_by_user_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return _serialize(self.db[Collections.CUSTOMERS].find_one({"userId": user_id}))

    def get_insurer(self, insurer_id: str) -> Optional[Dict[str, Any]]:
        oid = _object_id(insurer_id)
        if oid is None:
            return None
        return _serialize(self.db[Collections.INSURERS].find_one({"_id": oid}))

    def get_insurer_by_user_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return _serialize(self.db[Collections.INSURERS].find_one({"userId": user_id}))

    def customers_with_past_policies(self) -> List[Dict[str, Any]]:
        cursor = self.db[Collections.CUSTOMERS].find({"pastPolicies": {"$exists": True, "$ne": []}})
        return [_serialize(doc) for doc in cursor]

    # ---- mutations -----------------------------------------------------

    def add_past_policy(self, customer_id: str, policy: Dict[str, Any]) -> Dict[str, Any]:
        """
        Append a past policy to a customer.

        Raises:
            ContextNotFoundError: the customer does not exist
        """
        updated = self.db[Collections.CUSTOMERS].find_one_and_update(
            {"_id": _object_id(customer_id)},
            {"$push": {"pastPolicies": policy}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise ContextNotFoundError("Customer not found")

        total = len(updated.get("pastPolicies", []))
        return {
            "customerId": customer_id,
            "addedPolicy": policy,
            "totalPolicies": total,
            "policyIndex": total - 1,
        }

    def add_policy(self, insurer_id: str, policy: Dict[str, Any]) -> str:
        """
        Insert an insurer's policy and push a summary onto the insurer's policy list.

        Raises:
            ContextNotFoundError: the insurer does not exist
        """
        insurer_oid = _object_id(insurer_id)
        if insurer_oid is None or self.db[Collections.INSURERS].count_documents({"_id": insurer_oid}, limit=1) == 0:
            raise ContextNotFoundError("Insurer not found")

        record = {
            "name": policy["name"],
            "storageId": policy["storageId"],
            "insurer": insurer_id,
            "type": policy.get("type") or "health",
            "premium": policy.get("premium") or "0",
            "years": policy.get("years") or "1",
            "sumInsured": policy.get("sumInsured") or "0",
            "features": policy.get("features") or [],
            "provider": policy.get("provider"),
        }
        result = self.db[Collections.POLICIES].insert_one(record)

        summary = {k: record[k] for k in ("storageId", "name", "type", "premium", "years", "sumInsured", "features")}
        self.db[Collections.INSURERS].update_one({"_id": insurer_oid}, {"$push": {"policies": summary}})

        logger.info(f"Policy {result.inserted_id} added for insurer {insurer_id}")
        return str(result.inserted_id)

    def update_recommended_policies(self, customer_id: str, recommendations: List[Dict[str, Any]]) -> Dict[str, Any]:
        result = self.db[Collections.CUSTOMERS].update_one(
            {"_id": _object_id(customer_id)},
            {"$set": {"recommendedPolicies": recommendations}},
        )
        if result.matched_count == 0:
            raise ContextNotFoundError("Customer not found")
        return {"customerId": customer_id, "recommendedPoliciesCount": len(recommendations)}

    def record_inquiry(self, inquiry: Dict[str, Any]) -> str:
        """Store an insurer inquiry for manual follow-up."""
        record = dict(inquiry, createdAt=datetime.now(timezone.utc), status="pending")
        result = self.db[Collections.INQUIRIES].insert_one(record)
        return str(result.inserted_id)

    # ---- file storage --------------------------------------------------

    def save_file(self, data: bytes, filename: str, content_type: str = "application/pdf") -> str:
        """Store an uploaded file and return its storage id."""
        storage_id = self.files.put(data, filename=filename, content_type=content_type)
        return str(storage_id)

    def open_file(self, storage_id: str) -> Optional[GridOut]:
        oid = _object_id(storage_id)
        if oid is None:
            return None
        try:
            return self.files.get(oid)
        except gridfs.NoFile:
            return None

    def get_upload_url(self) -> str:
        return f"{self.public_base_url}/api/files"

    def get_download_url(self, storage_id: str) -> Optional[str]:
        """URL the LLM provider can fetch the document from; None if no such file."""
        oid = _object_id(storage_id)
        if oid is None or not self.files.exists(oid):
            return None
        return f"{self.public_base_url}/api/files/{storage_id}"
