"""
Image store - metadata adapter over the images collection

All reads used by the list, fetch, stats and summary endpoints go through
this class. Records are plain dicts in their stored (snake_case) shape.
"""
from typing import Dict, List, Any, Optional, Sequence, Tuple
from datetime import datetime
import logging
import re

from pymongo import ReturnDocument

from app.models.image import ImageInDB

logger = logging.getLogger(__name__)

TOP_TAGS_LIMIT = 10
COUNTERS = ("views", "downloads")


class ImageStore:
    """Queries and writes for asset records"""

    def __init__(self, db):
        self.db = db
        self.collection = db["images"]

    @staticmethod
    def build_list_query(
        user_id: str,
        mine: bool = False,
        tags: Sequence[str] = (),
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the filter for a listing.

        ``mine`` restricts to the caller's own records (public and private).
        Otherwise the caller sees their own records plus every public one.
        Tags match when a record holds at least one of them, and the search
        text narrows the visible set, it never widens it.
        """
        if mine:
            clauses = [{"uploaded_by": user_id}]
        else:
            clauses = [{"$or": [{"uploaded_by": user_id}, {"is_public": True}]}]

        if tags:
            clauses.append({"tags": {"$in": list(tags)}})

        if search and search.strip():
            pattern = re.escape(search.strip())
            clauses.append({"$or": [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]})

        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    async def insert(self, record: ImageInDB) -> Dict[str, Any]:
        doc = record.model_dump(by_alias=True)
        await self.collection.insert_one(doc)
        return doc

    async def get(self, image_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"_id": image_id})

    async def attach_uploaders(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Add an ``uploader`` entry (id, username, full_name) to each record.

        One query for the whole page. Records whose owner no longer exists
        get ``uploader = None``.
        """
        owner_ids = list({doc["uploaded_by"] for doc in docs})
        if not owner_ids:
            return docs

        users = {}
        cursor = self.db["users"].find(
            {"_id": {"$in": owner_ids}},
            {"username": 1, "full_name": 1},
        )
        async for user in cursor:
            users[user["_id"]] = {
                "id": user["_id"],
                "username": user.get("username"),
                "full_name": user.get("full_name"),
            }

        for doc in docs:
            doc["uploader"] = users.get(doc["uploaded_by"])
        return docs

    async def list(
        self,
        user_id: str,
        mine: bool = False,
        tags: Sequence[str] = (),
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Return one page of visible records (newest first) and the total"""
        query = self.build_list_query(user_id, mine=mine, tags=tags, search=search)

        total = await self.collection.count_documents(query)

        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("created_at", -1).skip(skip).limit(limit)

        docs = []
        async for doc in cursor:
            docs.append(doc)
        return docs, total

    async def update(self, image_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Set the given fields and refresh updated_at"""
        changes = dict(fields)
        changes["updated_at"] = datetime.utcnow()
        return await self.collection.find_one_and_update(
            {"_id": image_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    async def delete(self, image_id: str) -> bool:
        result = await self.collection.delete_one({"_id": image_id})
        return result.deleted_count > 0

    async def increment(self, image_id: str, counter: str) -> Optional[Dict[str, Any]]:
        """Atomically bump a usage counter"""
        if counter not in COUNTERS:
            raise ValueError(f"Unknown counter: {counter}")

        return await self.collection.find_one_and_update(
            {"_id": image_id},
            {"$inc": {counter: 1}, "$set": {"updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    async def owner_stats(self, user_id: str) -> Dict[str, Any]:
        """Counts, storage total and most used tags for one owner"""
        owned = {"uploaded_by": user_id}

        total_images = await self.collection.count_documents(owned)
        public_images = await self.collection.count_documents({**owned, "is_public": True})
        private_images = await self.collection.count_documents({**owned, "is_public": False})

        total_storage = 0
        storage_cursor = self.collection.aggregate([
            {"$match": owned},
            {"$group": {"_id": None, "total": {"$sum": "$size"}}},
        ])
        async for row in storage_cursor:
            total_storage = int(row.get("total") or 0)

        top_tags = []
        tags_cursor = self.collection.aggregate([
            {"$match": owned},
            {"$unwind": "$tags"},
            {"$group": {"_id": "$tags", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": TOP_TAGS_LIMIT},
        ])
        async for row in tags_cursor:
            top_tags.append({"tag": row["_id"], "count": row["count"]})

        return {
            "total_images": total_images,
            "public_images": public_images,
            "private_images": private_images,
            "total_storage": total_storage,
            "total_storage_mb": f"{total_storage / (1024 * 1024):.2f}",
            "top_tags": top_tags,
        }

    async def portal_summary(self) -> Dict[str, Any]:
        """Site-wide counters shown on the home page"""
        total_images = await self.collection.count_documents({})
        public_images = await self.collection.count_documents({"is_public": True})
        contributors = await self.collection.distinct("uploaded_by")
        return {
            "total_images": total_images,
            "public_images": public_images,
            "contributors": len(contributors),
        }
