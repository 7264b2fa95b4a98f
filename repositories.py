"""
Collection repositories.

Every write goes through a repository so the lifecycle hooks run in a fixed
order: ``before_save``/``before_update`` prepare the document, the write is
issued, then ``after_save``/``after_delete`` maintain derived fields on
related documents.
"""

import logging
import math
import re
import unicodedata
from datetime import datetime, timezone
from typing import Optional, Type

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import BOOTCAMPS, COURSES, REVIEWS, USERS, create_document, object_id
from geocoder import Geocoder
from schemas import Bootcamp, Course, Review, User
from security import generate_reset_token, get_password_hash, hash_reset_token, verify_password

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3963


def slugify(value: str) -> str:
    """Lowercase ASCII, hyphen separated form of a name for readable URLs."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value).strip().lower()
    return re.sub(r"[-\s]+", "-", value)


def radius_filter(latitude: float, longitude: float, distance: float) -> dict:
    """Match documents whose location lies within ``distance`` miles."""
    radius = distance / EARTH_RADIUS_MILES
    return {"location": {"$geoWithin": {"$centerSphere": [[longitude, latitude], radius]}}}


class Repository:
    collection_name: str = ""
    schema: Type[BaseModel] = BaseModel

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]

    def find_by_id(self, id, projection: Optional[dict] = None) -> Optional[dict]:
        return self.collection.find_one({"_id": object_id(id)}, projection)

    def find_one(self, filter_dict: dict) -> Optional[dict]:
        return self.collection.find_one(filter_dict)

    def find(self, filter_dict: dict) -> list:
        return list(self.collection.find(filter_dict))

    def create(self, data: dict) -> dict:
        data = self.before_save(dict(data))
        document = self.schema.model_validate(data).model_dump(exclude_none=True)
        inserted_id = create_document(self.db, self.collection_name, document)
        logger.info("Created %s %s", self.collection_name, inserted_id)
        doc = self.collection.find_one({"_id": inserted_id})
        self.after_save(doc)
        return doc

    def update(self, id, changes: dict) -> Optional[dict]:
        changes = self.before_update(dict(changes))
        changes["updated_at"] = datetime.now(timezone.utc)
        doc = self.collection.find_one_and_update(
            {"_id": object_id(id)},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            logger.info("Updated %s %s", self.collection_name, doc["_id"])
            self.after_save(doc)
        return doc

    def delete(self, doc: dict) -> None:
        self.before_delete(doc)
        self.collection.delete_one({"_id": doc["_id"]})
        logger.info("Deleted %s %s", self.collection_name, doc["_id"])
        self.after_delete(doc)

    def before_save(self, data: dict) -> dict:
        return data

    def before_update(self, changes: dict) -> dict:
        return changes

    def after_save(self, doc: dict) -> None:
        pass

    def before_delete(self, doc: dict) -> None:
        pass

    def after_delete(self, doc: dict) -> None:
        pass


class UserRepository(Repository):
    collection_name = USERS
    schema = User

    def before_save(self, data: dict) -> dict:
        if data.get("email"):
            data["email"] = data["email"].lower()
        password = data.pop("password", None)
        if password is not None:
            data["password_hash"] = get_password_hash(password)
        return data

    before_update = before_save

    def find_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.lower()})

    @staticmethod
    def match_password(user: dict, password: str) -> bool:
        return verify_password(password, user.get("password_hash", ""))

    def issue_reset_token(self, user: dict) -> str:
        """Store the hashed reset token on the user and return the plaintext.

        Written directly, without schema validation.
        """
        token, hashed, expire = generate_reset_token()
        self.collection.update_one(
            {"_id": user["_id"]},
            {"$set": {"reset_password_token": hashed, "reset_password_expire": expire}},
        )
        return token

    def clear_reset_token(self, user: dict) -> None:
        self.collection.update_one(
            {"_id": user["_id"]},
            {"$unset": {"reset_password_token": "", "reset_password_expire": ""}},
        )

    def find_by_reset_token(self, token: str) -> Optional[dict]:
        user = self.collection.find_one({"reset_password_token": hash_reset_token(token)})
        if not user:
            return None
        expire = user.get("reset_password_expire")
        if expire is None:
            return None
        # pymongo hands back naive UTC datetimes
        if expire.tzinfo is None:
            expire = expire.replace(tzinfo=timezone.utc)
        if expire <= datetime.now(timezone.utc):
            return None
        return user

    def reset_password(self, user: dict, password: str) -> dict:
        return self.collection.find_one_and_update(
            {"_id": user["_id"]},
            {
                "$set": {"password_hash": get_password_hash(password), "updated_at": datetime.now(timezone.utc)},
                "$unset": {"reset_password_token": "", "reset_password_expire": ""},
            },
            return_document=ReturnDocument.AFTER,
        )


class BootcampRepository(Repository):
    collection_name = BOOTCAMPS
    schema = Bootcamp

    def __init__(self, db: Database, geocoder: Optional[Geocoder] = None):
        super().__init__(db)
        self.geocoder = geocoder

    def _locate(self, address: str) -> dict:
        if self.geocoder is None:
            raise RuntimeError("BootcampRepository needs a geocoder to resolve addresses")
        results = self.geocoder.geocode(address)
        if not results:
            raise HTTPException(status_code=400, detail=f"Could not geocode address {address}")
        return results[0].to_location()

    def before_save(self, data: dict) -> dict:
        data["slug"] = slugify(data["name"])
        data["location"] = self._locate(data.pop("address"))
        return data

    def before_update(self, changes: dict) -> dict:
        if "name" in changes:
            changes["slug"] = slugify(changes["name"])
        if "address" in changes:
            changes["location"] = self._locate(changes.pop("address"))
        return changes

    def before_delete(self, doc: dict) -> None:
        courses = self.db[COURSES].delete_many({"bootcamp": doc["_id"]})
        reviews = self.db[REVIEWS].delete_many({"bootcamp": doc["_id"]})
        logger.info(
            "Removed %d courses and %d reviews of bootcamp %s",
            courses.deleted_count, reviews.deleted_count, doc["_id"],
        )

    def owned_by(self, user_id) -> Optional[dict]:
        return self.collection.find_one({"user": object_id(user_id)})

    def within_radius(self, latitude: float, longitude: float, distance: float) -> list:
        return list(self.collection.find(radius_filter(latitude, longitude, distance)))

    def set_photo(self, id, filename: str) -> None:
        self.collection.update_one({"_id": object_id(id)}, {"$set": {"photo": filename}})


class CourseRepository(Repository):
    collection_name = COURSES
    schema = Course

    def update_average_cost(self, bootcamp_id: ObjectId) -> None:
        """Set the bootcamp's average_cost to the mean tuition rounded up to
        the next multiple of ten. Failures are logged, not raised."""
        try:
            result = list(self.collection.aggregate([
                {"$match": {"bootcamp": bootcamp_id}},
                {"$group": {"_id": "$bootcamp", "average_cost": {"$avg": "$tuition"}}},
            ]))
            if result:
                average = int(math.ceil(result[0]["average_cost"] / 10) * 10)
                update = {"$set": {"average_cost": average}}
            else:
                update = {"$unset": {"average_cost": ""}}
            self.db[BOOTCAMPS].update_one({"_id": bootcamp_id}, update)
        except PyMongoError:
            logger.exception("Could not update average cost of bootcamp %s", bootcamp_id)

    def after_save(self, doc: dict) -> None:
        self.update_average_cost(doc["bootcamp"])

    def after_delete(self, doc: dict) -> None:
        self.update_average_cost(doc["bootcamp"])


class ReviewRepository(Repository):
    collection_name = REVIEWS
    schema = Review

    def update_average_rating(self, bootcamp_id: ObjectId) -> None:
        try:
            result = list(self.collection.aggregate([
                {"$match": {"bootcamp": bootcamp_id}},
                {"$group": {"_id": "$bootcamp", "average_rating": {"$avg": "$rating"}}},
            ]))
            if result:
                update = {"$set": {"average_rating": result[0]["average_rating"]}}
            else:
                update = {"$unset": {"average_rating": ""}}
            self.db[BOOTCAMPS].update_one({"_id": bootcamp_id}, update)
        except PyMongoError:
            logger.exception("Could not update average rating of bootcamp %s", bootcamp_id)

    def after_save(self, doc: dict) -> None:
        self.update_average_rating(doc["bootcamp"])

    def after_delete(self, doc: dict) -> None:
        self.update_average_rating(doc["bootcamp"])
