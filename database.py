"""
MongoDB persistence for listings, accounts, inquiries and testimonials.

A single `Storage` handle is built once per process and handed to the API
through dependency injection. `initialize()` must run before any traffic: it
creates the indexes and seeds an empty store.
"""
import functools
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import Settings
from errors import InfrastructureError, ValidationError
from locations import location_error
from logger import get_logger
from schemas import (
    RENTAL_PERIOD_MESSAGE,
    ContactMessageCreate,
    PropertyCreate,
    PropertySearch,
    PropertyUpdate,
    TestimonialCreate,
    UserCreate,
    to_document,
    validate,
)
from security import PasswordHasher, new_session_token
from seed import seed_data

LOGGER = get_logger("database")

CODE_ATTEMPTS = 5
DUPLICATE_CODE = "رمز العقار مستخدم مسبقاً"
DUPLICATE_USER = "اسم المستخدم أو البريد الإلكتروني مستخدم مسبقاً"
NO_FIELDS = "لا توجد حقول للتحديث"

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]
SORT_ORDERS = {
    "newest": NEWEST_FIRST,
    "priceHighToLow": [("price", DESCENDING), ("_id", DESCENDING)],
    "priceLowToHigh": [("price", ASCENDING), ("_id", DESCENDING)],
    "sizeHighToLow": [("size", DESCENDING), ("_id", DESCENDING)],
}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def generate_property_code() -> str:
    return f"SA-{random.randint(10000, 99999)}"


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def _range(low: Optional[float], high: Optional[float]) -> Dict[str, float]:
    cond: Dict[str, float] = {}
    if low is not None:
        cond["$gte"] = low
    if high is not None:
        cond["$lte"] = high
    return cond


def build_search_filter(search: PropertySearch) -> Dict[str, Any]:
    """Mongo filter for a property search; absent fields add no constraint."""
    query: Dict[str, Any] = {}
    for field in ("city", "area", "neighborhood", "type"):
        value = getattr(search, field)
        if value:
            query[field] = value
    if search.is_rental is not None:
        query["isRental"] = search.is_rental
    price = _range(search.min_price, search.max_price)
    if price:
        query["price"] = price
    size = _range(search.min_size, search.max_size)
    if size:
        query["size"] = size
    # at-least semantics; 0 means "any"
    if search.bedrooms:
        query["bedrooms"] = {"$gte": search.bedrooms}
    return query


def store_operation(func):
    """Surface driver failures as InfrastructureError; no retries."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PyMongoError as exc:
            LOGGER.error("%s failed: %s", func.__name__, exc)
            raise InfrastructureError() from exc

    return wrapper


class Storage:
    def __init__(self, client: MongoClient, settings: Settings, hasher: Optional[PasswordHasher] = None):
        self.settings = settings
        self.client = client
        self.db = client[settings.database_name]
        self.hasher = hasher or PasswordHasher(settings.bcrypt_rounds)
        self.users = self.db["users"]
        self.properties = self.db["properties"]
        self.contact_messages = self.db["contact_messages"]
        self.testimonials = self.db["testimonials"]
        self.sessions = self.db["sessions"]
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "Storage":
        client = MongoClient(
            settings.database_url,
            maxPoolSize=10,
            minPoolSize=2,
            maxIdleTimeMS=30000,
            serverSelectionTimeoutMS=settings.db_timeout_ms,
            socketTimeoutMS=45000,
            tz_aware=True,
        )
        return cls(client, settings)

    # ---------- Lifecycle ----------
    def initialize(self) -> None:
        if self._initialized:
            return
        try:
            self._create_indexes()
            if self.users.count_documents({}) == 0:
                seed_data(self)
        except PyMongoError as exc:
            LOGGER.error("MongoDB connection error: %s", exc)
            raise InfrastructureError() from exc
        self._initialized = True
        LOGGER.info("MongoDB connected (database=%s)", self.db.name)

    def _create_indexes(self) -> None:
        self.users.create_index([("username", ASCENDING)], unique=True)
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.properties.create_index([("propertyCode", ASCENDING)], unique=True)
        self.properties.create_index([("city", ASCENDING), ("neighborhood", ASCENDING)])
        self.properties.create_index([("type", ASCENDING)])
        self.properties.create_index([("price", ASCENDING)])
        self.properties.create_index([("size", ASCENDING)])
        self.properties.create_index([("createdAt", DESCENDING)])
        self.sessions.create_index([("token", ASCENDING)], unique=True)
        self.sessions.create_index([("expiresAt", ASCENDING)], expireAfterSeconds=0)

    @store_operation
    def collection_names(self) -> List[str]:
        return self.db.list_collection_names()

    def close(self) -> None:
        self.client.close()

    def _find(self, collection, query: Dict[str, Any], sort=NEWEST_FIRST, skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        cursor = collection.find(query).sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [serialize_doc(d) for d in cursor]

    def _find_by_id(self, collection, doc_id: Any) -> Optional[Dict[str, Any]]:
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        return serialize_doc(collection.find_one({"_id": oid}))

    def _set_flag(self, collection, doc_id: Any, field: str) -> bool:
        oid = to_object_id(doc_id)
        if oid is None:
            return False
        res = collection.update_one({"_id": oid}, {"$set": {field: True}})
        return res.matched_count > 0

    # ---------- Users ----------
    @store_operation
    def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        return self._find_by_id(self.users, user_id)

    @store_operation
    def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return serialize_doc(self.users.find_one({"username": username}))

    @store_operation
    def create_user(self, data) -> Dict[str, Any]:
        user = validate(UserCreate, data)
        doc = {
            "username": user.username,
            "passwordHash": self.hasher.hash(user.password),
            "name": user.name,
            "role": user.role,
            "email": str(user.email),
            "createdAt": now_utc(),
        }
        if user.phone:
            doc["phone"] = user.phone
        try:
            result = self.users.insert_one(doc)
        except DuplicateKeyError:
            raise ValidationError(DUPLICATE_USER) from None
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    # ---------- Properties ----------
    @store_operation
    def list_properties(self, skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._find(self.properties, {}, skip=skip, limit=limit)

    @store_operation
    def get_property(self, property_id: Any) -> Optional[Dict[str, Any]]:
        return self._find_by_id(self.properties, property_id)

    @store_operation
    def get_property_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        return serialize_doc(self.properties.find_one({"propertyCode": code}))

    @store_operation
    def create_property(self, data) -> Dict[str, Any]:
        prop = validate(PropertyCreate, data)
        doc = to_document(prop)
        doc["createdAt"] = now_utc()
        supplied = "propertyCode" in doc
        for _ in range(CODE_ATTEMPTS):
            doc.pop("_id", None)
            if not supplied:
                doc["propertyCode"] = generate_property_code()
            try:
                result = self.properties.insert_one(doc)
            except DuplicateKeyError:
                if supplied:
                    raise ValidationError(DUPLICATE_CODE) from None
                LOGGER.warning("property code %s already taken, regenerating", doc["propertyCode"])
                continue
            doc["_id"] = result.inserted_id
            LOGGER.info("property created: %s (%s)", result.inserted_id, doc["propertyCode"])
            return serialize_doc(doc)
        LOGGER.error("no free property code after %d attempts", CODE_ATTEMPTS)
        raise InfrastructureError()

    @store_operation
    def update_property(self, property_id: Any, data) -> Optional[Dict[str, Any]]:
        oid = to_object_id(property_id)
        if oid is None:
            return None
        update = to_document(validate(PropertyUpdate, data))
        if not update:
            raise ValidationError(NO_FIELDS)
        changes: Dict[str, Any] = {"$set": update}
        if {"city", "area", "neighborhood", "isRental", "rentalPeriod"} & update.keys():
            current = self.properties.find_one({"_id": oid})
            if current is None:
                return None
            merged = {k: update.get(k, current.get(k)) for k in ("city", "area", "neighborhood")}
            error = location_error(merged["city"], merged["area"], merged["neighborhood"])
            if error:
                raise ValidationError(error)
            if not update.get("isRental", current.get("isRental", False)):
                if "rentalPeriod" in update:
                    raise ValidationError(RENTAL_PERIOD_MESSAGE)
                # a listing taken off the rental market drops its period
                if current.get("rentalPeriod") is not None:
                    changes["$unset"] = {"rentalPeriod": ""}
        update["updatedAt"] = now_utc()
        try:
            doc = self.properties.find_one_and_update(
                {"_id": oid}, changes, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise ValidationError(DUPLICATE_CODE) from None
        if doc is not None:
            LOGGER.info("property updated: %s (%s)", oid, ", ".join(sorted(update)))
        return serialize_doc(doc)

    @store_operation
    def delete_property(self, property_id: Any) -> bool:
        oid = to_object_id(property_id)
        if oid is None:
            return False
        deleted = self.properties.delete_one({"_id": oid}).deleted_count > 0
        if deleted:
            LOGGER.info("property deleted: %s", oid)
        return deleted

    @store_operation
    def search_properties(self, search) -> List[Dict[str, Any]]:
        search = validate(PropertySearch, search or {})
        return self._find(
            self.properties,
            build_search_filter(search),
            sort=SORT_ORDERS[search.sort],
            skip=search.skip,
            limit=search.limit,
        )

    @store_operation
    def get_featured_properties(self, limit: int = 6) -> List[Dict[str, Any]]:
        return self._find(self.properties, {"status": "available"}, limit=limit)

    @store_operation
    def get_similar_properties(self, property_id: Any, limit: int = 3) -> Optional[List[Dict[str, Any]]]:
        """Same city, type and offer kind as the given listing, newest first."""
        oid = to_object_id(property_id)
        if oid is None:
            return None
        prop = self.properties.find_one({"_id": oid})
        if prop is None:
            return None
        query = {
            "_id": {"$ne": oid},
            "city": prop.get("city"),
            "type": prop.get("type"),
            "isRental": prop.get("isRental", False),
        }
        return self._find(self.properties, query, limit=limit)

    # ---------- Contact messages ----------
    @store_operation
    def create_contact_message(self, data) -> Dict[str, Any]:
        doc = to_document(validate(ContactMessageCreate, data))
        doc["createdAt"] = now_utc()
        doc["isRead"] = False
        doc["_id"] = self.contact_messages.insert_one(doc).inserted_id
        return serialize_doc(doc)

    @store_operation
    def get_all_contact_messages(self) -> List[Dict[str, Any]]:
        return self._find(self.contact_messages, {})

    @store_operation
    def get_contact_message(self, message_id: Any) -> Optional[Dict[str, Any]]:
        return self._find_by_id(self.contact_messages, message_id)

    @store_operation
    def mark_contact_message_as_read(self, message_id: Any) -> bool:
        return self._set_flag(self.contact_messages, message_id, "isRead")

    # ---------- Testimonials ----------
    @store_operation
    def create_testimonial(self, data) -> Dict[str, Any]:
        doc = to_document(validate(TestimonialCreate, data))
        doc["createdAt"] = now_utc()
        doc["isApproved"] = False
        doc["_id"] = self.testimonials.insert_one(doc).inserted_id
        return serialize_doc(doc)

    @store_operation
    def get_approved_testimonials(self) -> List[Dict[str, Any]]:
        return self._find(self.testimonials, {"isApproved": True})

    @store_operation
    def get_all_testimonials(self) -> List[Dict[str, Any]]:
        return self._find(self.testimonials, {})

    @store_operation
    def approve_testimonial(self, testimonial_id: Any) -> bool:
        return self._set_flag(self.testimonials, testimonial_id, "isApproved")

    # ---------- Sessions ----------
    @store_operation
    def create_session(self, user_id: str) -> str:
        token = new_session_token()
        created = now_utc()
        self.sessions.insert_one(
            {
                "token": token,
                "userId": user_id,
                "createdAt": created,
                "expiresAt": created + timedelta(seconds=self.settings.session_max_age),
            }
        )
        return token

    @store_operation
    def get_session_user_id(self, token: str) -> Optional[str]:
        doc = self.sessions.find_one({"token": token})
        return doc["userId"] if doc else None

    @store_operation
    def delete_session(self, token: str) -> bool:
        return self.sessions.delete_one({"token": token}).deleted_count > 0
