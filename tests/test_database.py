import re

import mongomock
import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

import database
import schemas
from database import Storage, build_search_filter
from errors import InfrastructureError, ValidationError


def _codes(items):
    return [p["propertyCode"] for p in items]


@pytest.fixture
def catalog(empty_catalog, make_property):
    """Four listings created oldest to newest."""
    store = empty_catalog
    store.create_property(make_property(propertyCode="P-1", price=500000, size=200, bedrooms=2))
    store.create_property(make_property(propertyCode="P-2", price=2800000, size=450, bedrooms=5))
    store.create_property(
        make_property(
            propertyCode="P-3",
            type="land",
            price=1200000,
            size=750,
            bedrooms=None,
            bathrooms=None,
            city="الدمام",
            area="الدمام الغربية",
            neighborhood="الشاطئ الغربي",
        )
    )
    store.create_property(
        make_property(
            propertyCode="P-4",
            type="apartment",
            price=85000,
            size=180,
            bedrooms=3,
            isRental=True,
            rentalPeriod="yearly",
            city="جدة",
            area="شمال جدة",
            neighborhood="الشاطئ",
        )
    )
    return store


def test_initialize_seeds_once(storage):
    assert storage.users.count_documents({}) == 1
    assert storage.properties.count_documents({}) == 3
    assert len(storage.get_approved_testimonials()) == 1
    assert len(storage.get_all_testimonials()) == 2

    again = Storage(storage.client, storage.settings)
    again.initialize()
    assert again.users.count_documents({}) == 1
    assert again.properties.count_documents({}) == 3


def test_seed_checks_admin_settings_before_writing(settings):
    store = Storage(mongomock.MongoClient(), settings.model_copy(update={"admin_password": "123"}))
    with pytest.raises(ValidationError) as exc:
        store.initialize()
    assert exc.value.message == schemas.FIELD_MESSAGES["password"]
    assert store.users.count_documents({}) == 0
    assert store.properties.count_documents({}) == 0

    fixed = Storage(store.client, settings)
    fixed.initialize()
    assert fixed.users.count_documents({}) == 1
    assert fixed.properties.count_documents({}) == 3


def test_seed_completes_after_interrupted_run(storage):
    # listings and testimonials written, admin missing
    storage.users.delete_many({})
    again = Storage(storage.client, storage.settings)
    again.initialize()
    assert again.get_user_by_username("admin")["role"] == "admin"
    assert again.properties.count_documents({}) == 3
    assert again.testimonials.count_documents({}) == 2


def test_initialize_fails_when_store_unreachable(settings):
    store = Storage.from_settings(
        settings.model_copy(update={"database_url": "mongodb://127.0.0.1:1", "db_timeout_ms": 200})
    )
    try:
        with pytest.raises(InfrastructureError):
            store.initialize()
    finally:
        store.close()


def test_driver_failure_becomes_infrastructure_error(storage, monkeypatch):
    def fail(*args, **kwargs):
        raise PyMongoError("connection reset")

    monkeypatch.setattr(storage.properties, "find", fail)
    with pytest.raises(InfrastructureError):
        storage.list_properties()


def test_initialize_creates_indexes(storage):
    property_indexes = storage.properties.index_information()
    assert property_indexes["propertyCode_1"]["unique"] is True
    assert "city_1_neighborhood_1" in property_indexes
    user_indexes = storage.users.index_information()
    assert user_indexes["username_1"]["unique"] is True
    assert user_indexes["email_1"]["unique"] is True


def test_seeded_admin_password_is_hashed(storage):
    admin = storage.get_user_by_username("admin")
    assert admin["role"] == "admin"
    assert admin["passwordHash"] != "admin-pass"
    assert storage.hasher.verify("admin-pass", admin["passwordHash"])
    assert not storage.hasher.verify("wrong-pass", admin["passwordHash"])


def test_duplicate_username_rejected(storage):
    with pytest.raises(ValidationError) as exc:
        storage.create_user({"username": "admin", "password": "secret1", "name": "x", "email": "other@example.com"})
    assert exc.value.message == database.DUPLICATE_USER


def test_search_without_filters_returns_all_newest_first(catalog):
    assert _codes(catalog.search_properties({})) == ["P-4", "P-3", "P-2", "P-1"]
    assert _codes(catalog.list_properties()) == ["P-4", "P-3", "P-2", "P-1"]


def test_search_price_range(catalog):
    found = catalog.search_properties({"minPrice": 500000, "maxPrice": 1200000})
    assert sorted(_codes(found)) == ["P-1", "P-3"]

    found = catalog.search_properties({"minPrice": 1200000})
    assert sorted(_codes(found)) == ["P-2", "P-3"]

    found = catalog.search_properties({"maxPrice": 500000})
    assert sorted(_codes(found)) == ["P-1", "P-4"]


def test_search_size_range(catalog):
    found = catalog.search_properties({"minSize": 200, "maxSize": 450})
    assert sorted(_codes(found)) == ["P-1", "P-2"]


def test_search_bedrooms_is_at_least(catalog):
    assert sorted(_codes(catalog.search_properties({"bedrooms": 3}))) == ["P-2", "P-4"]
    # listings without bedrooms (land) never match a bedroom filter
    assert "P-3" not in _codes(catalog.search_properties({"bedrooms": 1}))
    # zero imposes no constraint
    assert len(catalog.search_properties({"bedrooms": 0})) == 4


def test_search_exact_fields(catalog):
    assert _codes(catalog.search_properties({"isRental": True})) == ["P-4"]
    assert _codes(catalog.search_properties({"type": "land"})) == ["P-3"]
    assert _codes(catalog.search_properties({"city": "جدة", "area": "شمال جدة", "neighborhood": "الشاطئ"})) == ["P-4"]
    assert _codes(catalog.search_properties({"city": "الرياض", "isRental": False})) == ["P-2", "P-1"]


def test_search_no_match_is_empty(catalog):
    assert catalog.search_properties({"city": "تبوك"}) == []


def test_search_rejects_inconsistent_location(catalog):
    with pytest.raises(ValidationError):
        catalog.search_properties({"city": "الرياض", "area": "شمال جدة"})


def test_search_sort_and_pagination(catalog):
    assert _codes(catalog.search_properties({"sort": "priceLowToHigh"})) == ["P-4", "P-1", "P-3", "P-2"]
    assert _codes(catalog.search_properties({"sort": "sizeHighToLow"}))[0] == "P-3"
    assert _codes(catalog.search_properties({"skip": 1, "limit": 2})) == ["P-3", "P-2"]


def test_build_search_filter():
    search = schemas.validate(schemas.PropertySearch, {"city": "الرياض", "minPrice": 100, "bedrooms": 2, "isRental": False})
    assert build_search_filter(search) == {
        "city": "الرياض",
        "isRental": False,
        "price": {"$gte": 100},
        "bedrooms": {"$gte": 2},
    }
    assert build_search_filter(schemas.PropertySearch()) == {}


def test_scenario_villa_found_by_range_and_bedrooms(empty_catalog, make_property):
    created = empty_catalog.create_property(make_property(price=2800000, size=450, bedrooms=5))
    found = empty_catalog.search_properties({"minPrice": 2000000, "maxPrice": 3000000, "bedrooms": 4})
    assert [p["id"] for p in found] == [created["id"]]
    assert empty_catalog.search_properties({"bedrooms": 6}) == []


def test_create_assigns_code_and_timestamp(empty_catalog, make_property):
    created = empty_catalog.create_property(make_property())
    assert re.fullmatch(r"SA-\d{5}", created["propertyCode"])
    assert created["createdAt"] is not None
    assert "_id" not in created
    assert empty_catalog.get_property(created["id"])["title"] == "فيلا للبيع"


def test_create_without_images_fails(empty_catalog, make_property):
    payload = make_property()
    del payload["images"]
    with pytest.raises(ValidationError) as exc:
        empty_catalog.create_property(payload)
    assert exc.value.message == schemas.IMAGES_MESSAGE
    assert empty_catalog.properties.count_documents({}) == 0


def test_generated_code_collision_is_retried(storage, make_property, monkeypatch):
    codes = iter(["SA-12345", "SA-12346", "SA-55555"])
    monkeypatch.setattr(database, "generate_property_code", lambda: next(codes))
    created = storage.create_property(make_property())
    assert created["propertyCode"] == "SA-55555"
    assert storage.properties.count_documents({"propertyCode": "SA-12345"}) == 1


def test_generated_code_gives_up_after_bounded_attempts(storage, make_property, monkeypatch):
    monkeypatch.setattr(database, "generate_property_code", lambda: "SA-12345")
    with pytest.raises(InfrastructureError):
        storage.create_property(make_property())


def test_supplied_duplicate_code_rejected(storage, make_property):
    with pytest.raises(ValidationError) as exc:
        storage.create_property(make_property(propertyCode="SA-12345"))
    assert exc.value.message == database.DUPLICATE_CODE


def test_property_codes_stay_unique(empty_catalog, make_property):
    for _ in range(30):
        empty_catalog.create_property(make_property())
    codes = _codes(empty_catalog.list_properties())
    assert len(codes) == len(set(codes)) == 30


def test_get_property_absent_for_bad_or_missing_id(storage):
    assert storage.get_property("not-an-id") is None
    assert storage.get_property(str(ObjectId())) is None
    assert storage.get_property_by_code("SA-00000") is None
    assert storage.get_property_by_code("SA-12345")["type"] == "villa"


def test_partial_update(storage):
    villa = storage.get_property_by_code("SA-12345")
    updated = storage.update_property(villa["id"], {"price": 2500000, "status": "sold"})
    assert updated["price"] == 2500000
    assert updated["status"] == "sold"
    assert updated["title"] == villa["title"]
    assert updated["propertyCode"] == "SA-12345"
    assert updated["updatedAt"] is not None
    assert updated["createdAt"] == villa["createdAt"]


def test_update_ignores_identity_fields(storage):
    villa = storage.get_property_by_code("SA-12345")
    with pytest.raises(ValidationError) as exc:
        storage.update_property(villa["id"], {"id": "x", "createdAt": "2020-01-01"})
    assert exc.value.message == database.NO_FIELDS


def test_update_checks_merged_location(storage):
    villa = storage.get_property_by_code("SA-12345")
    with pytest.raises(ValidationError):
        storage.update_property(villa["id"], {"neighborhood": "الشاطئ"})
    moved = storage.update_property(villa["id"], {"neighborhood": "النرجس"})
    assert moved["neighborhood"] == "النرجس"


def test_update_rejects_rental_period_on_sale_listing(storage):
    villa = storage.get_property_by_code("SA-12345")
    with pytest.raises(ValidationError) as exc:
        storage.update_property(villa["id"], {"rentalPeriod": "monthly"})
    assert exc.value.message == schemas.RENTAL_PERIOD_MESSAGE
    assert "rentalPeriod" not in storage.get_property(villa["id"])

    updated = storage.update_property(villa["id"], {"isRental": True, "rentalPeriod": "monthly"})
    assert updated["isRental"] is True
    assert updated["rentalPeriod"] == "monthly"


def test_update_off_rental_drops_period(storage):
    flat = storage.get_property_by_code("SA-12346")
    assert flat["rentalPeriod"] == "yearly"
    with pytest.raises(ValidationError):
        storage.update_property(flat["id"], {"isRental": False, "rentalPeriod": "monthly"})

    updated = storage.update_property(flat["id"], {"isRental": False})
    assert updated["isRental"] is False
    assert "rentalPeriod" not in updated
    assert "rentalPeriod" not in storage.get_property(flat["id"])


def test_update_missing_property(storage):
    assert storage.update_property(str(ObjectId()), {"price": 1}) is None
    assert storage.update_property("bad", {"price": 1}) is None


def test_delete_reports_whether_removed(storage):
    villa = storage.get_property_by_code("SA-12345")
    assert storage.delete_property(villa["id"]) is True
    assert storage.get_property(villa["id"]) is None
    assert storage.delete_property(villa["id"]) is False
    assert storage.delete_property("bad-id") is False


def test_featured_only_available(storage):
    villa = storage.get_property_by_code("SA-12345")
    storage.update_property(villa["id"], {"status": "sold"})
    featured = storage.get_featured_properties()
    assert "SA-12345" not in _codes(featured)
    assert len(storage.get_featured_properties(limit=1)) == 1


def test_similar_properties(empty_catalog, make_property):
    base = empty_catalog.create_property(make_property())
    twin = empty_catalog.create_property(make_property(price=1700000))
    empty_catalog.create_property(make_property(type="land", bedrooms=None))
    similar = empty_catalog.get_similar_properties(base["id"])
    assert [p["id"] for p in similar] == [twin["id"]]
    assert empty_catalog.get_similar_properties(str(ObjectId())) is None


def test_contact_message_read_flag(storage):
    msg = storage.create_contact_message(
        {"name": "أحمد", "email": "ahmed@example.com", "subject": "استفسار", "message": "هل الفيلا متاحة؟"}
    )
    assert storage.get_contact_message(msg["id"])["isRead"] is False
    assert storage.mark_contact_message_as_read(msg["id"]) is True
    assert storage.get_contact_message(msg["id"])["isRead"] is True
    # already read still counts as found
    assert storage.mark_contact_message_as_read(msg["id"]) is True
    assert storage.mark_contact_message_as_read(str(ObjectId())) is False


def test_testimonial_visible_only_after_approval(storage):
    created = storage.create_testimonial({"name": "خالد", "location": "الدمام", "message": "خدمة رائعة", "rating": 5})
    assert created["isApproved"] is False
    assert created["id"] not in [t["id"] for t in storage.get_approved_testimonials()]
    assert storage.approve_testimonial(created["id"]) is True
    assert created["id"] in [t["id"] for t in storage.get_approved_testimonials()]
    assert storage.approve_testimonial("bad-id") is False


def test_sessions(storage):
    admin = storage.get_user_by_username("admin")
    token = storage.create_session(admin["id"])
    assert storage.get_session_user_id(token) == admin["id"]
    assert storage.delete_session(token) is True
    assert storage.get_session_user_id(token) is None
