from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from auth import (
    INVALID_CREDENTIALS,
    authenticate,
    end_session,
    get_current_user,
    get_storage,
    public_user,
    require_admin,
    start_session,
)
from config import Settings, get_settings
from database import Storage
from errors import AuthError, InfrastructureError, NotFoundError, register_error_handlers
from locations import CITY_STRUCTURE
from logger import configure_logging, get_logger
from schemas import (
    ContactMessageCreate,
    LoginRequest,
    PropertyCreate,
    PropertySearch,
    PropertyUpdate,
    TestimonialCreate,
    validate,
)

LOGGER = get_logger("api")

PROPERTY_NOT_FOUND = "العقار غير موجود"
MESSAGE_NOT_FOUND = "الرسالة غير موجودة"
TESTIMONIAL_NOT_FOUND = "التقييم غير موجود"

router = APIRouter(prefix="/api")


# ---------- Root & Health ----------
def root():
    return {"message": "Altakhim Real Estate API running"}


def database_status(storage: Storage = Depends(get_storage)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": storage.db.name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = storage.collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except InfrastructureError as e:
        LOGGER.warning("health check failed: %s", e)
    return response


@router.get("/locations")
def list_locations():
    return CITY_STRUCTURE


# ---------- Auth ----------
@router.post("/login")
def login(payload: LoginRequest, request: Request, storage: Storage = Depends(get_storage)):
    user = authenticate(storage, payload.username, payload.password)
    if user is None:
        LOGGER.info("failed login for '%s'", payload.username)
        raise AuthError(INVALID_CREDENTIALS)
    start_session(request, storage, user)
    LOGGER.info("user '%s' logged in", user["username"])
    return public_user(user)


@router.post("/logout")
def logout(request: Request, user: dict = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    end_session(request, storage)
    return {"message": "تم تسجيل الخروج بنجاح"}


@router.get("/user")
def current_user(user: dict = Depends(get_current_user)):
    return public_user(user)


# ---------- Properties ----------
@router.get("/properties")
def list_properties(
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=100),
    storage: Storage = Depends(get_storage),
):
    return storage.list_properties(skip=skip, limit=limit)


@router.get("/properties/featured")
def featured_properties(limit: int = Query(6, ge=1, le=50), storage: Storage = Depends(get_storage)):
    return storage.get_featured_properties(limit)


@router.get("/properties/search")
def search_properties(
    city: Optional[str] = None,
    area: Optional[str] = None,
    neighborhood: Optional[str] = None,
    property_type: Optional[str] = Query(None, alias="type"),
    is_rental: Optional[bool] = Query(None, alias="isRental"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_size: Optional[float] = Query(None, alias="minSize"),
    max_size: Optional[float] = Query(None, alias="maxSize"),
    bedrooms: Optional[int] = None,
    sort: str = "newest",
    skip: int = 0,
    limit: Optional[int] = None,
    storage: Storage = Depends(get_storage),
):
    search = validate(
        PropertySearch,
        {
            "city": city,
            "area": area,
            "neighborhood": neighborhood,
            "type": property_type,
            "isRental": is_rental,
            "minPrice": min_price,
            "maxPrice": max_price,
            "minSize": min_size,
            "maxSize": max_size,
            "bedrooms": bedrooms,
            "sort": sort,
            "skip": skip,
            "limit": limit,
        },
    )
    return storage.search_properties(search)


@router.get("/properties/code/{code}")
def get_property_by_code(code: str, storage: Storage = Depends(get_storage)):
    prop = storage.get_property_by_code(code)
    if prop is None:
        raise NotFoundError(PROPERTY_NOT_FOUND)
    return prop


@router.get("/properties/{property_id}")
def get_property(property_id: str, storage: Storage = Depends(get_storage)):
    prop = storage.get_property(property_id)
    if prop is None:
        raise NotFoundError(PROPERTY_NOT_FOUND)
    return prop


@router.get("/properties/{property_id}/similar")
def similar_properties(property_id: str, limit: int = Query(3, ge=1, le=12), storage: Storage = Depends(get_storage)):
    items = storage.get_similar_properties(property_id, limit)
    if items is None:
        raise NotFoundError(PROPERTY_NOT_FOUND)
    return items


@router.post("/properties", status_code=201)
def create_property(payload: PropertyCreate, admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    LOGGER.info("creating property, user: %s", admin["username"])
    return storage.create_property(payload)


@router.put("/properties/{property_id}")
def update_property(
    property_id: str,
    payload: PropertyUpdate,
    admin: dict = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    updated = storage.update_property(property_id, payload)
    if updated is None:
        raise NotFoundError(PROPERTY_NOT_FOUND)
    return updated


@router.delete("/properties/{property_id}")
def delete_property(property_id: str, admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    if not storage.delete_property(property_id):
        raise NotFoundError(PROPERTY_NOT_FOUND)
    return {"message": "تم حذف العقار بنجاح"}


# ---------- Contact messages ----------
@router.post("/contact", status_code=201)
def submit_contact(payload: ContactMessageCreate, storage: Storage = Depends(get_storage)):
    storage.create_contact_message(payload)
    return {"message": "تم إرسال رسالتك بنجاح"}


@router.get("/contact")
def list_contact_messages(admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    return storage.get_all_contact_messages()


@router.post("/contact/{message_id}/read")
def mark_contact_read(message_id: str, admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    if not storage.mark_contact_message_as_read(message_id):
        raise NotFoundError(MESSAGE_NOT_FOUND)
    return {"message": "تم تحديث حالة الرسالة بنجاح"}


# ---------- Testimonials ----------
@router.get("/testimonials")
def approved_testimonials(storage: Storage = Depends(get_storage)):
    return storage.get_approved_testimonials()


@router.post("/testimonials", status_code=201)
def submit_testimonial(payload: TestimonialCreate, storage: Storage = Depends(get_storage)):
    storage.create_testimonial(payload)
    return {"message": "تم إرسال التقييم بنجاح، سيتم مراجعته قريباً"}


@router.get("/admin/testimonials")
def all_testimonials(admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    return storage.get_all_testimonials()


@router.post("/admin/testimonials/{testimonial_id}/approve")
def approve_testimonial(testimonial_id: str, admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    if not storage.approve_testimonial(testimonial_id):
        raise NotFoundError(TESTIMONIAL_NOT_FOUND)
    return {"message": "تم اعتماد التقييم بنجاح"}


def create_app(settings: Optional[Settings] = None, storage: Optional[Storage] = None) -> FastAPI:
    """Build the API. Without `storage`, one is created from settings at startup."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = storage or Storage.from_settings(settings)
        # raises if the store is unreachable, so the server never takes traffic
        store.initialize()
        app.state.storage = store
        try:
            yield
        finally:
            if storage is None:
                store.close()

    app = FastAPI(title="Altakhim Real Estate API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="none" if settings.is_production else "lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.is_production:
        from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    register_error_handlers(app)
    app.add_api_route("/", root, methods=["GET"])
    app.add_api_route("/test", database_status, methods=["GET"])
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
