"""
Listing Schemas (MongoDB via Pydantic)
Each stored model maps to one collection:
- User -> users
- Property -> properties
- ContactMessage -> contact_messages
- Testimonial -> testimonials

Fields are snake_case in Python and camelCase on the wire and in the store.
Validation reports only the first failing field, with a user-facing Arabic
message.
"""
from typing import Any, Dict, Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel

from errors import ValidationError
from locations import location_error

Role = Literal["admin", "user"]
PropertyType = Literal["apartment", "villa", "land", "building", "resthouse", "office", "shop", "warehouse", "farm"]
PropertyStatus = Literal["available", "sold", "rented", "reserved"]
RentalPeriod = Literal["daily", "weekly", "monthly", "yearly"]
SortOrder = Literal["newest", "priceHighToLow", "priceLowToHigh", "sizeHighToLow"]

GENERIC_MESSAGE = "البيانات المدخلة غير صحيحة"
IMAGES_MESSAGE = "صورة واحدة على الأقل مطلوبة"
RENTAL_PERIOD_MESSAGE = "مدة الإيجار متاحة للعقارات المؤجرة فقط"
PRICE_RANGE_MESSAGE = "الحد الأدنى للسعر أكبر من الحد الأعلى"
SIZE_RANGE_MESSAGE = "الحد الأدنى للمساحة أكبر من الحد الأعلى"

# keyed by wire (camelCase) field name
FIELD_MESSAGES: Dict[str, str] = {
    "title": "العنوان مطلوب",
    "description": "الوصف مطلوب",
    "type": "نوع العقار غير صحيح",
    "price": "السعر يجب أن يكون رقم موجب",
    "currency": "رمز العملة غير صحيح",
    "isRental": "قيمة نوع العرض غير صحيحة",
    "rentalPeriod": "مدة الإيجار غير صحيحة",
    "city": "المدينة مطلوبة",
    "area": "المنطقة غير صحيحة",
    "neighborhood": "الحي مطلوب",
    "address": "العنوان التفصيلي مطلوب",
    "bedrooms": "عدد غرف النوم يجب أن يكون رقماً صحيحاً موجباً",
    "bathrooms": "عدد دورات المياه يجب أن يكون رقماً صحيحاً موجباً",
    "size": "المساحة مطلوبة",
    "features": "المميزات غير صحيحة",
    "images": IMAGES_MESSAGE,
    "status": "حالة العقار غير صحيحة",
    "propertyCode": "رمز العقار غير صحيح",
    "latitude": "خط العرض غير صحيح",
    "longitude": "خط الطول غير صحيح",
    "username": "اسم المستخدم يجب أن يكون 3 أحرف على الأقل",
    "password": "كلمة المرور يجب أن تكون 6 أحرف على الأقل",
    "name": "الاسم مطلوب",
    "role": "الصلاحية غير صحيحة",
    "email": "البريد الإلكتروني غير صحيح",
    "phone": "رقم الجوال غير صحيح",
    "subject": "الموضوع مطلوب",
    "message": "الرسالة مطلوبة",
    "location": "الموقع مطلوب",
    "rating": "التقييم يجب أن يكون من 1 إلى 5",
    "minPrice": "الحد الأدنى للسعر غير صحيح",
    "maxPrice": "الحد الأعلى للسعر غير صحيح",
    "minSize": "الحد الأدنى للمساحة غير صحيح",
    "maxSize": "الحد الأعلى للمساحة غير صحيح",
    "sort": "طريقة الترتيب غير صحيحة",
    "skip": "قيمة الإزاحة غير صحيحة",
    "limit": "عدد النتائج غير صحيح",
}

M = TypeVar("M", bound=BaseModel)


def first_error_message(errors: Iterable[Dict[str, Any]]) -> str:
    """Message for the first error in a pydantic/FastAPI error list."""
    for err in errors:
        # ValueErrors raised by our validators already carry the user message
        cause = (err.get("ctx") or {}).get("error")
        if err.get("type") == "value_error" and cause is not None:
            return str(cause)
        for part in reversed(err.get("loc", ())):
            if isinstance(part, str) and part in FIELD_MESSAGES:
                return FIELD_MESSAGES[part]
        return GENERIC_MESSAGE
    return GENERIC_MESSAGE


def validate(model_cls: Type[M], data: Any) -> M:
    """Return `data` as a validated `model_cls`, or raise ValidationError."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except SchemaError as exc:
        raise ValidationError(first_error_message(exc.errors())) from None


def to_document(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class PropertyFields(CamelModel):
    """Field normalisation shared by property create and update payloads."""

    @field_validator("area", "rental_period", "property_code", mode="before", check_fields=False)
    @classmethod
    def blank_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("features", check_fields=False)
    @classmethod
    def distinct_features(cls, v):
        if v is None:
            return v
        out: List[str] = []
        for item in v:
            item = item.strip()
            if item and item not in out:
                out.append(item)
        return out

    @field_validator("images", check_fields=False)
    @classmethod
    def non_blank_images(cls, v):
        if v is None:
            return v
        if any(not image.strip() for image in v):
            raise ValueError(IMAGES_MESSAGE)
        return v


class PropertyCreate(PropertyFields):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    type: PropertyType
    price: float = Field(..., ge=0)
    currency: str = Field("SAR", min_length=3, max_length=3)
    is_rental: bool = False
    rental_period: Optional[RentalPeriod] = None
    city: str = Field(..., min_length=1)
    area: Optional[str] = None
    neighborhood: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    size: float = Field(..., ge=0)
    features: List[str] = []
    images: List[str] = Field(..., min_length=1)
    status: PropertyStatus = "available"
    property_code: Optional[str] = Field(None, max_length=30)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def check_consistency(self):
        if self.rental_period and not self.is_rental:
            raise ValueError(RENTAL_PERIOD_MESSAGE)
        error = location_error(self.city, self.area, self.neighborhood)
        if error:
            raise ValueError(error)
        return self


class PropertyUpdate(PropertyFields):
    """Partial update: every field optional, omitted fields stay untouched."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    type: Optional[PropertyType] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_rental: Optional[bool] = None
    rental_period: Optional[RentalPeriod] = None
    city: Optional[str] = Field(None, min_length=1)
    area: Optional[str] = None
    neighborhood: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    size: Optional[float] = Field(None, ge=0)
    features: Optional[List[str]] = None
    images: Optional[List[str]] = Field(None, min_length=1)
    status: Optional[PropertyStatus] = None
    property_code: Optional[str] = Field(None, min_length=1, max_length=30)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class PropertySearch(CamelModel):
    city: Optional[str] = None
    area: Optional[str] = None
    neighborhood: Optional[str] = None
    type: Optional[PropertyType] = None
    is_rental: Optional[bool] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_size: Optional[float] = Field(None, ge=0)
    max_size: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    sort: SortOrder = "newest"
    skip: int = Field(0, ge=0)
    limit: Optional[int] = Field(None, ge=1, le=100)

    @field_validator("city", "area", "neighborhood", mode="before")
    @classmethod
    def blank_or_all_is_missing(cls, v):
        # the client sends "all" for an unselected cascade level
        if isinstance(v, str) and v.strip() in ("", "all"):
            return None
        return v

    @model_validator(mode="after")
    def check_ranges(self):
        error = location_error(self.city, self.area, self.neighborhood)
        if error:
            raise ValueError(error)
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError(PRICE_RANGE_MESSAGE)
        if self.min_size is not None and self.max_size is not None and self.min_size > self.max_size:
            raise ValueError(SIZE_RANGE_MESSAGE)
        return self


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field(..., min_length=1)
    role: Role = "user"
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class ContactMessageCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)


class TestimonialCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=2000)
    rating: int = Field(..., ge=1, le=5)
