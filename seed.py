"""
First-run bootstrap data.

Runs only when the users collection is empty: one admin account, a few sample
listings and two testimonials (the first one approved).
"""
from schemas import PropertyCreate, TestimonialCreate, UserCreate, validate
from logger import get_logger

LOGGER = get_logger("seed")

SAMPLE_PROPERTIES = [
    {
        "title": "فيلا فاخرة مع مسبح",
        "description": "فيلا فخمة تتميز بتصميم عصري وإطلالة رائعة على المدينة. تحتوي على مسبح خاص وحديقة واسعة.",
        "type": "villa",
        "price": 2800000,
        "isRental": False,
        "city": "الرياض",
        "area": "شمال الرياض",
        "neighborhood": "الملقا",
        "address": "شارع العليا، حي الملقا، الرياض",
        "bedrooms": 5,
        "bathrooms": 4,
        "size": 450,
        "features": ["مسبح", "حديقة", "مطبخ مفتوح", "موقف سيارات", "غرفة خادمة"],
        "images": ["https://images.unsplash.com/photo-1600585154340-be6161a56a0c?auto=format&fit=crop&w=600&h=400&q=80"],
        "propertyCode": "SA-12345",
    },
    {
        "title": "شقة فاخرة بإطلالة بحرية",
        "description": "شقة حديثة مع إطلالة بانورامية على البحر. تقع في أفضل أحياء جدة وتتميز بالتشطيبات الراقية.",
        "type": "apartment",
        "price": 85000,
        "isRental": True,
        "rentalPeriod": "yearly",
        "city": "جدة",
        "area": "شمال جدة",
        "neighborhood": "الشاطئ",
        "address": "كورنيش جدة، حي الشاطئ",
        "bedrooms": 3,
        "bathrooms": 2,
        "size": 180,
        "features": ["إطلالة بحرية", "مكيفات مركزية", "مطبخ حديث", "بلكونة"],
        "images": ["https://images.unsplash.com/photo-1560448204-e02f11c3d0e2?auto=format&fit=crop&w=600&h=400&q=80"],
        "propertyCode": "SA-12346",
    },
    {
        "title": "أرض سكنية استثمارية",
        "description": "أرض سكنية استثمارية في موقع استراتيجي بالدمام، مناسبة لبناء فلل أو مجمع سكني.",
        "type": "land",
        "price": 1200000,
        "isRental": False,
        "city": "الدمام",
        "area": "الدمام الغربية",
        "neighborhood": "الشاطئ الغربي",
        "address": "حي الشاطئ الغربي، الدمام",
        "size": 750,
        "features": ["شارع 20م", "مستوية", "منطقة خدمات متكاملة"],
        "images": ["https://images.unsplash.com/photo-1512917774080-9991f1c4c750?auto=format&fit=crop&w=600&h=400&q=80"],
        "propertyCode": "SA-12347",
    },
]

SAMPLE_TESTIMONIALS = [
    {
        "name": "محمد السعيد",
        "location": "الرياض",
        "message": "كانت تجربتي مع الطخيم العالمية ممتازة، ساعدوني في العثور على المنزل المناسب لعائلتي بسعر مناسب وخدمة احترافية.",
        "rating": 5,
    },
    {
        "name": "سارة الأحمدي",
        "location": "جدة",
        "message": "استثمرت في عقار بمساعدة فريق الطخيم العالمية، وقدموا لي استشارات قيمة ساعدتني في اتخاذ قرار استثماري صائب.",
        "rating": 4,
    },
]


def seed_data(storage) -> None:
    settings = storage.settings
    # validated before anything is written
    admin = validate(
        UserCreate,
        {
            "username": settings.admin_username,
            "password": settings.admin_password,
            "name": "مدير النظام",
            "role": "admin",
            "email": settings.admin_email,
            "phone": "+966500000000",
        },
    )
    if settings.is_production and settings.admin_password == "change-me-now":
        LOGGER.warning("seeded admin account uses the default password; set ADMIN_PASSWORD")

    if storage.properties.count_documents({}) == 0:
        for data in SAMPLE_PROPERTIES:
            storage.create_property(PropertyCreate.model_validate(data))

    if storage.testimonials.count_documents({}) == 0:
        for i, data in enumerate(SAMPLE_TESTIMONIALS):
            created = storage.create_testimonial(TestimonialCreate.model_validate(data))
            if i == 0:
                storage.approve_testimonial(created["id"])

    # written last: a users count above zero marks the store as seeded
    storage.create_user(admin)
    LOGGER.info(
        "seeded admin '%s', %d properties, %d testimonials",
        settings.admin_username,
        len(SAMPLE_PROPERTIES),
        len(SAMPLE_TESTIMONIALS),
    )
