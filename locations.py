"""
Location hierarchy for the cascading search filters.

City -> area -> ordered neighborhood names. The table is read-only at runtime;
clients use it to populate their selects and the server uses it to reject
inconsistent (city, area, neighborhood) combinations.
"""
from typing import Dict, List, Optional

CITY_STRUCTURE: Dict[str, Dict[str, List[str]]] = {
    "الرياض": {
        "شمال الرياض": ["الملقا", "العليا", "النرجس", "الياسمين", "الصحافة", "الغدير", "الندى", "المحمدية", "الربوة"],
        "جنوب الرياض": ["الملز", "السليمانية", "العقيق", "الدار البيضاء", "النسيم الشرقي", "الفيصلية", "المنار"],
        "شرق الرياض": ["الورود", "الريان", "المروج", "الروضة", "النخيل", "اليرموك", "بدر"],
        "غرب الرياض": ["النسيم", "الشفا", "المنصورة", "السويدي", "الخليج", "عرقة", "الدرعية"],
    },
    "جدة": {
        "شمال جدة": ["الشاطئ", "الروضة", "الزهراء", "أبحر", "النعيم", "الفيحاء", "الصفا", "المرجان"],
        "جنوب جدة": ["البوادي", "الحمراء", "السلامة", "الثغر", "الرحاب", "النزهة", "الصالحية"],
        "وسط جدة": ["الصفا", "البلد", "الكورنيش", "الأمير فواز", "المحمدية", "الكندرة", "الهنداوية"],
    },
    "الدمام": {
        "الدمام الشمالية": ["الفيصلية", "الشاطئ الشرقي", "الفردوس", "الفنار", "النور", "الخالدية"],
        "الدمام الغربية": ["الشاطئ الغربي", "الزهور", "الأمانة", "الجلوية", "الروضة", "الأثير"],
        "الدمام الجنوبية": ["المريكبات", "الضباب", "الفرسان", "الندى", "الخليج"],
    },
    "الخبر": {
        "شمال الخبر": ["اليرموك", "الكورنيش", "العقربية", "الراكة", "العزيزية"],
        "جنوب الخبر": ["العزيزية", "الثقبة", "الهدا", "الخزامى", "الحزام الذهبي"],
    },
    "مكة المكرمة": {
        "وسط مكة": ["العزيزية", "الشوقية", "العتيبية", "جرول", "الحجون", "المسفلة"],
        "شمال مكة": ["الكعكية", "الهجرة", "النوارية", "التنعيم", "الزاهر", "العوالي"],
        "جنوب مكة": ["الشرائع", "المعابدة", "الحج", "النسيم", "الرصيفة"],
    },
    "المدينة المنورة": {
        "وسط المدينة": ["المنطقة المركزية", "العيون", "قباء", "العصبة", "باب المجيدي"],
        "شمال المدينة": ["العوالي", "السيح", "الحرة الشرقية", "الجمعة", "المبعوث", "أبيار علي"],
        "جنوب المدينة": ["قربان", "الخالدية", "العزيزية", "الفتح"],
    },
    "الطائف": {
        "وسط الطائف": ["الفيصلية", "العزيزية", "السلامة", "المثناة"],
        "شمال الطائف": ["الشفا", "الحوية", "الربوة", "النزهة", "الوسام"],
        "شرق الطائف": ["السداد", "النسيم", "الخالدية", "الريان"],
    },
    "أبها": {
        "وسط أبها": ["المنسك", "المروج", "الموظفين الشمالي", "الواديين"],
        "شمال أبها": ["الموظفين", "الضباب", "السامر", "الخشع"],
        "شرق أبها": ["الورود", "النسيم", "البديع", "النخيل"],
    },
    "تبوك": {
        "وسط تبوك": ["الفيصلية", "السليمانية", "المروج"],
        "شمال تبوك": ["الورود", "النسيم", "الأمير فهد"],
        "جنوب تبوك": ["الخالدية", "الروضة", "الصناعية"],
    },
    "بريدة": {
        "وسط بريدة": ["الإسكان", "الفايزية", "المنتزه"],
        "شمال بريدة": ["الخبيب", "الصفراء", "النقع"],
        "شرق بريدة": ["الروضة", "المعيقلية", "الضاحية"],
    },
}

UNKNOWN_CITY = "المدينة غير موجودة"
UNKNOWN_AREA = "المنطقة لا تتبع المدينة المختارة"
UNKNOWN_NEIGHBORHOOD = "الحي لا يتبع المنطقة المختارة"
CITY_REQUIRED = "يجب اختيار المدينة أولاً"


def areas_for(city: str) -> List[str]:
    return list(CITY_STRUCTURE.get(city, {}))


def neighborhoods_for(city: str, area: Optional[str] = None) -> List[str]:
    """Neighborhoods of one area, or of every area of the city when `area` is None.

    Names shared by several areas of a city appear once, in table order.
    """
    city_areas = CITY_STRUCTURE.get(city, {})
    if area is not None:
        return list(city_areas.get(area, []))
    seen: List[str] = []
    for names in city_areas.values():
        seen.extend(n for n in names if n not in seen)
    return seen


def location_error(
    city: Optional[str],
    area: Optional[str] = None,
    neighborhood: Optional[str] = None,
) -> Optional[str]:
    """Return the message for the first inconsistency in the triple, or None.

    Missing levels are unconstrained, but area and neighborhood both need a city.
    """
    if not city:
        if area or neighborhood:
            return CITY_REQUIRED
        return None
    if city not in CITY_STRUCTURE:
        return UNKNOWN_CITY
    if area and area not in areas_for(city):
        return UNKNOWN_AREA
    if neighborhood and neighborhood not in neighborhoods_for(city, area or None):
        return UNKNOWN_NEIGHBORHOOD
    return None
