"""Device category synonyms and normalisation.

Categories coming from customers, receipts, the device catalogue and AI
answers rarely use the same words. Everything is compared through the
keyword table below.
"""

from typing import Dict, List, Optional

CATEGORY_MAPPINGS: Dict[str, List[str]] = {
    "tv": [
        "tv",
        "television",
        "smart tv",
        "led tv",
        "oled",
        "qled",
        "lcd",
        "neo qled",
        "qn90",
        "qn85",
        "qn95",
        "samsung q",
        "lg oled",
        "sony bravia",
    ],
    "smartphone": ["smartphone", "phone", "mobile", "iphone", "galaxy", "pixel", "android phone", "cell phone"],
    "laptop": ["laptop", "notebook", "macbook", "chromebook", "ultrabook", "portable computer"],
    "tablet": ["tablet", "ipad", "galaxy tab", "surface"],
    "desktop": ["desktop", "pc", "computer", "imac", "mac mini", "workstation"],
    "monitor": ["monitor", "display", "screen"],
    "headphones": ["headphones", "earbuds", "earphones", "airpods", "wireless earbuds"],
    "speaker": ["speaker", "soundbar", "home audio", "bluetooth speaker"],
    "camera": ["camera", "dslr", "mirrorless", "digital camera", "camcorder"],
    "gaming": ["gaming console", "playstation", "xbox", "nintendo", "ps5", "ps4"],
    "watch": ["watch", "smartwatch", "apple watch", "galaxy watch"],
    "appliance": ["washer", "dryer", "refrigerator", "fridge", "dishwasher", "microwave", "oven", "air conditioner"],
}

TVS = "TVs"
HOME_APPLIANCES = "Home Appliances"

# Catalogue category names mapped onto the categories that drive fulfillment
FULFILLMENT_CATEGORY_MAPPING: Dict[str, str] = {
    "tv": TVS,
    "television": TVS,
    "smart tv": TVS,
    "brown goods": TVS,
    "home appliances": HOME_APPLIANCES,
    "white goods": HOME_APPLIANCES,
    "washing machine": HOME_APPLIANCES,
    "refrigerator": HOME_APPLIANCES,
    "dishwasher": HOME_APPLIANCES,
}

# Large items that are repaired or inspected at the customer's home
IN_HOME_REPAIR_CATEGORIES = frozenset(
    {
        "home appliances",
        "tv",
        "tvs",
        "smart tv",
        "smart tvs",
        "brown goods",
        "white goods",
        "washing machine",
        "washing machines",
        "refrigerator",
        "refrigerators",
        "dishwasher",
        "dishwashers",
        "oven",
        "ovens",
        "large appliances",
    }
)

_PRODUCT_NAME_KEYWORDS = (
    (TVS, ("tv", "television", "oled", "qled", "led tv", "smart tv", "x95", "bravia")),
    (HOME_APPLIANCES, ("washing", "dryer", "dishwasher", "refrigerator", "fridge", "oven", "cooker")),
)


def find_category(text: Optional[str]) -> Optional[str]:
    """Return the first category with a keyword contained in ``text``."""
    if not text:
        return None
    lower_text = text.lower()
    for category, keywords in CATEGORY_MAPPINGS.items():
        if any(keyword in lower_text for keyword in keywords):
            return category
    return None


def devices_match(detected: Optional[str], expected: Optional[str]) -> bool:
    """Whether two free-text device descriptions refer to the same kind of device."""
    if not detected or not expected:
        return False

    detected_norm = detected.lower().strip()
    expected_norm = expected.lower().strip()
    if detected_norm in expected_norm or expected_norm in detected_norm:
        return True

    detected_category = find_category(detected_norm)
    expected_category = find_category(expected_norm)
    return detected_category is not None and detected_category == expected_category


def fulfillment_category(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return raw
    return FULFILLMENT_CATEGORY_MAPPING.get(raw.lower().strip(), raw)


def category_from_product_name(product_name: Optional[str]) -> Optional[str]:
    """Keyword fallback when the device is not in the catalogue."""
    if not product_name:
        return None
    lower_name = product_name.lower()
    for category, keywords in _PRODUCT_NAME_KEYWORDS:
        if any(keyword in lower_name for keyword in keywords):
            return category
    return None


def requires_in_home_repair(category: Optional[str]) -> bool:
    return (category or "").lower() in IN_HOME_REPAIR_CATEGORIES
