from typing import Dict, List, Tuple

from .schemas import PersonalColorProfile, Product

FALLBACK_PRODUCTS: List[Dict] = [
    {"category": "Foundation", "name": "Estee Lauder Double Wear", "shade": "2N1 Desert Beige",
     "price": 52000, "rating": 4.8, "reviewCount": 3241,
     "reason": "A neutral-warm base that keeps the complexion clear and bright."},
    {"category": "Lipstick", "name": "MAC Lipstick", "shade": "Coral Bliss",
     "price": 31000, "rating": 4.6, "reviewCount": 1890,
     "reason": "Clear coral echoes the natural warmth of the skin."},
    {"category": "Cushion", "name": "Glow Veil Cushion", "shade": "21 Warm Ivory",
     "price": 38000, "rating": 4.5, "reviewCount": 2210,
     "reason": "Dewy finish suits a light, luminous complexion."},
    {"category": "Blusher", "name": "Peach Petal Blush", "shade": "Apricot Glow",
     "price": 27000, "rating": 4.7, "reviewCount": 1534,
     "reason": "Soft peach adds healthy colour without muddying the skin."},
    {"category": "Eyeshadow", "name": "Golden Hour Palette", "shade": "Honey Shimmer",
     "price": 45000, "rating": 4.6, "reviewCount": 987,
     "reason": "Light golden browns brighten warm-toned eyes."},
    {"category": "Lipstick", "name": "Velvet Tint", "shade": "Salmon Pink",
     "price": 24000, "rating": 4.4, "reviewCount": 2675,
     "reason": "A sheer warm pink for everyday wear."},
]

FALLBACK_PROFILE: Dict = {
    "personalColor": "Spring Warm Light",
    "personalColorDescription": (
        "You shine with warm and bright colors! Your beauty is enhanced by lovely, clear, "
        "and vibrant shades that remind of a spring blossom."
    ),
    "score": 88,
    "recommendedProducts": FALLBACK_PRODUCTS,
    "skinAnalysis": "Light skin with a warm, golden undertone and a clear, even surface.",
    "makeupAnalysis": "Peach, coral and light gold shades keep the look fresh; avoid heavy greys.",
    "representativeColor": "#F4C7A1",
    "alternateColor": "Spring Warm Bright",
}

_PROFILE = PersonalColorProfile.model_validate(FALLBACK_PROFILE)


def fallback_profile() -> PersonalColorProfile:
    return _PROFILE


def fallback_products() -> Tuple[Product, ...]:
    return _PROFILE.recommended_products
