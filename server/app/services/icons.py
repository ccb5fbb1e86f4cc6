import re

DEFAULT_ICON = "folder"

# keyword -> Feather icon name, first keyword matching a word of the name wins
ICON_KEYWORDS: dict[str, str] = {
    "skincare": "heart",
    "skin": "heart",
    "beauty": "heart",
    "makeup": "heart",
    "tech": "smartphone",
    "technology": "smartphone",
    "gadget": "smartphone",
    "phone": "smartphone",
    "computer": "monitor",
    "laptop": "monitor",
    "gaming": "monitor",
    "game": "monitor",
    "book": "book",
    "reading": "book",
    "education": "book",
    "fashion": "shopping-bag",
    "clothes": "shopping-bag",
    "clothing": "shopping-bag",
    "apparel": "shopping-bag",
    "food": "coffee",
    "restaurant": "coffee",
    "dining": "coffee",
    "cafe": "coffee",
    "travel": "map",
    "trip": "map",
    "vacation": "map",
    "car": "truck",
    "vehicle": "truck",
    "auto": "truck",
    "automotive": "truck",
    "music": "music",
    "audio": "music",
    "movie": "film",
    "film": "film",
    "video": "film",
    "fitness": "activity",
    "workout": "activity",
    "exercise": "activity",
    "health": "heart",
    "home": "home",
    "house": "home",
    "furniture": "home",
    "work": "briefcase",
    "office": "briefcase",
    "business": "briefcase",
    "art": "image",
    "photo": "camera",
    "photography": "camera",
    "gift": "gift",
    "tool": "tool",
    "garden": "sun",
}

_WORD = re.compile(r"[a-z0-9]+")


def _matches(keyword: str, word: str) -> bool:
    # whole words only, allowing a plural ("cars", "boxes")
    return word in (keyword, keyword + "s", keyword + "es")


def category_icon(name: str) -> str:
    words = _WORD.findall((name or "").lower())
    for keyword, icon in ICON_KEYWORDS.items():
        if any(_matches(keyword, word) for word in words):
            return icon
    return DEFAULT_ICON
