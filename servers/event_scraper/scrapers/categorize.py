"""Keyword heuristics mapping free text onto the category taxonomy."""

from typing import Optional

from ..models import DEFAULT_CATEGORY

# Checked in order; first match wins
KEYWORD_CATEGORIES = [
    ("Free Food", ["pizza", "food", "meal", "lunch", "dinner", "breakfast"]),
    ("Entertainment", ["concert", "music", "show", "performance"]),
    ("Workshops", ["workshop", "class", "tutorial", "seminar"]),
    ("Giveaways", ["giveaway", "free stuff"]),
]

# Eventbrite category name fragments
EVENTBRITE_CATEGORY_MAP = {
    "food": "Free Food",
    "music": "Entertainment",
    "arts": "Entertainment",
    "film": "Entertainment",
    "workshop": "Workshops",
    "education": "Workshops",
    "community": "Community Events",
    "sports": "Sports",
    "health": "Health & Wellness",
    "business": "Workshops",
    "charity": "Community Events",
}

RELEVANCE_KEYWORDS = [
    "free", "giveaway", "pizza", "food", "event", "today", "tonight",
    "campus", "university", "college", "giving away", "come get",
]


def categorize_text(title: str, body: Optional[str] = None) -> str:
    """Pick a category from keywords in a post's title and body."""
    text = f"{title} {body or ''}".lower()

    for category, keywords in KEYWORD_CATEGORIES:
        if any(keyword in text for keyword in keywords):
            return category

    return DEFAULT_CATEGORY


def map_eventbrite_category(name: Optional[str]) -> str:
    """Translate an Eventbrite category name to the shared taxonomy."""
    lowered = (name or "").lower()

    for fragment, category in EVENTBRITE_CATEGORY_MAP.items():
        if fragment in lowered:
            return category

    return DEFAULT_CATEGORY


def is_relevant(title: str, body: Optional[str] = None) -> bool:
    """True if a post looks like it announces something free."""
    text = f"{title} {body or ''}".lower()
    return any(keyword in text for keyword in RELEVANCE_KEYWORDS)
