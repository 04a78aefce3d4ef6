"""
Static tag -> category lookup.

Item tags come from the external catalog in free-form spelling ("Sci-fi",
"LitRPG", "Anti-Hero Lead"). They are normalized and mapped onto the category
keys used by leaderboard snapshots. The table is configuration owned by this
app and is deliberately kept apart from the ranking code.
"""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9_]")
_UNDERSCORES = re.compile(r"_+")

TAG_TO_CATEGORY = {
    "action": "action",
    "adventure": "adventure",
    "comedy": "comedy",
    "contemporary": "contemporary",
    "drama": "drama",
    "fantasy": "fantasy",
    "historical": "historical",
    "horror": "horror",
    "mystery": "mystery",
    "psychological": "psychological",
    "romance": "romance",
    "satire": "satire",
    "scifi": "sci_fi",
    "sci_fi": "sci_fi",
    "hard_sci_fi": "sci_fi",
    "slice_of_life": "slice_of_life",
    "sports": "sports",
    "supernatural": "supernatural",
    "tragedy": "tragedy",
    "anti_hero_lead": "anti-hero_lead",
    "antihero_lead": "anti-hero_lead",
    "antihero": "anti-hero_lead",
    "artificial_intelligence": "artificial_intelligence",
    "ai": "artificial_intelligence",
    "attractive_lead": "attractive_lead",
    "cyberpunk": "cyberpunk",
    "dungeon": "dungeon",
    "dystopia": "dystopia",
    "dystopian": "dystopia",
    "female_lead": "female_lead",
    "first_contact": "first_contact",
    "gamelit": "gamelit",
    "game_lit": "gamelit",
    "gender_bender": "gender_bender",
    "genetically_engineered": "genetically_engineered",
    "grimdark": "grimdark",
    "harem": "harem",
    "high_fantasy": "high_fantasy",
    "litrpg": "litrpg",
    "lit_rpg": "litrpg",
    "loop": "loop",
    "time_loop": "loop",
    "low_fantasy": "low_fantasy",
    "magic": "magic",
    "male_lead": "male_lead",
    "martial_arts": "martial_arts",
    "multiple_lead": "multiple_lead",
    "multiple_lead_characters": "multiple_lead",
    "mythos": "mythos",
    "non_human_lead": "non-human_lead",
    "portal_fantasy": "portal_fantasy",
    "isekai": "portal_fantasy",
    "post_apocalyptic": "post_apocalyptic",
    "post_apocalypse": "post_apocalyptic",
    "progression": "progression",
    "reader_interactive": "reader_interactive",
    "reincarnation": "reincarnation",
    "ruling_class": "ruling_class",
    "school_life": "school_life",
    "schoollife": "school_life",
    "secret_identity": "secret_identity",
    "soft_scifi": "soft_sci-fi",
    "soft_sci_fi": "soft_sci-fi",
    "space_opera": "space_opera",
    "steampunk": "steampunk",
    "strategy": "strategy",
    "strong_lead": "strong_lead",
    "summoned_hero": "summoned_hero",
    "super_heroes": "super_heroes",
    "superhero": "super_heroes",
    "superheroes": "super_heroes",
    "technologically_engineered": "technologically_engineered",
    "time_travel": "time_travel",
    "urban_fantasy": "urban_fantasy",
    "villainous_lead": "villainous_lead",
    "virtual_reality": "virtual_reality",
    "vr": "virtual_reality",
    "war_and_military": "war_and_military",
    "military": "war_and_military",
    "wuxia": "wuxia",
    "xianxia": "xianxia",
}


def normalize_tag(tag: str) -> str:
    """Lowercase, collapse non-alphanumerics to ``_``, strip edge underscores."""
    normalized = _NON_ALNUM.sub("_", tag.strip().lower())
    normalized = _UNDERSCORES.sub("_", normalized)
    return normalized.strip("_")


def categories_for_tags(tags) -> set[str]:
    """
    Map an item's tags to the set of categories it is eligible for.

    Anything that is not a list of strings (``None``, a bare string, a dict
    from a broken import) yields an empty set rather than an error.
    """
    if not isinstance(tags, (list, tuple, set)):
        return set()
    categories = set()
    for tag in tags:
        if not isinstance(tag, str):
            continue
        category = TAG_TO_CATEGORY.get(normalize_tag(tag))
        if category:
            categories.add(category)
    return categories
