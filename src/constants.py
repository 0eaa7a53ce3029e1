from __future__ import annotations

# ---------------------------------------------------------------------------
# Local storage keys. Each key is one JSON file under the data directory.
#
#   v3  {"schema_version": 3, "topics": [...]}   snake_case topics (current)
#   v2  [...]                                    camelCase topics (legacy, read-only)
#
# Reads try v3 first and fall back to v2 with migration. Writes always go to v3.
# ---------------------------------------------------------------------------
TOPICS_KEY = "eventpulse_topics_v3"
LEGACY_TOPICS_KEY = "eventpulse_topics_v2"
BRIEFING_KEY = "eventpulse_briefing_v3"
STORAGE_KEYS = [TOPICS_KEY, LEGACY_TOPICS_KEY, BRIEFING_KEY]

SCHEMA_VERSION = 3

# v2 key -> v3 key
LEGACY_TOPIC_FIELDS = {
    "lastUpdated": "last_updated",
    "parentId": "parent_id",
    "relevantSources": "relevant_sources",
}
LEGACY_EVENT_FIELDS = {
    "sourceUrls": "source_urls",
}

TOPIC_KEYS = [
    "id",
    "title",
    "description",
    "category",
    "events",
    "last_updated",
    "parent_id",
    "relevant_sources",
]
EVENT_KEYS = ["id", "timestamp", "content", "source_urls"]

DEFAULT_CATEGORY = "General"
CATEGORIES = [
    "General",
    "Technology",
    "Business & Markets",
    "Policy & Regulation",
    "Science",
    "Geopolitics",
    "Other",
]

# Minimum length of highlighted text that can become a focus point.
MIN_SELECTION_CHARS = 3

# ---------------------------------------------------------------------------
# Model output conventions
# ---------------------------------------------------------------------------
RELEVANT_SITES_PATTERN = r"\[RELEVANT_SITES:\s*([^\]]+)\]"

NO_UPDATES_TEXT = "No new updates found."
BRIEFING_PENDING_TEXT = "The briefing is still being prepared."
CHAT_PENDING_TEXT = "Still analysing..."
CHAT_FALLBACK_TEXT = "The analysis service is unavailable, please try again later."
EMPTY_EVENT_DB_TEXT = "(The event database is empty: no entries have been tracked yet.)"

# Number of source links shown under each event in the log.
EVENT_SOURCE_LINKS_SHOWN = 3
# Root topics shown as summary cards under the global briefing.
BRIEFING_TOPIC_CARDS = 4
