"""
Local storage: v3 round trip, v2 migration-on-read and corruption handling.
"""

import json

from src import storage
from src.constants import BRIEFING_KEY, LEGACY_TOPICS_KEY, SCHEMA_VERSION, TOPICS_KEY
from src.refresh import refresh_stale, stale_topics
from src.topic_tree import new_topic, walk_tree


def _write(key, payload):
    path = storage.key_path(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, str):
        path.write_text(payload, encoding="utf-8")
    else:
        path.write_text(json.dumps(payload), encoding="utf-8")


LEGACY_TOPIC = {
    "id": "t1",
    "title": "Fusion energy",
    "description": "Commercial fusion",
    "category": "Science",
    "events": [
        {"id": "e1", "timestamp": 1700000000000, "content": "<p>ITER update</p>", "sourceUrls": ["https://iter.org", "https://iter.org"]},
    ],
    "lastUpdated": 1700000000000,
}
LEGACY_CHILD = {
    "id": "t2",
    "title": "Tokamaks",
    "description": "",
    "category": "Science",
    "events": [],
    "lastUpdated": 0,
    "parentId": "t1",
    "relevantSources": ["https://a.example", "https://a.example", "https://b.example"],
}


class TestLoadTopics:
    def test_empty_when_nothing_stored(self):
        assert storage.load_topics() == ([], "empty")

    def test_v3_round_trip(self):
        t = new_topic("Space", "Launches")
        storage.save_topics([t])
        topics, origin = storage.load_topics()
        assert origin == "v3"
        assert topics == [t]

    def test_v3_envelope_carries_schema_version(self):
        storage.save_topics([])
        raw = json.loads(storage.key_path(TOPICS_KEY).read_text(encoding="utf-8"))
        assert raw == {"schema_version": SCHEMA_VERSION, "topics": []}

    def test_v2_is_migrated_on_read(self):
        _write(LEGACY_TOPICS_KEY, [LEGACY_TOPIC, LEGACY_CHILD])
        topics, origin = storage.load_topics()
        assert origin == "v2"
        parent, child = topics
        assert parent["last_updated"] == 1700000000000
        assert parent["parent_id"] is None
        assert parent["relevant_sources"] == []
        assert parent["events"][0]["source_urls"] == ["https://iter.org"]
        assert child["parent_id"] == "t1"
        assert child["relevant_sources"] == ["https://a.example", "https://b.example"]
        assert "lastUpdated" not in parent

    def test_v2_file_is_left_in_place(self):
        _write(LEGACY_TOPICS_KEY, [LEGACY_TOPIC])
        storage.load_topics()
        storage.save_topics(storage.load_topics()[0])
        assert storage.key_path(LEGACY_TOPICS_KEY).exists()
        assert storage.load_topics()[1] == "v3"

    def test_v3_takes_precedence_over_v2(self):
        _write(LEGACY_TOPICS_KEY, [LEGACY_TOPIC])
        storage.save_topics([new_topic("Current")])
        topics, origin = storage.load_topics()
        assert origin == "v3"
        assert [t["title"] for t in topics] == ["Current"]

    def test_corrupt_v3_falls_back_to_v2(self):
        _write(TOPICS_KEY, "{not json")
        _write(LEGACY_TOPICS_KEY, [LEGACY_TOPIC])
        topics, origin = storage.load_topics()
        assert origin == "v2"
        assert topics[0]["title"] == "Fusion energy"

    def test_malformed_payloads_load_empty(self):
        _write(TOPICS_KEY, ["not", "an", "envelope"])
        _write(LEGACY_TOPICS_KEY, {"not": "a list"})
        assert storage.load_topics() == ([], "empty")

    def test_normalization_fills_missing_fields(self):
        _write(TOPICS_KEY, {"schema_version": 3, "topics": [{"id": "x", "title": "Bare"}]})
        (topic,), _ = storage.load_topics()
        assert topic["events"] == []
        assert topic["last_updated"] == 0
        assert topic["category"] == "General"
        assert topic["relevant_sources"] == []


class TestBriefing:
    def test_round_trip(self):
        briefing = {"id": "b1", "timestamp": 5, "content": "<h3>Brief</h3>", "topic_ids": ["t1"]}
        storage.save_briefing(briefing)
        assert storage.load_briefing() == briefing

    def test_missing_or_corrupt_is_none(self):
        assert storage.load_briefing() is None
        _write(BRIEFING_KEY, "garbage")
        assert storage.load_briefing() is None

    def test_legacy_camel_case_topic_ids(self):
        _write(BRIEFING_KEY, {"id": "b1", "timestamp": 5, "content": "x", "topicIds": ["t1", "t2"]})
        assert storage.load_briefing()["topic_ids"] == ["t1", "t2"]

    def test_saving_none_is_noop(self):
        storage.save_briefing(None)
        assert not storage.key_path(BRIEFING_KEY).exists()


class TestClearAll:
    def test_removes_every_key(self):
        storage.save_topics([new_topic("A")])
        storage.save_briefing({"id": "b", "timestamp": 1, "content": "c", "topic_ids": []})
        _write(LEGACY_TOPICS_KEY, [LEGACY_TOPIC])
        removed = storage.clear_all()
        assert set(removed) == {TOPICS_KEY, BRIEFING_KEY, LEGACY_TOPICS_KEY}
        assert storage.load_topics() == ([], "empty")
        assert storage.load_briefing() is None

    def test_clear_on_empty_store(self):
        assert storage.clear_all() == []


# ============================================================================
# Forest repair on load
# ============================================================================


def _stored_topic(tid, title, parent_id=None, events=()):
    return {"id": tid, "title": title, "parent_id": parent_id, "events": list(events), "last_updated": 0}


class TestForestRepair:
    def test_parent_cycle_is_detached_and_stays_visible(self):
        _write(TOPICS_KEY, {"schema_version": 3, "topics": [_stored_topic("a", "A", "b"), _stored_topic("b", "B", "a")]})
        topics, origin = storage.load_topics()
        assert origin == "v3"
        assert [t["parent_id"] for t in topics] == [None, "a"]
        assert [(t["title"], level) for t, level in walk_tree(topics)] == [("A", 0), ("B", 1)]
        assert [t["id"] for t in stale_topics(topics, 24, now=1_000)] == ["a", "b"]

        def fetch(topic, subtopics):
            return {"summary": "s", "sources": [], "relevant_websites": []}

        _out, report = refresh_stale(topics, 24, now=1_000, fetch=fetch)
        assert report["refreshed"] == ["a", "b"]
        assert report["skipped"] == 0

    def test_self_parent_is_detached(self):
        _write(TOPICS_KEY, {"schema_version": 3, "topics": [_stored_topic("a", "A", "a")]})
        (topic,), _ = storage.load_topics()
        assert topic["parent_id"] is None

    def test_longer_cycle_keeps_valid_tail(self):
        payload = [
            _stored_topic("a", "A", "c"),
            _stored_topic("b", "B", "a"),
            _stored_topic("c", "C", "b"),
            _stored_topic("d", "D", "c"),
        ]
        _write(TOPICS_KEY, {"schema_version": 3, "topics": payload})
        topics, _ = storage.load_topics()
        assert {t["id"]: t["parent_id"] for t in topics} == {"a": None, "b": "a", "c": "b", "d": "c"}

    def test_duplicate_ids_are_reassigned(self):
        events = [{"id": "e1", "timestamp": 1, "content": "kept", "source_urls": []}]
        payload = [_stored_topic("x", "First"), _stored_topic("x", "Second", events=events)]
        _write(TOPICS_KEY, {"schema_version": 3, "topics": payload})
        topics, _ = storage.load_topics()
        ids = [t["id"] for t in topics]
        assert len(set(ids)) == len(ids)
        assert ids[0] == "x"
        assert topics[1]["title"] == "Second"
        assert topics[1]["events"][0]["content"] == "kept"

    def test_legacy_duplicates_are_reassigned(self):
        _write(LEGACY_TOPICS_KEY, [LEGACY_TOPIC, dict(LEGACY_TOPIC, title="Copy")])
        topics, origin = storage.load_topics()
        assert origin == "v2"
        assert topics[0]["id"] == "t1"
        assert topics[1]["id"] != "t1"
