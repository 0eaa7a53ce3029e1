"""Topic refresh with an injected fetcher."""

import pytest

from src.gemini_service import GeminiServiceError
from src.refresh import refresh_stale, refresh_topic, stale_topics
from src.topic_tree import TopicError, add_topic, find_topic, new_topic

HOUR_MS = 3_600_000
NOW = 1_700_000_000_000


def canned(summary="<p>update</p>", sources=("https://g",), sites=("https://site",)):
    calls = []

    def fetch(topic, subtopics):
        calls.append((topic["title"], [s["title"] for s in subtopics]))
        return {"summary": summary, "sources": list(sources), "relevant_websites": list(sites)}

    fetch.calls = calls
    return fetch


def two_level():
    parent = new_topic("Energy")
    child = new_topic("Solar", parent_id=parent["id"])
    grandchild = new_topic("Perovskites", parent_id=child["id"])
    topics = []
    for t in (parent, child, grandchild):
        topics = add_topic(topics, t)
    return topics, parent, child, grandchild


class TestRefreshTopic:
    def test_appends_event_with_direct_children_as_context(self):
        topics, parent, child, _grandchild = two_level()
        fetch = canned()
        out = refresh_topic(topics, parent["id"], now=NOW, fetch=fetch)
        assert fetch.calls == [("Energy", ["Solar"])]
        updated = find_topic(out, parent["id"])
        assert updated["last_updated"] == NOW
        assert updated["events"][-1]["content"] == "<p>update</p>"
        assert updated["events"][-1]["source_urls"] == ["https://g"]
        assert updated["relevant_sources"] == ["https://site"]
        assert find_topic(out, child["id"]) == child
        assert find_topic(topics, parent["id"])["events"] == []

    def test_unknown_topic(self):
        with pytest.raises(TopicError):
            refresh_topic([], "missing", fetch=canned())

    def test_fetch_error_propagates_and_leaves_topics_alone(self):
        topics, parent, *_ = two_level()

        def failing(topic, subtopics):
            raise GeminiServiceError("down")

        with pytest.raises(GeminiServiceError):
            refresh_topic(topics, parent["id"], fetch=failing)
        assert find_topic(topics, parent["id"])["last_updated"] == 0


class TestStale:
    def test_never_fetched_and_old_topics_are_stale(self):
        topics, parent, child, grandchild = two_level()
        topics = refresh_topic(topics, child["id"], now=NOW - 2 * HOUR_MS, fetch=canned())
        topics = refresh_topic(topics, grandchild["id"], now=NOW - 48 * HOUR_MS, fetch=canned())
        due = stale_topics(topics, 24, now=NOW)
        assert [t["id"] for t in due] == [parent["id"], grandchild["id"]]

    def test_refresh_stale_reports_failures_and_continues(self):
        topics, parent, child, _grandchild = two_level()

        def flaky(topic, subtopics):
            if topic["title"] == "Solar":
                raise GeminiServiceError("rate limited")
            return {"summary": "ok", "sources": [], "relevant_websites": []}

        out, report = refresh_stale(topics, 24, now=NOW, fetch=flaky)
        assert report["failed"] == {child["id"]: "rate limited"}
        assert len(report["refreshed"]) == 2
        assert report["skipped"] == 0
        assert find_topic(out, parent["id"])["last_updated"] == NOW
        assert find_topic(out, child["id"])["last_updated"] == 0

    def test_fresh_topics_are_skipped(self):
        topics, *_ = two_level()
        topics, _ = refresh_stale(topics, 24, now=NOW, fetch=canned())
        again, report = refresh_stale(topics, 24, now=NOW + HOUR_MS, fetch=canned())
        assert report == {"refreshed": [], "failed": {}, "skipped": 3}
        assert again == topics
