"""Global briefing assembly and the activity frame behind the dashboard."""

from src.briefing import ACTIVITY_COLUMNS, activity_frame, briefing_topic_cards, generate_global_briefing
from src.events import apply_update
from src.topic_tree import add_topic, new_topic


def forest():
    ai = new_topic("AI", category="Technology")
    chips = new_topic("Chips", parent_id=ai["id"])
    climate = new_topic("Climate", category="Science")
    topics = []
    for t in (ai, chips, climate):
        topics = add_topic(topics, t)
    return topics, ai, chips, climate


class TestGenerateGlobalBriefing:
    def test_no_topics_no_briefing(self):
        called = []
        assert generate_global_briefing([], generate=lambda ts: called.append(ts) or "x") is None
        assert called == []

    def test_covers_every_topic(self):
        topics, *_ = forest()
        seen = []

        def generate(ts):
            seen.append([t["title"] for t in ts])
            return "<h3>Brief</h3>"

        briefing = generate_global_briefing(topics, now=42, generate=generate)
        assert seen == [["AI", "Chips", "Climate"]]
        assert briefing["content"] == "<h3>Brief</h3>"
        assert briefing["timestamp"] == 42
        assert briefing["topic_ids"] == [t["id"] for t in topics]
        assert briefing["id"]


class TestTopicCards:
    def test_only_covered_roots(self):
        topics, ai, chips, climate = forest()
        briefing = {"id": "b", "timestamp": 1, "content": "c", "topic_ids": [ai["id"], chips["id"]]}
        assert briefing_topic_cards(briefing, topics) == [ai]

    def test_orphan_counts_as_root(self):
        orphan = new_topic("Orphan")
        orphan["parent_id"] = "deleted-parent"
        briefing = {"id": "b", "timestamp": 1, "content": "c", "topic_ids": [orphan["id"]]}
        assert briefing_topic_cards(briefing, [orphan]) == [orphan]

    def test_limit_and_missing_briefing(self):
        topics = [new_topic(f"T{i}") for i in range(6)]
        briefing = {"id": "b", "timestamp": 1, "content": "c", "topic_ids": [t["id"] for t in topics]}
        assert len(briefing_topic_cards(briefing, topics)) == 4
        assert briefing_topic_cards(None, topics) == []


class TestActivityFrame:
    def test_empty(self):
        df = activity_frame([])
        assert df.empty
        assert list(df.columns) == ACTIVITY_COLUMNS

    def test_one_row_per_event(self):
        topics, ai, chips, climate = forest()
        topics = [
            apply_update(t, "<p>Chip <b>news</b></p>", ["https://a", "https://b"], [], now=1_700_000_000_000)
            if t["id"] == chips["id"] else t
            for t in topics
        ]
        topics = [apply_update(t, "heat", [], [], now=1_700_000_000_000) if t["id"] == climate["id"] else t for t in topics]
        df = activity_frame(topics)
        assert list(df["topic"]) == ["Chips", "Climate"]
        chip_row = df.iloc[0]
        assert chip_row["root_topic"] == "AI"
        assert chip_row["level"] == 1
        assert chip_row["text"] == "Chip news"
        assert chip_row["sources"] == "https://a, https://b"
        assert df.iloc[1]["root_topic"] == "Climate"
