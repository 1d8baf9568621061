"""
Tests for summary generation and the defensive reply parsers.
"""

import json

import pytest

from conftest import FakeCompletion, make_item
from topic_engine.schemas import StanceSplit, TopicCluster
from topic_engine.tools import json_repair
from topic_engine.topics.summary import SummaryGenerator, extract_keywords, fallback_summary


@pytest.fixture
def split():
    support = [make_item(f"s{k}", [1, 0], content=f"Support the library expansion plan {k}") for k in range(4)]
    oppose = [make_item(f"o{k}", [1, 0], content=f"Library expansion costs too much {k}") for k in range(2)]
    cluster = TopicCluster.from_members(support + oppose)
    return StanceSplit(cluster=cluster, support=support, oppose=oppose)


class TestSummaryGenerator:

    @pytest.mark.asyncio
    async def test_json_reply(self, split):
        reply = (
            "Sure! Here is the analysis:\n```json\n"
            '{"title": "Library Expansion", "summary": "Debate over the library.",'
            ' "support_summary": "More space for kids", "oppose_summary": "Too expensive",'
            ' "prevailingPosition": "Most support it", "category": "local", "keyWords": ["library"]}\n```'
        )
        summary = await SummaryGenerator(FakeCompletion(default=reply), sample_per_side=3).generate(split)

        assert summary.title == "Library Expansion"
        assert summary.support_summary == "More space for kids"
        assert summary.prevailing_position == "Most support it"
        assert summary.keywords == ["library"]
        assert not summary.is_fallback

    @pytest.mark.asyncio
    async def test_non_string_fields_are_coerced(self, split):
        reply = json.dumps({
            "title": "Bike Lanes",
            "summary": ["Two", "sentences."],
            "category": ["politics", "local"],
            "prevailing_position": 42,
            "leading_critique": {"text": "nested"},
            "keywords": "bike, lanes",
        })
        summary = await SummaryGenerator(FakeCompletion(default=reply)).generate(split)

        assert not summary.is_fallback
        assert summary.title == "Bike Lanes"
        assert summary.summary == "Two sentences."
        assert summary.category == "politics"
        assert summary.prevailing_position == "42"
        assert summary.leading_critique is None
        assert summary.keywords == ["bike", "lanes"]

    @pytest.mark.asyncio
    async def test_non_string_title_only(self, split):
        reply = json.dumps({"title": ["Library", "Expansion"], "support_summary": None})
        summary = await SummaryGenerator(FakeCompletion(default=reply)).generate(split)
        assert summary.title == "Library Expansion"
        assert summary.support_summary == "Supporting this position"

    @pytest.mark.asyncio
    async def test_line_format_reply(self, split):
        reply = "TITLE: Library Expansion\n**SUPPORT:** More space\nOPPOSE: Too expensive"
        summary = await SummaryGenerator(FakeCompletion(default=reply)).generate(split)

        assert summary.title == "Library Expansion"
        assert summary.support_summary == "More space"
        assert summary.oppose_summary == "Too expensive"
        assert summary.summary == "A discussion involving 6 posts with active engagement"

    @pytest.mark.asyncio
    async def test_garbage_reply_falls_back(self, split):
        summary = await SummaryGenerator(FakeCompletion(default="I cannot help with that.")).generate(split)
        assert summary.is_fallback
        assert summary.title == "library expansion support"
        assert summary.support_summary == "Supporting this position"

    @pytest.mark.asyncio
    async def test_completion_error_falls_back(self, split):
        completion = FakeCompletion(error=RuntimeError("All LLM providers failed"))
        summary = await SummaryGenerator(completion).generate(split)
        assert summary.is_fallback
        assert summary.oppose_summary == "Opposing this position"

    @pytest.mark.asyncio
    async def test_prompt_samples_per_side(self, split):
        completion = FakeCompletion(default="{}")
        await SummaryGenerator(completion, sample_per_side=3).generate(split)
        prompt = completion.prompts[0]
        assert "plan 2" in prompt
        assert "plan 3" not in prompt
        assert "too much 1" in prompt


class TestFallback:

    def test_keywords_by_frequency(self):
        words = extract_keywords(["Bike lanes now", "bike lanes are dangerous", "more bike parking"])
        assert words[0] == "bike"
        assert words[1] == "lanes"

    def test_empty_content_title(self):
        summary = fallback_summary([make_item("a", [1, 0], content="a b c")])
        assert summary.title == "Trending Discussion"
        assert summary.summary == "A discussion involving 1 posts with active engagement"


class TestJsonRepair:

    def test_prose_around_object(self):
        result = json_repair.parse_json_object('Here you go: {"a": 1, "b": "x}"} thanks')
        assert result.ok and result.value == {"a": 1, "b": "x}"}

    def test_truncated_object(self):
        result = json_repair.parse_json_object('{"title": "Park plan", "keywords": ["park", "gre')
        assert result.ok
        assert result.value["title"] == "Park plan"
        assert result.value["keywords"] == ["park", "gre"]

    def test_literal_newline_in_string(self):
        result = json_repair.parse_json_object('{"summary": "line one\nline two"}')
        assert result.ok and "line two" in result.value["summary"]

    @pytest.mark.parametrize("reply", ["", "no json here", "[1, 2, 3]", "{not: valid json at all}"])
    def test_unusable(self, reply):
        assert not json_repair.parse_json_object(reply).ok

    def test_labeled_lines(self):
        result = json_repair.parse_labeled_lines("- Title: A\nsupport: B\nnoise", ("TITLE", "SUPPORT", "OPPOSE"))
        assert result.ok and result.value == {"TITLE": "A", "SUPPORT": "B"}
        assert not json_repair.parse_labeled_lines("nothing", ("TITLE",)).ok
