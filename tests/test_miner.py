"""Tests for threadkeep.extraction.miner: heuristic text mining."""

from __future__ import annotations

from threadkeep.extraction.miner import (
    MAX_DECISIONS,
    dedupe,
    is_decision,
    mine_approaches,
    mine_current_state,
    mine_decisions,
    mine_next_steps,
    split_sentences,
    strip_list_marker,
)


class TestHelpers:
    def test_dedupe_keeps_first_seen_order(self) -> None:
        assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    def test_split_sentences_strips_list_markers(self) -> None:
        text = "- first item here\n* second item. Third one!"
        assert split_sentences(text) == ["first item here", "second item.", "Third one!"]

    def test_strip_list_marker(self) -> None:
        assert strip_list_marker("  * bullet text ") == "bullet text"
        assert strip_list_marker("3) numbered") == "numbered"
        assert strip_list_marker("plain") == "plain"

    def test_is_decision(self) -> None:
        assert is_decision("We decided to go with Redis")
        assert is_decision("Using a queue instead of polling")
        assert not is_decision("The weather is nice today")


class TestMineDecisions:
    def test_extracts_decision_sentences(self) -> None:
        messages = ["I decided to use PostgreSQL for the storage layer. Short one."]
        assert mine_decisions(messages) == ["I decided to use PostgreSQL for the storage layer."]

    def test_ignores_too_short_sentences(self) -> None:
        assert mine_decisions(["Use X."]) == []

    def test_only_recent_messages_count(self) -> None:
        messages = [f"Message {i}: we chose option number {i} for the build." for i in range(12)]
        decisions = mine_decisions(messages)
        assert len(decisions) == MAX_DECISIONS
        assert not any("number 0 " in d or "number 1 " in d for d in decisions)
        assert "number 11 " in decisions[-1]

    def test_duplicates_collapsed(self) -> None:
        sentence = "We are using the adapter pattern here."
        assert mine_decisions([sentence, sentence]) == [sentence]


class TestMineApproaches:
    def test_tried_fragment(self) -> None:
        approaches = mine_approaches(["I tried caching the responses in memory. It failed."])
        assert any("caching the responses in memory" in a for a in approaches)

    def test_sequencing_fragment(self) -> None:
        approaches = mine_approaches(["First, we profiled the slow query"])
        assert approaches == ["First, we profiled the slow query"]

    def test_nothing_found(self) -> None:
        assert mine_approaches(["All good."]) == []


class TestMineCurrentState:
    def test_state_vocabulary(self) -> None:
        state = mine_current_state(["old", "Refactoring done. Currently the tests pass on CI."])
        assert state == "Currently the tests pass on CI."

    def test_falls_back_to_last_long_line(self) -> None:
        message = "Short\nThis line is definitely longer than twenty chars\nok"
        assert mine_current_state([message]) == "This line is definitely longer than twenty chars"

    def test_empty(self) -> None:
        assert mine_current_state([]) == ""
        assert mine_current_state(["tiny"]) == ""


class TestMineNextSteps:
    def test_list_after_heading(self) -> None:
        message = (
            "Done with parser.\n\nNext steps:\n"
            "- Add error handling for edge cases\n"
            "- Write docs for the API\n"
        )
        assert mine_next_steps([message]) == [
            "Add error handling for edge cases",
            "Write docs for the API",
        ]

    def test_numbered_list(self) -> None:
        message = "TODO\n1. Wire the retry loop\n2. Ship"
        # "Ship" is too short to be a step.
        assert mine_next_steps([message]) == ["Wire the retry loop"]

    def test_no_heading(self) -> None:
        assert mine_next_steps(["- a list without a heading\n- another item"]) == []
