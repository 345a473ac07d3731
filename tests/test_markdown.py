"""Tests for threadkeep.extraction.markdown."""

from __future__ import annotations

from threadkeep.extraction import markdown

CHECKLIST = "# Task\n- [x] Setup project\n- [/] Build parser\n- [ ] Write docs\n- [X] Add CI\n"


class TestHeadingsAndSections:
    def test_first_heading(self) -> None:
        assert markdown.first_heading("intro\n# Title\n## Sub\n# Other") == "Title"
        assert markdown.first_heading("no headings") == ""

    def test_section_body(self) -> None:
        text = "# T\n## Changes\n- a\n- b\n## Other\nx"
        assert markdown.section_body(text, "Changes") == "- a\n- b"

    def test_section_body_levels(self) -> None:
        text = "### Changes\nbody text\n### Next\nmore"
        assert markdown.section_body(text, "Changes") is None
        assert markdown.section_body(text, "Changes", levels="2,4") == "body text"

    def test_section_body_runs_to_end(self) -> None:
        assert markdown.section_body("## Notes\nlast section", "Notes") == "last section"

    def test_first_section(self) -> None:
        assert markdown.first_section("# T\n## Whatever\nbody\n## Next\n") == "body"
        assert markdown.first_section("# only a title") is None


class TestLists:
    def test_bullet_items(self) -> None:
        assert markdown.bullet_items("- one\n* two\n  - nested\ntext") == ["one", "two"]

    def test_checklist_states(self) -> None:
        assert markdown.open_items(CHECKLIST) == ["Write docs"]
        assert markdown.done_items(CHECKLIST) == ["Setup project", "Add CI"]
        assert markdown.in_progress_item(CHECKLIST) == "Build parser"
        assert markdown.in_progress_item("- [ ] nothing active") == ""

    def test_done_items_capped(self) -> None:
        text = "\n".join(f"- [x] item {i}" for i in range(12))
        assert len(markdown.done_items(text)) == markdown.MAX_CHECKLIST_ITEMS
        assert len(markdown.all_done_items(text)) == 12


class TestCallouts:
    def test_callout_text(self) -> None:
        text = "intro\n> [!NOTE]\n> Use **SQLite** for storage.\n> Second line.\n\nafter"
        assert markdown.callout_blocks(text) == ["Use SQLite for storage.\nSecond line."]

    def test_plain_quote_ignored(self) -> None:
        assert markdown.callout_blocks("> just a quote\n") == []


class TestFrontmatter:
    def test_yaml_frontmatter(self) -> None:
        text = "---\ndescription: API rules\nalwaysApply: true\n---\nbody"
        assert markdown.frontmatter(text) == {"description": "API rules", "alwaysApply": True}

    def test_invalid_yaml_read_as_flat_pairs(self) -> None:
        text = "---\nglobs: *.ts\ndescription: 'Rules'\n---\n"
        assert markdown.frontmatter(text) == {"globs": "*.ts", "description": "Rules"}

    def test_absent(self) -> None:
        assert markdown.frontmatter("# no frontmatter") == {}
