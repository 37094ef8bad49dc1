"""
Tests for the markdown vault adapter.
"""

from pathlib import Path

import pytest


# ============== Tests for reading and writing notes ==============

class TestReadWrite:
    """Tests for read_note, write_note and append_note."""

    async def test_read_with_frontmatter(self, note_store):
        """Test front-matter is split off the body."""
        result = await note_store.read_note("Projects/Hub")

        assert result["success"] is True
        assert result["path"] == "Projects/Hub.md"
        assert result["frontmatter"] == {"title": "Hub", "tags": ["project", "python"]}
        assert result["content"].startswith("# Hub")

    async def test_read_raw(self, note_store):
        """Test parse_frontmatter=False returns the file verbatim."""
        result = await note_store.read_note("Projects/Hub.md", parse_frontmatter=False)

        assert result["content"].startswith("---\n")
        assert "frontmatter" not in result

    async def test_read_without_block(self, note_store):
        """Test a note without front-matter reports None."""
        result = await note_store.read_note("plain")

        assert result["frontmatter"] is None

    async def test_read_missing(self, note_store):
        """Test reading an absent note raises NoteNotFound."""
        from mcp_hub.utils import NoteNotFound

        with pytest.raises(NoteNotFound):
            await note_store.read_note("nope")

    async def test_read_traversal(self, note_store):
        """Test a path escaping the vault is rejected."""
        from mcp_hub.utils import PathValidationError

        with pytest.raises(PathValidationError):
            await note_store.read_note("../secrets")

    async def test_write_creates_dirs(self, note_store, temp_vault: Path):
        """Test nested directories are created and front-matter written."""
        result = await note_store.write_note(
            "a/b/new", "héllo", frontmatter={"tags": ["x"]}
        )

        written = (temp_vault / "a" / "b" / "new.md").read_text(encoding="utf-8")
        assert written == '---\ntags: ["x"]\n---\n\nhéllo'
        assert result["path"] == "a/b/new.md"
        assert result["size"] == len(written.encode("utf-8"))

    async def test_write_overwrites(self, note_store, temp_vault: Path):
        """Test write_note replaces existing content."""
        await note_store.write_note("plain", "replaced")

        assert (temp_vault / "plain.md").read_text(encoding="utf-8") == "replaced"

    async def test_append(self, note_store, temp_vault: Path):
        """Test append uses the separator and reports sizes."""
        await note_store.write_note("log", "first")
        result = await note_store.append_note("log", "second", separator="\n---\n")

        assert (temp_vault / "log.md").read_text(encoding="utf-8") == "first\n---\nsecond"
        assert result["previous_size"] == 5
        assert result["new_size"] == len("first\n---\nsecond")

    async def test_append_missing(self, note_store, temp_vault: Path):
        """Test append never creates a note."""
        from mcp_hub.utils import NoteNotFound

        with pytest.raises(NoteNotFound):
            await note_store.append_note("ghost", "text")
        assert not (temp_vault / "ghost.md").exists()


# ============== Tests for list_notes() ==============

class TestListNotes:
    """Tests for list_notes."""

    async def test_lists_all_visible_notes(self, note_store):
        """Test hidden folders and non-markdown files are skipped."""
        result = await note_store.list_notes()

        paths = [n["path"] for n in result["notes"]]
        assert paths == ["Journal/2024-01-20.md", "Projects/Hub.md", "plain.md"]
        assert result["count"] == 3

    async def test_directory_and_non_recursive(self, note_store):
        """Test listing one directory, and the root without recursion."""
        projects = await note_store.list_notes(directory="Projects")
        root_only = await note_store.list_notes(recursive=False)

        assert [n["filename"] for n in projects["notes"]] == ["Hub.md"]
        assert projects["notes"][0]["directory"] == "Projects"
        assert [n["path"] for n in root_only["notes"]] == ["plain.md"]

    async def test_tag_filter(self, note_store):
        """Test tags match both list and single values."""
        python = await note_store.list_notes(tag="python")
        journal = await note_store.list_notes(tag="journal")

        assert [n["path"] for n in python["notes"]] == ["Projects/Hub.md"]
        assert [n["path"] for n in journal["notes"]] == ["Journal/2024-01-20.md"]

    async def test_limit(self, note_store):
        """Test the result count is capped by limit."""
        result = await note_store.list_notes(limit=1)

        assert result["count"] == 1


# ============== Tests for search_notes() ==============

class TestSearchNotes:
    """Tests for search_notes."""

    async def test_case_insensitive_by_default(self, note_store):
        """Test matches are counted across the whole file."""
        result = await note_store.search_notes("neo4j")

        assert result["count"] == 1
        hit = result["results"][0]
        assert hit["path"] == "Projects/Hub.md"
        assert hit["match_count"] == 2
        assert hit["tags"] == ["project", "python"]
        assert "snippets" not in hit

    async def test_case_sensitive(self, note_store):
        """Test case-sensitive search skips differently cased text."""
        result = await note_store.search_notes("neo4j", case_sensitive=True)

        assert result["count"] == 0

    async def test_snippets(self, note_store):
        """Test snippets carry 1-based line numbers and stripped text."""
        result = await note_store.search_notes("hub", include_content=True)

        by_path = {hit["path"]: hit for hit in result["results"]}
        assert set(by_path) == {"Projects/Hub.md", "Journal/2024-01-20.md"}
        journal = by_path["Journal/2024-01-20.md"]
        assert journal["snippets"] == [{"line_number": 5, "text": "Worked on the hub today."}]
        assert len(by_path["Projects/Hub.md"]["snippets"]) <= 5

    async def test_query_is_literal(self, note_store):
        """Test regex metacharacters are matched literally."""
        await note_store.write_note("regex", "cost is $5.00 (approx)")

        result = await note_store.search_notes("$5.00 (approx")

        assert [hit["path"] for hit in result["results"]] == ["regex.md"]

    async def test_directory_scope(self, note_store):
        """Test search can be limited to one folder."""
        result = await note_store.search_notes("hub", directory="Journal")

        assert [hit["path"] for hit in result["results"]] == ["Journal/2024-01-20.md"]

    async def test_missing_directory(self, note_store):
        """Test searching an absent directory finds nothing."""
        result = await note_store.search_notes("hub", directory="memory")

        assert result["count"] == 0


# ============== Tests for create_note() ==============

class TestCreateNote:
    """Tests for create_note templates."""

    async def test_default_with_title(self, note_store):
        """Test the default template adds a heading from the title."""
        await note_store.create_note("idea", "Body text", title="Idea", tags=["t1"])

        note = await note_store.read_note("idea")
        assert note["content"] == "# Idea\n\nBody text"
        assert note["frontmatter"]["tags"] == ["t1"]
        assert note["frontmatter"]["title"] == "Idea"
        assert "type" not in note["frontmatter"]
        assert note["frontmatter"]["created"].endswith("Z")

    async def test_default_without_title(self, note_store):
        """Test the default template keeps the content as is."""
        await note_store.create_note("bare", "Body text")

        note = await note_store.read_note("bare")
        assert note["content"] == "Body text"
        assert note["frontmatter"]["tags"] == []

    async def test_log_template(self, note_store):
        """Test the log template adds a timestamp line."""
        await note_store.create_note("entry", "Did a thing", template="log")

        note = await note_store.read_note("entry")
        assert note["frontmatter"]["type"] == "log"
        assert note["content"].startswith("# Log Entry\n\n**Timestamp:** ")
        assert note["content"].endswith("Did a thing")

    async def test_meeting_template(self, note_store):
        """Test the meeting template adds a date line."""
        await note_store.create_note("standup", "Notes", title="Standup", template="meeting")

        note = await note_store.read_note("standup")
        assert note["frontmatter"]["type"] == "meeting"
        assert note["content"].startswith("# Standup\n\n**Date:** ")

    async def test_journal_template(self, note_store):
        """Test the journal template uses the date as heading."""
        await note_store.create_note("today", "Dear diary", template="journal")

        note = await note_store.read_note("today")
        assert note["frontmatter"]["type"] == "journal"
        assert note["content"].startswith("# 20")


# ============== Tests for delete_note() ==============

class TestDeleteNote:
    """Tests for delete_note."""

    async def test_delete_existing(self, note_store, temp_vault: Path):
        """Test an existing note is removed from disk."""
        result = await note_store.delete_note("plain")

        assert result["deleted"] is True
        assert not (temp_vault / "plain.md").exists()

    async def test_delete_absent_twice(self, note_store):
        """Test deleting an absent note is not an error, every time."""
        first = await note_store.delete_note("ghost")
        second = await note_store.delete_note("ghost")

        for result in (first, second):
            assert result["success"] is True
            assert result["deleted"] is False
            assert result["message"] == "File does not exist"
