"""Tests for data/repository.py — listing, lookup, writes and aggregates."""

import asyncio

import pytest

from data.entries import StoredFile
from data.errors import NotFound, ValidationFailure


def run(coro):
    return asyncio.run(coro)


def _new_video(**overrides):
    fields = {
        "title": "Archimedes principle",
        "description": "Buoyant force on a submerged body",
        "bookTitle": "Physics Part 1",
        "chapter": "Fluids",
        "type": "video",
        "youtubeUrl": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    }
    fields.update(overrides)
    return fields


class TestListEntries:
    def test_search_type_and_pagination(self, repository, add_entry):
        add_entry(title="Density of water")
        add_entry(title="Mass and volume", description="Finding density from mass")
        add_entry(title="Floating bodies", tags="buoyancy,Density")
        add_entry(title="Velocity")
        add_entry(title="Acceleration")

        result = run(repository.list_entries({
            "search": "density", "type": "video", "page": "1", "limit": "2",
        }))

        assert len(result["items"]) == 2
        page = result["pagination"]
        assert page["totalCount"] == 3
        assert page["totalPages"] == 2
        assert page["hasNextPage"] is True
        assert page["hasPrevPage"] is False
        assert page["nextPage"] == 2
        assert result["filters"]["search"] == "density"
        assert result["filters"]["type"] == "video"

    def test_second_page_has_remainder(self, repository, add_entry):
        for i in range(3):
            add_entry(title=f"Density {i}")
        result = run(repository.list_entries({"search": "density", "page": "2", "limit": "2"}))
        assert len(result["items"]) == 1
        assert result["pagination"]["hasPrevPage"] is True
        assert result["pagination"]["hasNextPage"] is False

    def test_default_sort_newest_first(self, repository, add_entry):
        for i in range(3):
            add_entry(title=f"T{i}")
        result = run(repository.list_entries({}))
        assert [e["title"] for e in result["items"]] == ["T2", "T1", "T0"]

    def test_sort_by_title(self, repository, add_entry):
        for title in ("b", "c", "a"):
            add_entry(title=title)
        result = run(repository.list_entries({"sortBy": "title", "sortOrder": "asc"}))
        assert [e["title"] for e in result["items"]] == ["a", "b", "c"]

    def test_contains_filter_case_insensitive(self, repository, add_entry):
        add_entry(bookTitle="NCERT Physics")
        add_entry(bookTitle="Chemistry")
        result = run(repository.list_entries({"bookTitle": "physics"}))
        assert [e["bookTitle"] for e in result["items"]] == ["NCERT Physics"]

    def test_exact_filter(self, repository, add_entry):
        add_entry(grade="10")
        add_entry(grade="10th")
        result = run(repository.list_entries({"grade": "10"}))
        assert [e["grade"] for e in result["items"]] == ["10"]

    def test_limit_clamped(self, repository, add_entry):
        add_entry()
        result = run(repository.list_entries({"limit": "500"}))
        assert result["pagination"]["limit"] == 50

    def test_empty(self, repository):
        result = run(repository.list_entries({}))
        assert result["items"] == []
        assert result["pagination"]["totalPages"] == 0
        assert result["pagination"]["hasNextPage"] is False

    def test_bad_type_rejected(self, repository):
        with pytest.raises(ValidationFailure):
            run(repository.list_entries({"type": "audio"}))

    def test_soft_deleted_hidden(self, repository, catalog_store, add_entry):
        keep = add_entry(title="Density kept")
        gone = add_entry(title="Density gone")
        catalog_store.deactivate_entry(gone["id"])
        result = run(repository.list_entries({"search": "density"}))
        assert [e["id"] for e in result["items"]] == [keep["id"]]
        assert result["pagination"]["totalCount"] == 1


class TestGetEntry:
    def test_increments_views(self, repository, add_entry):
        entry = add_entry()
        assert run(repository.get_entry(entry["id"]))["views"] == 1
        assert run(repository.get_entry(entry["id"]))["views"] == 2

    def test_malformed_id(self, repository):
        with pytest.raises(ValidationFailure):
            run(repository.get_entry("not-an-id"))

    def test_missing(self, repository):
        with pytest.raises(NotFound):
            run(repository.get_entry("0" * 24))

    def test_soft_deleted_is_missing(self, repository, add_entry):
        entry = add_entry()
        run(repository.delete_entry(entry["id"]))
        with pytest.raises(NotFound):
            run(repository.get_entry(entry["id"]))


class TestCreateEntry:
    def test_video(self, repository):
        entry = run(repository.create_entry(_new_video()))
        assert entry["youtubeVideoId"] == "dQw4w9WgXcQ"
        assert entry["embedUrl"] == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert entry["views"] == 0
        assert entry["isActive"] is True

    def test_non_youtube_url_not_persisted(self, repository, catalog_store):
        with pytest.raises(ValidationFailure):
            run(repository.create_entry(_new_video(youtubeUrl="https://example.com/lesson")))
        assert catalog_store.count_entries("1 = 1", []) == 0

    def test_image(self, repository):
        stored = StoredFile(url="/uploads/diagram-1-2.png", name="diagram.png", size=2048)
        entry = run(repository.create_entry(_new_video(type="image", youtubeUrl=None), stored))
        assert entry["type"] == "image"
        assert entry["fileUrl"] == "/uploads/diagram-1-2.png"
        assert entry["youtubeVideoId"] is None


class TestUpdateEntry:
    def test_partial(self, repository, add_entry):
        entry = add_entry(title="Old")
        updated = run(repository.update_entry(entry["id"], {"title": "New"}))
        assert updated["title"] == "New"
        assert updated["chapter"] == entry["chapter"]

    def test_no_changes_returns_existing(self, repository, add_entry):
        entry = add_entry()
        updated = run(repository.update_entry(entry["id"], {"views": 50}))
        assert updated["views"] == 0
        assert updated["updatedAt"] == entry["updated_at"]

    def test_missing(self, repository):
        with pytest.raises(NotFound):
            run(repository.update_entry("0" * 24, {"title": "x"}))

    def test_deleted(self, repository, add_entry):
        entry = add_entry()
        run(repository.delete_entry(entry["id"]))
        with pytest.raises(NotFound):
            run(repository.update_entry(entry["id"], {"title": "x"}))


class TestDeleteEntry:
    def test_soft_delete(self, repository, catalog_store, add_entry):
        entry = add_entry()
        run(repository.delete_entry(entry["id"]))
        assert catalog_store.get_entry(entry["id"], include_inactive=True)["is_active"] is False

    def test_delete_twice(self, repository, add_entry):
        entry = add_entry()
        run(repository.delete_entry(entry["id"]))
        with pytest.raises(NotFound):
            run(repository.delete_entry(entry["id"]))

    def test_malformed_id(self, repository):
        with pytest.raises(ValidationFailure):
            run(repository.delete_entry("xyz"))


class TestMetadata:
    def test_unique_books_sorted(self, repository, catalog_store, add_entry):
        add_entry(bookTitle="Physics")
        add_entry(bookTitle="Chemistry")
        add_entry(bookTitle="Physics")
        gone = add_entry(bookTitle="Biology")
        catalog_store.deactivate_entry(gone["id"])
        assert run(repository.unique_books()) == ["Chemistry", "Physics"]

    def test_chapters_for_book(self, repository, add_entry):
        add_entry(bookTitle="Physics Part 1", chapter="Motion")
        add_entry(bookTitle="Physics Part 1", chapter="Gravitation")
        add_entry(bookTitle="Physics Part 1", chapter="Motion")
        add_entry(bookTitle="Chemistry", chapter="Atoms")
        assert run(repository.chapters_for_book("physics part 1")) == ["Gravitation", "Motion"]

    def test_chapters_literal_match(self, repository, add_entry):
        add_entry(bookTitle="Physics (Vol. 1)", chapter="Motion")
        assert run(repository.chapters_for_book("(Vol. 1)")) == ["Motion"]
        assert run(repository.chapters_for_book("Vol.*")) == []

    @pytest.mark.parametrize("title", ["", "   ", "x" * 101])
    def test_chapters_bad_title(self, repository, title):
        with pytest.raises(ValidationFailure):
            run(repository.chapters_for_book(title))


class TestStats:
    def test_totals_and_rankings(self, repository, catalog_store, add_entry):
        a = add_entry(bookTitle="Physics", title="First")
        add_entry(bookTitle="Physics", title="Second")
        add_entry(bookTitle="Chemistry", title="Third")
        add_entry(
            bookTitle="Chemistry", title="Diagram", type="image", youtubeUrl=None,
            stored_file=StoredFile(url="/uploads/d.png", name="d.png", size=10),
        )
        gone = add_entry(bookTitle="Biology")
        catalog_store.increment_views(a["id"])
        catalog_store.increment_views(a["id"])
        catalog_store.increment_views(gone["id"])
        catalog_store.deactivate_entry(gone["id"])

        stats = run(repository.stats())

        assert stats["totals"] == {"videos": 3, "images": 1, "views": 2, "total": 4}
        assert stats["topBooks"] == [
            {"_id": "Chemistry", "count": 2},
            {"_id": "Physics", "count": 2},
        ]
        assert [r["title"] for r in stats["recentVideos"]] == ["Diagram", "Third", "Second", "First"]
        assert stats["recentVideos"][-1]["views"] == 2

    def test_recent_capped(self, repository, add_entry):
        for _ in range(7):
            add_entry()
        assert len(run(repository.stats())["recentVideos"]) == 5

    def test_empty(self, repository):
        stats = run(repository.stats())
        assert stats["totals"] == {"videos": 0, "images": 0, "views": 0, "total": 0}
        assert stats["topBooks"] == []
        assert stats["recentVideos"] == []
