"""
Tests for the document tree codec and the document stores.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fhircache.cache import InMemoryDocumentStore, SQLiteDocumentStore
from fhircache.cache.base import normalize_key
from fhircache.cache.document_tree import DICT, LEAF, LIST, build_document, flatten_document
from fhircache.exceptions import StorageError

PATIENT_BUNDLE = {
    "resourceType": "Bundle",
    "total": 2,
    "entry": [
        {"resource": {"resourceType": "Patient", "id": "p1", "active": True}},
        {
            "resource": {
                "resourceType": "Patient",
                "id": "p2",
                "name": [{"given": ["Ann", "Marie"], "family": "Smith"}],
                "deceasedBoolean": None,
            }
        },
    ],
    "link": [],
    "meta": {},
}


@pytest.fixture
async def sqlite_store(temp_dir: Path) -> SQLiteDocumentStore:
    """Create an initialized SQLite document store for testing."""
    store = SQLiteDocumentStore(temp_dir / "cache")
    await store.init()
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request: pytest.FixtureRequest, temp_dir: Path):
    """Run a test against each document store."""
    if request.param == "memory":
        yield InMemoryDocumentStore()
        return

    sqlite = SQLiteDocumentStore(temp_dir / "param_cache")
    await sqlite.init()
    yield sqlite
    await sqlite.close()


class TestDocumentTree:
    """Test flattening and rebuilding documents."""

    def test_flatten_marks_containers_and_leaves(self) -> None:
        """Test each container and scalar becomes one node."""
        nodes = list(flatten_document(("k",), {"a": [1, {"b": "x"}]}))

        assert nodes == [
            (("k",), DICT, None),
            (("k", "a"), LIST, None),
            (("k", "a", "0"), LEAF, 1),
            (("k", "a", "1"), DICT, None),
            (("k", "a", "1", "b"), LEAF, "x"),
        ]

    def test_build_restores_lists_in_index_order(self) -> None:
        """Test list items are ordered numerically, not lexically."""
        items = list(range(12))
        nodes = list(flatten_document(("k",), items))
        nodes.reverse()

        assert build_document(("k",), nodes) == items

    def test_numeric_dict_keys_stay_dict(self) -> None:
        """Test a dict whose keys look like indexes is not turned into a list."""
        document = {"0": "a", "1": "b"}
        nodes = list(flatten_document(("k",), document))

        assert build_document(("k",), nodes) == document

    def test_build_missing_returns_none(self) -> None:
        """Test rebuilding an absent key gives None."""
        nodes = list(flatten_document(("k",), {"a": 1}))

        assert build_document(("other",), nodes) is None

    def test_build_parent_of_stored_key(self) -> None:
        """Test a key above a stored document rebuilds as a dict."""
        nodes = list(flatten_document(("k", "data"), {"a": 1}))

        assert build_document(("k",), nodes) == {"data": {"a": 1}}


class TestDocumentStores:
    """Behaviour shared by every DocumentStore."""

    @pytest.mark.asyncio
    async def test_round_trip_preserves_structure(self, store) -> None:
        """Test nested arrays, empty containers and scalars survive storage."""
        key = ("Fhir", "Patient", "by_query", "name=smith", "data")

        await store.put_object(key, PATIENT_BUNDLE)

        assert await store.get_object_with_arrays(key) == PATIENT_BUNDLE

    @pytest.mark.asyncio
    async def test_exists_covers_ancestors(self, store) -> None:
        """Test a key exists when something is stored below it."""
        await store.put_object(("Fhir", "Patient", "by_query", "q", "data"), {"entry": []})

        assert await store.exists(("Fhir", "Patient", "by_query", "q")) is True
        assert await store.exists(("Fhir", "Patient")) is True
        assert await store.exists(("Fhir", "Patient", "by_query", "q2")) is False

    @pytest.mark.asyncio
    async def test_exists_is_not_a_string_prefix_match(self, store) -> None:
        """Test a segment prefix does not count as an ancestor."""
        await store.put_object(("Fhir", "Patient", "by_query", "name=smithers", "data"), {})

        assert await store.exists(("Fhir", "Patient", "by_query", "name=smith")) is False

    @pytest.mark.asyncio
    async def test_put_replaces_subtree(self, store) -> None:
        """Test put_object leaves no stale nodes from a previous document."""
        key = ("Fhir", "Patient", "by_query", "q", "data")

        await store.put_object(key, {"entry": [1, 2, 3], "total": 3})
        await store.put_object(key, {"entry": [9]})

        assert await store.get_object_with_arrays(key) == {"entry": [9]}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store) -> None:
        """Test reading an absent key returns None."""
        assert await store.get_object_with_arrays(("Fhir", "nothing")) is None

    @pytest.mark.asyncio
    async def test_scalar_document(self, store) -> None:
        """Test a bare scalar can be stored and read."""
        await store.put_object(("Fhir", "count"), 42)

        assert await store.get_object_with_arrays(("Fhir", "count")) == 42

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store) -> None:
        """Test mutating a read document does not change the stored one."""
        key = ("Fhir", "Patient", "by_query", "q", "data")
        await store.put_object(key, {"entry": [{"id": "a"}]})

        first = await store.get_object_with_arrays(key)
        first["entry"].append({"id": "b"})

        assert await store.get_object_with_arrays(key) == {"entry": [{"id": "a"}]}

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, store) -> None:
        """Test an empty composite key is a StorageError."""
        with pytest.raises(StorageError):
            await store.exists(())


class TestSQLiteDocumentStore:
    """SQLite-specific behaviour."""

    @pytest.mark.asyncio
    async def test_persists_across_reopen(self, temp_dir: Path) -> None:
        """Test documents survive closing and reopening the database."""
        key = ("Fhir", "Immunization", "by_query", "identifier=test", "data")

        async with SQLiteDocumentStore(temp_dir / "cache") as first:
            await first.put_object(key, PATIENT_BUNDLE)

        async with SQLiteDocumentStore(temp_dir / "cache") as second:
            assert await second.get_object_with_arrays(key) == PATIENT_BUNDLE

    @pytest.mark.asyncio
    async def test_creates_database_file(self, sqlite_store: SQLiteDocumentStore) -> None:
        """Test init() creates documents.db under the cache directory."""
        assert sqlite_store.db_path.exists()
        assert sqlite_store.db_path.name == "documents.db"

    @pytest.mark.asyncio
    async def test_requires_init(self, temp_dir: Path) -> None:
        """Test using the store before init() raises StorageError."""
        store = SQLiteDocumentStore(temp_dir / "cache")

        with pytest.raises(StorageError, match="not initialized"):
            await store.exists(("Fhir",))

    @pytest.mark.asyncio
    async def test_rejects_separator_in_segment(
        self, sqlite_store: SQLiteDocumentStore
    ) -> None:
        """Test a segment containing the path separator is refused."""
        with pytest.raises(StorageError):
            await sqlite_store.put_object(("Fhir", "bad\x1fsegment"), {})

    @pytest.mark.asyncio
    async def test_count_tracks_nodes(self, sqlite_store: SQLiteDocumentStore) -> None:
        """Test count() reports one row per node."""
        await sqlite_store.put_object(("Fhir", "doc"), {"a": [1, 2]})

        assert await sqlite_store.count() == 4


class TestNormalizeKey:
    """Test composite key validation."""

    def test_accepts_lists(self) -> None:
        """Test list keys are converted to tuples."""
        assert normalize_key(["Fhir", "Patient"]) == ("Fhir", "Patient")

    def test_rejects_non_string_segments(self) -> None:
        """Test integer segments are refused."""
        with pytest.raises(StorageError):
            normalize_key(("Fhir", 1))  # type: ignore[arg-type]
