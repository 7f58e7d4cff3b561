# ABOUTME: Unit tests for the BookCatalog and UserDirectory stores.
# ABOUTME: Validates add/get, duplicate detection, and version-guarded counter updates.

import sqlite3

import pytest

from loanledger.core.types import BookStatus, UserStatus
from loanledger.db.catalog import BookCatalog
from loanledger.db.directory import UserDirectory
from loanledger.db.errors import DuplicateRecordError, StaleRecordError
from loanledger.db.mapping import BookRecord, UserRecord


@pytest.fixture()
def catalog(conn: sqlite3.Connection) -> BookCatalog:
    return BookCatalog(conn)


@pytest.fixture()
def directory(conn: sqlite3.Connection) -> UserDirectory:
    return UserDirectory(conn)


class TestAddBook:
    """Tests for BookCatalog.add_book."""

    def test_roundtrip_get_by_id(self, catalog: BookCatalog) -> None:
        book = BookRecord(
            id="b1",
            accession_number="ACC-001",
            title="The Name of the Rose",
            author="Umberto Eco",
            total_copies=3,
            available_copies=3,
        )
        assert catalog.add_book(book) == "b1"

        stored = catalog.get_by_id("b1")
        assert stored is not None
        assert stored.title == "The Name of the Rose"
        assert stored.total_copies == 3
        assert stored.available_copies == 3
        assert stored.status == BookStatus.AVAILABLE
        assert stored.reference_only is False
        assert stored.version == 0

    def test_get_by_accession(self, catalog: BookCatalog) -> None:
        catalog.add_book(BookRecord(id="b1", accession_number="ACC-001", title="T"))
        stored = catalog.get_by_accession("ACC-001")
        assert stored is not None
        assert stored.id == "b1"

    def test_get_missing_returns_none(self, catalog: BookCatalog) -> None:
        assert catalog.get_by_id("nope") is None
        assert catalog.get_by_accession("nope") is None

    def test_duplicate_accession_raises(self, catalog: BookCatalog) -> None:
        catalog.add_book(BookRecord(id="b1", accession_number="ACC-001", title="T"))
        with pytest.raises(DuplicateRecordError, match="ACC-001"):
            catalog.add_book(BookRecord(id="b2", accession_number="ACC-001", title="U"))

    def test_inconsistent_counters_rejected(self, catalog: BookCatalog) -> None:
        with pytest.raises(ValueError, match="available_copies"):
            catalog.add_book(
                BookRecord(
                    id="b1", accession_number="A", title="T", total_copies=1, available_copies=2
                )
            )

    def test_reference_only_flag_persists(self, catalog: BookCatalog) -> None:
        catalog.add_book(
            BookRecord(id="b1", accession_number="A", title="T", reference_only=True)
        )
        assert catalog.get_by_id("b1").reference_only is True

    def test_list_all_ordered_by_title(self, catalog: BookCatalog) -> None:
        catalog.add_book(BookRecord(id="b1", accession_number="A1", title="Zebra"))
        catalog.add_book(BookRecord(id="b2", accession_number="A2", title="Apple"))
        assert [b.title for b in catalog.list_all()] == ["Apple", "Zebra"]


class TestCopyCounters:
    """Tests for decrement_available / increment_available guards."""

    def test_decrement_bumps_version(self, catalog: BookCatalog, add_book) -> None:
        book = add_book("b1", copies=2)
        catalog.decrement_available(book)
        stored = catalog.get_by_id("b1")
        assert stored.available_copies == 1
        assert stored.version == book.version + 1
        assert stored.status == BookStatus.AVAILABLE

    def test_last_copy_flips_status_to_issued(self, catalog: BookCatalog, add_book) -> None:
        book = add_book("b1")
        catalog.decrement_available(book)
        stored = catalog.get_by_id("b1")
        assert stored.available_copies == 0
        assert stored.status == BookStatus.ISSUED

    def test_decrement_with_stale_version_raises(
        self, catalog: BookCatalog, add_book
    ) -> None:
        book = add_book("b1", copies=2)
        catalog.decrement_available(book)
        with pytest.raises(StaleRecordError):
            catalog.decrement_available(book)
        assert catalog.get_by_id("b1").available_copies == 1

    def test_decrement_at_zero_raises(self, catalog: BookCatalog, add_book) -> None:
        add_book("b1", available_copies=0)
        with pytest.raises(StaleRecordError):
            catalog.decrement_available(catalog.get_by_id("b1"))

    def test_increment_restores_available_status(
        self, catalog: BookCatalog, add_book
    ) -> None:
        book = add_book("b1")
        catalog.decrement_available(book)
        catalog.increment_available(catalog.get_by_id("b1"))
        stored = catalog.get_by_id("b1")
        assert stored.available_copies == 1
        assert stored.status == BookStatus.AVAILABLE

    def test_increment_never_exceeds_total(self, catalog: BookCatalog, add_book) -> None:
        book = add_book("b1")
        with pytest.raises(StaleRecordError):
            catalog.increment_available(book)
        assert catalog.get_by_id("b1").available_copies == 1

    def test_increment_keeps_damaged_status(self, catalog: BookCatalog, add_book) -> None:
        add_book("b1", copies=2, available_copies=1)
        catalog.set_status("b1", BookStatus.DAMAGED)
        catalog.increment_available(catalog.get_by_id("b1"))
        assert catalog.get_by_id("b1").status == BookStatus.DAMAGED

    def test_set_status_missing_raises(self, catalog: BookCatalog) -> None:
        with pytest.raises(ValueError, match="not found"):
            catalog.set_status("nope", BookStatus.LOST)


class TestUserDirectory:
    """Tests for UserDirectory."""

    def test_roundtrip(self, directory: UserDirectory) -> None:
        directory.add_user(UserRecord(id="u1", employee_id="E-1", full_name="Ada Lovelace"))
        stored = directory.get_by_id("u1")
        assert stored.full_name == "Ada Lovelace"
        assert stored.status == UserStatus.ACTIVE
        assert stored.issued_count == 0
        assert directory.get_by_employee_id("E-1").id == "u1"

    def test_duplicate_employee_id_raises(self, directory: UserDirectory) -> None:
        directory.add_user(UserRecord(id="u1", employee_id="E-1", full_name="A"))
        with pytest.raises(DuplicateRecordError, match="E-1"):
            directory.add_user(UserRecord(id="u2", employee_id="E-1", full_name="B"))

    def test_issued_count_up_and_down(self, directory: UserDirectory, add_user) -> None:
        add_user("u1")
        directory.increment_issued_count("u1")
        directory.increment_issued_count("u1")
        assert directory.decrement_issued_count("u1") is True
        assert directory.get_by_id("u1").issued_count == 1

    def test_decrement_clamps_at_zero(self, directory: UserDirectory, add_user) -> None:
        add_user("u1")
        assert directory.decrement_issued_count("u1") is False
        assert directory.get_by_id("u1").issued_count == 0

    def test_increment_missing_user_raises(self, directory: UserDirectory) -> None:
        with pytest.raises(ValueError, match="not found"):
            directory.increment_issued_count("nope")

    def test_set_status(self, directory: UserDirectory, add_user) -> None:
        add_user("u1")
        directory.set_status("u1", UserStatus.SUSPENDED)
        assert directory.get_by_id("u1").status == UserStatus.SUSPENDED

    def test_list_all_ordered_by_name(self, directory: UserDirectory, add_user) -> None:
        add_user("u1", "Zed")
        add_user("u2", "Amy")
        assert [u.full_name for u in directory.list_all()] == ["Amy", "Zed"]
