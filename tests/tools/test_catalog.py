"""
Tests for the catalog tools (authors and books).

These tests demonstrate:
1. Input validation reported as tagged results
2. Success scenarios returning new ids
3. Cascading deletes as one transaction
4. Lazy per-author listings
"""

from lending_ledger import ErrorKind


def test_add_author_returns_sequential_ids(catalog):
    assert catalog.add_author("George Orwell").unwrap() == 1
    assert catalog.add_author("Harper Lee").unwrap() == 2

    authors = catalog.list_authors().unwrap()
    assert [a.name for a in authors] == ["George Orwell", "Harper Lee"]


def test_add_author_rejects_blank_name(catalog):
    result = catalog.add_author("   ")

    assert not result.ok
    assert result.error == ErrorKind.INVALID_FORMAT
    assert catalog.list_authors().unwrap() == []


def test_add_book_under_existing_author(catalog):
    author_id = catalog.add_author("George Orwell").unwrap()

    book_id = catalog.add_book(author_id, "1984", "Dystopian").unwrap()

    book = catalog.get_book(book_id).unwrap()
    assert book.title == "1984"
    assert book.author_id == author_id
    assert book.is_available


def test_add_book_unknown_author(catalog):
    result = catalog.add_book(42, "Orphan", "None")

    assert not result.ok
    assert result.error == ErrorKind.INVALID_REFERENCE
    assert result.subject == 42
    assert catalog.list_books().unwrap() == []
    # The author is never created implicitly
    assert catalog.list_authors().unwrap() == []


def test_non_positive_author_id_is_a_missing_reference(catalog):
    orwell = catalog.add_author("George Orwell").unwrap()
    book_id = catalog.add_book(orwell, "1984", "Dystopian").unwrap()

    for author_id in (0, -1):
        result = catalog.add_book(author_id, "Orphan", "None")
        assert result.error == ErrorKind.INVALID_REFERENCE
        assert result.subject == author_id

    result = catalog.update_book(book_id, author_id=-1)
    assert result.error == ErrorKind.INVALID_REFERENCE
    assert catalog.get_book(book_id).unwrap().author_id == orwell


def test_get_missing_entities(catalog):
    for result in (catalog.get_author(7), catalog.get_book(7)):
        assert not result.ok
        assert result.error == ErrorKind.NOT_FOUND
        assert result.subject == 7


def test_update_book(catalog):
    orwell = catalog.add_author("George Orwell").unwrap()
    lee = catalog.add_author("Harper Lee").unwrap()
    book_id = catalog.add_book(orwell, "1948", "Dystopian").unwrap()

    book = catalog.update_book(book_id, title="1984").unwrap()
    assert (book.title, book.genre, book.author_id) == ("1984", "Dystopian", orwell)

    book = catalog.update_book(book_id, author_id=lee).unwrap()
    assert book.author_id == lee

    result = catalog.update_book(book_id, author_id=42)
    assert result.error == ErrorKind.INVALID_REFERENCE
    assert catalog.get_book(book_id).unwrap().author_id == lee

    result = catalog.update_book(99, title="Nothing")
    assert result.error == ErrorKind.NOT_FOUND


def test_delete_book_removes_its_records(catalog, patrons, lending):
    author_id = catalog.add_author("George Orwell").unwrap()
    book_id = catalog.add_book(author_id, "1984", "Dystopian").unwrap()
    ann = patrons.add_patron("Ann", "ann@x.com").unwrap()
    lending.borrow(book_id, ann).unwrap()

    assert catalog.delete_book(book_id).ok

    assert catalog.get_book(book_id).error == ErrorKind.NOT_FOUND
    assert lending.history_for_patron(ann).unwrap() == []
    assert catalog.delete_book(book_id).error == ErrorKind.NOT_FOUND


def test_delete_author_cascades(catalog, patrons, lending, assert_invariant):
    orwell = catalog.add_author("George Orwell").unwrap()
    lee = catalog.add_author("Harper Lee").unwrap()
    nineteen = catalog.add_book(orwell, "1984", "Dystopian").unwrap()
    farm = catalog.add_book(orwell, "Animal Farm", "Satire").unwrap()
    mockingbird = catalog.add_book(lee, "To Kill a Mockingbird", "Fiction").unwrap()
    ann = patrons.add_patron("Ann", "ann@x.com").unwrap()
    lending.borrow(nineteen, ann).unwrap()
    lending.borrow(mockingbird, ann).unwrap()

    assert catalog.delete_author(orwell).ok

    assert [b.id for b in catalog.list_books().unwrap()] == [mockingbird]
    assert catalog.get_book(farm).error == ErrorKind.NOT_FOUND
    history = lending.history_for_patron(ann).unwrap()
    assert [r.book_id for r in history] == [mockingbird]
    assert patrons.get_patron(ann).ok
    assert_invariant()


def test_delete_unknown_author(catalog):
    result = catalog.delete_author(3)

    assert result.error == ErrorKind.NOT_FOUND
    assert "3" in result.message


def test_list_books_by_author_is_live(catalog):
    orwell = catalog.add_author("George Orwell").unwrap()
    lee = catalog.add_author("Harper Lee").unwrap()
    catalog.add_book(orwell, "1984", "Dystopian")
    catalog.add_book(lee, "To Kill a Mockingbird", "Fiction")

    books = catalog.list_books_by_author(orwell).unwrap()
    assert [b.title for b in books] == ["1984"]

    farm = catalog.add_book(orwell, "Animal Farm", "Satire").unwrap()
    assert [b.title for b in books] == ["1984", "Animal Farm"]

    catalog.delete_book(farm)
    assert [b.title for b in books] == ["1984"]

    assert list(catalog.list_books_by_author(42).unwrap()) == []


def test_list_authors_with_books(catalog):
    orwell = catalog.add_author("George Orwell").unwrap()
    catalog.add_author("Harper Lee")
    catalog.add_book(orwell, "1984", "Dystopian")
    catalog.add_book(orwell, "Animal Farm", "Satire")

    authors = catalog.list_authors_with_books().unwrap()

    assert [(a.name, a.book_count) for a in authors] == [("George Orwell", 2), ("Harper Lee", 0)]
