from functools import partial

from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from markupsafe import Markup

from locallibrary import models
from locallibrary import schemas
from locallibrary.database import get_store
from locallibrary.routing import catalog_router
from locallibrary.store import RecordStore, concurrently, index_by_id
from locallibrary.validation import Many, Reference, Required, build_payload, validate
from locallibrary.views import render


router = catalog_router("books")

BOOK_LIST_URL = "/catalog/books"

BOOK_RULES = [
    Required("title", "Title must not be empty."),
    Reference("author", "Author must not be empty."),
    Required("summary", "Summary must not be empty."),
    Required("isbn", "ISBN must not be empty."),
    Many("genre"),
]


def _candidate(values, book_id=None):
    """Unsaved Book holding the submitted values, for redisplaying the form."""
    return models.Book(
        id=book_id,
        title=values["title"],
        author_id=values["author"],
        summary=values["summary"],
        isbn=values["isbn"],
        genre_ids=values["genre"],
    )


async def _book_with_instances(store: RecordStore, book_id: int):
    return await concurrently(
        partial(store.find_by_id, models.Book, book_id),
        partial(
            store.find_all, models.BookInstance, models.BookInstance.book_id == book_id
        ),
    )


async def _form_choices(store: RecordStore):
    """All authors and genres for the select and checkbox inputs."""
    return await concurrently(
        partial(
            store.find_all,
            models.Author,
            sort=(models.Author.family_name, models.Author.first_name),
        ),
        partial(store.find_all, models.Genre, sort=models.Genre.name),
    )


async def _validate_book(form, store: RecordStore):
    """
    Run the form rules, then confirm the chosen author exists.

    Returns:
        (values, errors, payload); payload is None whenever errors is non-empty
    """
    values, errors = validate(form, BOOK_RULES)
    payload = None if errors else build_payload(schemas.BookCreate, values, errors)
    if payload is not None:
        author = await run_in_threadpool(
            store.find_by_id, models.Author, payload.author_id
        )
        if author is None:
            errors.add("author", "Author not found.")
            payload = None
    return values, errors, payload


async def _render_book_form(request, store, title, book, checked_genres, errors=None):
    authors, genres = await _form_choices(store)
    return render(
        request,
        "book_form.html",
        title,
        book=book,
        authors=authors,
        genres=genres,
        checked_genres=checked_genres,
        errors=errors or [],
    )


@router.get("/books")
async def book_list(request: Request, store: RecordStore = Depends(get_store)):
    """
    List all books ordered by title, each with its author.

    The authors are fetched in a second query and joined by id.
    """
    books = await run_in_threadpool(store.find_all, models.Book, sort=models.Book.title)
    author_ids = sorted({book.author_id for book in books})
    authors = await run_in_threadpool(
        store.find_all, models.Author, models.Author.id.in_(author_ids)
    )
    return render(
        request,
        "book_list.html",
        "Book List",
        book_list=books,
        authors=index_by_id(authors),
    )


@router.get("/book/create")
async def book_create_get(request: Request, store: RecordStore = Depends(get_store)):
    return await _render_book_form(request, store, "Create Book", None, set())


@router.post("/book/create")
async def book_create_post(request: Request, store: RecordStore = Depends(get_store)):
    """
    Validate the submitted book and save it.

    Internal Working:
    1. "genre" may arrive zero, one or many times; it is always a list here
    2. On errors the authors and genres are fetched again and the genres the
       user had ticked are marked checked
    3. Otherwise the book and its genre links are stored together

    Returns:
        The re-rendered form, or a 302 redirect to the new book
    """
    form = await request.form()
    values, errors, payload = await _validate_book(form, store)

    if errors:
        return await _render_book_form(
            request,
            store,
            "Create Book",
            _candidate(values),
            set(values["genre"]),
            errors,
        )

    book = await run_in_threadpool(store.create, models.Book(**payload.model_dump()))
    return RedirectResponse(book.url, status_code=status.HTTP_302_FOUND)


@router.get("/book/{book_id:id}/delete")
async def book_delete_get(
    request: Request, book_id: int, store: RecordStore = Depends(get_store)
):
    book, instances = await _book_with_instances(store, book_id)
    if book is None:
        return RedirectResponse(BOOK_LIST_URL, status_code=status.HTTP_302_FOUND)

    return render(
        request, "book_delete.html", "Delete Book", book=book, book_instances=instances
    )


@router.post("/book/{book_id:id}/delete")
async def book_delete_post(
    request: Request, book_id: int, store: RecordStore = Depends(get_store)
):
    """
    Delete a book that has no copies.

    Business Logic:
    - While copies of the book exist nothing is deleted
    - Deleting the book removes its genre links, never the genres
    """
    book, instances = await _book_with_instances(store, book_id)
    if book is None:
        return RedirectResponse(BOOK_LIST_URL, status_code=status.HTTP_302_FOUND)

    if instances:
        return render(
            request,
            "book_delete.html",
            "Delete Book",
            book=book,
            book_instances=instances,
        )

    await run_in_threadpool(store.delete_by_id, models.Book, book_id)
    return RedirectResponse(BOOK_LIST_URL, status_code=status.HTTP_302_FOUND)


@router.get("/book/{book_id:id}/update")
async def book_update_get(
    request: Request, book_id: int, store: RecordStore = Depends(get_store)
):
    """
    Show the book form filled in from the stored book.

    Raises:
        HTTPException: 404 if book not found
    """
    book, authors, genres = await concurrently(
        partial(store.find_by_id, models.Book, book_id),
        partial(
            store.find_all,
            models.Author,
            sort=(models.Author.family_name, models.Author.first_name),
        ),
        partial(store.find_all, models.Genre, sort=models.Genre.name),
    )
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")

    return render(
        request,
        "book_form.html",
        "Update Book",
        book=book,
        authors=authors,
        genres=genres,
        checked_genres={str(genre_id) for genre_id in book.genre_ids},
    )


@router.post("/book/{book_id:id}/update")
async def book_update_post(
    request: Request, book_id: int, store: RecordStore = Depends(get_store)
):
    """
    Validate the submitted book and update it in place, keeping its id.

    Raises:
        HTTPException: 404 if book not found, whether or not the form is valid
    """
    form = await request.form()
    values, errors, payload = await _validate_book(form, store)

    if errors:
        if await run_in_threadpool(store.find_by_id, models.Book, book_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Book not found"
            )
        return await _render_book_form(
            request,
            store,
            "Update Book",
            _candidate(values, book_id),
            set(values["genre"]),
            errors,
        )

    book = await run_in_threadpool(
        store.update_by_id, models.Book, book_id, payload.model_dump()
    )
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return RedirectResponse(book.url, status_code=status.HTTP_302_FOUND)


@router.get("/book/{book_id:id}")
async def book_detail(
    request: Request, book_id: int, store: RecordStore = Depends(get_store)
):
    """
    Show a book with its author, genres and copies.

    Internal Working:
    1. The book and its copies are fetched in parallel
    2. The author and genres the book refers to are then fetched in parallel

    Raises:
        HTTPException: 404 if book not found
    """
    book, instances = await _book_with_instances(store, book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")

    author, genres = await concurrently(
        partial(store.find_by_id, models.Author, book.author_id),
        partial(
            store.find_all,
            models.Genre,
            models.Genre.id.in_(list(book.genre_ids)),
            sort=models.Genre.name,
        ),
    )
    return render(
        request,
        "book_detail.html",
        Markup(book.title),
        book=book,
        author=author,
        genres=genres,
        book_instances=instances,
    )
