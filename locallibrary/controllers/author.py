from functools import partial

from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, RedirectResponse

from locallibrary import models
from locallibrary import schemas
from locallibrary.database import get_store
from locallibrary.routing import catalog_router
from locallibrary.store import RecordStore, concurrently
from locallibrary.validation import OptionalDate, Required, build_payload, validate
from locallibrary.views import render


router = catalog_router("authors")

AUTHOR_LIST_URL = "/catalog/authors"

AUTHOR_RULES = [
    Required(
        "first_name",
        "First name must be specified.",
        alphanumeric=True,
        alphanumeric_message="First name has non-alphanumeric characters.",
    ),
    Required(
        "family_name",
        "Family name must be specified.",
        alphanumeric=True,
        alphanumeric_message="Family name has non-alphanumeric characters.",
    ),
    OptionalDate("date_of_birth", "Invalid date of birth"),
    OptionalDate("date_of_death", "Invalid date of death"),
]


async def _author_with_books(store: RecordStore, author_id: int):
    """Fetch an author and the books referencing it in parallel."""
    return await concurrently(
        partial(store.find_by_id, models.Author, author_id),
        partial(
            store.find_all,
            models.Book,
            models.Book.author_id == author_id,
            sort=models.Book.title,
        ),
    )


@router.get("/authors")
async def author_list(request: Request, store: RecordStore = Depends(get_store)):
    """List all authors ordered by family name."""
    authors = await run_in_threadpool(
        store.find_all,
        models.Author,
        sort=(models.Author.family_name, models.Author.first_name),
    )
    return render(request, "author_list.html", "Author List", author_list=authors)


@router.get("/author/create")
async def author_create_get(request: Request):
    return render(request, "author_form.html", "Create Author", author=None)


@router.post("/author/create")
async def author_create_post(request: Request, store: RecordStore = Depends(get_store)):
    """
    Validate the submitted author and save it.

    Internal Working:
    1. Form rules trim, escape and check every field
    2. A candidate Author is built from the cleaned values either way
    3. On errors the form is shown again with the candidate and the messages
    4. Otherwise the pydantic payload builds the record that gets stored

    Returns:
        The re-rendered form, or a 302 redirect to the new author
    """
    form = await request.form()
    values, errors = validate(form, AUTHOR_RULES)
    author = models.Author(**values)

    payload = None if errors else build_payload(schemas.AuthorCreate, values, errors)
    if errors:
        return render(
            request, "author_form.html", "Create Author", author=author, errors=errors
        )

    author = await run_in_threadpool(
        store.create, models.Author(**payload.model_dump())
    )
    return RedirectResponse(author.url, status_code=status.HTTP_302_FOUND)


@router.get("/author/{author_id:id}/delete")
async def author_delete_get(
    request: Request, author_id: int, store: RecordStore = Depends(get_store)
):
    author, books = await _author_with_books(store, author_id)
    if author is None:
        return RedirectResponse(AUTHOR_LIST_URL, status_code=status.HTTP_302_FOUND)

    return render(
        request,
        "author_delete.html",
        "Delete Author",
        author=author,
        author_books=books,
    )


@router.post("/author/{author_id:id}/delete")
async def author_delete_post(
    request: Request, author_id: int, store: RecordStore = Depends(get_store)
):
    """
    Delete an author that no book references.

    Business Logic:
    - While books by this author exist nothing is deleted; the confirmation
      page is shown again listing them
    - Deleting a missing author is a no-op that lands on the author list
    """
    author, books = await _author_with_books(store, author_id)
    if author is None:
        return RedirectResponse(AUTHOR_LIST_URL, status_code=status.HTTP_302_FOUND)

    if books:
        return render(
            request,
            "author_delete.html",
            "Delete Author",
            author=author,
            author_books=books,
        )

    await run_in_threadpool(store.delete_by_id, models.Author, author_id)
    return RedirectResponse(AUTHOR_LIST_URL, status_code=status.HTTP_302_FOUND)


@router.get("/author/{author_id:id}/update")
async def author_update_get(author_id: int):
    return PlainTextResponse("NOT IMPLEMENTED: Author update GET")


@router.post("/author/{author_id:id}/update")
async def author_update_post(author_id: int):
    return PlainTextResponse("NOT IMPLEMENTED: Author update POST")


@router.get("/author/{author_id:id}")
async def author_detail(
    request: Request, author_id: int, store: RecordStore = Depends(get_store)
):
    """
    Show an author with all of their books.

    Raises:
        HTTPException: 404 if author not found
    """
    author, books = await _author_with_books(store, author_id)
    if author is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Author not found"
        )

    return render(
        request,
        "author_detail.html",
        "Author Detail",
        author=author,
        author_books=books,
    )
