from functools import partial

from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, RedirectResponse

from locallibrary import models
from locallibrary import schemas
from locallibrary.database import get_store
from locallibrary.routing import catalog_router
from locallibrary.store import RecordStore, concurrently
from locallibrary.validation import Required, build_payload, validate
from locallibrary.views import render


router = catalog_router("genres")

GENRE_LIST_URL = "/catalog/genres"

GENRE_RULES = [
    Required("name", "Genre name must contain at least 3 characters", min_length=3),
]


async def _genre_with_books(store: RecordStore, genre_id: int):
    """Fetch a genre and the books filed under it in parallel."""
    return await concurrently(
        partial(store.find_by_id, models.Genre, genre_id),
        partial(
            store.find_all,
            models.Book,
            models.Book.genre_links.any(models.BookGenre.genre_id == genre_id),
            sort=models.Book.title,
        ),
    )


@router.get("/genres")
async def genre_list(request: Request, store: RecordStore = Depends(get_store)):
    genres = await run_in_threadpool(
        store.find_all, models.Genre, sort=models.Genre.name
    )
    return render(request, "genre_list.html", "Genre List", genre_list=genres)


@router.get("/genre/create")
async def genre_create_get(request: Request):
    return render(request, "genre_form.html", "Create Genre", genre=None)


@router.post("/genre/create")
async def genre_create_post(request: Request, store: RecordStore = Depends(get_store)):
    """
    Validate the submitted genre and save it unless it already exists.

    Business Logic:
    - Names are compared exactly (case-sensitive) after trimming and escaping
    - Submitting an existing name redirects to that genre, no duplicate is made

    Returns:
        The re-rendered form, or a 302 redirect to the new or existing genre
    """
    form = await request.form()
    values, errors = validate(form, GENRE_RULES)
    genre = models.Genre(**values)

    payload = None if errors else build_payload(schemas.GenreCreate, values, errors)
    if errors:
        return render(
            request, "genre_form.html", "Create Genre", genre=genre, errors=errors
        )

    existing = await run_in_threadpool(
        store.find_one, models.Genre, models.Genre.name == payload.name
    )
    if existing is not None:
        return RedirectResponse(existing.url, status_code=status.HTTP_302_FOUND)

    genre = await run_in_threadpool(store.create, models.Genre(**payload.model_dump()))
    return RedirectResponse(genre.url, status_code=status.HTTP_302_FOUND)


@router.get("/genre/{genre_id:id}/delete")
async def genre_delete_get(
    request: Request, genre_id: int, store: RecordStore = Depends(get_store)
):
    genre, books = await _genre_with_books(store, genre_id)
    if genre is None:
        return RedirectResponse(GENRE_LIST_URL, status_code=status.HTTP_302_FOUND)

    return render(
        request, "genre_delete.html", "Delete Genre", genre=genre, genre_books=books
    )


@router.post("/genre/{genre_id:id}/delete")
async def genre_delete_post(
    request: Request, genre_id: int, store: RecordStore = Depends(get_store)
):
    """Delete a genre, refused while any book is filed under it."""
    genre, books = await _genre_with_books(store, genre_id)
    if genre is None:
        return RedirectResponse(GENRE_LIST_URL, status_code=status.HTTP_302_FOUND)

    if books:
        return render(
            request, "genre_delete.html", "Delete Genre", genre=genre, genre_books=books
        )

    await run_in_threadpool(store.delete_by_id, models.Genre, genre_id)
    return RedirectResponse(GENRE_LIST_URL, status_code=status.HTTP_302_FOUND)


@router.get("/genre/{genre_id:id}/update")
async def genre_update_get(genre_id: int):
    return PlainTextResponse("NOT IMPLEMENTED: Genre update GET")


@router.post("/genre/{genre_id:id}/update")
async def genre_update_post(genre_id: int):
    return PlainTextResponse("NOT IMPLEMENTED: Genre update POST")


@router.get("/genre/{genre_id:id}")
async def genre_detail(
    request: Request, genre_id: int, store: RecordStore = Depends(get_store)
):
    """
    Show a genre with the books filed under it.

    Raises:
        HTTPException: 404 if genre not found
    """
    genre, books = await _genre_with_books(store, genre_id)
    if genre is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Genre not found"
        )

    return render(
        request, "genre_detail.html", "Genre Detail", genre=genre, genre_books=books
    )
