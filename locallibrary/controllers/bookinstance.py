from functools import partial

from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from locallibrary import models
from locallibrary import schemas
from locallibrary.database import get_store
from locallibrary.routing import catalog_router
from locallibrary.store import RecordStore, concurrently, index_by_id
from locallibrary.validation import (
    Choice,
    OptionalDate,
    Reference,
    Required,
    build_payload,
    validate,
)
from locallibrary.views import render


router = catalog_router("bookinstances")

BOOK_INSTANCE_LIST_URL = "/catalog/bookinstances"

BOOK_INSTANCE_RULES = [
    Reference("book", "Book must be specified"),
    Required("imprint", "Imprint must be specified"),
    Choice(
        "status",
        models.BOOK_INSTANCE_STATUSES,
        "Invalid status",
        default="Maintenance",
    ),
    OptionalDate("due_back", "Invalid date"),
]


def _candidate(values, instance_id=None):
    return models.BookInstance(
        id=instance_id,
        book_id=values["book"],
        imprint=values["imprint"],
        status=values["status"],
        due_back=values["due_back"],
    )


def _all_books(store: RecordStore):
    return store.find_all(models.Book, sort=models.Book.title)


async def _instance_with_book(store: RecordStore, instance_id: int):
    """
    Fetch a copy, then the book it is a copy of.

    The two reads run one after the other since the book id is only known
    once the copy is loaded.

    Returns:
        (instance, book); both None if the copy does not exist
    """
    instance = await run_in_threadpool(
        store.find_by_id, models.BookInstance, instance_id
    )
    if instance is None:
        return None, None
    book = await run_in_threadpool(store.find_by_id, models.Book, instance.book_id)
    return instance, book


async def _validate_instance(form, store: RecordStore):
    """
    Run the form rules, then confirm the chosen book exists.

    Returns:
        (values, errors, payload); payload is None whenever errors is non-empty
    """
    values, errors = validate(form, BOOK_INSTANCE_RULES)
    payload = (
        None if errors else build_payload(schemas.BookInstanceCreate, values, errors)
    )
    if payload is not None:
        book = await run_in_threadpool(store.find_by_id, models.Book, payload.book_id)
        if book is None:
            errors.add("book", "Book not found.")
            payload = None
    return values, errors, payload


async def _render_instance_form(request, store, title, instance, errors):
    books = await run_in_threadpool(_all_books, store)
    return render(
        request,
        "bookinstance_form.html",
        title,
        book_list=books,
        selected_book=str(instance.book_id),
        bookinstance=instance,
        errors=errors,
    )


@router.get("/bookinstances")
async def bookinstance_list(request: Request, store: RecordStore = Depends(get_store)):
    """List every copy with the title of the book it belongs to."""
    instances = await run_in_threadpool(store.find_all, models.BookInstance)
    book_ids = sorted({instance.book_id for instance in instances})
    books = await run_in_threadpool(
        store.find_all, models.Book, models.Book.id.in_(book_ids)
    )
    return render(
        request,
        "bookinstance_list.html",
        "Book Instance List",
        bookinstance_list=instances,
        books=index_by_id(books),
    )


@router.get("/bookinstance/create")
async def bookinstance_create_get(
    request: Request, store: RecordStore = Depends(get_store)
):
    books = await run_in_threadpool(_all_books, store)
    return render(
        request,
        "bookinstance_form.html",
        "Create BookInstance",
        book_list=books,
        selected_book="",
        bookinstance=None,
    )


@router.post("/bookinstance/create")
async def bookinstance_create_post(
    request: Request, store: RecordStore = Depends(get_store)
):
    """
    Validate the submitted copy and save it.

    Business Logic:
    - A blank status is stored as "Maintenance"
    - A blank due date is stored as today

    Returns:
        The re-rendered form, or a 302 redirect to the new copy
    """
    form = await request.form()
    values, errors, payload = await _validate_instance(form, store)

    if errors:
        return await _render_instance_form(
            request, store, "Create BookInstance", _candidate(values), errors
        )

    instance = await run_in_threadpool(
        store.create, models.BookInstance(**payload.model_dump())
    )
    return RedirectResponse(instance.url, status_code=status.HTTP_302_FOUND)


@router.get("/bookinstance/{instance_id:id}/delete")
async def bookinstance_delete_get(
    request: Request, instance_id: int, store: RecordStore = Depends(get_store)
):
    instance, book = await _instance_with_book(store, instance_id)
    if instance is None:
        return RedirectResponse(
            BOOK_INSTANCE_LIST_URL, status_code=status.HTTP_302_FOUND
        )

    return render(
        request,
        "bookinstance_delete.html",
        "Delete Book Instance",
        bookinstance=instance,
        book=book,
    )


@router.post("/bookinstance/{instance_id:id}/delete")
async def bookinstance_delete_post(
    instance_id: int, store: RecordStore = Depends(get_store)
):
    """Delete a copy. Nothing depends on copies, so there is no check."""
    await run_in_threadpool(store.delete_by_id, models.BookInstance, instance_id)
    return RedirectResponse(BOOK_INSTANCE_LIST_URL, status_code=status.HTTP_302_FOUND)


@router.get("/bookinstance/{instance_id:id}/update")
async def bookinstance_update_get(
    request: Request, instance_id: int, store: RecordStore = Depends(get_store)
):
    """
    Show the copy form filled in from the stored copy.

    Raises:
        HTTPException: 404 if the copy is not found
    """
    instance, books = await concurrently(
        partial(store.find_by_id, models.BookInstance, instance_id),
        partial(_all_books, store),
    )
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Book copy not found"
        )

    return render(
        request,
        "bookinstance_form.html",
        "Update BookInstance",
        book_list=books,
        selected_book=str(instance.book_id),
        bookinstance=instance,
    )


@router.post("/bookinstance/{instance_id:id}/update")
async def bookinstance_update_post(
    request: Request, instance_id: int, store: RecordStore = Depends(get_store)
):
    """
    Validate the submitted copy and update it in place, keeping its id.

    Raises:
        HTTPException: 404 if the copy is not found, whether or not the form
        is valid
    """
    form = await request.form()
    values, errors, payload = await _validate_instance(form, store)

    if errors:
        existing = await run_in_threadpool(
            store.find_by_id, models.BookInstance, instance_id
        )
        if existing is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Book copy not found"
            )
        return await _render_instance_form(
            request,
            store,
            "Update BookInstance",
            _candidate(values, instance_id),
            errors,
        )

    instance = await run_in_threadpool(
        store.update_by_id, models.BookInstance, instance_id, payload.model_dump()
    )
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Book copy not found"
        )
    return RedirectResponse(instance.url, status_code=status.HTTP_302_FOUND)


@router.get("/bookinstance/{instance_id:id}")
async def bookinstance_detail(
    request: Request, instance_id: int, store: RecordStore = Depends(get_store)
):
    """
    Show one copy and the book it belongs to.

    Raises:
        HTTPException: 404 if the copy is not found
    """
    instance, book = await _instance_with_book(store, instance_id)
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Book copy not found"
        )

    return render(
        request,
        "bookinstance_detail.html",
        "Book Copy",
        bookinstance=instance,
        book=book,
    )
