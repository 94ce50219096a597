import time
import traceback
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Depends, Request, status
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from locallibrary import models
from locallibrary import schemas
from locallibrary.config import is_development
from locallibrary.controllers import author, book, bookinstance, genre
from locallibrary.database import dispose_db, get_store, init_db
from locallibrary.log import get_logger
from locallibrary.store import RecordStore, concurrently
from locallibrary.views import render


logger = get_logger("http")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the record store on startup and release it on shutdown.

    The database engine is the only process-wide resource; nothing else
    needs initialising.
    """
    init_db()
    try:
        yield
    finally:
        dispose_db()


app = FastAPI(
    title="Local Library",
    description="Server-rendered catalog of authors, books, genres and book copies",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(author.router)
app.include_router(genre.router)
app.include_router(book.router)
app.include_router(bookinstance.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and elapsed time of every request."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %s %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_page(request: Request, exc: StarletteHTTPException):
    """
    Render the error page for HTTP errors.

    Covers the 404s raised by detail handlers for unknown ids as well as
    unknown routes.
    """
    return render(
        request,
        "error.html",
        "Error",
        status_code=exc.status_code,
        message=exc.detail,
        error_status=exc.status_code,
        error_detail=None,
    )


@app.exception_handler(Exception)
async def server_error_page(request: Request, exc: Exception):
    """
    Render the error page for unexpected failures with status 500.

    The exception text and traceback are only shown in development.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if is_development():
        message = str(exc) or type(exc).__name__
        error_detail = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    else:
        message = "Internal Server Error"
        error_detail = None
    return render(
        request,
        "error.html",
        "Error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message,
        error_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_detail=error_detail,
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns:
        Simple status message indicating the service is running
    """
    return {"status": "healthy", "service": "locallibrary"}


@app.get("/")
async def site_root():
    return RedirectResponse("/catalog/", status_code=status.HTTP_302_FOUND)


@app.get("/catalog/")
async def catalog_home(request: Request, store: RecordStore = Depends(get_store)):
    """
    Catalog home page with record counts.

    The five counts are independent and are fetched in parallel.
    """
    counts = await concurrently(
        partial(store.count, models.Book),
        partial(store.count, models.BookInstance),
        partial(
            store.count,
            models.BookInstance,
            models.BookInstance.status == "Available",
        ),
        partial(store.count, models.Author),
        partial(store.count, models.Genre),
    )
    data = schemas.CatalogCounts(
        book_count=counts[0],
        book_instance_count=counts[1],
        book_instance_available_count=counts[2],
        author_count=counts[3],
        genre_count=counts[4],
    )
    return render(request, "index.html", "Local Library Home", data=data)
