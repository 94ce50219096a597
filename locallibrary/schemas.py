from datetime import date
from typing import Annotated, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from locallibrary.store import MAX_RECORD_ID


RecordId = Annotated[int, Field(gt=0, le=MAX_RECORD_ID)]


class AuthorCreate(BaseModel):
    """
    Payload for creating an author.

    Built from the cleaned form values once the form rules have passed;
    model_dump() feeds the Author constructor directly.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    family_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None


class GenreCreate(BaseModel):
    """Payload for creating a genre."""

    name: str = Field(..., min_length=3, max_length=100)


class BookCreate(BaseModel):
    """
    Payload for creating or updating a book.

    The form posts the author as "author" and the checked genres as "genre";
    the aliases map them onto the column-level names used by the model.

    Internal Working:
    - Genre ids arrive as escaped strings and are coerced to int here
    - model_dump() returns author_id and genre_ids, which Book accepts
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    author_id: int = Field(..., gt=0, le=MAX_RECORD_ID, alias="author")
    summary: str = Field(..., min_length=1)
    isbn: str = Field(..., min_length=1)
    genre_ids: List[RecordId] = Field(default_factory=list, alias="genre")


class BookInstanceCreate(BaseModel):
    """
    Payload for creating or updating a book copy.

    Business Logic:
    - A copy without a due date is due back today
    - status defaults to "Maintenance"
    """

    model_config = ConfigDict(populate_by_name=True)

    book_id: int = Field(..., gt=0, le=MAX_RECORD_ID, alias="book")
    imprint: str = Field(..., min_length=1)
    status: Literal["Available", "Maintenance", "Loaned", "Reserved"] = "Maintenance"
    due_back: date = Field(default_factory=date.today)

    @field_validator("due_back", mode="before")
    @classmethod
    def default_due_back(cls, value):
        return date.today() if value is None else value


class CatalogCounts(BaseModel):
    """Record counts shown on the catalog home page."""

    book_count: int = 0
    book_instance_count: int = 0
    book_instance_available_count: int = 0
    author_count: int = 0
    genre_count: int = 0
