from datetime import date
from locallibrary.database import Base
from sqlalchemy.orm import relationship
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Date


BOOK_INSTANCE_STATUSES = ("Available", "Maintenance", "Loaned", "Reserved")


def format_date(value):
    """Render a date the way list and detail pages show it, e.g. "Oct 19, 2026"."""
    if not isinstance(value, date):
        return ""
    return f"{value:%b} {value.day}, {value.year}"


def iso_date(value):
    """
    Value for a date <input>.

    A record rebuilt from a rejected form can still hold the raw submitted
    string, which is echoed back unchanged.
    """
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return value


class Author(Base):
    """
    Author model representing book authors.

    Relationships:
    - One author can be referenced by many books through Book.author_id

    An author's books are fetched with an explicit query by the controllers,
    there is no relationship() on either side.
    """

    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    family_name = Column(String(100), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)
    date_of_death = Column(Date, nullable=True)

    @property
    def name(self):
        """Full name as "family_name, first_name"; empty if either part is missing."""
        if not self.first_name or not self.family_name:
            return ""
        return f"{self.family_name}, {self.first_name}"

    @property
    def lifespan(self):
        return f"{format_date(self.date_of_birth)} - {format_date(self.date_of_death)}"

    @property
    def date_of_birth_yyyy_mm_dd(self):
        return iso_date(self.date_of_birth)

    @property
    def date_of_death_yyyy_mm_dd(self):
        return iso_date(self.date_of_death)

    @property
    def url(self):
        return f"/catalog/author/{self.id}"


class Genre(Base):
    """
    Genre model.

    Names are unique by convention only: the create handler looks up an
    existing genre before inserting, there is no unique constraint.
    """

    __tablename__ = "genres"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)

    @property
    def url(self):
        return f"/catalog/genre/{self.id}"


class BookGenre(Base):
    """
    Association row linking a book to one of its genres.

    Rows belong to their book: replacing Book.genre_ids or deleting the book
    removes them (delete-orphan), the genres themselves are untouched.
    """

    __tablename__ = "book_genres"

    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    genre_id = Column(Integer, ForeignKey("genres.id"), nullable=False, index=True)


class Book(Base):
    """
    Book model representing catalog titles.

    Relationships:
    - Many books belong to one author (author_id)
    - Many books share many genres (book_genres association rows)
    - One book can have many copies (BookInstance.book_id)

    Internal Working:
    - genre_links is loaded with selectin so a detached Book still knows
      its genre ids
    - genre_ids proxies the genre_id column of those links; assigning a list
      of ids replaces the links
    - Deleting a book does not touch its BookInstances
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False, index=True)
    summary = Column(Text, nullable=False)
    isbn = Column(String, nullable=False)

    genre_links = relationship(
        "BookGenre",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BookGenre.id",
    )
    genre_ids = association_proxy(
        "genre_links",
        "genre_id",
        creator=lambda genre_id: BookGenre(genre_id=genre_id),
    )

    @property
    def url(self):
        return f"/catalog/book/{self.id}"


class BookInstance(Base):
    """
    BookInstance model representing one physical copy of a book.

    Business Logic:
    - status is one of BOOK_INSTANCE_STATUSES, "Maintenance" by default
    - due_back is when a loaned or reserved copy is expected back
    """

    __tablename__ = "book_instances"

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    imprint = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default="Maintenance")
    due_back = Column(Date, nullable=True, default=date.today)

    @property
    def due_back_formatted(self):
        return format_date(self.due_back)

    @property
    def due_back_yyyy_mm_dd(self):
        return iso_date(self.due_back)

    @property
    def url(self):
        return f"/catalog/bookinstance/{self.id}"
