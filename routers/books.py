import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from pymongo.database import Database

from database import create_document, find_by_id, get_db, paginate, serialize, to_obj_id, update_by_id
from filters import BOOK_SEARCH_FIELDS, BOOK_SORT_FIELDS, BookSortKey, apply_search, build_book_filter
from responses import ok
from routers.common import PageParams, listing, not_found
from schemas import Book
from security import ADMIN_ROLES, authorize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/books", tags=["books"])


class BookUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    author: Optional[str] = None
    isbn: Optional[str] = None
    published_year: Optional[int] = None
    genre: Optional[str] = None
    available_copies: Optional[int] = Field(None, ge=0)
    total_copies: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


@router.get("")
def list_books(
    paging: PageParams = Depends(),
    sort_by: BookSortKey = Query("createdAt", alias="sortBy"),
    search: Optional[str] = None,
    title: Optional[str] = None,
    author: Optional[str] = None,
    genre: Optional[str] = None,
    available: Optional[bool] = None,
    db: Database = Depends(get_db),
):
    filters = {"title": title, "author": author, "genre": genre, "available": available}
    query = apply_search(build_book_filter(filters), search, BOOK_SEARCH_FIELDS)
    books, pagination = paginate(db["book"], query, paging.page, paging.limit, BOOK_SORT_FIELDS[sort_by], paging.sort_order)
    return listing(books, pagination, filters, "books")


@router.get("/{book_id}")
def get_book(book_id: str, db: Database = Depends(get_db)):
    book = find_by_id(db, "book", book_id)
    if book is None:
        raise not_found("Book")
    return ok(serialize(book), "Book retrieved successfully")


@router.post("", status_code=201)
def create_book(book: Book, db: Database = Depends(get_db), _: dict = Depends(authorize(*ADMIN_ROLES))):
    inserted_id = create_document(db, "book", book)
    logger.info("Added book %s", book.title)
    return ok(serialize(find_by_id(db, "book", inserted_id)), "Book created successfully")


@router.put("/{book_id}")
def update_book(
    book_id: str,
    payload: BookUpdate,
    db: Database = Depends(get_db),
    _: dict = Depends(authorize(*ADMIN_ROLES)),
):
    book = update_by_id(db, "book", book_id, payload.model_dump(exclude_unset=True, exclude_none=True))
    if book is None:
        raise not_found("Book")
    logger.info("Updated book %s", book_id)
    return ok(serialize(book), "Book updated successfully")


@router.delete("/{book_id}")
def delete_book(book_id: str, db: Database = Depends(get_db), _: dict = Depends(authorize(*ADMIN_ROLES))):
    result = db["book"].delete_one({"_id": to_obj_id(book_id)})
    if result.deleted_count == 0:
        raise not_found("Book")
    logger.info("Deleted book %s", book_id)
    return ok(None, "Book deleted successfully")
