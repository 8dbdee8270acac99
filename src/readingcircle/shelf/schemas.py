"""Pydantic schemas for the public shelf."""

from pydantic import BaseModel, Field

from ..db.schemas import BookResponse
from .models import SHELF_SIZE


class ShelfEntry(BaseModel):
    """A shelved book and the slot it occupies."""

    position: int = Field(..., ge=1, le=SHELF_SIZE)
    book: BookResponse
