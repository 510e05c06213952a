"""
api/schemas.py -- Pydantic request models, one per payload.

Field order is significant: missing fields and errors are reported in the
order declared here. Messages are part of the API contract; clients match
on them.
"""

from typing import Annotated, ClassVar, Optional, Union

from pydantic import ConfigDict, Field, StrictFloat, StrictInt, StrictStr

from api.validation import IsoDate, Msg, Ref, RequestModel, YmdDate, partial
from core.models import BookStatus, Role

_BookId = Annotated[StrictInt, Msg("Book ID must be a number"), Ref("books", "Book ID does not exist")]
_UserId = Annotated[StrictInt, Msg("User ID must be a number"), Ref("users", "User ID does not exist")]


class AuthorCreate(RequestModel):
    name: Annotated[StrictStr, Msg("Author name must be a string")]
    biography: Annotated[Optional[StrictStr], Msg("Author biography must be a string")] = None
    birth_date: Annotated[Optional[IsoDate], Msg("Author birthDate must be a valid date")] = Field(
        None, alias="birthDate"
    )


class BookCreate(RequestModel):
    title: Annotated[StrictStr, Msg("Book title must be a string")]
    description: Annotated[StrictStr, Msg("Description must be a string")]
    publication_date: Annotated[IsoDate, Msg("Publication date must be a valid date")] = Field(
        alias="publicationDate"
    )
    status: Annotated[BookStatus, Msg(f"Status must be one of: {', '.join(BookStatus.values())}")]
    category_id: Annotated[
        StrictInt, Msg("Category ID must be a number"), Ref("categories", "Category ID does not exist")
    ] = Field(alias="categoryId")
    library_id: Annotated[
        Optional[StrictInt], Msg("Library ID must be a number"), Ref("libraries", "Library ID does not exist")
    ] = Field(None, alias="libraryId")
    branch_id: Annotated[
        Optional[StrictInt], Msg("Branch ID must be a number"), Ref("branches", "Branch ID does not exist")
    ] = Field(None, alias="branchId")
    author_ids: Annotated[
        Optional[list[StrictInt]],
        Msg("Author IDs must be a list of numbers"),
        Ref("authors", "Author ID does not exist"),
    ] = Field(None, alias="authorIds")


class CategoryCreate(RequestModel):
    missing_message: ClassVar[Optional[str]] = "Category name is required"

    name: Annotated[StrictStr, Msg("Category name must be a string")]


class SiteCreate(RequestModel):
    """Branch and library bodies share one shape."""

    name: Annotated[StrictStr, Msg("Name must be a string")]
    address: Annotated[StrictStr, Msg("Address must be a string")]


class BorrowingCreate(RequestModel):
    book_id: _BookId = Field(alias="bookId")
    user_id: _UserId = Field(alias="userId")
    borrow_date: Annotated[YmdDate, Msg("Invalid borrowDate format. Expected format is YYYY-MM-DD")] = Field(
        alias="borrowDate"
    )
    return_date: Annotated[
        Optional[YmdDate], Msg("Invalid returnDate format. Expected format is YYYY-MM-DD")
    ] = Field(None, alias="returnDate")


class ReviewContent(RequestModel):
    content: Annotated[StrictStr, Msg("Content must be a string")]
    rating: Annotated[Union[StrictInt, StrictFloat], Msg("Rating must be a number")]


class ReviewCreate(ReviewContent):
    book_id: _BookId = Field(alias="bookId")
    user_id: _UserId = Field(alias="userId")


class UserCreate(RequestModel):
    name: Annotated[StrictStr, Msg("Name must be a string")]
    email: Annotated[StrictStr, Msg("Email must be a string")]
    password: Annotated[StrictStr, Msg("Password must be a string")]
    role: Annotated[Role, Msg(f"Role must be one of: {', '.join(Role.values())}")]


# Patch variants: same rules, every field optional, only "" counts as missing.
AuthorPatch = partial(AuthorCreate)
BookPatch = partial(BookCreate)
CategoryPatch = partial(CategoryCreate)
SitePatch = partial(SiteCreate)
BorrowingPatch = partial(BorrowingCreate)
# Review updates may only touch content and rating; userId identifies the
# requester for the ownership check and is consumed before validation.
ReviewPatch = partial(ReviewContent)
UserPatch = partial(UserCreate)


# ---------------------------------------------------------------------------
# Auth payloads. Extra keys are ignored; the routes pick their own messages.
# ---------------------------------------------------------------------------


class RegisterRequest(RequestModel):
    model_config = ConfigDict(extra="ignore")

    name: Annotated[StrictStr, Msg("Name must be a string")]
    email: Annotated[StrictStr, Msg("Email must be a string")]
    password: Annotated[StrictStr, Msg("Password must be a string")]
    role: Annotated[Role, Msg(f"Select a valid role: {', '.join(Role.values())}")]


class LoginRequest(RequestModel):
    model_config = ConfigDict(extra="ignore")

    email: StrictStr
    password: StrictStr


class RefreshRequest(RequestModel):
    model_config = ConfigDict(extra="ignore")

    refresh_token: StrictStr = Field(alias="refreshToken")

