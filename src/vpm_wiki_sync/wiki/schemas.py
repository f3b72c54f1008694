"""Typed response schemas for the wiki action API.

Each action the client uses gets a pydantic model describing the part of
the JSON response it relies on.  ``decode()`` validates a response against
one of them and turns any shape mismatch into ``MalformedResponseError``.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import MalformedResponseError

M = TypeVar("M", bound=BaseModel)


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -- error envelope ----------------------------------------------------------


class ErrorBody(_Lenient):
    code: str = "unknown"
    info: str = ""


class ErrorEnvelope(_Lenient):
    error: ErrorBody | None = None


# -- query meta=tokens -------------------------------------------------------


class Tokens(_Lenient):
    logintoken: str | None = None
    csrftoken: str | None = None


class TokensQuery(_Lenient):
    tokens: Tokens


class TokensResponse(_Lenient):
    query: TokensQuery

    def token(self, kind: str) -> str:
        value = getattr(self.query.tokens, f"{kind}token", None)
        if not value:
            raise MalformedResponseError(f"{kind} token not found in response")
        return value


# -- login -------------------------------------------------------------------


class LoginBody(_Lenient):
    result: str
    reason: Any = None


class LoginResponse(_Lenient):
    login: LoginBody


# -- edit / delete -----------------------------------------------------------


class EditBody(_Lenient):
    result: str


class EditResponse(_Lenient):
    edit: EditBody


class DeleteResponse(_Lenient):
    delete: dict[str, Any]


# -- query prop=revisions ----------------------------------------------------


class MainSlot(_Lenient):
    content: str = Field(default="", alias="*")


class Slots(_Lenient):
    main: MainSlot


class Revision(_Lenient):
    slots: Slots


class PageEntry(_Lenient):
    title: str = ""
    missing: Any = None
    invalid: Any = None
    revisions: list[Revision] = []

    @property
    def is_missing(self) -> bool:
        return self.missing is not None or self.invalid is not None


class RevisionsQuery(_Lenient):
    pages: dict[str, PageEntry]


class RevisionsResponse(_Lenient):
    query: RevisionsQuery


# -- query list=allpages -----------------------------------------------------


class AllPagesEntry(_Lenient):
    title: str = ""


class AllPagesQuery(_Lenient):
    allpages: list[AllPagesEntry]


class AllPagesContinue(_Lenient):
    apcontinue: str | None = None


class AllPagesResponse(_Lenient):
    query: AllPagesQuery
    continue_: AllPagesContinue | None = Field(default=None, alias="continue")


def decode(model: type[M], payload: dict[str, Any]) -> M:
    """Validate *payload* against *model*.

    Raises:
        MalformedResponseError: If the payload does not match.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"unexpected {model.__name__} shape: {exc.error_count()} error(s), "
            f"first: {exc.errors()[0]['loc']}"
        ) from exc
