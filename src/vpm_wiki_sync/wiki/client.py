"""Live backend talking to a MediaWiki action API (``api.php``).

All requests are form-encoded POSTs with ``format=json``.  Tokens are
cached by a ``TokenManager``; writes go through a bounded retry that
re-authenticates once when the wiki reports an expired token.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import requests

from .. import USER_AGENT
from ..config import Config
from ..errors import (
    AuthExpiredError,
    LoginError,
    MalformedResponseError,
    NotFoundError,
    TransportError,
    api_error,
)
from .schemas import (
    AllPagesResponse,
    DeleteResponse,
    EditResponse,
    ErrorEnvelope,
    LoginResponse,
    RevisionsResponse,
    TokensResponse,
    decode,
)
from .tokens import CSRF, LOGIN, TokenManager

T = TypeVar("T")
logger = logging.getLogger(__name__)

TEMPLATE_PREFIX = "Template:"
TEMPLATE_NAMESPACE = "10"
MAIN_NAMESPACE = "0"


class MediaWikiClient:
    """Page operations against a live wiki.

    Args:
        config: Resolved configuration; only the wiki fields are used.
        session: Optional ``requests.Session`` (keeps the login cookies).
    """

    def __init__(
        self, config: Config, session: requests.Session | None = None
    ) -> None:
        self.api_url = config.wiki_url
        self.username = config.username.strip()
        self.password = config.password.strip()
        self.timeout = config.request_timeout
        self.session = session or requests.Session()
        self.headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": USER_AGENT,
        }
        if config.auth_header.strip() and config.auth_value.strip():
            self.headers[config.auth_header.strip()] = config.auth_value.strip()
        self.tokens = TokenManager(self._fetch_token)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _api_request(self, params: dict[str, str]) -> dict[str, Any]:
        """POST one action and return the decoded JSON object.

        Raises:
            TransportError: Network failure or HTTP error status.
            MalformedResponseError: Body is not a JSON object.
            ApiError: The response carries an ``error`` envelope.
        """
        form = {**params, "format": "json"}
        try:
            response = self.session.post(
                self.api_url,
                data=form,
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(
                f"{params.get('action', '?')} request failed: {exc}"
            ) from exc

        try:
            result = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"parse json: {exc}") from exc
        if not isinstance(result, dict):
            raise MalformedResponseError(
                f"expected JSON object, got {type(result).__name__}"
            )

        envelope = decode(ErrorEnvelope, result)
        if envelope.error is not None:
            raise api_error(envelope.error.code, envelope.error.info)
        return result

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def _fetch_token(self, kind: str) -> str:
        result = self._api_request(
            {"action": "query", "meta": "tokens", "type": kind}
        )
        return decode(TokensResponse, result).token(kind)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def login(self) -> None:
        """Log in with the configured bot credentials.

        Raises:
            LoginError: If the wiki does not report ``Success``.
        """
        login_token = self.tokens.get(LOGIN)
        result = self._api_request(
            {
                "action": "login",
                "lgname": self.username,
                "lgpassword": self.password,
                "lgtoken": login_token,
            }
        )
        login = decode(LoginResponse, result).login
        if login.result != "Success":
            raise LoginError(f"login failed: {login.reason or 'unknown'}")
        # Tokens from before the login belong to the anonymous session.
        self.tokens.clear()
        logger.info("Wiki login succeeded as %s", self.username)

    def _relogin_if_possible(self) -> None:
        if not self.has_credentials:
            return
        self.tokens.invalidate(LOGIN)
        self.login()

    def _with_csrf_retry(self, op: Callable[[str], T]) -> T:
        """Run *op* with a CSRF token, re-authenticating once on expiry."""
        try:
            return op(self.tokens.get(CSRF))
        except AuthExpiredError as exc:
            logger.warning("Token rejected (%s); logging in again", exc.code)
        self.tokens.invalidate(CSRF)
        self._relogin_if_possible()
        return op(self.tokens.get(CSRF))

    # ------------------------------------------------------------------
    # Page operations
    # ------------------------------------------------------------------

    def read(self, title: str) -> str:
        """Return the current wikitext of *title*.

        Raises:
            NotFoundError: If the page does not exist.
        """
        result = self._api_request(
            {
                "action": "query",
                "titles": title,
                "prop": "revisions",
                "rvprop": "content",
                "rvslots": "main",
            }
        )
        pages = decode(RevisionsResponse, result).query.pages
        for page in pages.values():
            if page.is_missing:
                raise NotFoundError(title)
            if not page.revisions:
                raise MalformedResponseError(
                    f"no revisions found for page: {title}"
                )
            return page.revisions[0].slots.main.content
        raise MalformedResponseError(
            f"could not extract content from page: {title}"
        )

    def write(self, title: str, text: str, summary: str, bot: bool) -> None:
        def _edit(csrf: str) -> None:
            params = {
                "action": "edit",
                "title": title,
                "text": text,
                "summary": summary,
                "token": csrf,
            }
            if bot:
                params["bot"] = "true"
            edit = decode(EditResponse, self._api_request(params)).edit
            if edit.result != "Success":
                raise MalformedResponseError(f"edit failed: {edit.result}")
            logger.info("Wiki edit succeeded: %s", title)

        self._with_csrf_retry(_edit)

    def remove(self, title: str, reason: str = "") -> None:
        def _delete(csrf: str) -> None:
            params = {"action": "delete", "title": title, "token": csrf}
            if reason:
                params["reason"] = reason
            decode(DeleteResponse, self._api_request(params))
            logger.info("Wiki delete succeeded: %s", title)

        self._with_csrf_retry(_delete)

    def list_titles(self, prefix: str) -> list[str]:
        """List page titles starting with *prefix*, following continuation.

        A ``Template:`` prefix is searched in the template namespace; any
        other prefix is treated as a main-namespace page name.
        """
        if prefix.startswith(TEMPLATE_PREFIX):
            namespace = TEMPLATE_NAMESPACE
            actual_prefix = prefix.removeprefix(TEMPLATE_PREFIX)
        else:
            namespace = MAIN_NAMESPACE
            actual_prefix = prefix

        titles: list[str] = []
        apcontinue = ""
        while True:
            params = {
                "action": "query",
                "list": "allpages",
                "apnamespace": namespace,
                "apprefix": actual_prefix,
                "aplimit": "500",
            }
            if apcontinue:
                params["apcontinue"] = apcontinue
            page = decode(AllPagesResponse, self._api_request(params))
            titles.extend(p.title for p in page.query.allpages if p.title)
            apcontinue = (
                page.continue_.apcontinue if page.continue_ else None
            ) or ""
            if not apcontinue:
                return titles

    def close(self) -> None:
        self.session.close()
