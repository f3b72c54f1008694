import logging

import requests
from pydantic import ValidationError

from .. import USER_AGENT
from ..errors import MalformedResponseError, TransportError
from .models import Package

logger = logging.getLogger(__name__)


class RegistryClient:
    """Read-only client for the package registry REST API.

    Args:
        base_url: Registry base URL, e.g. ``https://vpmm.dev``.
        session: Optional shared ``requests.Session``.
        packages_path: Path of the package list endpoint.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        packages_path: str = "/packages",
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.packages_url = f"{self.base_url}/{packages_path.lstrip('/')}"
        self.timeout = timeout

    def list_packages(self) -> list[Package]:
        """
        Fetch every published package version.

        Returns:
            One ``Package`` per (name, version); entries that fail
            validation are logged and left out.

        Raises:
            TransportError: If the request fails.
            MalformedResponseError: If the body is not a JSON array.
        """
        try:
            response = self.session.get(
                self.packages_url,
                headers={
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(f"list packages: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"list packages: invalid JSON: {exc}"
            ) from exc
        if not isinstance(payload, list):
            raise MalformedResponseError(
                f"list packages: expected array, got {type(payload).__name__}"
            )

        packages: list[Package] = []
        for index, entry in enumerate(payload):
            try:
                packages.append(Package.model_validate(entry))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed package entry #%d: %s",
                    index,
                    exc.errors()[0]["msg"],
                )
        logger.debug("Registry returned %d package versions", len(packages))
        return packages
