"""Wiki access: live MediaWiki API client, offline file store and gateway.

- ``tokens``  -- ``TokenManager``: cached login/csrf tokens.
- ``schemas`` -- typed API response models.
- ``client``  -- ``MediaWikiClient``: live backend with bounded auth retry.
- ``offline`` -- ``OfflineWikiStore``: one file per page.
- ``gateway`` -- ``WikiGateway``: idempotent page operations on a backend.
"""

from .client import MediaWikiClient
from .gateway import WikiGateway, create_gateway, edit_summary
from .offline import OfflineWikiStore, sanitize_filename
from .tokens import TokenManager

__all__ = [
    "MediaWikiClient",
    "OfflineWikiStore",
    "TokenManager",
    "WikiGateway",
    "create_gateway",
    "edit_summary",
    "sanitize_filename",
]
