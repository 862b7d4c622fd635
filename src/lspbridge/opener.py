"""Show external content to the user, inside the client or in a browser."""

from __future__ import annotations

import logging
import urllib.request
import webbrowser
from typing import Callable

from lsprotocol.types import MessageType, ShowMessageParams

from lspbridge.exceptions import MalformedUri
from lspbridge.session import BridgeSession
from lspbridge.uris import check_uri, decode_uri

logger = logging.getLogger(__name__)

SHOW_HTML_NOTIFICATION = "lspbridge/showHTML"
FETCH_TIMEOUT_SECONDS = 20


class ContentOpener:
    def __init__(
        self,
        session: BridgeSession,
        notify_fn: Callable[[str, object], None],
        *,
        urlopen_fn: Callable[..., object] = urllib.request.urlopen,
        browse_fn: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self.session = session
        self.notify_fn = notify_fn
        self.urlopen_fn = urlopen_fn
        self.browse_fn = browse_fn

    def show(self, uri: str) -> bool:
        """Show ``uri``; failures are logged and reported as ``False``."""
        try:
            target = check_uri(uri)
            decode_uri(target)
            if self.session.client_supports_show_html():
                self.notify_fn(
                    SHOW_HTML_NOTIFICATION,
                    ShowMessageParams(type=MessageType.Info, message=self.fetch(target)),
                )
                return True
            if not self.browse_fn(target):
                raise OSError(f"no browser accepted {target}")
            return True
        except MalformedUri as exc:
            logger.warning("cannot open %r: %s", uri, exc.reason)
        except (OSError, ValueError) as exc:
            logger.warning("cannot open %r: %s", uri, exc)
        return False

    def fetch(self, uri: str) -> str:
        with self.urlopen_fn(uri, timeout=FETCH_TIMEOUT_SECONDS) as response:
            return response.read().decode("utf-8", errors="replace")
