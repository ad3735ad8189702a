"""GitHub webhook verification and handling."""

import hashlib
import hmac
from typing import Any, Optional

from delta.errors import WebhookError
from delta.logger import get_logger
from delta.store import ChangelogStore

logger = get_logger(__name__)


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check an ``X-Hub-Signature-256`` header against ``body``."""
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    # Bytes, since compare_digest rejects non-ASCII str.
    received = signature[len("sha256="):].encode("utf-8", "surrogateescape")
    return hmac.compare_digest(expected.encode(), received)


class WebhookHandler:
    """Dispatches verified GitHub deliveries.

    Only ``push`` changes state: a push to a connected repository's default
    branch marks it as synced.
    """

    def __init__(self, store: ChangelogStore, secret: Optional[str]) -> None:
        self.store = store
        self.secret = secret

    def handle(
        self,
        event: str,
        payload: dict[str, Any],
        body: bytes,
        signature: Optional[str],
    ) -> str:
        """Verify and process one delivery; returns a short outcome message."""
        if not self.secret:
            raise WebhookError("Webhook secret not configured", status_code=500)
        if not verify_signature(body, signature, self.secret):
            logger.warning("Rejected %s webhook with invalid signature", event)
            raise WebhookError("Invalid signature")

        if event == "ping":
            return "pong"
        if event == "push":
            return self._on_push(payload)

        full_name = (payload.get("repository") or {}).get("full_name", "?")
        logger.info("Ignoring %s event for %s", event, full_name)
        return f"ignored {event}"

    def _on_push(self, payload: dict[str, Any]) -> str:
        full_name = (payload.get("repository") or {}).get("full_name")
        if not full_name:
            return "ignored push without repository"

        repository = self.store.get_repository_by_full_name(full_name)
        if repository is None:
            return f"ignored push to unconnected {full_name}"

        ref = payload.get("ref", "")
        if ref != f"refs/heads/{repository.default_branch}":
            return f"ignored push to {ref}"

        self.store.update_repository_sync(repository.id)
        logger.info(
            "Push to %s (%d commits) marked repository synced",
            full_name,
            len(payload.get("commits") or []),
        )
        return f"synced {full_name}"
