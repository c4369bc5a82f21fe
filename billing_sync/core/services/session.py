"""
Session Context.

Explicitly owned holder of the current credential and role. Components
that need auth receive the context instead of reading process globals.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from billing_sync.config.logging import bind_session, clear_session, get_logger
from billing_sync.core.entities.record import Creator
from billing_sync.core.entities.session import (
    Credential,
    CredentialEvent,
    CredentialEventType,
    Role,
    parse_role,
)
from billing_sync.core.interfaces.credential_store import ICredentialStore

logger = get_logger(__name__)

TeardownListener = Callable[[str], None]


class SessionContext:
    """
    Credential + role holder with an ``init``/``restore``/``teardown`` lifecycle.

    Teardown clears the credential and the store and notifies listeners
    once; later teardowns on an empty session are no-ops.
    """

    def __init__(self, store: ICredentialStore | None = None):
        self._store = store
        self._credential: Credential | None = None
        self._teardown_listeners: list[TeardownListener] = []

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def is_authenticated(self) -> bool:
        return self._credential is not None

    @property
    def role(self) -> str | None:
        """Raw role claim; the policy decides what it is worth."""
        return self._credential.role if self._credential else None

    @property
    def known_role(self) -> Role | None:
        return parse_role(self.role)

    def init(self, credential: Credential) -> None:
        """Start a session with a freshly issued credential."""
        self._credential = credential
        if self._store:
            self._store.save(credential)
        bind_session(credential.user_id, credential.role)
        logger.info("session_started")

    def restore(self) -> bool:
        """
        Resume from the credential store.

        Expired credentials are discarded. Returns True when a session
        is active afterwards.
        """
        if not self._store:
            return self.is_authenticated
        credential = self._store.load()
        if credential is None:
            return False
        if credential.is_expired():
            logger.info("session_expired_on_restore", user_id=credential.user_id)
            self._store.clear()
            return False
        self._credential = credential
        bind_session(credential.user_id, credential.role)
        logger.info("session_restored")
        return True

    def teardown(self, reason: str = "logout") -> None:
        """Drop the credential and tell listeners why."""
        had_session = self._credential is not None
        self._credential = None
        if self._store:
            self._store.clear()
        if not had_session:
            return
        logger.info("session_teardown", reason=reason)
        clear_session()
        for listener in list(self._teardown_listeners):
            try:
                listener(reason)
            except Exception:
                logger.warning("teardown_listener_error", reason=reason, exc_info=True)

    def on_teardown(self, listener: TeardownListener) -> Callable[[], None]:
        """Register a teardown listener; returns an unsubscribe callable."""
        self._teardown_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._teardown_listeners:
                self._teardown_listeners.remove(listener)

        return unsubscribe

    def auth_headers(self) -> dict[str, str]:
        if not self._credential:
            return {}
        return {"Authorization": f"Bearer {self._credential.token}"}

    def creator(self) -> Creator | None:
        """Creator stamp for optimistic records."""
        if not self._credential:
            return None
        email = self._credential.email or ""
        return Creator(
            created_by_id=self._credential.user_id or "",
            name=email.split("@")[0] if email else "",
            email=email,
        )

    # Credential events

    def handle_event(self, event: CredentialEvent) -> None:
        """Apply a refresh outcome signalled by the auth collaborator."""
        if event.type == CredentialEventType.REFRESHED:
            if not self._credential or not event.token:
                logger.warning("refresh_ignored", authenticated=self.is_authenticated)
                return
            update = {"token": event.token}
            if event.refresh_token:
                update["refresh_token"] = event.refresh_token
            self._credential = self._credential.model_copy(update=update)
            if self._store:
                self._store.save(self._credential)
            logger.debug("credential_refreshed")
        elif event.type == CredentialEventType.REFRESH_FAILED:
            self.teardown("refresh_failed")

    async def listen(self, channel: asyncio.Queue) -> None:
        """
        Consume credential events until a ``None`` sentinel arrives.

        Run it as a background task next to the client.
        """
        while True:
            event = await channel.get()
            try:
                if event is None:
                    return
                self.handle_event(event)
            finally:
                channel.task_done()
