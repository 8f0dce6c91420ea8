"""Firebase sync adapter: anonymous sign-in plus a live Firestore watch."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from google.auth import credentials
from google.cloud import firestore
from pydantic import ValidationError

from kitchen_inventory.adapters.firebase_auth import (
    FirebaseSession,
    FirebaseUserCredentials,
    exchange_refresh_token,
    sign_up_anonymously,
)
from kitchen_inventory.domain.models import SyncSnapshot
from kitchen_inventory.domain.sync import (
    PairingFailure,
    PairingResult,
    generate_pairing_code,
)
from kitchen_inventory.services.storage import KeyValueStorage
from kitchen_inventory.services.sync import SnapshotCallback, SyncAdapter

USERS = "users"
SYNC_CODES = "syncCodes"
USER_DATA = "userData"

DEFAULT_SESSION_KEY = "fb_refreshToken"
DEFAULT_IDENTITY_KEY = "fb_userId"

FirestoreFactory = Callable[[str, credentials.Credentials], firestore.Client]

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FirebaseConfig:
    """Web app credentials for a Firebase project."""

    api_key: str
    project_id: str
    app_id: str | None = None


def create_firestore_client(
    project_id: str, user_credentials: credentials.Credentials
) -> firestore.Client:
    """Create a Firestore client that authenticates as the signed-in user."""
    return firestore.Client(project=project_id, credentials=user_credentials)


@dataclass
class FirestoreSyncAdapter(SyncAdapter):
    """Sync adapter backed by Firestore documents with native change push.

    The anonymous account's refresh token and the data identity are kept in
    durable storage. Restarts resume the same account through securetoken,
    so an install keeps its identity, including one adopted through a
    pairing code. ``auth_user_id`` is the signed-in account; ``user_id`` is
    the identity whose documents are read and written.
    """

    config: FirebaseConfig
    http_client: httpx.AsyncClient
    storage: KeyValueStorage
    firestore_factory: FirestoreFactory = create_firestore_client
    service_name: str = "Firebase"
    session_key: str = DEFAULT_SESSION_KEY
    identity_key: str = DEFAULT_IDENTITY_KEY
    is_initialized: bool = False
    auth_user_id: str | None = None
    user_id: str | None = None
    sync_code: str | None = None
    _db: firestore.Client | None = field(default=None, init=False, repr=False)
    _watch: object | None = field(default=None, init=False, repr=False)
    _callback: SnapshotCallback | None = field(default=None, init=False, repr=False)
    _loop: asyncio.AbstractEventLoop | None = field(
        default=None, init=False, repr=False
    )
    _last_pushed: dict[str, object] | None = field(
        default=None, init=False, repr=False
    )

    @classmethod
    def create(
        cls, config: FirebaseConfig, storage: KeyValueStorage
    ) -> "FirestoreSyncAdapter":
        """Create an adapter with a managed httpx session."""
        return cls(config=config, http_client=httpx.AsyncClient(), storage=storage)

    async def initialize(self) -> bool:
        """Validate the project configuration."""
        if self.is_initialized:
            return True
        if not (self.config.api_key and self.config.project_id):
            _logger.error("Firebase initialization failed: missing apiKey/projectId")
            return False
        self.is_initialized = True
        _logger.info("Firebase initialized for project %s", self.config.project_id)
        return True

    async def authenticate(self) -> bool:
        """Resume the stored anonymous account, or sign up a new one."""
        try:
            session = await self._resume_session()
            if session is None:
                session = await sign_up_anonymously(
                    self.http_client, self.config.api_key
                )
                _logger.info("Firebase signed up anonymous user %s", session.user_id)
            self._store_session(session)
            self._db = self.firestore_factory(
                self.config.project_id,
                FirebaseUserCredentials(
                    self.config.api_key, session, on_refresh=self._store_session
                ),
            )
            stored = self.storage.get(self.identity_key)
            self.auth_user_id = session.user_id
            if isinstance(stored, str) and stored:
                self.user_id = stored
            else:
                self.user_id = session.user_id
            self.storage.set(self.identity_key, self.user_id)
        except Exception:
            _logger.exception("Firebase anonymous sign-in failed")
            return False
        _logger.info("Firebase data identity: %s", self.user_id)
        return True

    async def _resume_session(self) -> FirebaseSession | None:
        refresh_token = self.storage.get(self.session_key)
        if not isinstance(refresh_token, str) or not refresh_token:
            return None
        try:
            return await exchange_refresh_token(
                self.http_client, self.config.api_key, refresh_token
            )
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code != 400:
                raise
            _logger.warning("Stored Firebase session was rejected; signing up again")
            return None

    def _store_session(self, session: FirebaseSession) -> None:
        self.storage.set(self.session_key, session.refresh_token)

    async def get_pairing_code(self) -> str | None:
        """Return the user's pairing code, registering a new one if needed."""
        if self.user_id is None or self._db is None:
            return None
        try:
            user_ref = self._db.collection(USERS).document(self.user_id)
            user_doc = await asyncio.to_thread(user_ref.get)
            if user_doc.exists:
                self.sync_code = (user_doc.to_dict() or {}).get("syncCode")
                return self.sync_code
            code = generate_pairing_code()
            await asyncio.to_thread(
                user_ref.set,
                {"syncCode": code, "createdAt": firestore.SERVER_TIMESTAMP},
            )
            code_ref = self._db.collection(SYNC_CODES).document(code)
            await asyncio.to_thread(code_ref.set, {"userId": self.user_id})
            self.sync_code = code
            return code
        except Exception:
            _logger.exception("Firebase pairing code lookup failed")
            return None

    async def save_snapshot(self, snapshot: SyncSnapshot) -> bool:
        """Merge the snapshot into the user's data document."""
        if self.user_id is None or self._db is None:
            return False
        payload = snapshot.to_payload()
        data_ref = self._db.collection(USER_DATA).document(self.user_id)
        try:
            await asyncio.to_thread(
                data_ref.set,
                {**payload, "lastSync": firestore.SERVER_TIMESTAMP},
                merge=True,
            )
        except Exception:
            _logger.exception("Firebase save failed")
            return False
        self._last_pushed = payload
        return True

    async def load_snapshot(self) -> SyncSnapshot | None:
        """Fetch the user's data document."""
        if self.user_id is None or self._db is None:
            return None
        try:
            data_ref = self._db.collection(USER_DATA).document(self.user_id)
            data_doc = await asyncio.to_thread(data_ref.get)
            if not data_doc.exists:
                return None
            return SyncSnapshot.model_validate(data_doc.to_dict() or {})
        except Exception:
            _logger.exception("Firebase load failed")
            return None

    async def use_sync_code(self, code: str) -> PairingResult:
        """Adopt the user behind a pairing code and return its data."""
        if self._db is None:
            return PairingResult.fail(PairingFailure.NOT_INITIALIZED)
        try:
            code_ref = self._db.collection(SYNC_CODES).document(code)
            code_doc = await asyncio.to_thread(code_ref.get)
            if not code_doc.exists:
                return PairingResult.fail(PairingFailure.CODE_NOT_FOUND)
            target_user_id = str((code_doc.to_dict() or {})["userId"])
            data_ref = self._db.collection(USER_DATA).document(target_user_id)
            data_doc = await asyncio.to_thread(data_ref.get)
            if not data_doc.exists:
                return PairingResult.fail(PairingFailure.NO_DATA)
            snapshot = SyncSnapshot.model_validate(data_doc.to_dict() or {})
            self.storage.set(self.identity_key, target_user_id)
        except Exception as exc:
            _logger.exception("Firebase pairing failed")
            return PairingResult.fail(PairingFailure.BACKEND_ERROR, str(exc))

        self.user_id = target_user_id
        self.sync_code = code
        if self._watch is not None:
            self._unsubscribe()
            self._subscribe()
        _logger.info("Firebase adopted user %s", target_user_id)
        return PairingResult.ok(snapshot)

    def listen_to_changes(self, callback: SnapshotCallback) -> None:
        """Watch the user's data document; later calls are ignored."""
        if self.user_id is None or self._db is None or self._watch is not None:
            return
        self._callback = callback
        self._loop = asyncio.get_running_loop()
        self._subscribe()

    def _subscribe(self) -> None:
        data_ref = self._db.collection(USER_DATA).document(self.user_id)
        self._watch = data_ref.on_snapshot(self._on_snapshot)

    def _unsubscribe(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None

    def _on_snapshot(self, documents, _changes, _read_time) -> None:  # type: ignore[no-untyped-def]
        # Runs on the Firestore watch thread.
        for document in documents:
            if document.exists and self._loop is not None:
                self._loop.call_soon_threadsafe(self._deliver, document.to_dict())

    def _deliver(self, data: dict[str, object] | None) -> None:
        if self._callback is None:
            return
        try:
            snapshot = SyncSnapshot.model_validate(data or {})
        except ValidationError:
            _logger.exception("Ignoring malformed Firebase document")
            return
        if self._last_pushed is not None and snapshot.to_payload() == self._last_pushed:
            _logger.debug("Ignoring Firebase echo of our own save")
            return
        self._callback(snapshot)

    async def close(self) -> None:
        """Stop watching and close the HTTP session and Firestore client."""
        self._unsubscribe()
        await self.http_client.aclose()
        if self._db is not None:
            self._db.close()
            self._db = None
