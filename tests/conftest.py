# tests/conftest.py
from __future__ import annotations

import json
import os
from collections.abc import Generator, Iterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ventbuddy")

from ventbuddy.api.v1 import dependencies
from ventbuddy.core.security import create_access_token
from ventbuddy.db.session import Base
from ventbuddy.db.session import get_db as app_get_session
from ventbuddy.main import app as fastapi_app
from ventbuddy.models import Post, Reply, UserSession
from ventbuddy.models.visibility import EVENT_CREATED
from ventbuddy.repositories.visibility_repo import VisibilityEventStore
from ventbuddy.services.access import Viewer
from ventbuddy.services.content_crypto import ContentCipher, content_fingerprint, make_preview
from ventbuddy.services.encryption import EncryptionClient, EncryptionConfig
from ventbuddy.services.ledger import LedgerClient, LedgerConfig
from ventbuddy.services.visibility import VisibilityCache, VisibilityService

TEST_DB_URL = "sqlite://"

AUTHOR_WALLET = "0x" + "a1" * 20
VIEWER_WALLET = "0x" + "b2" * 20
ALREADY_REGISTERED_SELECTOR = "0xb9688461"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


class FakeEncryptionService:
    """In-memory stand-in for the encryption service HTTP API."""

    def __init__(self) -> None:
        self.initialized = True
        self.network_ok = True
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET" and path == "/status":
            return httpx.Response(
                200, json={"initialized": self.initialized, "network_ok": self.network_ok}
            )
        body = json.loads(request.content or b"{}")
        self.requests.append((path, body))
        if path == "/encrypt/number":
            return httpx.Response(
                200,
                json={"encrypted_value": f"0xenc{body['value']:x}", "proof": "0xproof"},
            )
        if path == "/encrypt/address":
            return httpx.Response(
                200,
                json={"encrypted_address": "0xid" + body["address"][2:], "proof": "0xproof"},
            )
        return httpx.Response(404, json={"detail": "not found"})


class FakeLedgerGateway:
    """In-memory stand-in for the ledger gateway HTTP API.

    Created ids count up from ``next_post_id``/``next_reply_id``. Set
    ``revert_reason`` to make mined transactions fail, ``error`` to reject
    them before mining, or ``emit_events`` to False to drop creation logs.
    """

    BLOCK_NUMBER = 1234
    TRANSACTION_INDEX = 5

    def __init__(self) -> None:
        self.transactions: list[dict[str, Any]] = []
        self.receipts: dict[str, dict[str, Any]] = {}
        self.registered: set[str] = set()
        self.posts: dict[int, str] = {}
        self.next_post_id = 1
        self.next_reply_id = 1
        self.revert_reason: str | None = None
        self.error: dict[str, Any] | None = None
        self.emit_events = True

    def calls(self, function: str) -> list[dict[str, Any]]:
        return [tx for tx in self.transactions if tx["function"] == function]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/transactions":
            return self._submit(json.loads(request.content))
        if request.method == "GET" and path.startswith("/transactions/"):
            tx_hash = path.split("/")[2]
            receipt = self.receipts.get(tx_hash)
            if receipt is None:
                return httpx.Response(404, json={"detail": "pending"})
            return httpx.Response(200, json=receipt)
        if request.method == "POST" and path == "/simulate":
            return httpx.Response(
                200,
                json={"ok": self.revert_reason is None, "error": self.revert_reason},
            )
        if request.method == "GET" and path.startswith("/posts/"):
            content_hash = self.posts.get(int(path.split("/")[2]))
            if content_hash is None:
                return httpx.Response(404, json={"detail": "unknown post"})
            return httpx.Response(200, json={"content_hash": content_hash})
        return httpx.Response(404, json={"detail": "not found"})

    def _submit(self, body: dict[str, Any]) -> httpx.Response:
        self.transactions.append(body)
        function = body["function"]
        if self.error is not None:
            return httpx.Response(200, json={"error": self.error})
        if function == "registerUser":
            identity = body["args"][0]
            if identity in self.registered:
                return httpx.Response(
                    200,
                    json={
                        "error": {
                            "selector": ALREADY_REGISTERED_SELECTOR,
                            "message": "execution reverted",
                        }
                    },
                )
            self.registered.add(identity)

        tx_hash = "0x" + f"{len(self.transactions):064x}"
        status = 0 if self.revert_reason else 1
        logs: list[dict[str, Any]] = []
        if status and self.emit_events:
            logs = self._creation_logs(function, body["args"])
        self.receipts[tx_hash] = {
            "status": status,
            "block_number": self.BLOCK_NUMBER,
            "transaction_index": self.TRANSACTION_INDEX,
            "gas_used": 21000,
            "logs": logs,
        }
        return httpx.Response(200, json={"tx_hash": tx_hash})

    def _creation_logs(self, function: str, args: list[Any]) -> list[dict[str, Any]]:
        if function == "createPost":
            post_id = self.next_post_id
            self.next_post_id += 1
            self.posts[post_id] = args[0]
            return [{"event": "PostCreated", "args": {"postId": str(post_id)}}]
        if function == "replyToPost":
            reply_id = self.next_reply_id
            self.next_reply_id += 1
            return [{"event": "ReplyCreated", "args": {"postId": args[0], "replyId": reply_id}}]
        return []


@pytest.fixture()
def encryption_service() -> FakeEncryptionService:
    return FakeEncryptionService()


@pytest.fixture()
def ledger_gateway() -> FakeLedgerGateway:
    return FakeLedgerGateway()


@pytest.fixture()
def encryption_client(encryption_service: FakeEncryptionService) -> EncryptionClient:
    return EncryptionClient(
        EncryptionConfig(base_url="http://encryption.test", timeout_seconds=5),
        transport=httpx.MockTransport(encryption_service.handler),
    )


@pytest.fixture()
def ledger_config() -> LedgerConfig:
    return LedgerConfig(
        base_url="http://ledger.test",
        contract_address="0x" + "c3" * 20,
        timeout_seconds=5,
        receipt_poll_seconds=0.01,
        allow_fallback_ids=True,
    )


@pytest.fixture()
def ledger_client(ledger_gateway: FakeLedgerGateway, ledger_config: LedgerConfig) -> LedgerClient:
    return LedgerClient(ledger_config, transport=httpx.MockTransport(ledger_gateway.handler))


@pytest.fixture(autouse=True)
def override_external_clients(
    app: FastAPI,
    encryption_client: EncryptionClient,
    ledger_client: LedgerClient,
) -> Iterator[None]:
    app.dependency_overrides[dependencies.get_encryption_client_dep] = lambda: encryption_client
    app.dependency_overrides[dependencies.get_ledger_client_dep] = lambda: ledger_client
    try:
        yield
    finally:
        app.dependency_overrides.pop(dependencies.get_encryption_client_dep, None)
        app.dependency_overrides.pop(dependencies.get_ledger_client_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def visibility_cache() -> VisibilityCache:
    return VisibilityCache(ttl_seconds=300)


@pytest.fixture()
def visibility_service(db_session: Session, visibility_cache: VisibilityCache) -> VisibilityService:
    return VisibilityService(db_session, visibility_cache)


@pytest.fixture()
def cipher() -> ContentCipher:
    return ContentCipher()


def _session_for(db_session: Session, wallet: str) -> UserSession:
    record = UserSession(
        wallet_address=wallet.lower(),
        encrypted_address="0xid" + wallet[2:].lower(),
        session_token=os.urandom(32).hex(),
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture()
def author(db_session: Session) -> Viewer:
    """A registered wallet that writes content."""
    record = _session_for(db_session, AUTHOR_WALLET)
    return Viewer(wallet_address=record.wallet_address, encrypted_identity=record.encrypted_address)


@pytest.fixture()
def viewer(db_session: Session) -> Viewer:
    """A second registered wallet that reads and pays."""
    record = _session_for(db_session, VIEWER_WALLET)
    return Viewer(wallet_address=record.wallet_address, encrypted_identity=record.encrypted_address)


@pytest.fixture()
def author_headers(author: Viewer) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(author.wallet_address)}"}


@pytest.fixture()
def viewer_headers(viewer: Viewer) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(viewer.wallet_address)}"}


@pytest.fixture()
def make_post(db_session: Session, cipher: ContentCipher):
    """Return a factory storing a confirmed post plus its ``created`` event."""

    def _make_post(
        ledger_id: int,
        author: Viewer,
        text: str = "Today was a long day and I need to let it out.",
        *,
        visibility: int = 0,
        min_tip_amount: int = 0,
        with_event: bool = True,
    ) -> Post:
        preview = make_preview(text)
        post = Post(
            ledger_id=ledger_id,
            ledger_tx_hash="0x" + f"{ledger_id:064x}",
            ledger_id_is_fallback=False,
            content_hash=content_fingerprint(text),
            preview_hash=content_fingerprint(preview),
            encrypted_content=cipher.encrypt(text),
            encrypted_preview=cipher.encrypt(preview),
            author_id=author.encrypted_identity,
            min_tip_amount=min_tip_amount,
        )
        db_session.add(post)
        db_session.flush()
        if with_event:
            VisibilityEventStore(db_session).append(
                content_id=ledger_id,
                content_type="post",
                visibility_type=visibility,
                event_type=EVENT_CREATED,
                actor=author.wallet_address,
            )
        db_session.commit()
        return post

    return _make_post


@pytest.fixture()
def make_reply(db_session: Session, cipher: ContentCipher):
    """Return a factory storing a reply plus its ``created`` event."""

    def _make_reply(
        post_id: int,
        reply_id: int,
        author: Viewer,
        text: str = "I have been there too.",
        *,
        visibility: int = 0,
        unlock_price: int = 0,
    ) -> Reply:
        reply = Reply(
            post_id=post_id,
            reply_id=reply_id,
            ledger_tx_hash="0x" + f"{post_id:032x}{reply_id:032x}",
            content_hash=content_fingerprint(text),
            preview_hash=content_fingerprint(make_preview(text)),
            encrypted_content=cipher.encrypt(text),
            encrypted_preview=cipher.encrypt(make_preview(text)),
            author_id=author.encrypted_identity,
            min_tip_amount=unlock_price,
        )
        db_session.add(reply)
        db_session.flush()
        VisibilityEventStore(db_session).append(
            content_id=post_id,
            reply_id=reply_id,
            content_type="reply",
            visibility_type=visibility,
            event_type=EVENT_CREATED,
            actor=author.wallet_address,
        )
        db_session.commit()
        return reply

    return _make_reply


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
