"""Post and reply creation pipeline.

Creation runs five stages in order, each depending on the previous one's
output:

1. encrypt the text and build its fingerprints;
2. encrypt the visibility selector (and a reply's unlock price);
3. submit to the ledger and learn the assigned id;
4. write the off-ledger record;
5. append the ``created`` visibility event.

Failures in stages 1-3 abort the operation. Once the ledger has accepted the
content it is the source of truth, so failures in stages 4 and 5 are only
reported as warnings and the operation still succeeds.

Every stage is a public method so a caller can retry one stage with the
previous stage's output.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ventbuddy.core.settings import settings
from ventbuddy.models.content import Post, Reply
from ventbuddy.models.visibility import (
    EVENT_CREATED,
    VISIBILITY_PUBLIC,
    VISIBILITY_TIPPABLE,
    VisibilityEvent,
)
from ventbuddy.repositories.content_repo import ContentRepository
from ventbuddy.services.access import Viewer
from ventbuddy.services.content_crypto import ContentCipher, content_fingerprint, make_preview
from ventbuddy.services.encryption import EncryptedInput, EncryptionClient
from ventbuddy.services.engagement import EngagementAggregator
from ventbuddy.services.errors import (
    AmbiguousAlreadyDoneError,
    ContentNotFoundError,
    ContentValidationError,
    PartialWriteError,
    TransactionRevertedError,
)
from ventbuddy.services.ledger import (
    LedgerAlreadyDone,
    LedgerClient,
    LedgerResult,
    LedgerReverted,
    resolve_created_id,
)
from ventbuddy.services.visibility import VisibilityService

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    ENCRYPT_CONTENT = "encrypt_content"
    ENCRYPT_PARAMETERS = "encrypt_parameters"
    SUBMIT_TO_LEDGER = "submit_to_ledger"
    WRITE_RECORD = "write_record"
    EMIT_VISIBILITY_EVENT = "emit_visibility_event"


class StageStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    WARNING = "warning"


@dataclass(frozen=True)
class StageProgress:
    stage: PipelineStage
    status: StageStatus
    detail: str | None = None


ProgressCallback = Callable[[StageProgress], None]


@dataclass(frozen=True)
class EncryptedContent:
    """Output of stage 1."""

    content_hash: str
    preview_hash: str
    encrypted_content: str
    encrypted_preview: str


@dataclass(frozen=True)
class EncryptedParameters:
    """Output of stage 2."""

    visibility: int
    encrypted_visibility: EncryptedInput
    encrypted_unlock_price: EncryptedInput | None = None


@dataclass(frozen=True)
class LedgerPlacement:
    """Output of stage 3."""

    ledger_id: int
    tx_hash: str
    is_fallback: bool


@dataclass
class CreationResult:
    """Outcome of a completed creation; warnings list non-fatal stage failures."""

    ledger_id: int
    tx_hash: str
    content_hash: str
    id_is_fallback: bool = False
    post_id: int | None = None
    record_id: int | None = None
    visibility_event_id: int | None = None
    warnings: list[str] = field(default_factory=list)


class ContentCreationPipeline:
    """Creates posts and replies across encryption service, ledger and store."""

    def __init__(
        self,
        db: Session,
        *,
        encryption: EncryptionClient,
        ledger: LedgerClient,
        visibility: VisibilityService,
        cipher: ContentCipher | None = None,
        engagement: EngagementAggregator | None = None,
    ) -> None:
        self.db = db
        self.encryption = encryption
        self.ledger = ledger
        self.visibility = visibility
        self.cipher = cipher or ContentCipher()
        self.engagement = engagement or EngagementAggregator(db)
        self.content = ContentRepository(db)

    # Stage 1

    def encrypt_content(self, text: str) -> EncryptedContent:
        """Validate the text, build the preview and encrypt both."""
        if not text or not text.strip():
            raise ContentValidationError("Content cannot be empty")
        if len(text) > settings.max_content_length:
            raise ContentValidationError(
                f"Content exceeds {settings.max_content_length} characters"
            )
        preview = make_preview(text)
        return EncryptedContent(
            content_hash=content_fingerprint(text),
            preview_hash=content_fingerprint(preview),
            encrypted_content=self.cipher.encrypt(text),
            encrypted_preview=self.cipher.encrypt(preview),
        )

    # Stage 2

    async def encrypt_parameters(
        self,
        author: Viewer,
        visibility: int,
        unlock_price: int | None = None,
    ) -> EncryptedParameters:
        """Encrypt the visibility selector, and the unlock price when given.

        Raises:
            NotReadyError: If the encryption service is not ready.
        """
        if visibility not in (VISIBILITY_PUBLIC, VISIBILITY_TIPPABLE):
            raise ContentValidationError(f"Unknown visibility type: {visibility}")
        await self.encryption.ensure_ready()

        encrypted_visibility = await self.encryption.encrypt_number(
            visibility, author.wallet_address
        )
        encrypted_price = None
        if unlock_price is not None:
            encrypted_price = await self.encryption.encrypt_number(
                unlock_price, author.wallet_address
            )
        return EncryptedParameters(
            visibility=visibility,
            encrypted_visibility=encrypted_visibility,
            encrypted_unlock_price=encrypted_price,
        )

    # Stage 3

    async def submit_post(
        self,
        content: EncryptedContent,
        parameters: EncryptedParameters,
        min_tip_amount: int,
    ) -> LedgerPlacement:
        result = await self.ledger.create_post(
            content_hash=content.content_hash,
            preview_hash=content.preview_hash,
            content_ref=content.content_hash,
            encrypted_visibility=parameters.encrypted_visibility.handle,
            visibility_proof=parameters.encrypted_visibility.proof,
            min_tip_amount=min_tip_amount,
        )
        return self._placement(result, "PostCreated", "postId")

    async def submit_reply(
        self,
        post_id: int,
        content: EncryptedContent,
        parameters: EncryptedParameters,
        unlock_price: int,
    ) -> LedgerPlacement:
        price = parameters.encrypted_unlock_price
        result = await self.ledger.reply_to_post(
            post_id=post_id,
            content_hash=content.content_hash,
            preview_hash=content.preview_hash,
            content_ref=content.content_hash,
            encrypted_visibility=parameters.encrypted_visibility.handle,
            visibility_proof=parameters.encrypted_visibility.proof,
            min_tip_amount=unlock_price,
            encrypted_unlock_price=price.handle if price else None,
            unlock_price_proof=price.proof if price else None,
        )
        return self._placement(result, "ReplyCreated", "replyId")

    def _placement(self, result: LedgerResult, event_name: str, arg_name: str) -> LedgerPlacement:
        if isinstance(result, LedgerReverted):
            raise TransactionRevertedError(result.reason, result.tx_hash)
        if isinstance(result, LedgerAlreadyDone):
            raise AmbiguousAlreadyDoneError(
                f"Ledger reported {result.name} while creating content"
            )
        created = resolve_created_id(
            result.receipt,
            event_name,
            arg_name,
            allow_fallback=self.ledger.allow_fallback_ids,
        )
        return LedgerPlacement(
            ledger_id=created.value,
            tx_hash=result.tx_hash,
            is_fallback=created.is_fallback,
        )

    # Stage 4

    def write_post_record(
        self,
        author: Viewer,
        content: EncryptedContent,
        placement: LedgerPlacement,
        min_tip_amount: int,
    ) -> Post:
        """Persist the post keyed by its ledger id.

        Raises:
            PartialWriteError: If the store rejects the write.
        """
        try:
            post = self.content.create_post(
                ledger_id=placement.ledger_id,
                ledger_tx_hash=placement.tx_hash,
                ledger_id_is_fallback=placement.is_fallback,
                content_hash=content.content_hash,
                preview_hash=content.preview_hash,
                encrypted_content=content.encrypted_content,
                encrypted_preview=content.encrypted_preview,
                author_id=author.encrypted_identity,
                min_tip_amount=min_tip_amount,
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PartialWriteError(
                f"Post {placement.ledger_id} is on the ledger but was not stored: {exc}",
                placement.ledger_id,
            ) from exc
        return post

    def write_reply_record(
        self,
        author: Viewer,
        post_id: int,
        content: EncryptedContent,
        placement: LedgerPlacement,
        unlock_price: int,
    ) -> Reply:
        """Persist the reply and refresh the parent's reply count.

        Raises:
            PartialWriteError: If the store rejects the write.
        """
        try:
            reply = self.content.create_reply(
                post_id=post_id,
                reply_id=placement.ledger_id,
                ledger_tx_hash=placement.tx_hash,
                ledger_id_is_fallback=placement.is_fallback,
                content_hash=content.content_hash,
                preview_hash=content.preview_hash,
                encrypted_content=content.encrypted_content,
                encrypted_preview=content.encrypted_preview,
                author_id=author.encrypted_identity,
                min_tip_amount=unlock_price,
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PartialWriteError(
                f"Reply {post_id}:{placement.ledger_id} is on the ledger but was not stored: {exc}",
                placement.ledger_id,
            ) from exc

        try:
            self.engagement.update_reply_count(post_id, self.content.count_replies(post_id))
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Could not refresh reply count for post %s: %s", post_id, exc)
        return reply

    # Stage 5

    def emit_visibility_event(
        self,
        author: Viewer,
        content: EncryptedContent,
        parameters: EncryptedParameters,
        ledger_id: int,
        reply_id: int | None = None,
    ) -> VisibilityEvent:
        return self.visibility.log_event(
            ledger_id,
            reply_id=reply_id,
            visibility_type=parameters.visibility,
            event_type=EVENT_CREATED,
            actor=author.wallet_address,
            encrypted_visibility=parameters.encrypted_visibility.handle,
            content_hash=content.content_hash,
            preview_hash=content.preview_hash,
        )

    # Orchestration

    async def create_post(
        self,
        author: Viewer,
        text: str,
        *,
        visibility: int,
        min_tip_amount: int = 0,
        progress: ProgressCallback | None = None,
    ) -> CreationResult:
        """Run all stages for a new post."""
        if min_tip_amount < 0:
            raise ContentValidationError("Minimum tip cannot be negative")

        with self._stage(PipelineStage.ENCRYPT_CONTENT, progress):
            content = self.encrypt_content(text)
        with self._stage(PipelineStage.ENCRYPT_PARAMETERS, progress):
            parameters = await self.encrypt_parameters(author, visibility)
        with self._stage(PipelineStage.SUBMIT_TO_LEDGER, progress):
            placement = await self.submit_post(content, parameters, min_tip_amount)

        result = CreationResult(
            ledger_id=placement.ledger_id,
            tx_hash=placement.tx_hash,
            content_hash=content.content_hash,
            id_is_fallback=placement.is_fallback,
        )
        if placement.is_fallback:
            result.warnings.append(f"Post id {placement.ledger_id} was derived from the receipt")

        with self._tolerant_stage(PipelineStage.WRITE_RECORD, progress, result):
            post = self.write_post_record(author, content, placement, min_tip_amount)
            result.record_id = post.id
        with self._tolerant_stage(PipelineStage.EMIT_VISIBILITY_EVENT, progress, result):
            event = self.emit_visibility_event(author, content, parameters, placement.ledger_id)
            result.visibility_event_id = event.id

        logger.info(
            "Created post %d in %s (%d warnings)",
            placement.ledger_id,
            placement.tx_hash,
            len(result.warnings),
        )
        return result

    async def create_reply(
        self,
        author: Viewer,
        post_id: int,
        text: str,
        *,
        visibility: int,
        unlock_price: int = 0,
        progress: ProgressCallback | None = None,
    ) -> CreationResult:
        """Run all stages for a reply to ``post_id``."""
        if unlock_price < 0:
            raise ContentValidationError("Unlock price cannot be negative")
        await self.require_parent(post_id)

        with self._stage(PipelineStage.ENCRYPT_CONTENT, progress):
            content = self.encrypt_content(text)
        with self._stage(PipelineStage.ENCRYPT_PARAMETERS, progress):
            parameters = await self.encrypt_parameters(author, visibility, unlock_price)
        with self._stage(PipelineStage.SUBMIT_TO_LEDGER, progress):
            placement = await self.submit_reply(post_id, content, parameters, unlock_price)

        result = CreationResult(
            ledger_id=placement.ledger_id,
            tx_hash=placement.tx_hash,
            content_hash=content.content_hash,
            id_is_fallback=placement.is_fallback,
            post_id=post_id,
        )
        if placement.is_fallback:
            result.warnings.append(f"Reply id {placement.ledger_id} was derived from the receipt")

        with self._tolerant_stage(PipelineStage.WRITE_RECORD, progress, result):
            reply = self.write_reply_record(author, post_id, content, placement, unlock_price)
            result.record_id = reply.id
        with self._tolerant_stage(PipelineStage.EMIT_VISIBILITY_EVENT, progress, result):
            event = self.emit_visibility_event(
                author, content, parameters, post_id, reply_id=placement.ledger_id
            )
            result.visibility_event_id = event.id

        logger.info("Created reply %d on post %d", placement.ledger_id, post_id)
        return result

    async def require_parent(self, post_id: int) -> None:
        """Raise ContentNotFoundError unless the post is stored here or on the ledger."""
        if self.content.get_post(post_id) is not None:
            return
        if not await self.ledger.post_exists(post_id):
            raise ContentNotFoundError(f"Post {post_id} does not exist")

    @staticmethod
    def _emit(
        progress: ProgressCallback | None,
        stage: PipelineStage,
        status: StageStatus,
        detail: str | None = None,
    ) -> None:
        if progress is None:
            return
        try:
            progress(StageProgress(stage=stage, status=status, detail=detail))
        except Exception:
            logger.exception("Progress callback failed for %s/%s", stage.value, status.value)

    @contextmanager
    def _stage(self, stage: PipelineStage, progress: ProgressCallback | None) -> Iterator[None]:
        self._emit(progress, stage, StageStatus.STARTED)
        try:
            yield
        except Exception as exc:
            logger.error("Stage %s failed: %s", stage.value, exc)
            self._emit(progress, stage, StageStatus.FAILED, str(exc))
            raise
        self._emit(progress, stage, StageStatus.COMPLETED)

    @contextmanager
    def _tolerant_stage(
        self,
        stage: PipelineStage,
        progress: ProgressCallback | None,
        result: CreationResult,
    ) -> Iterator[None]:
        self._emit(progress, stage, StageStatus.STARTED)
        try:
            yield
        except Exception as exc:
            # Content is already on the ledger; failures here become warnings.
            if not isinstance(exc, PartialWriteError):
                self.db.rollback()
            logger.warning("Stage %s failed after ledger confirmation: %s", stage.value, exc)
            result.warnings.append(f"{stage.value}: {exc}")
            self._emit(progress, stage, StageStatus.WARNING, str(exc))
            return
        self._emit(progress, stage, StageStatus.COMPLETED)
