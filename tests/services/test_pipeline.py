"""Tests for the content creation pipeline."""

from dataclasses import replace

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from ventbuddy.models import Post, Reply
from ventbuddy.services.errors import (
    AmbiguousAlreadyDoneError,
    ContentNotFoundError,
    ContentValidationError,
    LedgerEventMissingError,
    NotReadyError,
    TransactionRevertedError,
)
from ventbuddy.services.ledger import LedgerClient
from ventbuddy.services.pipeline import (
    ContentCreationPipeline,
    PipelineStage,
    StageStatus,
)


@pytest.fixture()
def pipeline(db_session, encryption_client, ledger_client, visibility_service, cipher):
    return ContentCreationPipeline(
        db_session,
        encryption=encryption_client,
        ledger=ledger_client,
        visibility=visibility_service,
        cipher=cipher,
    )


@pytest.mark.asyncio
async def test_create_post_runs_every_stage(
    pipeline, db_session, ledger_gateway, visibility_service, cipher, author
) -> None:
    text = "Nobody at work noticed I was gone for a week."
    result = await pipeline.create_post(author, text, visibility=1, min_tip_amount=250)

    assert result.ledger_id == 1
    assert result.warnings == []
    assert result.id_is_fallback is False
    assert result.record_id is not None
    assert result.visibility_event_id is not None

    [tx] = ledger_gateway.calls("createPost")
    assert tx["args"][0] == result.content_hash
    assert tx["args"][3] == "0xenc1"
    assert tx["args"][5] == "250"

    post = db_session.get(Post, result.record_id)
    assert post.ledger_id == 1
    assert post.author_id == author.encrypted_identity
    assert post.encrypted_content != text
    assert cipher.decrypt(post.encrypted_content) == text

    lookup = visibility_service.get_visibility(1)
    assert lookup.visibility == 1
    assert lookup.is_cached is True


@pytest.mark.asyncio
async def test_not_ready_encryption_aborts_before_ledger(
    pipeline, encryption_service, ledger_gateway, author
) -> None:
    encryption_service.network_ok = False

    with pytest.raises(NotReadyError):
        await pipeline.create_post(author, "hello", visibility=0)

    assert ledger_gateway.transactions == []


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "x" * 5001])
async def test_invalid_text_is_rejected_before_encryption(
    pipeline, encryption_service, text, author
) -> None:
    with pytest.raises(ContentValidationError):
        await pipeline.create_post(author, text, visibility=0)

    assert encryption_service.requests == []


@pytest.mark.asyncio
async def test_negative_tip_is_rejected(pipeline, author) -> None:
    with pytest.raises(ContentValidationError):
        await pipeline.create_post(author, "hello", visibility=1, min_tip_amount=-1)


@pytest.mark.asyncio
async def test_reverted_submission_writes_nothing(
    pipeline, db_session, ledger_gateway, author
) -> None:
    ledger_gateway.revert_reason = "execution reverted: User not registered"

    with pytest.raises(TransactionRevertedError) as excinfo:
        await pipeline.create_post(author, "hello", visibility=0)

    assert excinfo.value.reason == "User not registered in the contract"
    assert excinfo.value.tx_hash is not None
    assert db_session.query(Post).count() == 0


@pytest.mark.asyncio
async def test_already_done_on_create_is_ambiguous(pipeline, ledger_gateway, author) -> None:
    ledger_gateway.error = {"selector": "0xb9688461"}

    with pytest.raises(AmbiguousAlreadyDoneError):
        await pipeline.create_post(author, "hello", visibility=0)


@pytest.mark.asyncio
async def test_store_failure_after_ledger_is_a_warning(
    pipeline, make_post, ledger_gateway, author
) -> None:
    make_post(42, author)
    ledger_gateway.next_post_id = 42

    result = await pipeline.create_post(author, "a second post with a taken id", visibility=0)

    assert result.ledger_id == 42
    assert result.record_id is None
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith(PipelineStage.WRITE_RECORD.value)
    assert result.visibility_event_id is not None


@pytest.mark.asyncio
async def test_event_failure_after_ledger_is_a_warning(
    pipeline, visibility_service, author, mocker
) -> None:
    mocker.patch.object(
        visibility_service,
        "log_event",
        side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
    )

    result = await pipeline.create_post(author, "hello", visibility=0)

    assert result.record_id is not None
    assert result.visibility_event_id is None
    assert result.warnings[0].startswith(PipelineStage.EMIT_VISIBILITY_EVENT.value)


@pytest.mark.asyncio
async def test_unexpected_store_error_after_ledger_is_a_warning(pipeline, author, mocker) -> None:
    mocker.patch.object(
        pipeline.content,
        "create_post",
        side_effect=OverflowError("Python int too large to convert to SQLite INTEGER"),
    )

    result = await pipeline.create_post(author, "hello", visibility=1, min_tip_amount=5)

    assert result.ledger_id == 1
    assert result.record_id is None
    assert result.warnings[0].startswith(PipelineStage.WRITE_RECORD.value)
    assert result.visibility_event_id is not None


@pytest.mark.asyncio
async def test_wei_sized_threshold_is_stored_exactly(
    pipeline, db_session, ledger_gateway, author
) -> None:
    threshold = 10**19

    result = await pipeline.create_post(
        author, "worth more than a few ether", visibility=1, min_tip_amount=threshold
    )

    assert result.warnings == []
    assert ledger_gateway.calls("createPost")[0]["args"][5] == str(threshold)
    post = db_session.get(Post, result.record_id)
    db_session.refresh(post)
    assert post.min_tip_amount == threshold


@pytest.mark.asyncio
async def test_missing_event_uses_fallback_id(pipeline, ledger_gateway, author) -> None:
    ledger_gateway.emit_events = False

    result = await pipeline.create_post(author, "hello", visibility=0)

    expected = int(f"12345{result.tx_hash[-8:]}", 16) % 1_000_000
    assert result.id_is_fallback is True
    assert result.ledger_id == expected
    assert any("derived" in warning for warning in result.warnings)


@pytest.mark.asyncio
async def test_missing_event_without_fallback_fails(
    db_session,
    encryption_client,
    ledger_gateway,
    ledger_config,
    visibility_service,
    author,
) -> None:
    ledger_gateway.emit_events = False
    strict_ledger = LedgerClient(
        replace(ledger_config, allow_fallback_ids=False),
        transport=httpx.MockTransport(ledger_gateway.handler),
    )
    pipeline = ContentCreationPipeline(
        db_session,
        encryption=encryption_client,
        ledger=strict_ledger,
        visibility=visibility_service,
    )

    with pytest.raises(LedgerEventMissingError):
        await pipeline.create_post(author, "hello", visibility=0)


@pytest.mark.asyncio
async def test_create_reply_updates_reply_count(
    pipeline, db_session, ledger_gateway, encryption_service, visibility_service, author
) -> None:
    post = await pipeline.create_post(author, "parent", visibility=0)

    result = await pipeline.create_reply(
        author, post.ledger_id, "a tippable reply", visibility=1, unlock_price=300
    )

    assert result.post_id == post.ledger_id
    assert result.ledger_id == 1
    [tx] = ledger_gateway.calls("replyToPost")
    assert tx["args"][0] == post.ledger_id
    assert tx["args"][6] == "300"
    assert tx["args"][7:] == [f"0xenc{300:x}", "0xproof"]
    assert [path for path, _ in encryption_service.requests].count("/encrypt/number") == 3

    reply = db_session.get(Reply, result.record_id)
    assert reply.reply_id == 1
    assert reply.min_tip_amount == 300
    assert pipeline.engagement.get_stats(post.ledger_id).reply_count == 1
    assert visibility_service.get_visibility(post.ledger_id, 1).visibility == 1


@pytest.mark.asyncio
async def test_progress_reports_each_stage(pipeline, author) -> None:
    seen = []

    await pipeline.create_post(author, "hello", visibility=0, progress=seen.append)

    assert [(p.stage, p.status) for p in seen] == [
        (stage, status)
        for stage in PipelineStage
        for status in (StageStatus.STARTED, StageStatus.COMPLETED)
    ]


@pytest.mark.asyncio
async def test_progress_reports_failure_and_survives_broken_callback(
    pipeline, encryption_service, author
) -> None:
    encryption_service.initialized = False
    seen = []

    def callback(progress) -> None:
        seen.append(progress)
        raise RuntimeError("ui went away")

    with pytest.raises(NotReadyError):
        await pipeline.create_post(author, "hello", visibility=0, progress=callback)

    assert seen[-1].stage == PipelineStage.ENCRYPT_PARAMETERS
    assert seen[-1].status == StageStatus.FAILED


@pytest.mark.asyncio
async def test_stages_can_be_retried_individually(pipeline, db_session, author) -> None:
    content = pipeline.encrypt_content("retry me")
    parameters = await pipeline.encrypt_parameters(author, 0)
    placement = await pipeline.submit_post(content, parameters, 0)

    post = pipeline.write_post_record(author, content, placement, 0)
    event = pipeline.emit_visibility_event(author, content, parameters, placement.ledger_id)

    assert post.ledger_id == placement.ledger_id
    assert event.content_hash == content.content_hash


@pytest.mark.asyncio
async def test_reply_to_post_known_only_on_ledger(pipeline, ledger_gateway, author) -> None:
    ledger_gateway.posts[77] = "0x" + "ab" * 32

    result = await pipeline.create_reply(author, 77, "hang in there", visibility=0)

    assert result.post_id == 77
    assert ledger_gateway.calls("replyToPost")[0]["args"][0] == 77


@pytest.mark.asyncio
async def test_reply_to_unknown_post_is_refused(
    pipeline, ledger_gateway, encryption_service, author
) -> None:
    with pytest.raises(ContentNotFoundError):
        await pipeline.create_reply(author, 404, "anyone there?", visibility=0)

    assert ledger_gateway.transactions == []
    assert encryption_service.requests == []
