"""Unit tests for edit-or-recreate message reconciliation."""

from datetime import UTC, datetime, timedelta

import pytest

from now_playing_sync.exceptions import MessagingError, MessagingErrorKind
from now_playing_sync.models import IDLE, PlaybackState, SyncTarget
from now_playing_sync.services.message_sync import MessageSync
from now_playing_sync.views.embed_renderer import EmbedRenderer

CHANNEL = "123456789012345678"
T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def track(title: str = "song") -> PlaybackState:
    return PlaybackState(
        track_id=title,
        title=title,
        artist_names=("artist",),
        started_at=T0,
        ends_at=T0 + timedelta(minutes=3),
        progress_ms=1000,
        duration_ms=180000,
        is_playing=True,
    )


@pytest.fixture
def sync(fake_surface) -> MessageSync:
    return MessageSync(fake_surface, SyncTarget(surface_id=CHANNEL), EmbedRenderer("Jack", clock=lambda: T0))


@pytest.mark.asyncio
async def test_first_reconcile_posts_message(sync, fake_surface):
    message_id = await sync.reconcile(IDLE)

    assert message_id == "1001"
    assert sync.target.artifact_id == "1001"
    assert fake_surface.created == ["1001"]
    assert fake_surface.messages["1001"]["embeds"][0]["title"] == "nothing playing"


@pytest.mark.asyncio
async def test_following_reconciles_edit_same_message(sync, fake_surface):
    first = await sync.reconcile(IDLE)
    second = await sync.reconcile(track("one"))
    third = await sync.reconcile(track("two"))

    assert first == second == third
    assert fake_surface.created == ["1001"]
    assert fake_surface.updated == ["1001", "1001"]
    assert fake_surface.messages["1001"]["embeds"][0]["title"] == "two — artist"


@pytest.mark.asyncio
async def test_deleted_message_is_recreated_once(sync, fake_surface):
    await sync.reconcile(IDLE)
    fake_surface.delete("1001")

    recreated = await sync.reconcile(track())
    again = await sync.reconcile(track())

    assert recreated == again == "1002"
    assert fake_surface.created == ["1001", "1002"]
    assert fake_surface.updated == ["1002"]


@pytest.mark.asyncio
async def test_other_edit_failure_keeps_id_and_does_not_post(sync, fake_surface):
    await sync.reconcile(IDLE)
    fake_surface.fail_update = MessagingError("Discord error 500")

    result = await sync.reconcile(track())

    assert result == "1001"
    assert sync.target.artifact_id == "1001"
    assert fake_surface.created == ["1001"]


@pytest.mark.asyncio
async def test_create_failure_returns_none_and_retries_next_time(sync, fake_surface):
    fake_surface.fail_create = MessagingError("Missing Permissions", details={"status_code": 403})

    assert await sync.reconcile(IDLE) is None
    assert sync.target.artifact_id is None

    fake_surface.fail_create = None
    assert await sync.reconcile(IDLE) == "1001"


@pytest.mark.asyncio
async def test_warm_start_edits_configured_message(fake_surface):
    fake_surface.messages["555"] = {"content": "old"}
    sync = MessageSync(fake_surface, SyncTarget(surface_id=CHANNEL, artifact_id="555"), EmbedRenderer("Jack"))

    assert await sync.verify() == "555"
    assert await sync.reconcile(IDLE) == "555"
    assert fake_surface.created == []


@pytest.mark.asyncio
async def test_verify_forgets_deleted_message(fake_surface):
    sync = MessageSync(fake_surface, SyncTarget(surface_id=CHANNEL, artifact_id="555"), EmbedRenderer("Jack"))

    assert await sync.verify() is None
    assert sync.target.artifact_id is None


@pytest.mark.asyncio
async def test_verify_keeps_id_on_other_errors(fake_surface):
    async def broken(channel_id, message_id):
        raise MessagingError("Discord request timed out", MessagingErrorKind.OTHER)

    fake_surface.fetch_artifact = broken
    sync = MessageSync(fake_surface, SyncTarget(surface_id=CHANNEL, artifact_id="555"), EmbedRenderer("Jack"))

    assert await sync.verify() == "555"


@pytest.mark.asyncio
async def test_verify_without_id(sync):
    assert await sync.verify() is None
