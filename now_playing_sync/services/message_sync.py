"""Edit-or-recreate reconciliation of the now-playing message."""

from now_playing_sync.exceptions import MessagingError, MessagingErrorKind
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import Observation, SyncTarget
from now_playing_sync.protocols import MessagingSurface
from now_playing_sync.views.embed_renderer import EmbedRenderer

logger = get_logger(__name__)


class MessageSync:
    """Keeps exactly one message on the target channel mirroring playback.

    reconcile() runs three steps:

    1. Edit the stored message, if there is one.
    2. If the edit reports the message gone, forget its id.
    3. Without an id, post a new message and remember its id.

    Messaging errors never propagate; they are logged and the next cycle
    tries again. Callers must not run two reconciles for one target at once.
    """

    def __init__(self, surface: MessagingSurface, target: SyncTarget, renderer: EmbedRenderer):
        self._surface = surface
        self.target = target
        self.renderer = renderer

    async def reconcile(self, state: Observation) -> str | None:
        """Bring the message in line with `state`.

        Returns:
            The id of the message now showing `state`, or None if none could be posted
        """
        payload = self.renderer.render(state)
        channel_id = self.target.surface_id

        if self.target.artifact_id is not None:
            message_id = self.target.artifact_id
            try:
                await self._surface.update_artifact(channel_id, message_id, payload)
                return message_id
            except MessagingError as e:
                if e.kind is not MessagingErrorKind.NOT_FOUND:
                    log_with_context(
                        logger,
                        "warning",
                        "Failed to edit now-playing message, will retry",
                        message_id=message_id,
                        error=e.message,
                        event_type="message_edit_failed",
                    )
                    return message_id
                log_with_context(
                    logger,
                    "info",
                    "Now-playing message is gone, posting a new one",
                    message_id=message_id,
                    event_type="message_missing",
                )
                self.target.artifact_id = None

        try:
            message_id = await self._surface.create_artifact(channel_id, payload)
        except MessagingError as e:
            log_with_context(
                logger,
                "warning",
                "Failed to post now-playing message, will retry",
                channel_id=channel_id,
                error=e.message,
                event_type="message_create_failed",
            )
            return None

        self.target.artifact_id = message_id
        log_with_context(
            logger,
            "info",
            "Posted now-playing message",
            channel_id=channel_id,
            message_id=message_id,
            event_type="message_created",
        )
        return message_id

    async def verify(self) -> str | None:
        """Check that a warm-start message id still resolves.

        A deleted message is forgotten so the next reconcile posts a new one.
        Other failures keep the id; reconcile sorts it out later.
        """
        message_id = self.target.artifact_id
        if message_id is None:
            return None
        try:
            await self._surface.fetch_artifact(self.target.surface_id, message_id)
        except MessagingError as e:
            if e.kind is MessagingErrorKind.NOT_FOUND:
                log_with_context(
                    logger,
                    "warning",
                    "Configured message not found, a new one will be posted",
                    message_id=message_id,
                    event_type="message_missing",
                )
                self.target.artifact_id = None
            else:
                log_with_context(
                    logger,
                    "warning",
                    "Could not verify configured message",
                    message_id=message_id,
                    error=e.message,
                    event_type="message_verify_failed",
                )
        return self.target.artifact_id
