"""Delivery of assistant replies back into Slack.

Slack rejects message text over 4000 bytes and truncates long sections, so a reply
is split into chunks that each stay under both a byte and a character ceiling.
The first chunk replaces the "thinking" placeholder; the rest are posted as
thread replies, one at a time so they keep their order.
"""

from dataclasses import dataclass
from typing import Optional

from hrbot.config import Settings, settings
from hrbot.logging_config import get_logger
from hrbot.services.errors import UpstreamProcessingError
from hrbot.services.slack_service import SlackService

logger = get_logger("delivery_service")

SLACK_MESSAGE_MAX_BYTES = 4000
SLACK_MESSAGE_MAX_CHARS = 3000


def byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def _fits(text: str, max_bytes: int, max_chars: int) -> bool:
    return len(text) <= max_chars and byte_length(text) <= max_bytes


def _scan_boundary(text: str, start: int, max_bytes: int, max_chars: int) -> int:
    """Furthest end index such that text[start:end] fits both ceilings."""
    end = start
    size = 0
    limit = min(len(text), start + max_chars)
    while end < limit:
        char_bytes = byte_length(text[end])
        if size + char_bytes > max_bytes:
            break
        size += char_bytes
        end += 1
    # A single character is never wider than a sane byte ceiling; always make progress.
    return end if end > start else start + 1


def _split_hard(text: str, max_bytes: int, max_chars: int) -> list[str]:
    parts = []
    start = 0
    while start < len(text):
        end = _scan_boundary(text, start, max_bytes, max_chars)
        parts.append(text[start:end])
        start = end
    return parts


def chunk_message(
    text: str,
    max_bytes: int = SLACK_MESSAGE_MAX_BYTES,
    max_chars: int = SLACK_MESSAGE_MAX_CHARS,
) -> list[str]:
    """Split text into ordered chunks that each fit Slack's size ceilings.

    Boundaries prefer to fall just after a newline. ``"".join(chunks) == text``.
    """
    if not text:
        return []
    if _fits(text, max_bytes, max_chars):
        return [text]

    chunks = []
    start = 0
    while start < len(text):
        end = _scan_boundary(text, start, max_bytes, max_chars)
        if end < len(text):
            newline = text.rfind("\n", start, end)
            if newline > start:
                end = newline + 1
        chunks.append(text[start:end])
        start = end

    safe_chunks = []
    for chunk in chunks:
        if _fits(chunk, max_bytes, max_chars):
            safe_chunks.append(chunk)
        else:
            safe_chunks.extend(_split_hard(chunk, max_bytes, max_chars))
    return safe_chunks


@dataclass
class DeliveryJob:
    channel_id: str
    thread_ts: Optional[str] = None
    placeholder_ts: Optional[str] = None
    response_sent: bool = False


class DeliveryService:
    def __init__(self, slack: SlackService, config: Optional[Settings] = None):
        self.slack = slack
        self.config = config or settings

    async def post_placeholder(self, channel_id: str, thread_ts: Optional[str] = None) -> DeliveryJob:
        """Post the "thinking" message. A failed post yields a job without a placeholder."""
        job = DeliveryJob(channel_id=channel_id, thread_ts=thread_ts)
        try:
            job.placeholder_ts = await self.slack.post_message(channel_id, self.config.thinking_message, thread_ts=thread_ts)
        except Exception as e:
            logger.warning(f"Failed to post placeholder: {e}", extra={"context": {"channel": channel_id}})
        return job

    async def deliver_response(self, job: DeliveryJob, text: str) -> None:
        chunks = chunk_message(text)
        if not chunks:
            raise UpstreamProcessingError("Empty response from AI backend")

        if job.placeholder_ts:
            await self.slack.update_message(job.channel_id, job.placeholder_ts, chunks[0])
            anchor = job.thread_ts or job.placeholder_ts
        else:
            first_ts = await self.slack.post_message(job.channel_id, chunks[0], thread_ts=job.thread_ts)
            anchor = first_ts or job.thread_ts
        job.response_sent = True

        for chunk in chunks[1:]:
            await self.slack.post_message(job.channel_id, chunk, thread_ts=anchor)

        logger.info(
            "Response delivered",
            extra={"context": {"channel": job.channel_id, "chunks": len(chunks), "chars": len(text)}},
        )

    async def deliver_error(self, job: DeliveryJob) -> bool:
        """Tell the user something went wrong, unless part of the reply already went out."""
        if job.response_sent:
            return False

        error_text = self.config.error_message
        if job.placeholder_ts:
            try:
                await self.slack.update_message(job.channel_id, job.placeholder_ts, error_text)
                job.response_sent = True
                return True
            except Exception as e:
                logger.error(f"Error updating placeholder with error message: {e}")

        try:
            await self.slack.post_message(job.channel_id, error_text, thread_ts=job.thread_ts)
            job.response_sent = True
            return True
        except Exception as e:
            logger.error(
                f"Error posting error message: {e}",
                extra={"context": {"channel": job.channel_id}},
            )
            return False
