"""Newsletter email delivery: markdown rendering, per-recipient send, batching."""

import asyncio
import html
import logging
import re
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from jinja2 import Environment, PackageLoader, select_autoescape

from soulthread.clients.resend import ResendClient
from soulthread.core.stores import DeliveryLog
from soulthread.models.content import BatchResult, DeliveryJob, DeliveryRecord, EmailResult, Recipient

logger = logging.getLogger(__name__)

TEST_EMAIL_SUBJECT = "🧵 SoulThread Test Email - Your Newsletter Setup is Working!"
TEST_EMAIL_STEPS = [
    "Configure your email preferences",
    "Set your preferred delivery time",
    "Choose your favorite topics",
    "Start receiving daily newsletters!",
]

_HEADING = re.compile(r"^(#{1,3}) (.+)$")
_INLINE_RULES = [
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"\[(.+?)\]\((.+?)\)"), r'<a href="\2">\1</a>'),
]

_templates = Environment(
    loader=PackageLoader("soulthread", "templates"),
    autoescape=select_autoescape(["html"]),
)


def _inline(text: str) -> str:
    text = html.escape(text, quote=False)
    for pattern, replacement in _INLINE_RULES:
        text = pattern.sub(replacement, text)
    return text


def markdown_body_to_html(markdown: str) -> str:
    """Convert the markdown subset the generators emit into HTML blocks.

    Handles ``#``-``###`` headings, ``---`` rules, ``- `` bullet lists,
    bold, italics and links. Blank lines separate paragraphs.
    """
    blocks: List[str] = []
    paragraph: List[str] = []
    bullets: List[str] = []

    def flush_paragraph():
        if paragraph:
            blocks.append(f"<p>{'<br>'.join(paragraph)}</p>")
            paragraph.clear()

    def flush_bullets():
        if bullets:
            blocks.append("<ul>" + "".join(f"<li>{b}</li>" for b in bullets) + "</ul>")
            bullets.clear()

    for raw_line in markdown.splitlines():
        line = raw_line.strip()
        heading = _HEADING.match(line)
        if not line:
            flush_paragraph()
            flush_bullets()
        elif line == "---":
            flush_paragraph()
            flush_bullets()
            blocks.append("<hr>")
        elif heading:
            flush_paragraph()
            flush_bullets()
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        elif line.startswith("- "):
            flush_paragraph()
            bullets.append(_inline(line[2:]))
        else:
            flush_bullets()
            paragraph.append(_inline(line))

    flush_paragraph()
    flush_bullets()
    return "\n".join(blocks)


def markdown_to_html(
    markdown: str,
    unsubscribe_url: Optional[str] = None,
    preferences_url: Optional[str] = None,
) -> str:
    """Render newsletter markdown as a complete email document."""
    return _templates.get_template("newsletter_email.html").render(
        body=markdown_body_to_html(markdown),
        unsubscribe_url=unsubscribe_url,
        preferences_url=preferences_url,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailService:
    """Sends one newsletter and books the outcome in the delivery log."""

    def __init__(
        self,
        client: ResendClient,
        delivery_log: DeliveryLog,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.delivery_log = delivery_log
        self.clock = clock

    @property
    def configured(self) -> bool:
        return self.client.configured

    async def send_newsletter_email(self, recipient: Recipient, job: DeliveryJob) -> EmailResult:
        if not self.client.configured:
            logger.error("[Email] RESEND_API_KEY not configured")
            return EmailResult(success=False, error="Email service not configured")

        logger.info(f"[Email] Sending newsletter to {recipient.email}")
        result = await self.client.send_email(
            to=recipient.email,
            subject=job.subject,
            html=markdown_to_html(job.content),
            text=job.content,
            headers={"X-Entity-Ref-ID": recipient.user_id},
            tags=[
                {"name": "category", "value": "newsletter"},
                {"name": "generation", "value": job.generation_method.value},
            ],
        )

        if result.success:
            logger.info(f"[Email] Successfully sent to {recipient.email}, ID: {result.message_id}")
        else:
            logger.error(f"[Email] Send error for {recipient.email}: {result.error}")

        await self.delivery_log.record_delivery(
            DeliveryRecord(
                user_id=recipient.user_id,
                email_to=recipient.email,
                subject_line=job.subject,
                status="sent" if result.success else "failed",
                provider_message_id=result.message_id,
                error_message=None if result.success else (result.error or "Unknown error"),
                news_items_count=job.news_item_count,
                generation_method=job.generation_method,
                data_sources=job.data_sources,
                sent_at=self.clock() if result.success else None,
            )
        )
        if result.success:
            await self.delivery_log.mark_email_sent(recipient.user_id)
        return result

    async def send_test_email(self, email: str) -> EmailResult:
        """Send the fixed setup-confirmation email to ``email``."""
        body = _templates.get_template("test_email.html").render(next_steps=TEST_EMAIL_STEPS)
        return await self.client.send_email(
            to=email,
            subject=TEST_EMAIL_SUBJECT,
            html=body,
            tags=[{"name": "category", "value": "test"}],
            sender="SoulThread <newsletter@soulthread.app>",
        )


class DeliveryBatcher:
    """Fixed-window rate limiter over :class:`EmailService`.

    Recipients are split into batches of ``batch_size``. Sends inside a batch
    run concurrently, batches run one after another with ``delay`` seconds
    between them and none after the last.
    """

    def __init__(
        self,
        email_service: EmailService,
        batch_size: int = 10,
        delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.email_service = email_service
        self.batch_size = batch_size
        self.delay = delay
        self.sleep = sleep

    async def send_batch(
        self,
        recipients: Sequence[Recipient],
        jobs_by_user_id: Mapping[str, DeliveryJob],
    ) -> BatchResult:
        sent = 0
        errors: List[str] = []

        for start in range(0, len(recipients), self.batch_size):
            batch = recipients[start:start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self._deliver(recipient, jobs_by_user_id.get(recipient.user_id)) for recipient in batch)
            )
            for error in outcomes:
                if error is None:
                    sent += 1
                else:
                    errors.append(error)

            if start + self.batch_size < len(recipients):
                await self.sleep(self.delay)

        logger.info(f"[Email] Batch complete: {sent} sent, {len(errors)} failed")
        return BatchResult(sent=sent, failed=len(errors), errors=errors)

    async def _deliver(self, recipient: Recipient, job: Optional[DeliveryJob]) -> Optional[str]:
        """Send to one recipient; returns the error line or None on success."""
        if job is None:
            return f"No newsletter data for user {recipient.user_id}"
        try:
            result = await self.email_service.send_newsletter_email(recipient, job)
        except Exception as e:
            logger.error(f"[Email] Unexpected error sending to {recipient.email}: {e}")
            return f"{recipient.email}: {e}"
        if result.success:
            return None
        return f"{recipient.email}: {result.error}"
