"""Tests for email rendering, per-recipient sends and batching."""

from unittest.mock import AsyncMock

import pytest

from soulthread.clients.resend import ResendClient
from soulthread.core.delivery import (
    TEST_EMAIL_SUBJECT,
    DeliveryBatcher,
    EmailService,
    markdown_body_to_html,
    markdown_to_html,
)
from soulthread.core.stores import InMemoryStore
from soulthread.models.content import DeliveryJob, EmailResult, GenerationMethod, Recipient


def _recipients(count):
    return [Recipient(user_id=f"u{n}", email=f"u{n}@example.com") for n in range(1, count + 1)]


def _job(subject="📰 News"):
    return DeliveryJob(subject=subject, content="# Hi", news_item_count=3, generation_method=GenerationMethod.AI, data_sources=["reddit"])


@pytest.fixture
def resend():
    client = ResendClient("re_test")
    client.send_email = AsyncMock(return_value=EmailResult(success=True, message_id="msg-1"))
    return client


@pytest.fixture
def delivery_log():
    return InMemoryStore()


@pytest.fixture
def email_service(resend, delivery_log, fixed_clock):
    return EmailService(resend, delivery_log, clock=fixed_clock)


class TestMarkdownToHtml:
    def test_block_elements(self):
        html = markdown_body_to_html("# Title\n\n## Section\n\nLine one\nLine two\n\n- a\n- b\n\n---")
        assert html.split("\n") == [
            "<h1>Title</h1>",
            "<h2>Section</h2>",
            "<p>Line one<br>Line two</p>",
            "<ul><li>a</li><li>b</li></ul>",
            "<hr>",
        ]

    def test_inline_elements(self):
        html = markdown_body_to_html("**🔗 [Read the full story](https://x.example/a?b=1)** and *Source: Wired*")
        assert '<strong>🔗 <a href="https://x.example/a?b=1">Read the full story</a></strong>' in html
        assert "<em>Source: Wired</em>" in html

    def test_text_is_escaped(self):
        assert "&lt;script&gt;" in markdown_body_to_html("<script>alert(1)</script>")

    def test_document_wrapper(self):
        document = markdown_to_html("# Hello", unsubscribe_url="https://u.example")
        assert document.startswith("<!DOCTYPE html>")
        assert "<h1>Hello</h1>" in document
        assert 'href="https://u.example">Unsubscribe' in document
        assert "Email Preferences" not in document


class TestEmailService:
    @pytest.mark.asyncio
    async def test_successful_send_is_logged(self, email_service, resend, delivery_log, fixed_clock):
        recipient = Recipient(user_id="u1", email="u1@example.com")
        result = await email_service.send_newsletter_email(recipient, _job())

        assert result.success
        kwargs = resend.send_email.await_args.kwargs
        assert kwargs["to"] == "u1@example.com"
        assert kwargs["text"] == "# Hi"
        assert "<h1>Hi</h1>" in kwargs["html"]
        assert kwargs["headers"] == {"X-Entity-Ref-ID": "u1"}
        assert {"name": "generation", "value": "ai"} in kwargs["tags"]

        record = delivery_log.deliveries[0]
        assert record.status == "sent"
        assert record.provider_message_id == "msg-1"
        assert record.sent_at == fixed_clock()
        assert record.news_items_count == 3
        assert "u1" in delivery_log.last_sent

    @pytest.mark.asyncio
    async def test_failed_send_is_logged(self, email_service, resend, delivery_log):
        resend.send_email.return_value = EmailResult(success=False, error="Resend error 422: invalid to")
        result = await email_service.send_newsletter_email(Recipient(user_id="u1", email="bad"), _job())

        assert not result.success
        record = delivery_log.deliveries[0]
        assert record.status == "failed"
        assert record.error_message == "Resend error 422: invalid to"
        assert record.sent_at is None
        assert delivery_log.last_sent == {}

    @pytest.mark.asyncio
    async def test_unconfigured_service(self, delivery_log):
        service = EmailService(ResendClient(None), delivery_log)
        result = await service.send_newsletter_email(Recipient(user_id="u1", email="a@b.c"), _job())
        assert result.error == "Email service not configured"
        assert delivery_log.deliveries == []

    @pytest.mark.asyncio
    async def test_test_email(self, email_service, resend):
        await email_service.send_test_email("me@example.com")
        kwargs = resend.send_email.await_args.kwargs
        assert kwargs["subject"] == TEST_EMAIL_SUBJECT
        assert "✅ Choose your favorite topics" in kwargs["html"]
        assert kwargs["tags"] == [{"name": "category", "value": "test"}]


class TestDeliveryBatcher:
    @pytest.mark.asyncio
    async def test_missing_job_counts_as_failure(self, email_service):
        recipients = _recipients(3)
        jobs = {"u1": _job(), "u3": _job()}
        result = await DeliveryBatcher(email_service, sleep=AsyncMock()).send_batch(recipients, jobs)
        assert result.sent == 2
        assert result.failed == 1
        assert result.errors == ["No newsletter data for user u2"]

    @pytest.mark.asyncio
    async def test_send_failures_are_recorded_with_email(self, email_service, resend):
        resend.send_email.side_effect = [
            EmailResult(success=True, message_id="1"),
            EmailResult(success=False, error="rate limited"),
        ]
        recipients = _recipients(2)
        result = await DeliveryBatcher(email_service, sleep=AsyncMock()).send_batch(
            recipients, {r.user_id: _job() for r in recipients}
        )
        assert result.sent == 1
        assert result.errors == ["u2@example.com: rate limited"]

    @pytest.mark.asyncio
    async def test_exceptions_never_abort_the_batch(self, email_service):
        email_service.send_newsletter_email = AsyncMock(side_effect=[RuntimeError("socket closed"), EmailResult(success=True)])
        recipients = _recipients(2)
        result = await DeliveryBatcher(email_service, sleep=AsyncMock()).send_batch(
            recipients, {r.user_id: _job() for r in recipients}
        )
        assert result.sent + result.failed == 2
        assert result.errors == ["u1@example.com: socket closed"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,batch_size,sleeps", [(0, 10, 0), (10, 10, 0), (11, 10, 1), (25, 10, 2), (5, 2, 2)])
    async def test_delay_only_between_batches(self, email_service, count, batch_size, sleeps):
        sleep = AsyncMock()
        recipients = _recipients(count)
        jobs = {r.user_id: _job() for r in recipients[::2]}
        result = await DeliveryBatcher(email_service, batch_size=batch_size, delay=1.0, sleep=sleep).send_batch(recipients, jobs)
        assert sleep.await_count == sleeps
        if sleeps:
            sleep.assert_awaited_with(1.0)
        assert result.sent + result.failed == count
        assert result.sent == len(jobs)

    @pytest.mark.asyncio
    async def test_batches_run_sequentially(self, email_service):
        events = []

        async def send(recipient, job):
            events.append(recipient.user_id)
            return EmailResult(success=True)

        async def sleep(delay):
            events.append("sleep")

        email_service.send_newsletter_email = send
        recipients = _recipients(4)
        await DeliveryBatcher(email_service, batch_size=2, sleep=sleep).send_batch(
            recipients, {r.user_id: _job() for r in recipients}
        )
        assert events == ["u1", "u2", "sleep", "u3", "u4"]

    def test_rejects_empty_batches(self, email_service):
        with pytest.raises(ValueError):
            DeliveryBatcher(email_service, batch_size=0)
