"""Command line interface for the SoulThread newsletter pipeline."""

import asyncio
import json
import logging
import sys

import click

# Pipeline modules are imported inside the commands so that ``cli`` stays
# importable (and ``--help`` stays fast) without touching settings or the
# network.

logger = logging.getLogger(__name__)


def _exit_on_error(ctx: click.Context, message: str) -> None:
    logger.error(message)
    if ctx.obj.get("debug"):
        raise
    sys.exit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """SoulThread newsletter CLI.

    Aggregates news from live providers, writes a newsletter in the user's
    voice and delivers scheduled newsletters by email.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=log_level, force=True)
    logger.debug("Debug mode enabled")


@cli.command()
@click.option("--user-id", default="cli-user", show_default=True, help="User whose voice profile is used")
@click.option("--topic", default=None, help="Only keep items mentioning this topic")
@click.option("--mock", is_flag=True, help="Use the curated dataset instead of live providers")
@click.option("--template", "use_template", is_flag=True, help="Force template generation")
@click.option("--stream", is_flag=True, help="Stream AI output as it is produced")
@click.option("--enhanced", is_flag=True, help="Generate the sectioned digest instead")
@click.option("--json", "as_json", is_flag=True, help="Print the full JSON envelope")
@click.pass_context
def generate(
    ctx: click.Context,
    user_id: str,
    topic: str,
    mock: bool,
    use_template: bool,
    stream: bool,
    enhanced: bool,
    as_json: bool,
) -> None:
    """Generate one newsletter and print it."""

    async def _generate():
        from soulthread.core.errors import InvalidRequestError, NoContentAvailableError
        from soulthread.core.newsletter import NewsletterService
        from soulthread.core.orchestrator import StreamingGeneration
        from soulthread.models.content import GenerationRequest
        from soulthread.models.settings import Settings

        settings = Settings(debug=ctx.obj.get("debug", False))
        service = NewsletterService(settings)
        logger.info("Starting newsletter generation...")

        try:
            if enhanced:
                result = await service.orchestrator.generate_enhanced_draft(
                    user_id, topic=topic, use_real_time_data=not mock
                )
            else:
                request = GenerationRequest(
                    user_id=user_id,
                    topic=topic,
                    use_real_time_data=not mock,
                    use_template=use_template,
                    stream=stream,
                )
                result = await service.orchestrator.generate(request)

            if isinstance(result, StreamingGeneration):
                async for chunk in result.chunks:
                    click.echo(chunk.decode("utf-8"), nl=False)
                click.echo()
                logger.info(f"✅ Streamed newsletter from {result.news_item_count} items")
                return

            if as_json:
                click.echo(json.dumps(result.to_response(), indent=2, ensure_ascii=False))
            else:
                click.echo(result.content)
            method = "AI" if result.ai_generated else "template"
            logger.info(
                f"✅ Generated {method} newsletter from {result.news_item_count} "
                f"{result.data_source.value} items ({result.outcome.value})"
            )
        except InvalidRequestError as e:
            _exit_on_error(ctx, f"❌ Invalid request: {e}")
        except NoContentAvailableError as e:
            _exit_on_error(ctx, f"❌ No content available: {e}")
        except Exception as e:
            _exit_on_error(ctx, f"❌ Unexpected newsletter generation error: {e}")

    asyncio.run(_generate())


@cli.command("send-scheduled")
@click.option("--hour", type=click.IntRange(0, 23), default=None, help="UTC hour to send for (default: now)")
@click.pass_context
def send_scheduled(ctx: click.Context, hour: int) -> None:
    """Run the hourly scheduled delivery once."""
    from soulthread.core.newsletter import NewsletterService
    from soulthread.models.settings import Settings

    settings = Settings(debug=ctx.obj.get("debug", False))
    service = NewsletterService(settings)
    summary = asyncio.run(service.scheduled_job.run(hour=hour))
    click.echo(json.dumps(summary, indent=2))
    if not summary.get("success"):
        sys.exit(1)


@cli.command("fetch-news")
@click.option("--topic", default=None, help="Only keep items mentioning this topic")
@click.option("--perplexity", is_flag=True, help="Ask Perplexity instead of the aggregate providers")
@click.option("--count", default=5, show_default=True, help="Items requested from Perplexity")
@click.option("--trending", is_flag=True, help="List trending topics instead of news items")
def fetch_news(topic: str, perplexity: bool, count: int, trending: bool) -> None:
    """Fetch and list news items without generating anything."""
    from soulthread.core.aggregator import NewsAggregator
    from soulthread.core.utils import filter_by_topic
    from soulthread.models.settings import Settings

    aggregator = NewsAggregator(Settings())

    if trending:
        topics = asyncio.run(aggregator.fetch_trending_topics(topic or "technology"))
        click.echo(f"\n🔥 Trending topics ({len(topics)}):\n")
        for i, name in enumerate(topics, 1):
            click.echo(f"  {i}. {name}")
        return

    if perplexity:
        items = asyncio.run(aggregator.fetch_perplexity_news(topic or "technology", count))
    else:
        items = asyncio.run(aggregator.fetch_all_news_sources()).all_sources
        if topic:
            items = filter_by_topic(items, topic)

    click.echo(f"\n📰 {len(items)} news items:\n")
    for i, item in enumerate(items, 1):
        click.echo(f"  {i}. {item.title}")
        if item.source:
            click.echo(f"     Source: {item.source}")
        if item.url:
            click.echo(f"     {item.url}")


@cli.command("test-email")
@click.argument("email")
def test_email(email: str) -> None:
    """Send the setup confirmation email to EMAIL."""
    from soulthread.core.newsletter import NewsletterService
    from soulthread.models.settings import Settings

    service = NewsletterService(Settings())
    result = asyncio.run(service.email_service.send_test_email(email))
    if result.success:
        click.echo(f"✅ Test email sent to {email} (ID: {result.message_id})")
    else:
        click.echo(f"❌ Failed to send test email: {result.error}")
        sys.exit(1)


@cli.command()
def health() -> None:
    """Check system health and configuration."""
    from soulthread.core.newsletter import NewsletterService
    from soulthread.models.settings import Settings

    settings = Settings()
    logger.info("🔍 Checking system health...")
    logger.info("📋 Configuration:")
    logger.info(f"   - Debug mode: {settings.debug}")
    logger.info(f"   - Log level: {settings.log_level}")

    status = NewsletterService(settings).service_status()
    logger.info("🔑 Service status:")
    for service_name, available in status.items():
        logger.info(f"   - {service_name}: {'✅' if available else '❌'}")

    if not status["curated_dataset"]:
        logger.warning("⚠️  Curated dataset is empty - generation can fail when providers are down")
    elif not status["openai"]:
        logger.info("🔧 No AI key configured - newsletters will use templates")
    else:
        logger.info("✅ System healthy - all critical components configured")


@cli.command()
def config() -> None:
    """Show current configuration (without secrets)."""
    from soulthread.models.settings import Settings

    settings = Settings()
    click.echo("\n📋 SoulThread Configuration\n")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"Log Level: {settings.log_level}")

    click.echo("\n🔑 API Keys:")
    api_keys = {
        "OpenAI": settings.openai_api_key,
        "News API": settings.news_api_key,
        "Perplexity": settings.perplexity_api_key,
        "Resend": settings.resend_api_key,
        "Supabase": settings.supabase_service_key,
        "Cron secret": settings.cron_secret,
    }
    for service, key in api_keys.items():
        click.echo(f"  {service}: {'✅ Configured' if key else '❌ Missing'}")

    click.echo("\n📡 Content Sources:")
    click.echo(f"  Model: {settings.openai_model}")
    click.echo(f"  News API category: {settings.news_api_category}")
    click.echo(f"  Subreddit: r/{settings.reddit_subreddit}")
    click.echo(f"  GitHub language: {settings.github_language}")
    click.echo(f"  Items per source: {settings.news_items_per_source}")

    click.echo("\n📧 Delivery:")
    click.echo(f"  Sender: {settings.email_from}")
    click.echo(f"  Batch size: {settings.email_batch_size}")
    click.echo(f"  Batch delay: {settings.email_batch_delay}s")


if __name__ == "__main__":
    cli()
