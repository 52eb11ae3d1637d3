"""AI newsletter generation over a chat completions provider."""

import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from soulthread.clients.openai_chat import OpenAIChatClient
from soulthread.core.errors import AIGenerationError
from soulthread.models.content import NewsItem, VoiceProfile

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_LINE = "Weekly Newsletter Update"
GENERATION_TEMPERATURE = 0.7
GENERATION_MAX_TOKENS = 2000

TONE_INSTRUCTIONS = {
    "casual": "Use a casual, conversational tone with emojis and informal language. Be friendly and approachable.",
    "professional": "Use a professional, authoritative tone. Be clear, concise, and business-focused.",
    "friendly": "Use a warm, friendly tone. Be encouraging and supportive while remaining informative.",
    "authoritative": "Use an authoritative, expert tone. Be confident and decisive in your analysis.",
}

ENHANCEMENT_PROMPTS = {
    "summarize": "Summarize this content while maintaining key information and insights.",
    "expand": "Expand this content with additional context, examples, and insights.",
    "tone_adjust": "Adjust the tone of this content to be {tone} while maintaining the core message.",
    "fact_check": "Review this content for accuracy and suggest any corrections or clarifications needed.",
}


class AIGenerator:
    """Builds prompts from a voice profile and items and calls the provider.

    The generator either returns content or raises
    :class:`AIGenerationError`. It never falls back to another method;
    that decision belongs to the orchestrator.
    """

    def __init__(self, client: OpenAIChatClient, stream_model: Optional[str] = None, helper_model: Optional[str] = None):
        self.client = client
        self.stream_model = stream_model
        self.helper_model = helper_model

    @property
    def available(self) -> bool:
        return self.client.configured

    async def generate_newsletter(
        self,
        voice_profile: Optional[VoiceProfile],
        items: Sequence[NewsItem],
        template: Optional[str] = None,
    ) -> str:
        """Generate a complete newsletter in one blocking call.

        Raises:
            AIGenerationError: On missing credentials or any provider failure.
        """
        messages = self.build_messages(voice_profile, items, template)
        logger.info(
            f"Calling AI provider (system prompt {len(messages[0]['content'])} chars, "
            f"user prompt {len(messages[1]['content'])} chars)"
        )
        content = await self.client.complete(
            messages, temperature=GENERATION_TEMPERATURE, max_tokens=GENERATION_MAX_TOKENS
        )
        logger.info("AI provider response received")
        return content

    async def generate_newsletter_stream(
        self,
        voice_profile: Optional[VoiceProfile],
        items: Sequence[NewsItem],
        template: Optional[str] = None,
    ) -> AsyncIterator[bytes]:
        """Yield UTF-8 encoded chunks as the provider produces them.

        Raises:
            AIGenerationError: Before the first chunk if credentials are
                missing, or mid-stream if the provider fails.
        """
        if not self.client.configured:
            raise AIGenerationError("OpenAI API key not configured")

        messages = self.build_messages(voice_profile, items, template)
        async for delta in self.client.stream(
            messages,
            model=self.stream_model,
            temperature=GENERATION_TEMPERATURE,
            max_tokens=GENERATION_MAX_TOKENS,
        ):
            yield delta.encode("utf-8")

    async def generate_subject_line(self, content: str, voice_profile: Optional[VoiceProfile]) -> str:
        """Best-effort subject line; falls back to a fixed default."""
        if not self.client.configured:
            return DEFAULT_SUBJECT_LINE

        tone = (voice_profile or VoiceProfile()).tone
        messages = [
            {
                "role": "system",
                "content": f"""You are an expert email marketer. Create compelling, click-worthy subject lines for newsletters.

Guidelines:
- Keep under 50 characters
- Use action words and emotional triggers
- Match the tone: {tone}
- Include relevant emojis sparingly
- Create urgency or curiosity
- Avoid spam trigger words
- Make it personal and engaging""",
            },
            {
                "role": "user",
                "content": f"Create a subject line for this newsletter content:\n\n{content[:500]}...",
            },
        ]
        try:
            subject = await self.client.complete(
                messages, model=self.helper_model, temperature=0.8, max_tokens=100
            )
        except AIGenerationError as e:
            logger.error(f"Subject line generation error: {e}")
            return DEFAULT_SUBJECT_LINE
        except Exception as e:
            logger.error(f"Unexpected subject line generation error: {e}")
            return DEFAULT_SUBJECT_LINE
        return subject.strip().strip('"') or DEFAULT_SUBJECT_LINE

    async def enhance_content(
        self,
        content: str,
        voice_profile: Optional[VoiceProfile],
        enhancement_type: str = "tone_adjust",
    ) -> str:
        """Rewrite ``content``; returns it unchanged on any failure."""
        if not self.client.configured:
            return content

        tone = (voice_profile or VoiceProfile()).tone
        instruction = ENHANCEMENT_PROMPTS.get(enhancement_type, ENHANCEMENT_PROMPTS["tone_adjust"])
        messages = [
            {
                "role": "system",
                "content": f"You are a content enhancement expert. {instruction.format(tone=tone)}",
            },
            {"role": "user", "content": content},
        ]
        try:
            return await self.client.complete(
                messages, model=self.helper_model, temperature=0.5, max_tokens=1000
            )
        except AIGenerationError as e:
            logger.error(f"Content enhancement error: {e}")
            return content
        except Exception as e:
            logger.error(f"Unexpected content enhancement error: {e}")
            return content

    def build_messages(
        self,
        voice_profile: Optional[VoiceProfile],
        items: Sequence[NewsItem],
        template: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.create_system_prompt(voice_profile)},
            {"role": "user", "content": self.create_user_prompt(items, template)},
        ]

    @staticmethod
    def create_system_prompt(voice_profile: Optional[VoiceProfile]) -> str:
        profile = voice_profile or VoiceProfile()
        style = TONE_INSTRUCTIONS[profile.known_tone]

        analysis_notes = ""
        if profile.analysis and profile.analysis.word_count:
            analysis = profile.analysis
            analysis_notes = (
                f"\nThe writer's own samples average {analysis.avg_sentence_length:.0f} words per "
                f"sentence with a {analysis.sentiment} sentiment"
            )
            if analysis.keywords:
                analysis_notes += f" and favour words like {', '.join(analysis.keywords)}"
            analysis_notes += ". Match that rhythm.\n"

        return f"""You are an expert newsletter writer creating personalized newsletters for {profile.topics} topics.

Your writing style should be: {style}
{analysis_notes}
Key requirements:
- Create engaging, well-structured newsletters
- Use markdown formatting for headers, bold text, and links
- Include relevant emojis and visual elements
- Write in a way that makes readers feel {profile.feeling}
- Keep paragraphs short and scannable
- Include clear calls-to-action
- Add personal commentary and insights
- Use the provided news items as source material
- Create compelling subject lines
- Maintain consistency with the user's voice profile

Newsletter structure:
1. Personalized greeting based on tone
2. Brief introduction/context
3. Main content sections with news items
4. Personal commentary/insights
5. Call-to-action
6. Personalized closing
7. Footer with metadata

Make the newsletter feel authentic and personal, as if written by someone who truly understands the {profile.topics} space."""

    @staticmethod
    def create_user_prompt(items: Sequence[NewsItem], template: Optional[str] = None) -> str:
        entries = []
        for number, item in enumerate(items, 1):
            lines = [f"{number}. **{item.title}**", f"   {item.summary}"]
            if item.url:
                lines.append(f"   Source: {item.url}")
            if item.source:
                lines.append(f"   From: {item.source}")
            entries.append("\n".join(lines))

        template_line = f"\nTemplate preference: {template}\n" if template else ""
        news_content = "\n\n".join(entries)
        return f"""Please create a newsletter using the following news items:

{news_content}
{template_line}
Requirements:
- Use all provided news items
- Create engaging section headers
- Add personal insights and commentary
- Include relevant links where provided
- Make it feel current and timely
- Ensure the content flows naturally
- Add appropriate emojis and formatting
- Keep the tone consistent throughout

Generate a complete newsletter that readers will find valuable and engaging."""
