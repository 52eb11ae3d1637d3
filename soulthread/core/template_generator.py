"""Template-based newsletter generation (no AI provider required)."""

import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from soulthread.core.utils import unique_sources
from soulthread.models.content import NewsItem, VoiceProfile

logger = logging.getLogger(__name__)

SECTION_EMOJIS = ["🔥", "💡", "🚀", "⚡", "🎯", "🌟", "💻", "🔮", "📊", "🎨"]

GREETINGS: Dict[str, List[str]] = {
    "casual": ["Hey there! 👋", "What's up! 🙌", "Hi friend! 😊"],
    "professional": ["Good day,", "Hello,", "Greetings,"],
    "friendly": ["Hello there! 😊", "Hi friend! 👋", "Hey! Hope you're doing well! 🌟"],
    "authoritative": ["Greetings,", "Good day,", "To our readers,"],
}

CLOSINGS: Dict[str, str] = {
    "casual": "Catch you later! ✌️\n\nYour friendly newsletter curator",
    "professional": "Best regards,\n\nYour Newsletter Team",
    "friendly": "Have a great day! 🌟\n\nWarm regards,\nYour Newsletter Friend",
    "authoritative": "Regards,\n\nThe Editorial Desk",
}

INTROS: Dict[str, str] = {
    "casual": (
        "Welcome to your personalized {topics} newsletter! I've rounded up the most "
        "interesting stories that'll keep you {feeling} and in-the-know. Let's dive in! 🚀"
    ),
    "professional": (
        "Welcome to this edition of your {topics} newsletter. I've curated the most "
        "relevant developments to keep you {feeling} about the latest industry trends."
    ),
    "friendly": (
        "I'm excited to share this week's {topics} highlights with you! I've handpicked "
        "these stories to help you feel {feeling} and stay ahead of the curve. 📚"
    ),
    "authoritative": (
        "This edition covers the developments in {topics} that matter most. Each story "
        "below was selected to keep you {feeling} and ahead of the market."
    ),
}

ITEM_COMMENTARIES: Dict[str, List[str]] = {
    "casual": [
        "**My take:** This is huge! This could really shake things up in the industry.",
        "**Quick thoughts:** Pretty interesting development here. Definitely worth keeping an eye on.",
        "**Why it matters:** This trend is picking up steam and could be a game-changer.",
    ],
    "professional": [
        "**Analysis:** This represents a significant development in the field that warrants attention.",
        "**Key takeaway:** Organizations should consider the implications of this trend.",
        "**Industry impact:** This development may influence strategic planning across the sector.",
    ],
    "friendly": [
        "**Here's what I think:** This is really exciting and could open up new possibilities!",
        "**My perspective:** I find this development particularly interesting because of its potential impact.",
        "**Worth noting:** This is something that could benefit many people in our community.",
    ],
    "authoritative": [
        "**Assessment:** Expect this to reshape priorities across the sector within the year.",
        "**Bottom line:** Leaders who ignore this shift will be playing catch-up.",
        "**Verdict:** A decisive signal of where the market is heading.",
    ],
}

SUMMARIES: Dict[str, str] = {
    "casual": """## 🤔 Final Thoughts

So there you have it - some pretty cool stuff happening in {topics}! The big theme I'm seeing here is rapid innovation and change. Whether you're a pro or just getting started, these trends are definitely worth following.

What do you think about these developments? Hit reply and let me know! I love hearing your thoughts. 💬""",
    "professional": """## 📈 Executive Summary

The developments highlighted in this newsletter underscore the continued evolution in {topics}. Key themes include technological advancement, market disruption, and emerging opportunities for strategic positioning.

**Recommended Actions:**
- Monitor these trends for potential organizational impact
- Consider strategic implications for your operations
- Stay informed on further developments in this space""",
    "friendly": """## 💭 My Personal Take

I've been following {topics} for a while now, and I have to say - these stories really show how fast things are moving! It's exciting to see all this innovation happening.

I hope you found these insights valuable. If any of these topics resonated with you, I'd love to hear about it! Feel free to reach out anytime. 😊""",
    "authoritative": """## 🧭 The Big Picture

Taken together, these stories confirm that {topics} is entering a decisive phase. The winners will be the organizations that move early, invest deliberately and measure results.

**What to do now:**
- Audit your exposure to these shifts
- Commit resources to the opportunities that fit your strategy
- Revisit these signals next edition""",
}

CALLS_TO_ACTION: Dict[str, str] = {
    "casual": """## 🎯 What's Next?

Want more content like this? Here's how to stay in the loop:
- ⭐ Share this newsletter with friends
- 💬 Reply with topics you'd like to see covered
- 🔔 Make sure you're subscribed for the next edition!""",
    "professional": """## 📬 Stay Connected

**Maximize your industry insights:**
- Forward this newsletter to colleagues who may benefit
- Provide feedback on topics of interest
- Subscribe for regular updates on industry developments""",
    "friendly": """## 💌 Let's Stay in Touch!

I'd love to hear from you! Here are some ways to connect:
- ✨ Share this with someone who might find it helpful
- 💭 Tell me what topics you'd like to explore next
- 🎉 Join our community for more great content!""",
    "authoritative": """## 📬 Next Steps

- Forward this briefing to your leadership team
- Reply with the developments you want analysed next
- Subscribe to receive every edition""",
}

ENHANCED_VOICE: Dict[str, Dict[str, str]] = {
    "casual": {
        "greeting": "Hey there! 👋",
        "closing": "Talk soon!",
        "take": "What do you think about these trends? I'd love to hear your take!",
    },
    "friendly": {
        "greeting": "Hi friend!",
        "closing": "Take care!",
        "take": "I hope this gives you some food for thought!",
    },
    "authoritative": {
        "greeting": "Greetings,",
        "closing": "Regards",
        "take": "These developments represent significant opportunities in the market.",
    },
    "professional": {
        "greeting": "Hello!",
        "closing": "Best regards",
        "take": "These developments represent significant opportunities in the market.",
    },
}


class PhraseSelector(ABC):
    """Chooses one phrase from a fixed set of alternatives."""

    @abstractmethod
    def choose(self, options: Sequence[str]) -> str:
        pass


class RandomPhraseSelector(PhraseSelector):
    """Uniform random choice; pass a seed for reproducible output."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def choose(self, options: Sequence[str]) -> str:
        return self._random.choice(list(options))


class FirstPhraseSelector(PhraseSelector):
    """Always the first option."""

    def choose(self, options: Sequence[str]) -> str:
        return options[0]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TemplateGenerator:
    """Assembles newsletters from fixed phrase sets, a voice profile and items.

    Pure string assembly: no network calls and no I/O. Phrase variety comes
    from the injected :class:`PhraseSelector` and timestamps from ``clock``,
    so a deterministic selector and a fixed clock give identical output for
    identical input.
    """

    def __init__(
        self,
        selector: Optional[PhraseSelector] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.selector = selector if selector is not None else RandomPhraseSelector()
        self.clock = clock

    def generate_newsletter(
        self, voice_profile: Optional[VoiceProfile], items: Sequence[NewsItem]
    ) -> str:
        """Render the full newsletter, or the empty-edition variant for no items."""
        if not items:
            return self.generate_empty_newsletter(voice_profile.topics if voice_profile else None)

        profile = voice_profile or VoiceProfile()
        tone = profile.known_tone

        main_topic = items[0].title.split(":")[0][:50]
        sections = [
            f"# 📰 {main_topic}",
            self.selector.choose(GREETINGS[tone]),
            INTROS[tone].format(topics=profile.topics, feeling=profile.feeling),
            "---",
            "\n\n".join(self._item_section(index, item, tone) for index, item in enumerate(items)),
            SUMMARIES[tone].format(topics=profile.topics),
            "---",
            CALLS_TO_ACTION[tone],
            CLOSINGS[tone],
            "---",
            self._footer(profile.topics, len(items)),
        ]
        return "\n\n".join(sections) + "\n"

    def _item_section(self, index: int, item: NewsItem, tone: str) -> str:
        lines = [
            f"## {SECTION_EMOJIS[index % len(SECTION_EMOJIS)]} {item.title}",
            "",
            item.summary,
            "",
            self.selector.choose(ITEM_COMMENTARIES[tone]),
        ]
        if item.url or item.source:
            lines.append("")
        if item.url:
            lines.append(f"**🔗 [Read the full story]({item.url})**")
        if item.source:
            lines.append(f"*Source: {item.source}*")
        return "\n".join(lines)

    def _footer(self, topics: str, count: int) -> str:
        return "\n".join(
            [
                "**📧 Newsletter Info**",
                f"- Generated: {self.clock().strftime('%Y-%m-%d %H:%M UTC')}",
                f"- Topics: {topics}",
                f"- Items: {count}",
                "- Powered by SoulThread 🧵",
                "",
                "*This newsletter was created based on your voice profile and latest trends.*",
            ]
        )

    def generate_quick_newsletter(self, items: Sequence[NewsItem], topic: Optional[str] = None) -> str:
        """Plain numbered digest without voice styling."""
        if not items:
            return self.generate_empty_newsletter(topic)

        entries = []
        for number, item in enumerate(items, 1):
            lines = [f"## {number}. {item.title}", "", item.summary]
            if item.url:
                lines += ["", f"[Read more]({item.url})"]
            if item.source:
                lines.append(f"*Source: {item.source}*")
            entries.append("\n".join(lines))

        return "\n\n".join(
            [
                f"# 📰 {topic or 'Latest Updates'}",
                "Hello!",
                "Here's your curated newsletter with the latest developments:",
                "\n\n---\n\n".join(entries),
                "---",
                "\n".join(
                    [
                        "**Newsletter Details**",
                        f"- Generated: {self.clock().strftime('%Y-%m-%d %H:%M UTC')}",
                        f"- Items: {len(items)}",
                        f"- Topic: {topic or 'General'}",
                    ]
                ),
                "*Powered by SoulThread 🧵*",
            ]
        ) + "\n"

    def generate_empty_newsletter(self, topic: Optional[str] = None) -> str:
        return f"""# 📰 {topic or 'Newsletter'}

Hello!

We couldn't find any news items for this edition, but here are some suggestions:

## 🔍 Try These Topics:
- AI and Machine Learning
- Technology Trends
- Business Innovation
- Startup News

## 💡 Tips:
1. Select a specific topic from the dropdown
2. Enable "Use Real-Time Data" to fetch live news
3. Try different topics to find interesting content

---

**Generated:** {self.clock().strftime('%Y-%m-%d %H:%M UTC')}

*Powered by SoulThread 🧵*
"""

    def generate_enhanced_newsletter(
        self, voice_profile: Optional[VoiceProfile], items: Sequence[NewsItem]
    ) -> str:
        """Sectioned digest grouping items by theme and provider."""
        if not items:
            return self.generate_empty_newsletter(voice_profile.topics if voice_profile else None)

        profile = voice_profile or VoiceProfile()
        voice = ENHANCED_VOICE[profile.known_tone]

        def title_has(item: NewsItem, *words: str) -> bool:
            title = item.title.lower()
            return any(word in title for word in words)

        tech = [i for i in items if title_has(i, "ai", "tech", "software") or i.source == "Hacker News"]
        business = [i for i in items if title_has(i, "business", "startup", "funding", "investment")]
        innovation = [
            i for i in items if title_has(i, "innovation", "breakthrough", "research") or i.source == "GitHub"
        ]

        parts = [
            f"{voice['greeting']}\n",
            f"Here's what's happening in the world of {profile.topics} this week:\n",
        ]
        for heading, group, limit in (
            ("## 🚀 Technology Highlights", tech, 3),
            ("## 💼 Business & Startups", business, 2),
            ("## 🔬 Innovation & Research", innovation, 2),
        ):
            if group:
                parts.append(f"{heading}\n")
                for number, item in enumerate(group[:limit], 1):
                    entry = f"**{number}. {item.title}**\n{item.summary}\n"
                    if item.url:
                        entry += f"[Read more]({item.url})\n"
                    parts.append(entry)

        parts.append("## 📈 Trending Topics\n")
        parts.append("\n".join(f"{n}. {item.title}" for n, item in enumerate(items[:5], 1)) + "\n")

        community = [i for i in items if i.source in ("Reddit", "Hacker News")][:3]
        if community:
            parts.append("## 💬 Community Highlights\n")
            for item in community:
                if item.score is not None:
                    engagement = f"{item.score} upvotes"
                elif item.comments is not None:
                    engagement = f"{item.comments} comments"
                else:
                    engagement = "trending"
                parts.append(f"**{item.title}**\n*{item.source}* - {engagement}\n")

        developer = [i for i in items if i.source == "GitHub"][:3]
        if developer:
            parts.append("## 👨‍💻 Developer Corner\n")
            for item in developer:
                details = [f"⭐ {item.stars} stars" if item.stars is not None else None, item.language]
                entry = f"**{item.title}**\n{item.summary}\n"
                if any(details):
                    entry += " | ".join(d for d in details if d) + "\n"
                parts.append(entry)

        parts.append("## 💭 My Take\n")
        parts.append(f"{voice['take']}\n")
        topics_lower = profile.topics.lower()
        if "ai" in topics_lower:
            parts.append(
                "The AI landscape continues to evolve rapidly, with new breakthroughs happening "
                "weekly. It's fascinating to see how these technologies are being applied across "
                "different industries.\n"
            )
        if "startup" in topics_lower:
            parts.append(
                "The startup ecosystem remains vibrant, with innovative solutions emerging to solve "
                "real-world problems. The funding landscape shows continued interest in disruptive "
                "technologies.\n"
            )

        parts.append(f"Stay {profile.feeling}! ✨\n")
        parts.append(f"{voice['closing']}\n")
        parts.append(
            "---\n"
            f"*This newsletter was generated on {self.clock().strftime('%Y-%m-%d')} "
            "using real-time data from multiple sources.*\n"
            f"*Sources: {', '.join(unique_sources(items))}*"
        )
        return "\n".join(parts)

