"""
Prompt templates for the script/metadata package.

Used by: script_generation/metadata.py
"""

from dataclasses import dataclass


@dataclass
class PromptTemplate:
    """
    A prompt template with ``{placeholders}``. Literal JSON braces are doubled.

    Usage:
        template = PromptTemplate(template="Topic: {topic}", description="demo")
        result = template.format(topic="coffee")
    """
    template: str
    description: str = ""

    def format(self, **kwargs) -> str:
        return self.template.format(**kwargs)

    def __str__(self) -> str:
        return f"PromptTemplate({self.description})"


METADATA_SYSTEM_INSTRUCTION = (
    "You are a viral short-form video strategist. "
    "Reply with a single valid JSON object and nothing else."
)


METADATA_PACKAGE = PromptTemplate(
    template="""Write a {duration}-second vertical short-form video script for the attached image.

Topic: "{topic}"
Template style: {style}
{instructions}

Return JSON with exactly these keys:
{{
  "catchyTitles": ["A scroll-stopping title"],
  "hashtags": ["#viral", "#trending"],
  "description": "Main post caption.",
  "viralCaptions": [
    {{"style": "Curiosity", "text": "Most people get this step wrong..."}},
    {{"style": "Action", "text": "Try it today if you want a different result!"}}
  ],
  "visualPrompt": "Detailed cinematic motion description for animating the image.",
  "subtitles": [{{"text": "First spoken line", "start": 0, "end": 2.5}}],
  "scriptBeats": [{{"start": 0, "end": 2.5, "type": "HOOK", "description": "What happens"}}]
}}

Rules:
- subtitles are the narration, in order, covering about {duration} seconds; start < end, in seconds
- scriptBeats types are HOOK, BODY, PAYOFF or CTA
- visualPrompt describes camera and subject motion only, no on-screen text""",
    description="Script, captions and social metadata for one source image",
)


def build_metadata_prompt(topic: str, style: str, duration: int, instructions: str = "") -> str:
    extra = f"Specific instructions: {instructions}" if instructions.strip() else ""
    return METADATA_PACKAGE.format(
        topic=topic,
        style=style,
        duration=duration,
        instructions=extra,
    )
