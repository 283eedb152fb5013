"""
Prompt builders for every Gemini operation.

Each builder is a pure function of its inputs and returns a ``Prompt``:
the instruction text, optional inline images, and the response settings
(JSON MIME type, tools) the call needs. Nothing here talks to the network.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .bilingual import LANGUAGE_NAMES, BilingualText, other_language, primary_language
from .models.report import ContextSettings, GenerationMode, ReportDraft, TripEntry
from .services.gemini_client import Part, inline_image_part, text_part

JSON_MIME_TYPE = "application/json"

SECTION_NAMES = {
    "title": "report title and subtitle",
    "executiveSummary": "executive summary",
    "conclusion": "conclusion",
    "entryTitle": "short headline for a single entry",
}

REPORT_INTERFACE = """{
  "title": { "en": string, "zh": string },
  "subtitle": { "en": string, "zh": string },
  "executiveSummary": { "en": string, "zh": string },
  "keyTakeaways": [ { "en": string, "zh": string } ],
  "highlights": [
    {
      "title": { "en": string, "zh": string },
      "description": { "en": string, "zh": string },
      "location": { "en": string, "zh": string },
      "relatedEntryId": string
    }
  ],
  "conclusion": { "en": string, "zh": string }
}"""


@dataclass(frozen=True)
class Prompt:
    """Everything needed for one generateContent call."""
    text: str
    images: List[str] = field(default_factory=list)
    response_mime_type: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    image_config: Optional[Dict[str, Any]] = None
    wants_image: bool = False

    @property
    def expects_json(self) -> bool:
        return self.response_mime_type == JSON_MIME_TYPE

    def contents(self) -> List[Part]:
        """Images first, then the instruction text."""
        parts = [inline_image_part(img) for img in self.images]
        parts.append(text_part(self.text))
        return parts


def language_name(language: str) -> str:
    return LANGUAGE_NAMES[primary_language(language)]


def _bullets(items: List[str]) -> str:
    cleaned = [item.strip() for item in items if item and item.strip()]
    if not cleaned:
        return "- N/A"
    return "\n".join(f"- {item}" for item in cleaned)


def context_block(settings: ContextSettings) -> str:
    """Shared brand/context preamble used by the writing prompts."""
    lines = []
    if settings.persona:
        lines.append(f"You are: {settings.persona}")
    if settings.tone:
        lines.append(f"Tone: {settings.tone}")
    if settings.brand_name:
        lines.append(f"Brand: {settings.brand_name}")
    if settings.brand_location:
        lines.append(f"Location: {settings.brand_location}")
    lines.append("Event context:\n" + _bullets(settings.event_contexts))
    lines.append(f"Strategic themes: {settings.key_themes or 'N/A'}")
    if settings.reference_content:
        lines.append(f"Reference material:\n{settings.reference_content}")
    if settings.reference_style:
        lines.append(f"Reference writing style:\n{settings.reference_style}")
    return "\n".join(lines)


def _entry_block(entry: TripEntry, index: int) -> str:
    return (
        f"Entry {index + 1} (ID: {entry.id}):\n"
        f"- User Note: {entry.note or 'N/A'}\n"
        f"- Visual Analysis: {entry.ai_caption or 'N/A'}\n"
        f"- PR Copy Draft: {entry.ai_copy or 'N/A'}\n"
        f"- AI Title: {entry.ai_title or 'N/A'}"
    )


def entries_block(entries: List[TripEntry]) -> str:
    if not entries:
        return "(no entries)"
    return "\n\n".join(_entry_block(e, i) for i, e in enumerate(entries))


# ---------------------------------------------------------------------------
# Context settings
# ---------------------------------------------------------------------------

def build_url_analysis_prompt(url: str, language: str) -> Prompt:
    text = (
        f"Search for this URL or topic: {url}\n"
        f"Analyse what it says and how it is written. Output the analysis in {language_name(language)}.\n\n"
        "Return JSON only, in this exact shape:\n"
        '{ "content": "summary of the facts", "style": "description of the writing style", '
        '"suggestedContexts": ["short event context line", ...], "suggestedThemes": "comma separated themes" }'
    )
    # Search grounding cannot be combined with a JSON MIME type, so the shape
    # is requested in the text only.
    return Prompt(text=text, tools=[{"google_search": {}}])


def build_refine_contexts_prompt(settings: ContextSettings, language: str) -> Prompt:
    text = (
        "Refine these event context notes for a PR team: make each one concise, factual "
        "and self-contained. Merge duplicates, keep every distinct fact.\n\n"
        f"Contexts:\n{_bullets(settings.event_contexts)}\n\n"
        f"Strategic themes: {settings.key_themes or 'N/A'}\n"
        f"Write in {language_name(language)}.\n"
        "Return a JSON array of strings only."
    )
    return Prompt(text=text, response_mime_type=JSON_MIME_TYPE)


def build_refine_themes_prompt(settings: ContextSettings, language: str) -> Prompt:
    text = (
        "Refine the strategic themes for an event PR report into one short, comma separated line.\n\n"
        f"Current themes: {settings.key_themes or 'N/A'}\n"
        f"Context:\n{_bullets(settings.event_contexts)}\n\n"
        f"Write in {language_name(language)}. Return plain text only, no quotes or commentary."
    )
    return Prompt(text=text)


# ---------------------------------------------------------------------------
# Per-entry operations
# ---------------------------------------------------------------------------

def build_caption_prompt(images: List[str], language: str, settings: ContextSettings) -> Prompt:
    text = (
        "Describe these images factually: people, setting, signage, activity and mood. "
        "Do not speculate about names you cannot read. "
        f"Write in {language_name(language)}. Plain text only."
    )
    if settings.brand_name:
        text += f"\nThe photos were taken at events related to {settings.brand_name}."
    return Prompt(text=text, images=list(images))


def build_entry_copy_prompt(
    note: str,
    caption: str,
    language: str,
    settings: ContextSettings,
    title: Optional[str] = None,
) -> Prompt:
    text = (
        f"{context_block(settings)}\n\n"
        "Write persuasive, publication-ready PR copy (one or two paragraphs) for this moment.\n"
        f"Note from the team: {note or 'N/A'}\n"
        f"Visual analysis: {caption or 'N/A'}\n"
        f"Title: {title or 'N/A'}\n\n"
        f"Write in {language_name(language)}. Return the copy only."
    )
    return Prompt(text=text)


def build_entry_image_prompt(description: str, settings: ContextSettings) -> Prompt:
    text = f"Generate a realistic event photo: {description}"
    if settings.brand_location:
        text += f"\nSetting: {settings.brand_location}."
    return Prompt(text=text, image_config={"aspectRatio": "16:9"}, wants_image=True)


def build_section_draft_prompt(
    section: str,
    entries: List[TripEntry],
    language: str,
    settings: ContextSettings,
) -> Prompt:
    """
    Free-text draft for one report section.

    For ``title`` the model is asked to answer with ``TITLE:`` and
    ``SUBTITLE:`` lines; see ``parsing.parse_title_response``.
    """
    if section not in SECTION_NAMES:
        raise ValueError(f"Unknown section: {section}")

    if section == "title":
        instruction = (
            "Write a compelling report title and a one-sentence subtitle.\n"
            "Answer in exactly two lines:\nTITLE: <title>\nSUBTITLE: <subtitle>"
        )
    elif section == "entryTitle":
        instruction = "Write one short, punchy headline (max 12 words). Return the headline only."
    elif section == "executiveSummary":
        instruction = "Write an executive summary of one or two paragraphs. Return the text only."
    else:
        instruction = "Write a forward-looking conclusion of one paragraph. Return the text only."

    text = (
        f"{context_block(settings)}\n\n"
        f"TASK: Draft the {SECTION_NAMES[section]} of a PR report.\n\n"
        f"SOURCE MATERIAL:\n{entries_block(entries)}\n\n"
        f"{instruction}\nWrite in {language_name(language)}."
    )
    return Prompt(text=text)


# ---------------------------------------------------------------------------
# Full report synthesis
# ---------------------------------------------------------------------------

def build_creative_report_prompt(
    entries: List[TripEntry],
    language: str,
    settings: ContextSettings,
    draft: Optional[ReportDraft] = None,
) -> Prompt:
    primary = language_name(language)
    secondary = LANGUAGE_NAMES[other_language(language)]
    draft = draft or ReportDraft()

    text = f"""{context_block(settings)}

**TASK: CREATIVE REPORT GENERATION**
Synthesize the inputs to produce a high-quality PR report.

**SOURCE MATERIAL:**
{entries_block(entries)}

**Draft Content (Reference):**
Title: {json.dumps(draft.title.to_dict(), ensure_ascii=False)}
Subtitle: {json.dumps(draft.subtitle.to_dict(), ensure_ascii=False)}
Summary: {json.dumps(draft.executive_summary.to_dict(), ensure_ascii=False)}
Conclusion: {json.dumps(draft.conclusion.to_dict(), ensure_ascii=False)}

**Requirements:**
1. Create exactly one "highlight" for EVERY entry, in the order given ({len(entries)} entries, {len(entries)} highlights).
2. Copy each entry's ID into "relatedEntryId" of its highlight.
3. LANGUAGE RULE:
   - Write the content PRIMARILY in {primary}.
   - You MUST also provide a {secondary} translation for every text field
     (title, subtitle, summary, highlights, takeaways, conclusion).
   - The output must be fully bilingual.
4. Use the draft content as a reference only; improve on it.

**Output Format:**
Strict JSON only, matching this interface:
{REPORT_INTERFACE}
"""
    return Prompt(text=text, response_mime_type=JSON_MIME_TYPE)


def _source_text(value: BilingualText, source: str) -> Dict[str, str]:
    text = value.get(source)
    return {source: text} if text else {}


def build_translation_payload(
    entries: List[TripEntry],
    draft: Optional[ReportDraft],
    mode: GenerationMode,
) -> Dict[str, Any]:
    """
    Source-language fields that exist in the draft and entries.

    Empty fields are left out so the model cannot "translate" them into
    invented content; per-entry title/description come from aiTitle/aiCopy.
    """
    source = mode.source_language
    if source is None:
        raise ValueError("Translation payload requires a translation mode")
    draft = draft or ReportDraft()

    return {
        "title": _source_text(draft.title, source),
        "subtitle": _source_text(draft.subtitle, source),
        "executiveSummary": _source_text(draft.executive_summary, source),
        "conclusion": _source_text(draft.conclusion, source),
        "keyTakeaways": [
            _source_text(k, source) for k in draft.key_takeaways if k.get(source)
        ],
        "highlights": [
            {
                "id": e.id,
                "title": {source: e.ai_title} if e.ai_title else {},
                "description": {source: e.ai_copy} if e.ai_copy else {},
            }
            for e in entries
        ],
    }


def build_translation_prompt(payload: Dict[str, Any], mode: GenerationMode) -> Prompt:
    source = mode.source_language
    target = mode.target_language
    text = f"""**TASK: STRICT JSON TRANSLATION**
You are a professional bilingual PR translator.

**INPUT:**
{json.dumps(payload, ensure_ascii=False)}

**INSTRUCTIONS:**
1. Translate ALL fields from "{source}" (Source, {LANGUAGE_NAMES[source]}) to "{target}" (Target, {LANGUAGE_NAMES[target]}).
2. DO NOT change the Source content. Keep it exactly as is, byte for byte.
3. DO NOT generate new content. Only translate what is provided.
4. If a field is missing in Source, leave Target empty. The only exception is "title": if it is missing you may infer it from context.
5. Return the exact same JSON structure (keep "id" on every highlight, same order), with both "en" and "zh" keys filled for every text field.

**OUTPUT FORMAT:**
Strict JSON only, matching this interface:
{REPORT_INTERFACE}
"""
    return Prompt(text=text, response_mime_type=JSON_MIME_TYPE)
