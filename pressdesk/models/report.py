"""
Report data models for pressdesk.

Wire format (JSON bundles, storage, HTTP API) uses camelCase keys; Python
attributes are snake_case. ``from_dict`` is lenient about missing keys so
that hand-edited or legacy bundles still load.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from ..bilingual import BilingualText, normalize_bilingual, normalize_bilingual_list


class GenerationMode(str, Enum):
    """How the report synthesizer treats its input."""
    CREATIVE = "creative"
    ZH_TO_EN = "zh_to_en"
    EN_TO_ZH = "en_to_zh"

    @property
    def is_translation(self) -> bool:
        return self is not GenerationMode.CREATIVE

    @property
    def source_language(self) -> Optional[str]:
        return {"zh_to_en": "zh", "en_to_zh": "en"}.get(self.value)

    @property
    def target_language(self) -> Optional[str]:
        return {"zh_to_en": "en", "en_to_zh": "zh"}.get(self.value)


_id_lock = threading.Lock()
_last_id = 0


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    """
    Time-based identifier, strictly increasing within the process.

    Two calls in the same millisecond still get distinct, ordered ids.
    """
    global _last_id
    with _id_lock:
        candidate = max(now_ms(), _last_id + 1)
        _last_id = candidate
        return str(candidate)


def _bilingual_dict(value: BilingualText) -> Dict[str, str]:
    return value.to_dict()


def _str_list(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [v for v in values if isinstance(v, str)]


@dataclass
class TripEntry:
    """One user-submitted note + photos unit."""

    id: str
    note: str = ""
    images: List[str] = field(default_factory=list)
    hero_image_indices: List[int] = field(default_factory=list)
    ai_caption: Optional[str] = None
    ai_copy: Optional[str] = None
    ai_title: Optional[str] = None
    timestamp: int = 0

    @classmethod
    def create(cls, note: str = "", images: Optional[List[str]] = None) -> TripEntry:
        """Create a new entry; a single image is automatically the hero."""
        images = list(images or [])
        return cls(
            id=new_id(),
            note=note,
            images=images,
            hero_image_indices=[0] if len(images) == 1 else [],
            timestamp=now_ms(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TripEntry:
        """Create TripEntry from dictionary."""
        hero = data.get("heroImageIndices") or []
        return cls(
            id=str(data.get("id") or new_id()),
            note=data.get("note") or "",
            images=_str_list(data.get("images")),
            hero_image_indices=[i for i in hero if isinstance(i, int)],
            ai_caption=data.get("aiCaption"),
            ai_copy=data.get("aiCopy"),
            ai_title=data.get("aiTitle"),
            timestamp=int(data.get("timestamp") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert TripEntry to dictionary."""
        result: Dict[str, Any] = {
            "id": self.id,
            "images": list(self.images),
            "heroImageIndices": list(self.hero_image_indices),
            "note": self.note,
            "timestamp": self.timestamp,
        }
        if self.ai_caption is not None:
            result["aiCaption"] = self.ai_caption
        if self.ai_copy is not None:
            result["aiCopy"] = self.ai_copy
        if self.ai_title is not None:
            result["aiTitle"] = self.ai_title
        return result

    def effective_hero_indices(self) -> List[int]:
        """Hero indices, with a lone image always featured."""
        if len(self.images) == 1:
            return [0]
        return [i for i in self.hero_image_indices if 0 <= i < len(self.images)]

    def with_images_added(self, new_images: List[str]) -> TripEntry:
        images = self.images + [img for img in new_images if img]
        hero = [0] if len(images) == 1 else list(self.hero_image_indices)
        return replace(self, images=images, hero_image_indices=hero)

    def with_image_removed(self, index: int) -> TripEntry:
        """Drop one image and shift hero indices that pointed past it."""
        if not 0 <= index < len(self.images):
            return self
        images = [img for i, img in enumerate(self.images) if i != index]
        hero: List[int] = []
        for current in self.hero_image_indices:
            if current == index:
                continue
            hero.append(current - 1 if current > index else current)
        if len(images) == 1:
            hero = [0]
        return replace(self, images=images, hero_image_indices=hero)

    def with_hero_toggled(self, index: int) -> TripEntry:
        if index in self.hero_image_indices:
            hero = [i for i in self.hero_image_indices if i != index]
        else:
            hero = self.hero_image_indices + [index]
        return replace(self, hero_image_indices=hero)


@dataclass
class ContextSettings:
    """Process-wide brand, tone and event context passed into every prompt."""

    persona: str = ""
    tone: str = ""
    event_contexts: List[str] = field(default_factory=list)
    key_themes: str = ""
    reference_urls: List[str] = field(default_factory=list)
    reference_content: str = ""
    reference_style: str = ""
    brand_logo: str = ""
    brand_name: str = ""
    brand_location: str = ""
    author_name: str = ""
    author_role: str = ""
    website_url: str = ""
    twitter_url: str = ""
    telegram_url: str = ""

    # camelCase wire key -> attribute
    FIELD_MAP = {
        "persona": "persona",
        "tone": "tone",
        "eventContexts": "event_contexts",
        "keyThemes": "key_themes",
        "referenceUrls": "reference_urls",
        "referenceContent": "reference_content",
        "referenceStyle": "reference_style",
        "brandLogo": "brand_logo",
        "brandName": "brand_name",
        "brandLocation": "brand_location",
        "authorName": "author_name",
        "authorRole": "author_role",
        "websiteUrl": "website_url",
        "twitterUrl": "twitter_url",
        "telegramUrl": "telegram_url",
    }

    LIST_FIELDS = frozenset({"event_contexts", "reference_urls"})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ContextSettings:
        return cls().merged(data)

    def merged(self, data: Dict[str, Any]) -> ContextSettings:
        """
        Return a copy with the known keys of ``data`` applied on top.

        Unknown keys are ignored, which is what settings import relies on.
        """
        changes: Dict[str, Any] = {}
        for wire_key, attr in self.FIELD_MAP.items():
            if wire_key not in data:
                continue
            value = data[wire_key]
            if attr in self.LIST_FIELDS:
                changes[attr] = _str_list(value)
            else:
                changes[attr] = value if isinstance(value, str) else ""
        return replace(self, **changes)

    def to_dict(self, keys: Optional[List[str]] = None) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for wire_key, attr in self.FIELD_MAP.items():
            if keys is not None and wire_key not in keys:
                continue
            value = getattr(self, attr)
            result[wire_key] = list(value) if attr in self.LIST_FIELDS else value
        return result


@dataclass
class ReportDraft:
    """Editable bilingual skeleton of a report."""

    title: BilingualText = field(default_factory=BilingualText)
    subtitle: BilingualText = field(default_factory=BilingualText)
    executive_summary: BilingualText = field(default_factory=BilingualText)
    key_takeaways: List[BilingualText] = field(default_factory=list)
    conclusion: BilingualText = field(default_factory=BilingualText)

    SECTION_KEYS = {
        "title": "title",
        "subtitle": "subtitle",
        "executiveSummary": "executive_summary",
        "conclusion": "conclusion",
    }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> ReportDraft:
        data = data or {}
        return cls(
            title=normalize_bilingual(data.get("title")),
            subtitle=normalize_bilingual(data.get("subtitle")),
            executive_summary=normalize_bilingual(data.get("executiveSummary")),
            key_takeaways=normalize_bilingual_list(data.get("keyTakeaways")),
            conclusion=normalize_bilingual(data.get("conclusion")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": _bilingual_dict(self.title),
            "subtitle": _bilingual_dict(self.subtitle),
            "executiveSummary": _bilingual_dict(self.executive_summary),
            "keyTakeaways": [_bilingual_dict(k) for k in self.key_takeaways],
            "conclusion": _bilingual_dict(self.conclusion),
        }

    def draft_only(self) -> ReportDraft:
        """Strip any report-only fields, keeping the five draft sections."""
        return ReportDraft(
            title=self.title,
            subtitle=self.subtitle,
            executive_summary=self.executive_summary,
            key_takeaways=list(self.key_takeaways),
            conclusion=self.conclusion,
        )


@dataclass
class Highlight:
    """The report-side rendering of one entry."""

    title: BilingualText = field(default_factory=BilingualText)
    description: BilingualText = field(default_factory=BilingualText)
    location: BilingualText = field(default_factory=BilingualText)
    related_entry_id: Optional[str] = None
    embedded_images: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Highlight:
        related = data.get("relatedEntryId")
        embedded = data.get("embeddedImages")
        return cls(
            title=normalize_bilingual(data.get("title")),
            description=normalize_bilingual(data.get("description")),
            location=normalize_bilingual(data.get("location")),
            related_entry_id=str(related) if related not in (None, "") else None,
            embedded_images=_str_list(embedded) if embedded is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "title": _bilingual_dict(self.title),
            "description": _bilingual_dict(self.description),
            "location": _bilingual_dict(self.location),
        }
        if self.related_entry_id is not None:
            result["relatedEntryId"] = self.related_entry_id
        if self.embedded_images is not None:
            result["embeddedImages"] = list(self.embedded_images)
        return result


@dataclass
class GeneratedReport(ReportDraft):
    """A draft plus one highlight per entry."""

    highlights: List[Highlight] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> GeneratedReport:
        data = data or {}
        draft = ReportDraft.from_dict(data)
        highlights = data.get("highlights")
        return cls(
            title=draft.title,
            subtitle=draft.subtitle,
            executive_summary=draft.executive_summary,
            key_takeaways=draft.key_takeaways,
            conclusion=draft.conclusion,
            highlights=[
                Highlight.from_dict(h) for h in (highlights if isinstance(highlights, list) else [])
                if isinstance(h, dict)
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["highlights"] = [h.to_dict() for h in self.highlights]
        return result


@dataclass
class PublishedReport(GeneratedReport):
    """A generated report frozen for the public gallery."""

    id: str = ""
    publish_date: int = 0
    cover_image: Optional[str] = None
    author_name: Optional[str] = None
    author_role: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> PublishedReport:
        data = data or {}
        base = GeneratedReport.from_dict(data)
        return cls(
            title=base.title,
            subtitle=base.subtitle,
            executive_summary=base.executive_summary,
            key_takeaways=base.key_takeaways,
            conclusion=base.conclusion,
            highlights=base.highlights,
            id=str(data.get("id") or ""),
            publish_date=int(data.get("publishDate") or 0),
            cover_image=data.get("coverImage") or None,
            author_name=data.get("authorName"),
            author_role=data.get("authorRole"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["id"] = self.id
        result["publishDate"] = self.publish_date
        if self.cover_image:
            result["coverImage"] = self.cover_image
        if self.author_name is not None:
            result["authorName"] = self.author_name
        if self.author_role is not None:
            result["authorRole"] = self.author_role
        return result

    def summary(self) -> Dict[str, Any]:
        """Gallery listing entry without the embedded image payloads."""
        return {
            "id": self.id,
            "publishDate": self.publish_date,
            "title": _bilingual_dict(self.title),
            "subtitle": _bilingual_dict(self.subtitle),
            "coverImage": self.cover_image,
            "authorName": self.author_name,
            "authorRole": self.author_role,
        }
