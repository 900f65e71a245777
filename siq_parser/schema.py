"""
Schema Adapter
==============
Extracts the ordered content items of a question slot from either of the
two content shapes found in packages:

    modern:  <params><param name="question|answer"><item type="..."/>...
    legacy:  <scenario><atom type="..."/>...        (question slot only)

Each slot decodes into one variant of a tagged union, so callers never
probe optional fields themselves. Also holds the namespace-agnostic XML
helpers shared by the other stages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union
from xml.etree.ElementTree import Element

from .models import ContentItem, ContentKind, Slot

logger = logging.getLogger(__name__)


# ─── XML Helpers ──────────────────────────────────────────────────────────────


def local_name(tag) -> str:
    """Tag without its {namespace} prefix."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def children(elem: Optional[Element], tag: str) -> list[Element]:
    """Direct children with the given local name."""
    if elem is None:
        return []
    return [c for c in elem if local_name(c.tag) == tag]


def child(elem: Optional[Element], tag: str) -> Optional[Element]:
    """First direct child with the given local name."""
    if elem is None:
        return None
    for c in elem:
        if local_name(c.tag) == tag:
            return c
    return None


def path(elem: Optional[Element], *tags: str) -> list[Element]:
    """Follow a chain of child tags; the last tag may match many."""
    nodes = [elem] if elem is not None else []
    for tag in tags:
        nodes = [c for n in nodes for c in children(n, tag)]
    return nodes


def get_text(elem: Optional[Element], default: str = "") -> str:
    """Own text of an element, trimmed."""
    if elem is not None and elem.text:
        return elem.text.strip()
    return default


def params_of(elem: Optional[Element]) -> list[Element]:
    """<param> children of an element's <params> collection."""
    return path(elem, "params", "param")


def find_param(params: list[Element], name: str) -> Optional[Element]:
    for p in params:
        if p.get("name") == name:
            return p
    return None


# ─── Content Shapes ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ModernContent:
    """Items of a params entry named after the slot."""
    items: list[ContentItem] = field(default_factory=list)


@dataclass(frozen=True)
class LegacyContent:
    """Atoms of a scenario (question slot only)."""
    items: list[ContentItem] = field(default_factory=list)


@dataclass(frozen=True)
class NoContent:
    """Neither shape present; the slot is empty."""
    items: list[ContentItem] = field(default_factory=list)


SlotContent = Union[ModernContent, LegacyContent, NoContent]


def _content_items(nodes: list[Element]) -> Iterator[ContentItem]:
    for node in nodes:
        raw_kind = (node.get("type") or "text").strip().lower()
        try:
            kind = ContentKind(raw_kind)
        except ValueError:
            logger.debug(f"Skipping content item of kind {raw_kind!r}")
            continue
        yield ContentItem(kind=kind, value=get_text(node))


def decode_slot(question: Element, slot: Slot) -> SlotContent:
    """
    Decode one slot of a question element.

    Modern params are probed first; the legacy scenario is a fallback for
    the question slot only.
    """
    param = find_param(params_of(question), slot.value)
    if param is not None:
        items = children(param, "item")
        if items:
            return ModernContent(list(_content_items(items)))

    if slot is Slot.QUESTION:
        atoms = path(question, "scenario", "atom")
        if atoms:
            return LegacyContent(list(_content_items(atoms)))

    return NoContent()


def extract_content_items(question: Element, slot: Slot) -> list[ContentItem]:
    """Ordered content items of a slot; empty when the slot has no content."""
    return decode_slot(question, slot).items
