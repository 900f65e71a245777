"""
Special-Type Classifier and Answer-Options Extractor
====================================================
Maps a question's declared type name to a special marker with host-facing
rule text, and expands "select" questions into their answer options.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from xml.etree.ElementTree import Element

from .models import SpecialType
from .schema import child, children, find_param, get_text, params_of

logger = logging.getLogger(__name__)

BET_DESCRIPTION = "Question with a stake"
AUCTION_DESCRIPTION = "Auction question"
SECRET_DESCRIPTION = "Secret question"

SECRET_MODES = {
    "exceptCurrent": f"{SECRET_DESCRIPTION} (give to another player)",
    "current": f"{SECRET_DESCRIPTION} (play it yourself)",
    "any": f"{SECRET_DESCRIPTION} (player's choice)",
}


@dataclass(frozen=True)
class SpecialInfo:
    """Result of special-type classification."""
    special_type: Optional[SpecialType] = None
    description: Optional[str] = None


def _declared_type(question: Element) -> tuple[str, Optional[Element]]:
    """
    Declared type name and the node that carries its params.

    A nested <type name="..."> element wins; legacy packages put the name
    in a type attribute of the question itself.
    """
    type_elem = child(question, "type")
    if type_elem is not None:
        name = type_elem.get("name") or get_text(type_elem)
        return name, type_elem
    if question.get("type"):
        return question.get("type"), question
    return "", None


def _type_params(source: Element) -> list[Element]:
    return children(source, "param") + params_of(source)


def classify_special(question: Element) -> SpecialInfo:
    """Special marker and description for a question element."""
    type_name, source = _declared_type(question)
    if not type_name or source is None:
        return SpecialInfo()

    name = type_name.strip().lower()
    params = _type_params(source)

    if name in ("bagcat", "cat"):
        theme = get_text(find_param(params, "theme")) or source.get("theme", "")
        cost = get_text(find_param(params, "cost")) or source.get("cost", "")
        return SpecialInfo(SpecialType.CAT, f"Theme: {theme}, Cost: {cost}")

    if name == "sponsored":
        return SpecialInfo(SpecialType.BET, BET_DESCRIPTION)

    if name == "secret":
        mode = get_text(find_param(params, "selectionMode"))
        return SpecialInfo(
            SpecialType.SPECIAL,
            SECRET_MODES.get(mode, SECRET_DESCRIPTION),
        )

    if name == "stake":
        return SpecialInfo(SpecialType.AUCTION, AUCTION_DESCRIPTION)

    if name != "simple":
        logger.debug(f"Unknown question type {type_name!r}, treated as ordinary")
    return SpecialInfo()


# ─── Select Questions ─────────────────────────────────────────────────────────


def is_select_question(question: Element) -> bool:
    """True when the answerType param equals "select"."""
    param = find_param(params_of(question), "answerType")
    return get_text(param) == "select"


def extract_answer_options(question: Element) -> list[str]:
    """
    "{key}: {text}" strings from the answerOptions group, in order.

    Option text is read from the option param itself or, failing that,
    from its first nested item.
    """
    group = find_param(params_of(question), "answerOptions")
    if group is None or group.get("type") != "group":
        return []

    options = []
    for opt in children(group, "param"):
        text = get_text(opt)
        if not text:
            items = children(opt, "item")
            if items:
                text = get_text(items[0])
        options.append(f"{opt.get('name', '')}: {text}")
    return options
