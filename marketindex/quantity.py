"""Quantity extraction from free-text variant descriptions.

Sellers describe variants however they like ("5 1g nasha", "3 oz gorilla
cookies", "1 jar 3.5g blue cookies", "10 x 25mg gummies"). This module turns
such text into a normalized (qty, unit) pair using an ordered cascade of
rules; the first rule that matches wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, NamedTuple

from .models import ParsedQuantity

COUNT_LABELS = {
    "pack": "pk",
    "packs": "pk",
    "pk": "pk",
    "pks": "pk",
    "pc": "pc",
    "pcs": "pc",
    "pieces": "pc",
    "tab": "tab",
    "tabs": "tab",
    "tablet": "tab",
    "tablets": "tab",
    "capsule": "cap",
    "capsules": "cap",
    "gummy": "gummy",
    "gummies": "gummy",
    "bottle": "bottle",
    "bottles": "bottle",
    "jar": "jar",
    "jars": "jar",
    "bar": "bar",
    "bars": "bar",
    "chew": "chew",
    "chews": "chew",
    "square": "square",
    "squares": "square",
    "star": "star",
    "stars": "star",
    "preroll": "joint",
    "prerolls": "joint",
    "pre-roll": "joint",
    "pre-rolls": "joint",
    "joint": "joint",
    "joints": "joint",
    "roll": "joint",
    "rolls": "joint",
    "item": "item",
    "items": "item",
    "x": "x",
    "×": "x",
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "z": "oz",
}

# Checked in order; the first keyword found decides the unit.
IMPLICIT_UNIT_PATTERNS = (
    (re.compile(r"\bpack(s)?\b"), "pk"),
    (re.compile(r"\bbottle(s)?\b"), "bottle"),
    (re.compile(r"\bjar(s)?\b"), "jar"),
    (re.compile(r"\bgumm(y|ies)\b"), "gummy"),
    (re.compile(r"\btablet(s)?\b|\btab(s)?\b"), "tab"),
    (re.compile(r"\bcapsule(s)?\b"), "cap"),
    (re.compile(r"\bpreroll(s)?\b|\bpre-roll(s)?\b|\bjoint(s)?\b|\broll(s)?\b"), "joint"),
    (re.compile(r"\bbar(s)?\b"), "bar"),
    (re.compile(r"\bchew(s)?\b"), "chew"),
    (re.compile(r"\bsquare(s)?\b"), "square"),
    (re.compile(r"\bstar(s)?\b"), "star"),
    (re.compile(r"\bcart(s|ridge|ridges)?\b"), "cart"),
    (re.compile(r"\bpod(s)?\b"), "pod"),
    (re.compile(r"\bpen(s)?\b"), "pen"),
)


class _OuncePattern(NamedTuple):
    regex: re.Pattern
    multiplier: float | None = None
    grams: float | None = None


# 1 oz is priced as 28 g throughout the catalog.
OUNCE_PATTERNS = (
    _OuncePattern(re.compile(r"(?<![\d/])\b(\d+(?:\.\d+)?)\s*(?:oz|ounce|ounces)\b"), multiplier=28),
    _OuncePattern(re.compile(r"(?<![\d/])\b(\d+(?:\.\d+)?)\s*z\b"), multiplier=28),
    _OuncePattern(re.compile(r"\beighth\b|⅛|\b1/8\s*(?:oz)?\b"), grams=3.5),
    _OuncePattern(re.compile(r"\bquarter\b|¼|\b1/4\s*(?:oz)?\b"), grams=7),
    _OuncePattern(re.compile(r"\bhalf\s*(?:oz|ounce)?\b|½\s*(?:oz)?\b|\b1/2\s*(?:oz)?\b"), grams=14),
    _OuncePattern(re.compile(r"\bzip\b"), grams=28),
)


@dataclass(frozen=True)
class WeightBreakpoint:
    grams: float
    tolerance: float
    label: str


WEIGHT_BREAKPOINTS = (
    WeightBreakpoint(1, 0.2, "1g"),
    WeightBreakpoint(3.5, 0.3, "3.5g"),
    WeightBreakpoint(7, 0.5, "7g"),
    WeightBreakpoint(14, 1.0, "14g"),
    WeightBreakpoint(28, 2.0, "28g (1oz)"),
    WeightBreakpoint(50, 3.0, "50g"),
    WeightBreakpoint(100, 5.0, "100g"),
)

GRAM_BASED_CATEGORIES = ("Flower", "Hash", "Concentrates")

_NUMBER = r"\d+(?:\.\d+)?"
_GRAM_LABELS = frozenset({"g", "gram", "grams"})
_KILO_LABELS = frozenset({"kg", "kilogram", "kilograms", "kilo", "kilos"})
_MILLIGRAM_LABELS = frozenset({"mg", "milligram", "milligrams"})
_MILLILITER_LABELS = frozenset({"ml", "milliliter", "milliliters"})
_DOSAGE_LABELS = r"mg|milligram|milligrams|g|gram|grams|kg|kilogram|kilograms|kilo|kilos|ml|milliliter|milliliters"

_MULTIPACK_GRAMS_RE = re.compile(
    rf"^(\d+)\s+(?:x\s*)?({_NUMBER})\s*g\b|^(\d+)\s*x\s*({_NUMBER})\s*g\b"
)
_UNIT_THEN_GRAMS_RE = re.compile(
    rf"^(\d+)\s*(?:jar|jars|pack|packs|pk|pks|bag|bags|pot|pots|tub|tubs|box|boxes)\s+({_NUMBER})\s*g\b"
)
_LEADING_DOSAGE_RE = re.compile(rf"^({_NUMBER})\s*({_DOSAGE_LABELS})\b")
_TOKEN_RE = re.compile(
    rf"({_NUMBER})(?:\s*({_DOSAGE_LABELS}|oz|ounce|ounces|z|pc|pcs|pieces|x|×|item|items"
    r"|gummy|gummies|bottle|bottles|pack|packs|pk|pks|capsule|capsules|tab|tabs|tablet|tablets"
    r"|bar|bars|chew|chews|square|squares|star|stars|jar|jars|preroll|prerolls|pre-roll|pre-rolls"
    r"|joint|joints|roll|rolls|cart|carts|cartridge|cartridges|pod|pods|pen|pens)\b)?"
)
_EDIBLE_LIKE_RE = re.compile(
    r"(choc|chocolate|edible|gummy|gummies|brownie|bar|cookie|cookies|biscuit|biscoff|oreo|crunch"
    r"|lindor|hershey|strawberry)"
)
_CHOCOLATE_LIKE_RE = re.compile(
    r"(choc|chocolate|biscoff|oreo|lindor|hershey|crunch|terry|milk chocolate|white chocolate|dark chocolate)"
)
_ITEM_WORD_RE = re.compile(
    r"\b(item|items|pcs|pieces|tabs|capsules|tablet|tablets|gummy|gummies|bar|bars|chew|chews"
    r"|square|squares|stars|jars|preroll|prerolls|pre-roll|pre-rolls|joint|joints)\b"
)


class _Count(NamedTuple):
    num: float
    label: str | None
    canonical: str | None
    pos: int


class _Dosage(NamedTuple):
    num: float
    unit: str
    pos: int


def normalize_count_label(label: str | None) -> str | None:
    """Fold a packaging label to its canonical short form ('tablets' -> 'tab')."""
    if not label:
        return None
    return COUNT_LABELS.get(label, label)


def detect_implicit_unit(text: str) -> str | None:
    """Infer a packaging unit from keywords anywhere in the text."""
    for regex, unit in IMPLICIT_UNIT_PATTERNS:
        if regex.search(text):
            return unit
    return None


def _implicit_or_bar(text: str) -> str | None:
    if unit := detect_implicit_unit(text):
        return unit
    return "bar" if _CHOCOLATE_LIKE_RE.search(text) else None


def _match_ounce_phrase(d: str) -> ParsedQuantity | None:
    for pattern in OUNCE_PATTERNS:
        if not (match := pattern.regex.search(d)):
            continue
        if pattern.grams is not None:
            return ParsedQuantity(pattern.grams, "g")
        return ParsedQuantity(float(match.group(1)) * pattern.multiplier, "g")
    return None


def _match_multipack_grams(d: str) -> ParsedQuantity | None:
    # Requires a space or an explicit x between the numbers so "14g" is not 1 x 4g.
    if not (match := _MULTIPACK_GRAMS_RE.search(d)):
        return None
    count = float(match.group(1) or match.group(3))
    grams = float(match.group(2) or match.group(4))
    if count > 0 and grams > 0:
        return ParsedQuantity(count * grams, "g")
    return None


def _match_unit_then_grams(d: str) -> ParsedQuantity | None:
    if match := _UNIT_THEN_GRAMS_RE.search(d):
        return ParsedQuantity(float(match.group(2)), "g")
    return None


def _match_leading_dosage(d: str) -> ParsedQuantity | None:
    if not (match := _LEADING_DOSAGE_RE.search(d)):
        return None
    num = float(match.group(1))
    label = match.group(2)
    if label in _GRAM_LABELS:
        return ParsedQuantity(num, "g")
    if label in _KILO_LABELS:
        return ParsedQuantity(num * 1000, "g")
    if label in _MILLILITER_LABELS:
        return ParsedQuantity(num, "ml")
    # mg on an edible is potency per piece, not the sold quantity.
    if label in _MILLIGRAM_LABELS and not _EDIBLE_LIKE_RE.search(d):
        return ParsedQuantity(num, "mg")
    return None


def _tokenize(d: str) -> tuple[list[_Count], list[_Dosage]]:
    counts: list[_Count] = []
    dosages: list[_Dosage] = []
    for match in _TOKEN_RE.finditer(d):
        num = float(match.group(1))
        label = match.group(2)
        pos = match.start()
        if not label:
            counts.append(_Count(num, None, None, pos))
        elif label in _MILLIGRAM_LABELS:
            dosages.append(_Dosage(num, "mg", pos))
        elif label in _GRAM_LABELS:
            dosages.append(_Dosage(num, "g", pos))
        elif label in _KILO_LABELS:
            dosages.append(_Dosage(num, "kg", pos))
        elif label in _MILLILITER_LABELS:
            dosages.append(_Dosage(num, "ml", pos))
        else:
            counts.append(_Count(num, label, normalize_count_label(label), pos))
    return counts, dosages


def _resolve_tokens(d: str) -> ParsedQuantity | None:
    counts, dosages = _tokenize(d)
    labeled = [c for c in counts if c.label]
    unlabeled = [c for c in counts if not c.label]

    # "2 3.5g" style: a bare count before the only gram figure multiplies it.
    if len(dosages) == 1 and dosages[0].unit == "g" and unlabeled:
        if before := next((c for c in unlabeled if c.pos < dosages[0].pos), None):
            return ParsedQuantity(before.num * dosages[0].num, "g")

    if gram := next((dz for dz in dosages if dz.unit == "g"), None):
        return ParsedQuantity(gram.num, "g")

    multipliers = [c for c in labeled if c.canonical == "x"]
    if multipliers and dosages:
        mult = multipliers[0].num
        dosage = dosages[0]
        if dosage.unit == "kg":
            return ParsedQuantity(mult * dosage.num * 1000, "g")
        return ParsedQuantity(mult * dosage.num, dosage.unit)

    if labeled:
        return ParsedQuantity(labeled[0].num, labeled[0].canonical or "item")

    if dosages:
        dosage = dosages[0]
        if dosage.unit == "kg":
            return ParsedQuantity(dosage.num * 1000, "g")
        if dosage.unit == "mg" and _EDIBLE_LIKE_RE.search(d):
            return ParsedQuantity(1, _implicit_or_bar(d) or "item")
        return ParsedQuantity(dosage.num, dosage.unit)

    if unlabeled:
        return ParsedQuantity(unlabeled[0].num, _implicit_or_bar(d) or "item")

    return None


def _match_item_words(d: str) -> ParsedQuantity | None:
    if _ITEM_WORD_RE.search(d):
        return ParsedQuantity(1, detect_implicit_unit(d) or "item")
    return None


_RULES: tuple[Callable[[str], ParsedQuantity | None], ...] = (
    _match_ounce_phrase,
    _match_multipack_grams,
    _match_unit_then_grams,
    _match_leading_dosage,
    _resolve_tokens,
    _match_item_words,
)


def parse_quantity(description: str | None) -> ParsedQuantity | None:
    """Parse a variant description into a quantity and unit.

    Handles formats like:
    - "3 oz gorilla cookies" -> 84 g
    - "1 eighth blue dream" -> 3.5 g
    - "5 1g nasha" / "5 x 1g" -> 5 g
    - "1 jar 3.5g blue cookies" -> 3.5 g
    - "14 g 3 pm cut off" -> 14 g
    - "10 x 25mg gummies" -> 250 mg
    - "2 items" -> 2 item

    Returns None when nothing confident can be extracted.
    """
    if not isinstance(description, str):
        return None

    d = description.lower().strip()
    if not d:
        return None

    for rule in _RULES:
        if (parsed := rule(d)) is not None:
            return parsed if parsed.qty > 0 else None
    return None


def match_weight_breakpoint(grams: float | None) -> float | None:
    """Snap a gram quantity to a standard catalog weight, or None if none is close enough."""
    if isinstance(grams, bool) or not isinstance(grams, (int, float)):
        return None
    for bp in WEIGHT_BREAKPOINTS:
        if abs(grams - bp.grams) <= bp.tolerance:
            return bp.grams
    return None


def is_gram_based_category(category: str | None) -> bool:
    """Whether price-per-gram math applies to a product category."""
    return category in GRAM_BASED_CATEGORIES
