"""
Whole-text reference discovery.

Scans the raw OCR text of an order form for catalog references that the
structured extraction missed. Confidence decreases pass by pass, so the
engine stops at the first pass that finds anything:

1. strict            - verbatim, look-alike variant, or edit distance <= 1
2. anchor-reference  - tolerance 2, the reference's own leading digits appear in the text
3. anchor-prefix     - tolerance 2, a 7/6/5-char reference prefix equals a text anchor
4. anchor-substring  - tolerance 2, the reference contains a text anchor
5. rescue            - tolerance 2, no anchor, first `scan_budget` catalog entries only

An anchor is a maximal run of at least 5 digits in the normalized text.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set

import Levenshtein

from recon import config
from recon.catalog.index import CatalogIndex
from recon.catalog.normalize import normalize_text
from recon.catalog.reference_matcher import generate_confusable_variants
from recon.models import CatalogEntry

logger = logging.getLogger(__name__)

MIN_ANCHOR_LENGTH = 5
ANCHOR_PREFIX_LENGTHS = (7, 6, 5)
TRACE_SAMPLE_SIZE = 15

_DIGIT_RUN = re.compile(r'\d+')
_LEADING_DIGITS = re.compile(r'^(\d{6,})')


def extract_anchors(normalized_text: str) -> Set[str]:
    """All maximal digit runs of length >= 5."""
    return {run for run in _DIGIT_RUN.findall(normalized_text) if len(run) >= MIN_ANCHOR_LENGTH}


def reference_anchor(reference: str) -> Optional[str]:
    """First 6 digits of a leading run of 6+, else the longest digit run."""
    leading = _LEADING_DIGITS.match(reference)
    if leading:
        return leading.group(1)[:6]
    runs = _DIGIT_RUN.findall(reference)
    longest = max(runs, key=len) if runs else ''
    return longest if len(longest) >= MIN_ANCHOR_LENGTH else None


def is_mentioned(reference: str, normalized_text: str, tolerance: int) -> bool:
    """True if reference appears in the text verbatim, as a look-alike, or within `tolerance` edits."""
    if reference in normalized_text:
        return True

    for variant in generate_confusable_variants(reference):
        if variant in normalized_text:
            return True

    length = len(reference)
    text_length = len(normalized_text)
    for start in range(0, text_length - (length - 1) + 1):
        for width in (length - 1, length, length + 1):
            if width <= 0 or start + width > text_length:
                continue
            window = normalized_text[start:start + width]
            if Levenshtein.distance(window, reference, score_cutoff=tolerance) <= tolerance:
                return True
    return False


@dataclass
class DiscoveryContext:
    normalized_text: str
    anchors: Set[str]
    scan_budget: int


@dataclass(frozen=True)
class DiscoveryPass:
    """One discovery strategy: which catalog entries to try, and how tolerant to be."""

    name: str
    tolerance: int
    select: Callable[[DiscoveryContext, List[CatalogEntry]], Iterable[CatalogEntry]]

    def run(self, context: DiscoveryContext, entries: List[CatalogEntry]) -> List[str]:
        found = []
        for entry in self.select(context, entries):
            if is_mentioned(entry.reference, context.normalized_text, self.tolerance):
                found.append(entry.reference)
        return found


def _all_entries(context, entries):
    return entries


def _anchor_from_reference(context, entries):
    for entry in entries:
        anchor = reference_anchor(entry.reference)
        if anchor and anchor in context.normalized_text:
            yield entry


def _prefix_from_text(context, entries):
    if not context.anchors:
        return
    for entry in entries:
        reference = entry.reference
        if any(
            len(reference) >= size and reference[:size] in context.anchors
            for size in ANCHOR_PREFIX_LENGTHS
        ):
            yield entry


def _substring_from_text(context, entries):
    if not context.anchors:
        return
    for entry in entries:
        if any(anchor in entry.reference for anchor in context.anchors):
            yield entry


def _rescue(context, entries):
    return entries[:context.scan_budget]


DEFAULT_PASSES = (
    DiscoveryPass('strict<=1', 1, _all_entries),
    DiscoveryPass('anchor-reference<=2', 2, _anchor_from_reference),
    DiscoveryPass('anchor-prefix<=2', 2, _prefix_from_text),
    DiscoveryPass('anchor-substring<=2', 2, _substring_from_text),
    DiscoveryPass('rescue<=2', 2, _rescue),
)


@dataclass
class PassTrace:
    name: str
    count: int
    references: List[str]


@dataclass
class DiscoveryTrace:
    """What each pass saw and found, for debugging noisy scans."""

    normalized_length: int = 0
    anchors: List[str] = field(default_factory=list)
    passes: List[PassTrace] = field(default_factory=list)
    found: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'normalized_length': self.normalized_length,
            'anchors': self.anchors,
            'passes': [
                {'pass': p.name, 'count': p.count, 'references': p.references}
                for p in self.passes
            ],
            'found': self.found,
        }


class TextDiscoveryEngine:
    """Finds catalog references mentioned anywhere in raw OCR text."""

    def __init__(
        self,
        index: CatalogIndex,
        passes: Iterable[DiscoveryPass] = DEFAULT_PASSES,
        scan_budget: Optional[int] = None,
    ):
        self.index = index
        self.passes = tuple(passes)
        self.scan_budget = config.DISCOVERY_SCAN_BUDGET if scan_budget is None else scan_budget

    def discover(self, raw_text: Optional[str]) -> Set[str]:
        return set(self.explain(raw_text).found)

    def explain(self, raw_text: Optional[str]) -> DiscoveryTrace:
        trace = DiscoveryTrace()
        normalized = normalize_text(raw_text)
        if not normalized:
            return trace

        entries = self.index.entries
        context = DiscoveryContext(
            normalized_text=normalized,
            anchors=extract_anchors(normalized),
            scan_budget=self.scan_budget,
        )
        trace.normalized_length = len(normalized)
        trace.anchors = sorted(context.anchors)

        for discovery_pass in self.passes:
            found = discovery_pass.run(context, entries)
            trace.passes.append(PassTrace(discovery_pass.name, len(found), found[:TRACE_SAMPLE_SIZE]))
            logger.debug(f"Discovery pass {discovery_pass.name}: {len(found)} reference(s)")
            if found:
                trace.found = sorted(set(found))
                logger.info(f"Discovered {len(trace.found)} reference(s) in text via {discovery_pass.name}")
                break

        return trace
