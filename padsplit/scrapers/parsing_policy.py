"""
Text-parsing policy for the per-zip market insights page.

The rendered dashboard text is free-form, so every rule that depends on the
site's wording lives here as data: the section locator, one pattern per
ZipRecord field, and the no-data / zero-active classification heuristics.
Bump ``version`` whenever a rule changes so exports can be traced to the
policy that produced them.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from padsplit import config
from padsplit.utils.numbers import parse_int

NUMBER = r"(\d[\d,]*)"


@dataclass(frozen=True)
class FieldPattern:
    """pattern -> ZipRecord field -> transform of the first capture group."""

    field: str
    pattern: re.Pattern
    transform: Callable[[Optional[str]], Optional[int]] = parse_int

    def extract(self, text: str) -> Optional[int]:
        match = self.pattern.search(text)
        if not match:
            return None
        return self.transform(match.group(1))


def _rule(field_name: str, regex: str) -> FieldPattern:
    return FieldPattern(field=field_name, pattern=re.compile(regex, re.IGNORECASE))


FIELD_PATTERNS: Tuple[FieldPattern, ...] = (
    _rule("active_units", NUMBER + r"\s*active\s*units?"),
    _rule("upcoming_units", NUMBER + r"\s*upcoming\s*units?"),
    # The currency sign is not always rendered, so only the number is anchored
    _rule("shared_bathroom_price", NUMBER + r"\s*per\s*week\s*with\s*a\s*shared\s*bath"),
    _rule("private_bathroom_price", NUMBER + r"\s*per\s*week\s*with\s*a\s*private\s*bath"),
    _rule("average_occupancy", r"(\d+)%\s*average\s*occupancy"),
    _rule("days_to_first_booking", r"(\d+)\s*days?\s*to\s*first\s*booking"),
    _rule("days_to_80_booking", r"(\d+)\s*days?\s*to\s*80%\s*booking"),
)


@dataclass(frozen=True)
class ClassificationRules:
    """Heuristics applied only when neither unit count was found.

    Phrase checks are plain substring tests over the zip section, so they can
    fire on unrelated copy that happens to share the wording. Override them per
    deployment rather than treating them as ground truth.
    """

    no_data_phrases: Tuple[str, ...] = ("no active homes", "not have any active")
    # "0 active units" is already captured as active_units=0 by FIELD_PATTERNS,
    # so in practice this tier fires on the "0 active rooms" wording.
    zero_active_pattern: re.Pattern = re.compile(r"(?<![\d,])0\s*active\s*(?:units?|rooms?)", re.IGNORECASE)
    case_sensitive: bool = False

    def is_no_data(self, text: str) -> bool:
        haystack = text if self.case_sensitive else text.lower()
        for phrase in self.no_data_phrases:
            needle = phrase if self.case_sensitive else phrase.lower()
            if needle in haystack:
                return True
        return False

    def is_zero_active(self, text: str) -> bool:
        return bool(self.zero_active_pattern.search(text))


@dataclass(frozen=True)
class ParsingPolicy:
    version: str = "2024.1"
    section_template: str = r"Postal\s*code\s*{zip_code}"
    section_window: int = config.ZIP_SECTION_WINDOW
    fields: Tuple[FieldPattern, ...] = FIELD_PATTERNS
    rules: ClassificationRules = field(default_factory=ClassificationRules)

    def section_pattern(self, zip_code: str) -> re.Pattern:
        return re.compile(self.section_template.format(zip_code=re.escape(zip_code)), re.IGNORECASE)


DEFAULT_POLICY = ParsingPolicy()
