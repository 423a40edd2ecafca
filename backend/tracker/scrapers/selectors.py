"""Ordered selector fallback chains.

Retailer markup drifts, so each field is described by a list of candidate
CSS selectors tried in order; the first one yielding a non-empty value wins.
Chains are plain data so adapters can be tested against saved HTML without
a browser.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag


@dataclass(frozen=True)
class SelectorChain:
    """Candidate selectors for one field.

    Attributes:
        name: Field name, used in logs
        selectors: CSS selectors, most specific first
        attrs: When set, read these attributes (in order) instead of text
        reject: Optional predicate; values it accepts are skipped
    """

    name: str
    selectors: Tuple[str, ...]
    attrs: Tuple[str, ...] = ()
    reject: Optional[Callable[[str], bool]] = field(default=None, compare=False)

    def _value_of(self, element: Tag) -> Optional[str]:
        if self.attrs:
            for attr in self.attrs:
                raw = element.get(attr)
                if isinstance(raw, list):
                    raw = " ".join(raw)
                if raw and raw.strip():
                    return raw.strip()
            return None
        text = element.get_text(strip=True)
        return text or None

    def candidates(self, soup: BeautifulSoup) -> Iterable[Tuple[str, str]]:
        """Yield (selector, value) for every non-empty match, in chain order."""
        for selector in self.selectors:
            element = soup.select_one(selector)
            if element is None:
                continue
            value = self._value_of(element)
            if value is None:
                continue
            if self.reject is not None and self.reject(value):
                continue
            yield selector, value

    def first(self, soup: BeautifulSoup) -> Optional[str]:
        """Return the first non-empty value, or None when nothing matches."""
        for _selector, value in self.candidates(soup):
            return value
        return None


def chain(name: str, selectors: Sequence[str], **kwargs) -> SelectorChain:
    """Shorthand constructor accepting any sequence of selectors."""
    return SelectorChain(name=name, selectors=tuple(selectors), **kwargs)
