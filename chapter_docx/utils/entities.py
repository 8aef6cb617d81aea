"""
Character reference decoding for editor-produced HTML fragments.

Resolves named entities (HTML5 table plus a curated typographic set),
decimal ``&#NNN;`` and hexadecimal ``&#xHHH;`` references. References that
cannot be resolved are left literal.
"""
from __future__ import annotations

import re
from html.entities import html5
from typing import Callable, Optional, Set

UnresolvedHook = Callable[[str], None]


class EntityDecoder:
    """Decodes character references in text taken from HTML markup."""

    # Typographic marks, currency and math symbols editors emit by name,
    # including a few legacy spellings without an HTML5 definition.
    EXTENDED_ENTITIES = {
        'ensp': '\u2002',
        'emsp': '\u2003',
        'thinsp': '\u2009',
        'zwnj': '\u200c',
        'zwj': '\u200d',
        'shy': '\u00ad',
        'ndash': '–',
        'mdash': '—',
        'lsquo': '‘',
        'rsquo': '’',
        'sbquo': '‚',
        'ldquo': '“',
        'rdquo': '”',
        'bdquo': '„',
        'laquo': '«',
        'raquo': '»',
        'lsaquo': '‹',
        'rsaquo': '›',
        'hellip': '…',
        'bull': '•',
        'middot': '·',
        'prime': '′',
        'Prime': '″',
        'dagger': '†',
        'Dagger': '‡',
        'permil': '‰',
        'sect': '§',
        'para': '¶',
        'copy': '©',
        'reg': '®',
        'trade': '™',
        'deg': '°',
        'euro': '€',
        'pound': '£',
        'yen': '¥',
        'cent': '¢',
        'curren': '¤',
        'baht': '฿',
        'inr': '₹',
        'won': '₩',
        'plusmn': '±',
        'times': '×',
        'divide': '÷',
        'minus': '−',
        'frac12': '½',
        'frac14': '¼',
        'frac34': '¾',
        'sup2': '²',
        'sup3': '³',
        'ne': '≠',
        'le': '≤',
        'ge': '≥',
        'asymp': '≈',
        'infin': '∞',
        'radic': '√',
        'sum': '∑',
        'prod': '∏',
        'micro': 'µ',
        'larr': '←',
        'rarr': '→',
        'uarr': '↑',
        'darr': '↓',
        'harr': '↔',
        'hearts': '♥',
        'star': '☆',
    }

    MAX_PASSES = 3

    # Private-use code point standing in for &nbsp; while other references decode.
    NBSP_MARKER = '\ue000'

    REFERENCE_PATTERN = re.compile(r'&(#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);')
    NBSP_PATTERN = re.compile(r'&nbsp;', re.IGNORECASE)

    def __init__(self, nbsp_replacement: str = ' '):
        """Initialize the decoder.

        Args:
            nbsp_replacement: Text that ``&nbsp;`` finally becomes. Plain space
                by default; callers that still need to tell non-breaking
                spaces apart from collapsible whitespace pass ``'\\u00a0'``.
        """
        self.nbsp_replacement = nbsp_replacement

    def decode(self, text: str, on_unresolved: Optional[UnresolvedHook] = None) -> str:
        """Decode all character references in ``text``.

        Applies passes until the text stops changing, at most ``MAX_PASSES``.
        Input escaped up to ``MAX_PASSES`` times (``&amp;lt;``, ``&amp;amp;lt;``)
        settles fully, and re-applying the decoder to that output is a no-op.
        Deeper escaping keeps the layers beyond the cap: ``&amp;amp;amp;amp;lt;``
        decodes to ``&amp;lt;``.
        """
        if not text or '&' not in text:
            return text

        unresolved: Set[str] = set()
        current = text
        for _ in range(self.MAX_PASSES):
            decoded = self._decode_once(current, unresolved)
            if decoded == current:
                break
            current = decoded

        if on_unresolved is not None:
            for reference in sorted(unresolved):
                on_unresolved(reference)
        return current

    def _decode_once(self, text: str, unresolved: Set[str]) -> str:
        protected = self.NBSP_PATTERN.sub(self.NBSP_MARKER, text)

        def replace(match: re.Match) -> str:
            resolved = self._resolve(match.group(1))
            if resolved is None:
                unresolved.add(match.group(0))
                return match.group(0)
            return resolved

        decoded = self.REFERENCE_PATTERN.sub(replace, protected)
        return decoded.replace(self.NBSP_MARKER, self.nbsp_replacement)

    def _resolve(self, reference: str) -> Optional[str]:
        if reference.startswith('#'):
            digits = reference[1:]
            try:
                if digits[:1] in ('x', 'X'):
                    code_point = int(digits[1:], 16)
                else:
                    code_point = int(digits, 10)
            except ValueError:
                return None
            return self._from_code_point(code_point)

        if reference in self.EXTENDED_ENTITIES:
            return self.EXTENDED_ENTITIES[reference]
        return html5.get(reference + ';')

    @staticmethod
    def _from_code_point(code_point: int) -> Optional[str]:
        """Return the character, or ``None`` for NUL, surrogates and out-of-range values."""
        if code_point <= 0 or code_point > 0x10FFFF:
            return None
        if 0xD800 <= code_point <= 0xDFFF:
            return None
        return chr(code_point)


_DEFAULT_DECODER = EntityDecoder()


def decode_entities(text: Optional[str]) -> str:
    """Convenience function decoding with the default (nbsp to space) decoder."""
    if text is None:
        return ""
    return _DEFAULT_DECODER.decode(text)
