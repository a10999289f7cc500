"""Cell content classification.

Activating a cell either starts editing it or, when the content is something the
platform can act on, hands it off to an external action instead. Classification is
pure and independent of rendering:

    >>> classify('+91 98765 43210')
    Actionable(action=PhoneCall(number='+919876543210'))
    >>> classify('Hello World')
    Editable()
"""
import re
from dataclasses import dataclass
from typing import Union

PHONE_MIN_DIGITS: int = 7
PHONE_MAX_DIGITS: int = 15

_PHONE_STRIP = re.compile(r'[\s()\-+]')


@dataclass(frozen=True)
class PhoneCall:
    number: str

    @property
    def uri(self) -> str:
        return f'tel:{self.number}'


@dataclass(frozen=True)
class Editable:
    """The cell should enter edit mode."""


@dataclass(frozen=True)
class Actionable:
    """The cell content triggers an external action instead of editing."""
    action: PhoneCall


CellIntent = Union[Editable, Actionable]


def _phone_digits(text: str) -> str:
    return _PHONE_STRIP.sub('', text or '')


def is_phone_number(text: str, min_digits: int = PHONE_MIN_DIGITS, max_digits: int = PHONE_MAX_DIGITS) -> bool:
    """Check if a cell holds a phone number.

    Whitespace, parentheses, dashes and plus signs are ignored. What remains must be
    ASCII digits only, between ``min_digits`` and ``max_digits`` long.

    Args:
        text: Cell content.
        min_digits: Shortest accepted number.
        max_digits: Longest accepted number.

    Returns:
        bool: True if the text is a phone number.
    """
    digits = _phone_digits(text)
    return digits.isascii() and digits.isdigit() and min_digits <= len(digits) <= max_digits


def classify(text: str, min_digits: int = PHONE_MIN_DIGITS, max_digits: int = PHONE_MAX_DIGITS) -> CellIntent:
    """Route cell content to an edit intent or an action intent.

    Args:
        text: Cell content.
        min_digits: Shortest accepted phone number.
        max_digits: Longest accepted phone number.

    Returns:
        CellIntent: ``Actionable(PhoneCall(...))`` for phone numbers, ``Editable()`` otherwise.
    """
    if not is_phone_number(text, min_digits=min_digits, max_digits=max_digits):
        return Editable()

    number = _phone_digits(text)
    if text.strip().startswith('+'):
        number = f'+{number}'
    return Actionable(PhoneCall(number))
