"""
Outcome classification for a settled login page.

The error ladder is an ordered table of ``ErrorSignal`` rows, most specific
first. ``classify`` is a pure function of an ``EndState``; ``capture_end_state``
is the only part that talks to the browser session.
"""

import html
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence
from urllib.parse import urlparse

from .browser import SessionHandle
from .models import LoginOutcome
from .settings import Settings

logger = logging.getLogger(__name__)

REJECTED_MESSAGE = "Échec de connexion (identifiants incorrects)"
INDETERMINATE_MESSAGE = "État de connexion indéterminé"

MIN_MESSAGE_LENGTH = 1
MAX_MESSAGE_LENGTH = 500

# class="...error..." followed by the element's first text node
MARKUP_ERROR_PATTERN = re.compile(r'class="[^"]*error[^"]*"[^>]*>([^<]+)<', re.IGNORECASE)


def clean_text(text: str | None) -> str:
    return " ".join((text or "").split())


@dataclass(frozen=True)
class ErrorSignal:
    selector: str
    require_visible: bool = True
    extract: Callable[[str], str] = clean_text


DEFAULT_ERROR_SIGNALS: tuple[ErrorSignal, ...] = (
    # DSFR alerts
    ErrorSignal(".fr-alert--error .fr-alert__title"),
    ErrorSignal(".fr-alert--error p"),
    ErrorSignal(".fr-alert--error"),
    # Keycloak feedback
    ErrorSignal(".kc-feedback-text"),
    ErrorSignal(".alert-error"),
    ErrorSignal("#input-error"),
    # generic conventions
    ErrorSignal(".error-message"),
    ErrorSignal('[role="alert"]'),
    ErrorSignal(".fr-error-text"),
    # per-field message groups
    ErrorSignal("#password-input-messages"),
    ErrorSignal("#username-messages"),
)


class Verdict(str, Enum):
    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"
    INDETERMINATE = "INDETERMINATE"


@dataclass(frozen=True)
class UrlRules:
    success_fragments: tuple[str, ...]
    idp_fragments: tuple[str, ...]
    precedence: str = "strict"

    @classmethod
    def from_settings(cls, settings: Settings) -> "UrlRules":
        return cls(
            success_fragments=tuple(settings.SUCCESS_URL_FRAGMENTS),
            idp_fragments=tuple(settings.IDP_URL_FRAGMENTS),
            precedence=settings.URL_PRECEDENCE,
        )


@dataclass(frozen=True)
class EndState:
    url: str
    title: Optional[str] = None
    error_text: Optional[str] = None
    # from raw markup; visibility unknown, so it never overrides a protected-destination URL
    markup_error_text: Optional[str] = None


def is_plausible_message(text: str) -> bool:
    return MIN_MESSAGE_LENGTH <= len(text) <= MAX_MESSAGE_LENGTH


def _url_locus(url: str) -> str:
    # the IdP URL embeds the portal address in its query string, so only host+path count
    parsed = urlparse(url)
    return f"{parsed.netloc}{parsed.path}".lower()


def _matches(locus: str, fragments: Sequence[str]) -> bool:
    return any(f.lower() in locus for f in fragments if f)


def decide(state: EndState, rules: UrlRules) -> tuple[Verdict, Optional[str]]:
    if state.error_text:
        return Verdict.REJECTED, state.error_text

    locus = _url_locus(state.url)
    on_success = _matches(locus, rules.success_fragments)
    on_idp = _matches(locus, rules.idp_fragments)

    if rules.precedence == "success_first":
        if on_success:
            return Verdict.SUCCESS, None
    elif on_success and not on_idp:
        return Verdict.SUCCESS, None

    if state.markup_error_text:
        return Verdict.REJECTED, state.markup_error_text
    if on_idp:
        return Verdict.REJECTED, REJECTED_MESSAGE
    return Verdict.INDETERMINATE, INDETERMINATE_MESSAGE


def outcome_for(verdict: Verdict, message: Optional[str]) -> LoginOutcome:
    if verdict is Verdict.SUCCESS:
        return LoginOutcome.success()
    return LoginOutcome.failure(message)


def classify(state: EndState, rules: UrlRules) -> LoginOutcome:
    return outcome_for(*decide(state, rules))


async def find_error_message(
    session: SessionHandle, signals: Sequence[ErrorSignal] = DEFAULT_ERROR_SIGNALS
) -> Optional[str]:
    """Walk the error ladder and return the first visible, plausible message."""
    for signal in signals:
        element = await session.query_selector(signal.selector)
        if element is None:
            continue
        if signal.require_visible and not await session.is_visible(element):
            logger.debug(f"Error candidate {signal.selector} present but hidden")
            continue
        text = signal.extract(await session.text_of(element))
        if is_plausible_message(text):
            logger.debug(f"Error message found with selector {signal.selector}")
            return text
    return None


def mine_error_markup(markup: str) -> Optional[str]:
    """Last resort: text of the first element whose class mentions "error"."""
    for match in MARKUP_ERROR_PATTERN.finditer(markup or ""):
        text = clean_text(html.unescape(match.group(1)))
        if is_plausible_message(text):
            return text
    return None


async def capture_end_state(
    session: SessionHandle, signals: Sequence[ErrorSignal] = DEFAULT_ERROR_SIGNALS
) -> EndState:
    url = await session.current_url()
    title = await session.title()
    error_text = await find_error_message(session, signals)
    markup_error_text = None
    if error_text is None:
        markup_error_text = mine_error_markup(await session.content())
        if markup_error_text:
            logger.info("Error message recovered from raw markup")
    return EndState(url=url, title=title, error_text=error_text, markup_error_text=markup_error_text)
