"""
One login attempt, start to finish.

INIT -> NAVIGATING -> FORM_READY -> SUBMITTED -> SUCCESS | REJECTED | INDETERMINATE,
with ATTEMPT_ERROR reachable from any phase. There are no retries and the
browser session is closed on every exit path.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Sequence

from .browser import Launcher, SessionHandle, select_launcher
from .classifier import (
    DEFAULT_ERROR_SIGNALS,
    ErrorSignal,
    UrlRules,
    Verdict,
    capture_end_state,
    decide,
    outcome_for,
)
from .models import Credentials, LoginOutcome
from .settings import Settings, settings as default_settings
from .waits import first_completed, sleep_ms

logger = logging.getLogger(__name__)

ATTEMPT_ERROR_PREFIX = "Erreur lors de la tentative de connexion"


class Phase(str, Enum):
    INIT = "INIT"
    NAVIGATING = "NAVIGATING"
    FORM_READY = "FORM_READY"
    SUBMITTED = "SUBMITTED"
    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"
    INDETERMINATE = "INDETERMINATE"
    ATTEMPT_ERROR = "ATTEMPT_ERROR"


VERDICT_PHASES = {
    Verdict.SUCCESS: Phase.SUCCESS,
    Verdict.REJECTED: Phase.REJECTED,
    Verdict.INDETERMINATE: Phase.INDETERMINATE,
}


class AttemptError(Exception): ...


def _describe(exc: BaseException) -> str:
    # Playwright appends a multi-line call log; the first line is the cause
    lines = str(exc).strip().splitlines()
    return lines[0] if lines else type(exc).__name__


def attempt_error(cause: str) -> LoginOutcome:
    return LoginOutcome.failure(f"{ATTEMPT_ERROR_PREFIX}: {cause}")


async def _submit(session: SessionHandle, s: Settings) -> "asyncio.Future[bool]":
    # armed before the click so a fast redirect is not missed
    navigation = asyncio.ensure_future(session.wait_for_navigation(s.SUBMIT_TIMEOUT_MS))
    try:
        await session.click(s.SUBMIT_SELECTOR)
    except BaseException:
        navigation.cancel()
        await asyncio.gather(navigation, return_exceptions=True)
        raise
    return navigation


async def _error_region_visible(session: SessionHandle, s: Settings) -> bool:
    element = await session.query_selector(s.ERROR_REGION_SELECTOR)
    return element is not None and await session.is_visible(element)


async def _settle(
    session: SessionHandle, navigation: "asyncio.Future[bool]", s: Settings, watch_error_region: bool = True
) -> None:
    """Wait for navigation or a visible error region, whichever comes first, then let rendering finish.

    When the error region was already showing before submit it cannot signal
    anything new, so only navigation (or the timeout) ends the wait.
    """
    waits = [navigation]
    if watch_error_region:
        waits.append(session.wait_for_selector(s.ERROR_REGION_SELECTOR, s.SUBMIT_TIMEOUT_MS))
    winner = await first_completed(*waits, timeout=s.SUBMIT_TIMEOUT_MS / 1000)
    if winner is None:
        logger.warning(f"No navigation or error region after {s.SUBMIT_TIMEOUT_MS}ms, classifying current page")
    elif winner[0] == 0:
        logger.debug(f"Post-submit navigation settled={winner[1]}")
    else:
        logger.debug(f"Error region visible={winner[1]}")

    await sleep_ms(s.SETTLE_DELAY_MS)


async def attempt_login(
    credentials: Credentials,
    *,
    settings: Optional[Settings] = None,
    launcher: Optional[Launcher] = None,
    signals: Sequence[ErrorSignal] = DEFAULT_ERROR_SIGNALS,
) -> LoginOutcome:
    """Drive one login attempt and classify it. Never raises."""
    s = settings or default_settings
    username = credentials.username
    phase = Phase.INIT
    session: Optional[SessionHandle] = None

    def advance(to: Phase) -> Phase:
        logger.info(f"[{username}] {phase.value} -> {to.value}")
        return to

    try:
        try:
            session = await (launcher or select_launcher(s)).open_session()
        except Exception as e:
            logger.error(f"[{username}] Browser startup failed: {e}")
            advance(Phase.ATTEMPT_ERROR)
            return attempt_error(f"impossible de démarrer le navigateur: {_describe(e)}")

        phase = advance(Phase.NAVIGATING)
        settled = await session.navigate(s.PORTAL_LOGIN_URL, wait_until="networkidle", timeout_ms=s.NAVIGATION_TIMEOUT_MS)

        if not await session.wait_for_selector(s.USERNAME_SELECTOR, s.FORM_TIMEOUT_MS):
            cause = "formulaire de connexion introuvable"
            if not settled:
                cause += f" (page non chargée après {s.NAVIGATION_TIMEOUT_MS} ms)"
            raise AttemptError(cause)
        phase = advance(Phase.FORM_READY)

        await session.type(s.USERNAME_SELECTOR, credentials.username, delay_ms=s.TYPE_DELAY_MS)
        await session.type(s.PASSWORD_SELECTOR, credentials.password.get_secret_value(), delay_ms=s.TYPE_DELAY_MS)

        preexisting_alert = await _error_region_visible(session, s)
        if preexisting_alert:
            logger.info(f"[{username}] Error region already visible before submit, waiting on navigation only")
        navigation = await _submit(session, s)
        phase = advance(Phase.SUBMITTED)
        await _settle(session, navigation, s, watch_error_region=not preexisting_alert)

        state = await capture_end_state(session, signals)
        logger.info(f"[{username}] Settled on {state.url} (title={state.title!r})")
        verdict, message = decide(state, UrlRules.from_settings(s))
        phase = advance(VERDICT_PHASES[verdict])
        if verdict is Verdict.INDETERMINATE:
            logger.warning(f"[{username}] Unrecognised end state url={state.url} title={state.title!r}")
        return outcome_for(verdict, message)

    except Exception as e:
        logger.error(f"[{username}] Attempt failed in {phase.value}: {e}")
        phase = advance(Phase.ATTEMPT_ERROR)
        return attempt_error(_describe(e))

    finally:
        if session is not None:
            try:
                await session.close()
            except Exception as e:
                logger.warning(f"[{username}] Browser session did not close cleanly: {e}")
