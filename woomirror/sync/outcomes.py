"""WooMirror: Per-record sync outcomes.

Each record a synchronizer touches yields ``Ok`` or ``Warn``; the loop
never raises. ``summarize`` folds the outcomes into one ``SyncStats``.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from sqlmodel import Session

from woomirror.models.sync_models import SyncStats


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class Warn:
    message: str


Outcome = Union[Ok, Warn]


def attempt(
    session: Session,
    fn: Callable[[], Any],
    label: Optional[Callable[[str], str]] = None,
) -> Outcome:
    """Run one record's write; roll the session back and warn on failure."""
    try:
        return Ok(fn())
    except Exception as e:
        session.rollback()
        message = str(e) or type(e).__name__
        return Warn(label(message) if label else message)


async def attempt_async(
    session: Session,
    fn: Callable[[], Awaitable[Any]],
    label: Optional[Callable[[str], str]] = None,
) -> Outcome:
    """``attempt`` for writes that await remote reads along the way."""
    try:
        return Ok(await fn())
    except Exception as e:
        session.rollback()
        message = str(e) or type(e).__name__
        return Warn(label(message) if label else message)


def summarize(
    entity: str,
    outcomes: Iterable[Outcome],
    meta: Optional[Dict[str, Any]] = None,
) -> SyncStats:
    processed = 0
    warnings = []
    for outcome in outcomes:
        if isinstance(outcome, Ok):
            processed += 1
        else:
            warnings.append(outcome.message)
    return SyncStats(entity=entity, processed=processed, warnings=warnings, meta=meta or {})


def failed_phase(entity: str, message: str, meta: Optional[Dict[str, Any]] = None) -> SyncStats:
    """Stats for a phase that could not run at all."""
    return SyncStats(entity=entity, processed=0, warnings=[message], meta=meta or {})
