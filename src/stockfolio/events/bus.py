from __future__ import annotations

import itertools
import json
import logging
import time
from typing import Callable, List

from .schema import BaseEvent, EventEnvelope
from ..metrics.ledger import get_events_total


log = logging.getLogger("stockfolio.events")

_sequence = itertools.count(1)
_subscribers: List[Callable[[EventEnvelope], None]] = []


def now_ms() -> int:
    return int(time.time() * 1000)


def subscribe(fn: Callable[[EventEnvelope], None]) -> None:
    """Register an in-process listener called for every published envelope."""
    _subscribers.append(fn)


def unsubscribe(fn: Callable[[EventEnvelope], None]) -> None:
    if fn in _subscribers:
        _subscribers.remove(fn)


def publish(event: BaseEvent) -> EventEnvelope:
    """Wrap an event in an envelope, count it and log a single-line JSON record.

    Listener failures are logged and never reach the ledger operation that
    published the event.
    """
    env = EventEnvelope(sequence=next(_sequence), event=event)
    try:
        get_events_total().labels(event.event_type).inc()
    except Exception:
        pass

    line = json.dumps({
        "schema_version": env.schema_version,
        "sequence": env.sequence,
        "event": event.model_dump(),
    }, separators=(",", ":"))
    log.info(line)

    for fn in list(_subscribers):
        try:
            fn(env)
        except Exception:
            log.exception(f"Event subscriber failed for {event.event_type}")
    return env
