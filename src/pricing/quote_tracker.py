"""
Keeps quotes in step with the user's current swap parameters.

Every change of input token, output token or amount starts a new
``QuoteTicket`` and cancels the previous one.  A fetched quote is only
accepted for the ticket that is still current and whose parameters it
matches, so a slow response for an old amount can never be paired with a
newer one.  ``Debouncer`` bounds how often amount edits trigger a fetch.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from .quote import SwapQuote

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancel flag handed to the quote fetch."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class QuoteTicket:
    generation: int
    input_token_id: str
    output_token_id: str
    amount_native: int
    cancel_token: CancellationToken = field(default_factory=CancellationToken)

    def matches(self, quote: SwapQuote) -> bool:
        if quote.input_token_id != self.input_token_id:
            return False
        if quote.output_token_id != self.output_token_id:
            return False
        # Provider-rejected quotes may omit the amount.
        return quote.has_error or quote.input_amount_native == self.amount_native


class QuoteTracker:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generations = itertools.count(1)
        self._ticket: Optional[QuoteTicket] = None
        self._quote: Optional[SwapQuote] = None

    def begin(self, input_token_id: str, output_token_id: str, amount_native: int) -> QuoteTicket:
        """Start a request for new parameters, cancelling the one in flight."""
        with self._lock:
            if self._ticket is not None:
                self._ticket.cancel_token.cancel()
            ticket = QuoteTicket(
                generation=next(self._generations),
                input_token_id=input_token_id,
                output_token_id=output_token_id,
                amount_native=amount_native,
            )
            self._ticket = ticket
            self._quote = None
        return ticket

    def accept(self, ticket: QuoteTicket, quote: SwapQuote) -> bool:
        """Store ``quote`` if it answers the current request; drop it otherwise."""
        with self._lock:
            if ticket is not self._ticket or ticket.cancel_token.cancelled:
                logger.debug(
                    "Discarding stale quote %s (generation %d)",
                    quote.request_id,
                    ticket.generation,
                )
                return False
            if not ticket.matches(quote):
                logger.debug(
                    "Discarding quote %s: parameters do not match request",
                    quote.request_id,
                )
                return False
            self._quote = quote
            return True

    def current_quote(
        self, input_token_id: str, output_token_id: str, amount_native: int
    ) -> Optional[SwapQuote]:
        with self._lock:
            ticket = self._ticket
            if ticket is None or self._quote is None:
                return None
            if (ticket.input_token_id, ticket.output_token_id, ticket.amount_native) != (
                input_token_id,
                output_token_id,
                amount_native,
            ):
                return None
            return self._quote

    def reset(self) -> None:
        with self._lock:
            if self._ticket is not None:
                self._ticket.cancel_token.cancel()
            self._ticket = None
            self._quote = None


class Debouncer:
    """
    Trailing-edge debounce: ``callback(value)`` runs once, ``delay_seconds``
    after the last ``submit``.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[object], None]):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")
        self.delay_seconds = delay_seconds
        self._callback = callback
        self._timer: Optional[threading.Timer] = None
        self._pending: object = None
        self._generation = 0
        self._lock = threading.Lock()

    def submit(self, value: object) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = value
            self._timer = threading.Timer(
                self.delay_seconds, self._fire, args=(self._generation, value)
            )
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int, value: object) -> None:
        with self._lock:
            # A later submit, cancel or flush owns the value now.
            if generation != self._generation:
                return
            self._timer = None
        self._callback(value)

    def flush(self) -> None:
        """Run the pending callback now, on the calling thread."""
        with self._lock:
            if self._timer is None:
                return
            self._timer.cancel()
            self._timer = None
            self._generation += 1
            value = self._pending
        self._callback(value)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
