"""
Stability Consensus
====================

Decides when a classifier label has been seen often enough to be written
to the output buffer.

The automaton has two states, IDLE (no candidate) and TRACKING(label, n).
Each observation moves it as follows:

    none / empty label   -> IDLE, count 0
    same as candidate    -> count + 1
    different label      -> candidate = label, count 1

and then, if ``count >= stability_threshold`` and more than
``append_cooldown_ms`` has passed since the last commit, the label is
committed and the count drops back to 0 (the candidate stays). The count
gate filters single-frame misclassifications, the cooldown keeps a held
sign from flooding the buffer; a sustained hold needs both to pass again.

``advance()`` is a pure function over immutable ``StabilityState`` values,
so it can be driven from tests without a bus, a camera or a network.
``Speller`` is the bus consumer that owns one state and the output buffer.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from ..core.events import Events, EventBus, SignDetected, SymbolCommitted, get_bus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StabilityConfig:
    """Stability gate settings."""
    stability_threshold: int = 5        # Consecutive identical observations
    append_cooldown_ms: float = 1500.0  # Minimum gap between two commits

    def __post_init__(self):
        if self.stability_threshold < 1:
            raise ValueError("stability_threshold must be >= 1")
        if self.append_cooldown_ms < 0:
            raise ValueError("append_cooldown_ms must be >= 0")

    @classmethod
    def from_dict(cls, config: dict) -> "StabilityConfig":
        """Create config from dictionary."""
        return cls(
            stability_threshold=config.get("stability_threshold", 5),
            append_cooldown_ms=config.get("append_cooldown_ms", 1500.0),
        )


@dataclass(frozen=True)
class StabilityState:
    """Candidate label, its run length and the time of the last commit."""
    candidate: Optional[str] = None
    count: int = 0
    last_commit_ms: Optional[float] = None

    @property
    def is_idle(self) -> bool:
        return self.candidate is None


IDLE = StabilityState()


def is_absent(label: Optional[str]) -> bool:
    """True for the no-hand / no-classification sentinel."""
    return label is None or label == ""


def advance(state: StabilityState, label: Optional[str], now_ms: float,
            config: StabilityConfig = StabilityConfig()
            ) -> Tuple[StabilityState, Optional[str]]:
    """Apply one observation.

    Args:
        state: Current state
        label: Observed label, or None/"" when nothing was recognized
        now_ms: Observation time in milliseconds
        config: Threshold and cooldown

    Returns:
        (new_state, committed_label) where committed_label is None unless
        this observation committed a symbol
    """
    if is_absent(label):
        return replace(state, candidate=None, count=0), None

    if label == state.candidate:
        state = replace(state, count=state.count + 1)
    else:
        state = replace(state, candidate=label, count=1)

    if state.count < config.stability_threshold:
        return state, None

    cooled_down = (state.last_commit_ms is None
                   or now_ms - state.last_commit_ms > config.append_cooldown_ms)
    if not cooled_down:
        return state, None

    return replace(state, count=0, last_commit_ms=now_ms), label


class OutputBuffer:
    """Ordered sequence of committed symbols."""

    def __init__(self):
        self._symbols: List[str] = []

    def append(self, symbol: str):
        self._symbols.append(symbol)

    def undo(self) -> Optional[str]:
        """Drop and return the last symbol, if any."""
        if not self._symbols:
            return None
        return self._symbols.pop()

    def clear(self):
        self._symbols.clear()

    @property
    def symbols(self) -> List[str]:
        return list(self._symbols)

    @property
    def text(self) -> str:
        return "".join(self._symbols)

    def __len__(self):
        return len(self._symbols)


class Speller:
    """
    Bus consumer that turns raw sign observations into spelled text.

    Example:
        >>> speller = Speller(StabilityConfig())
        >>> speller.attach()
        >>> # ... the pipeline emits Events.SIGN_DETECTED ...
        >>> speller.text
        'HI'
        >>> speller.detach()
    """

    def __init__(
        self,
        config: Optional[StabilityConfig] = None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or StabilityConfig()
        self._bus = event_bus or get_bus()
        self._clock = clock
        self._state = IDLE
        self._buffer = OutputBuffer()
        self._current_label: Optional[str] = None
        self._attached = False

    # -- bus lifecycle ---------------------------------------------------

    def attach(self):
        """Start listening for sign observations. Safe to call repeatedly."""
        self._bus.subscribe(Events.SIGN_DETECTED, self._on_sign_detected)
        self._attached = True

    def detach(self):
        """Stop listening. Safe to call repeatedly and from teardown."""
        self._bus.unsubscribe(Events.SIGN_DETECTED, self._on_sign_detected)
        self._attached = False

    @property
    def is_attached(self) -> bool:
        return self._attached

    def _on_sign_detected(self, event: SignDetected):
        now_ms = self._clock() if self._clock else _monotonic_ms()
        self.observe(event.alphabet, now_ms)

    # -- automaton -------------------------------------------------------

    def observe(self, label: Optional[str], now_ms: float) -> Optional[str]:
        """Feed one observation; returns the committed symbol, if any."""
        if not is_absent(label):
            self._current_label = label

        self._state, committed = advance(self._state, label, now_ms, self.config)
        if committed is None:
            return None

        self._buffer.append(committed)
        logger.info("Committed '%s' -> %s", committed, self._buffer.text)
        self._bus.emit(Events.SYMBOL_COMMITTED,
                       SymbolCommitted(symbol=committed, text=self._buffer.text))
        return committed

    # -- user actions ----------------------------------------------------

    def clear(self):
        """Empty the buffer and the displayed label."""
        self._buffer.clear()
        self._current_label = None

    def undo(self) -> Optional[str]:
        """Remove the last committed symbol."""
        return self._buffer.undo()

    # -- read-only views -------------------------------------------------

    @property
    def state(self) -> StabilityState:
        return self._state

    @property
    def current_label(self) -> Optional[str]:
        """Most recent non-empty raw label, for display."""
        return self._current_label

    @property
    def text(self) -> str:
        return self._buffer.text

    @property
    def symbols(self) -> List[str]:
        return self._buffer.symbols


def _monotonic_ms() -> float:
    return time.monotonic() * 1000
