"""
Fetch orchestrator: one ticker, one request at a time, three states.

    LOADING -> READY(dataset) | ERROR(message)

Every request gets a sequence number, unique across all orchestrators in
the process. A response is applied only if its number is still the latest
issued; anything older is stale and dropped.
No automatic retries; refetch() is the user's retry.
"""

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from fetcher import FetchError, PolygonClient
from models import OptionContract
from normalizer import normalize_payload

logger = logging.getLogger(__name__)

# shared by every orchestrator in the process, so a sequence number never repeats
_REQUEST_SEQUENCE = itertools.count(1)


class FetchStatus(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    READY = "ready"


@dataclass(frozen=True)
class FetchState:
    status: FetchStatus
    data: List[OptionContract] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None     # exception class name, e.g. "ConfigurationError"

    @property
    def loading(self) -> bool:
        return self.status is FetchStatus.LOADING

    @property
    def is_empty(self) -> bool:
        return self.status is FetchStatus.READY and not self.data


StateListener = Callable[[FetchState], None]


class FetchOrchestrator:
    def __init__(
        self,
        client: PolygonClient,
        ticker: str,
        expiration_date: Optional[str] = None,
        active: Optional[bool] = True,
    ):
        self.client = client
        self.ticker = ticker
        self.expiration_date = expiration_date
        self.active = active
        self.state = FetchState(FetchStatus.LOADING)
        self._seq = 0
        self._listeners: List[StateListener] = []

    @property
    def latest_seq(self) -> int:
        return self._seq

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set(self, state: FetchState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    def begin(self) -> int:
        """Start a new request cycle. Any in-flight request is superseded, not queued."""
        self._seq = next(_REQUEST_SEQUENCE)
        self._set(FetchState(FetchStatus.LOADING))
        logger.debug("Fetch #%d started for %s", self._seq, self.ticker)
        return self._seq

    def resolve(self, seq: int, payload) -> bool:
        if seq != self._seq:
            logger.info("Discarding stale response #%d (latest is #%d)", seq, self._seq)
            return False
        data = normalize_payload(payload)
        self._set(FetchState(FetchStatus.READY, data=data))
        return True

    def reject(self, seq: int, exc: BaseException) -> bool:
        if seq != self._seq:
            logger.info("Discarding stale failure #%d (latest is #%d): %s", seq, self._seq, exc)
            return False
        message = str(exc) or "Failed to fetch options data"
        self._set(FetchState(FetchStatus.ERROR, error=message, error_kind=type(exc).__name__))
        return True

    def fetch(self) -> FetchState:
        seq = self.begin()
        try:
            payload = self.client.get_options_chain(
                self.ticker, expiration_date=self.expiration_date, active=self.active,
            )
        except FetchError as e:
            logger.error("Error fetching options data for %s: %s", self.ticker, e)
            self.reject(seq, e)
        except Exception as e:
            # nothing on the fetch path may leak into rendering
            logger.exception("Unexpected error fetching options data for %s", self.ticker)
            self.reject(seq, e)
        else:
            self.resolve(seq, payload)
        return self.state

    def refetch(self) -> FetchState:
        return self.fetch()
