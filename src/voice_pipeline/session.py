"""Per-view session state with a stale-response guard.

Each dashboard view owns one `ViewController`. A refresh (tab switch, month
change, manual reload) starts a new generation; results are applied only
if they belong to the latest generation, so a slow earlier fetch can never
overwrite a newer matrix. The matrix is rebuilt wholesale and assigned in
one step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from voice_pipeline.aggregate.months import DEFAULT_MONTH
from voice_pipeline.aggregate.views import DatasetView
from voice_pipeline.models import AggregationResult, RawRecord

log = logging.getLogger(__name__)

Fetch = Callable[[str], Iterable[RawRecord | Mapping[str, Any]]]


@dataclass
class ViewState:
    """Observable state of one view.

    Attributes:
        loading: True while the latest request is in flight.
        result: Last applied aggregation, ``None`` before the first success.
        error: Message of the latest failed request, if any.
        generation: Generation of the latest request started.
        target_month: Month the current result was built for.
    """
    loading: bool = False
    result: AggregationResult | None = None
    error: str | None = None
    generation: int = 0
    target_month: str | None = None


class ViewController:
    """Owns the state of one `DatasetView`.

    Args:
        view: The dataset view to aggregate.
        fetch: Callable returning raw rows for an endpoint.
    """

    def __init__(self, view: DatasetView, fetch: Fetch) -> None:
        self.view = view
        self.fetch = fetch
        self.state = ViewState()

    def begin(self) -> int:
        """Start a request and return its generation token."""
        self.state.generation += 1
        self.state.loading = True
        return self.state.generation

    def is_current(self, token: int) -> bool:
        return token == self.state.generation

    def complete(
        self,
        token: int,
        records: Iterable[RawRecord | Mapping[str, Any]],
        target_month: str | None = None,
    ) -> bool:
        """Aggregate `records` and apply them if `token` is still current.

        Returns:
            True when the result was applied, False when it was stale.
        """
        if not self.is_current(token):
            log.info("Discarding stale result for %s (gen %d < %d)",
                     self.view.key, token, self.state.generation)
            return False

        if target_month is None and self.view.row_axis == "platform":
            target_month = DEFAULT_MONTH
        result = self.view.run(records, target_month=target_month)
        self.state.result = result
        self.state.target_month = target_month
        self.state.error = None
        self.state.loading = False
        return True

    def fail(self, token: int, exc: BaseException) -> None:
        """Record a failed request; the previous result is kept."""
        log.error("Fetch failed for view %s: %s", self.view.key, exc)
        if self.is_current(token):
            self.state.error = str(exc)
            self.state.loading = False

    def refresh(self, target_month: str | None = None) -> ViewState:
        """Fetch, aggregate and apply in one go.

        Fetch errors are recorded on the state instead of propagating.
        """
        token = self.begin()
        try:
            records = list(self.fetch(self.view.endpoint))
        except Exception as e:
            self.fail(token, e)
            return self.state
        self.complete(token, records, target_month)
        return self.state
