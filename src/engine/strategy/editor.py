"""Editing session over one strategy draft, including submission to the engine."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from copy import deepcopy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from src.engine.strategy import edits
from src.engine.strategy.errors import (
    StrategyConfigViolation,
    StrategyEngineRejectedError,
    StrategyEngineTransportError,
)
from src.engine.strategy.models import StrategyConfig, mint_strategy_id
from src.engine.strategy.semantic import validate_strategy_config
from src.engine.strategy.serializer import to_wire_format, to_wire_json
from src.engine.strategy.templates import instantiate, new_draft
from src.engine.strategy.view_state import EditorViewState
from src.util.logger import log_success, logger

if TYPE_CHECKING:
    from src.services.strategy_engine_client import StrategyEngineClient

SubmissionStatus = Literal["created", "updated", "invalid", "busy", "rejected", "transport_error"]

DraftEdit = Callable[..., StrategyConfig]


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of one submit attempt."""

    ok: bool
    status: SubmissionStatus
    message: str = ""
    strategy_id: str = ""
    violations: tuple[StrategyConfigViolation, ...] = ()


_REINDEX_ARGUMENTS: dict[DraftEdit, tuple[str, ...]] = {
    edits.remove_position: ("position_index",),
    edits.remove_operation: ("position_index", "side", "operation_index"),
    edits.remove_factor: ("position_index", "side", "operation_index", "factor_index"),
}


def _reindex_view_state(
    view_state: EditorViewState,
    edit: DraftEdit,
    draft: StrategyConfig,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> None:
    names = _REINDEX_ARGUMENTS.get(edit)
    if names is None:
        return
    # Indices may arrive positionally or by keyword.
    arguments = inspect.signature(edit).bind(draft, *args, **kwargs).arguments
    indices = [arguments[name] for name in names]
    if edit is edits.remove_position:
        view_state.position_removed(*indices)
    elif edit is edits.remove_operation:
        view_state.operation_removed(*indices)
    else:
        view_state.factor_removed(*indices)


class StrategyEditor:
    """Owns one draft and its view state.

    Every edit replaces the whole draft.  Submission runs against a snapshot
    of the draft, so editing can continue while a call is in flight.
    """

    def __init__(
        self,
        draft: StrategyConfig | None = None,
        *,
        confirmed: StrategyConfig | None = None,
        view_state: EditorViewState | None = None,
    ) -> None:
        self.draft = draft if draft is not None else new_draft()
        self.view_state = view_state or EditorViewState()
        # Last version the engine acknowledged; None until the draft is created.
        self._confirmed = deepcopy(confirmed) if confirmed is not None else None
        self._submitting = False

    @classmethod
    def from_scratch(cls, *, author: str | None = None) -> StrategyEditor:
        return cls(new_draft(author=author))

    @classmethod
    def from_template(cls, key: str, *, author: str | None = None) -> StrategyEditor:
        """Start from a template; an unknown key falls back to a blank draft."""
        draft = instantiate(key, author=author)
        return cls(draft if draft is not None else new_draft(author=author))

    @classmethod
    async def load(cls, client: StrategyEngineClient, strategy_id: str) -> StrategyEditor:
        """Fetch a stored strategy from the engine for further editing."""
        config = await client.get_strategy(strategy_id)
        return cls(config, confirmed=config)

    @property
    def is_persisted(self) -> bool:
        return self._confirmed is not None

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def is_dirty(self) -> bool:
        if self._confirmed is None:
            return True
        return to_wire_format(self._confirmed) != to_wire_format(self.draft)

    @property
    def violations(self) -> list[StrategyConfigViolation]:
        return validate_strategy_config(self.draft)

    @property
    def can_submit(self) -> bool:
        return not self._submitting and not self.violations

    def apply(self, edit: DraftEdit, *args: Any, **kwargs: Any) -> StrategyConfig:
        """Run ``edit(draft, *args, **kwargs)`` and adopt its result as the draft.

        If the edit raises, the current draft is kept and the error propagates.
        """
        previous = self.draft
        updated = edit(previous, *args, **kwargs)
        self.draft = updated
        _reindex_view_state(self.view_state, edit, previous, args, kwargs)
        return updated

    def preview(self) -> str:
        return to_wire_json(self.draft, indent=2)

    async def submit(self, client: StrategyEngineClient) -> SubmissionResult:
        """Create the strategy on first submit, send a partial update afterwards."""
        if self._submitting:
            return SubmissionResult(
                ok=False,
                status="busy",
                message="A submission for this draft is already in progress.",
                strategy_id=self.draft.strategy_id,
            )

        snapshot = deepcopy(self.draft)
        violations = validate_strategy_config(snapshot)
        if violations:
            return SubmissionResult(
                ok=False,
                status="invalid",
                message=f"Draft has {len(violations)} unresolved checklist item(s).",
                strategy_id=snapshot.strategy_id,
                violations=tuple(violations),
            )

        self._submitting = True
        try:
            if self._confirmed is None or not snapshot.strategy_id:
                return await self._create(client, snapshot)
            return await self._update(client, snapshot)
        except StrategyEngineRejectedError as exc:
            logger.warning("Strategy engine rejected '%s': %s", snapshot.name, exc)
            return SubmissionResult(
                ok=False,
                status="rejected",
                message=str(exc),
                strategy_id=snapshot.strategy_id,
            )
        except StrategyEngineTransportError as exc:
            logger.warning("Strategy submission for '%s' failed: %s", snapshot.name, exc)
            return SubmissionResult(
                ok=False,
                status="transport_error",
                message=str(exc),
                strategy_id=snapshot.strategy_id,
            )
        finally:
            self._submitting = False

    async def _create(self, client: StrategyEngineClient, snapshot: StrategyConfig) -> SubmissionResult:
        payload = to_wire_format(snapshot)
        payload["strategy_id"] = snapshot.strategy_id or mint_strategy_id()
        logger.info("Creating strategy '%s' as %s", snapshot.name, payload["strategy_id"])

        strategy_id = await client.create_strategy(payload)

        snapshot.strategy_id = strategy_id
        self._confirmed = snapshot
        # Only the id is adopted; edits made while the call was in flight stay.
        self.draft = deepcopy(self.draft)
        self.draft.strategy_id = strategy_id
        log_success(f"Strategy created: {strategy_id}")
        return SubmissionResult(ok=True, status="created", message="Strategy created.", strategy_id=strategy_id)

    async def _update(self, client: StrategyEngineClient, snapshot: StrategyConfig) -> SubmissionResult:
        updates = edits.build_update_payload(self._confirmed, snapshot)
        strategy_id = snapshot.strategy_id
        if not updates:
            return SubmissionResult(ok=True, status="updated", message="No changes to submit.", strategy_id=strategy_id)

        logger.info("Updating strategy %s fields=%s", strategy_id, sorted(updates))
        response = await client.update_strategy(strategy_id, updates)
        self._confirmed = snapshot
        log_success(f"Strategy updated: {strategy_id}")
        return SubmissionResult(
            ok=True,
            status="updated",
            message=response.message or "Strategy updated.",
            strategy_id=strategy_id,
        )
