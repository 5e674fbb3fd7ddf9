"""Built-in strategy templates and draft instantiation."""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

from src.config import settings
from src.engine.strategy.models import PositionConfig, SignalDefinition, StrategyConfig
from src.engine.strategy.serializer import build_strategy_config
from src.util.logger import log_template, logger

_ASSETS_DIR = Path(__file__).resolve().parent / "assets"
TEMPLATES_PATH = _ASSETS_DIR / "strategy_templates.json"


@dataclass(frozen=True, slots=True)
class StrategyTemplate:
    """Read-only starting point for a new draft."""

    key: str
    name: str
    description: str
    category: str
    icon: str
    positions_config: tuple[PositionConfig, ...]
    signals_config: tuple[SignalDefinition, ...]


@lru_cache(maxsize=1)
def _load_template_payloads() -> dict[str, dict[str, Any]]:
    return json.loads(TEMPLATES_PATH.read_text(encoding="utf-8"))


def _build_template(key: str, payload: dict[str, Any]) -> StrategyTemplate:
    seeded = build_strategy_config(
        {
            "positions_config": payload.get("positions_config", []),
            "signals_config": payload.get("signals_config", []),
        }
    )
    return StrategyTemplate(
        key=key,
        name=str(payload.get("name", key)),
        description=str(payload.get("description", "")),
        category=str(payload.get("category", "")),
        icon=str(payload.get("icon", "")),
        positions_config=tuple(seeded.positions),
        signals_config=tuple(seeded.signals),
    )


@lru_cache(maxsize=1)
def _template_library() -> dict[str, StrategyTemplate]:
    return {key: _build_template(key, payload) for key, payload in _load_template_payloads().items()}


def _detached(template: StrategyTemplate) -> StrategyTemplate:
    # The cached library is shared process-wide; callers only see copies of its seeds.
    return replace(
        template,
        positions_config=copy.deepcopy(template.positions_config),
        signals_config=copy.deepcopy(template.signals_config),
    )


def list_templates() -> list[StrategyTemplate]:
    return [_detached(template) for template in _template_library().values()]


def template_keys() -> list[str]:
    return list(_template_library())


def get_template(key: str) -> StrategyTemplate | None:
    template = _template_library().get(key)
    return _detached(template) if template is not None else None


def new_draft(
    *,
    author: str | None = None,
    version: str | None = None,
    tags: Iterable[str] | None = None,
) -> StrategyConfig:
    """Blank draft carrying the configured defaults for identity and backtest fields."""
    return StrategyConfig(
        category=settings.default_strategy_category,
        ensemble_method=settings.default_ensemble_method,
        fee_rate=settings.default_fee_rate,
        digits=settings.default_digits,
        version=version if version is not None else settings.default_strategy_version,
        author=author if author is not None else settings.default_strategy_author,
        tags=tags,
    )


def _seed_from_template(draft: StrategyConfig, template: StrategyTemplate) -> None:
    # Deep copies so edits to the draft never reach the shared template.
    draft.positions = copy.deepcopy(list(template.positions_config))
    draft.signals = copy.deepcopy(list(template.signals_config))
    draft.name = template.name
    draft.description = template.description
    draft.category = template.category


def instantiate(
    key: str,
    *,
    author: str | None = None,
    version: str | None = None,
    tags: Iterable[str] | None = None,
) -> StrategyConfig | None:
    """Create an independent draft from template ``key``.

    Returns ``None`` for an unknown key; the caller keeps whatever draft it had.
    """
    template = _template_library().get(key)
    if template is None:
        logger.warning("Unknown strategy template '%s'; selection ignored", key)
        return None

    draft = new_draft(author=author, version=version, tags=tags)
    _seed_from_template(draft, template)
    log_template("instantiate", f"{key} ({template.name})")
    return draft


def apply_template(draft: StrategyConfig, key: str) -> StrategyConfig:
    """Re-seed an existing draft from a template, keeping its identity fields."""
    template = _template_library().get(key)
    if template is None:
        logger.warning("Unknown strategy template '%s'; draft left unchanged", key)
        return draft

    updated = copy.deepcopy(draft)
    _seed_from_template(updated, template)
    log_template("apply", f"{key} ({template.name})")
    return updated
