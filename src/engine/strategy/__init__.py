"""Declarative strategy configuration: model, templates, validation and wire format."""

from pathlib import Path

from src.engine.strategy.catalog import (
    CatalogSignal,
    SignalCatalog,
    SignalFunctionSpec,
    SignalKey,
    get_signal_catalog,
    get_signal_function,
    is_canonical_signal_name,
    list_signal_functions,
    parse_signal_name,
)
from src.engine.strategy.edits import (
    add_factor,
    add_factor_signal,
    add_operation,
    add_position,
    add_signal_function,
    apply_strategy_patch,
    build_update_payload,
    change_signal_function,
    diff_strategy_configs,
    remove_factor,
    remove_factor_signal,
    remove_operation,
    remove_position,
    remove_signal_function,
    rename_factor,
    set_signal_param,
    update_backtest_params,
    update_metadata,
    update_operation,
    update_position,
    update_signal_function,
)
from src.engine.strategy.editor import StrategyEditor, SubmissionResult
from src.engine.strategy.errors import (
    StrategyConfigValidationError,
    StrategyConfigValidationResult,
    StrategyConfigViolation,
    StrategyEditError,
    StrategyEngineError,
    StrategyEngineRejectedError,
    StrategyEngineTransportError,
    StrategyPatchApplyError,
)
from src.engine.strategy.evaluator import (
    factor_is_satisfied,
    operation_is_triggered,
    triggered_operations,
)
from src.engine.strategy.models import (
    EnsembleMethod,
    Factor,
    FactorLogic,
    Operate,
    Operation,
    OperationSide,
    PositionConfig,
    SignalDefinition,
    SignalFreq,
    StrategyConfig,
    mint_strategy_id,
)
from src.engine.strategy.pipeline import (
    load_strategy_payload,
    parse_strategy_payload,
    validate_strategy_payload,
)
from src.engine.strategy.semantic import validate_strategy_config
from src.engine.strategy.serializer import (
    from_wire_format,
    to_wire_format,
    to_wire_json,
)
from src.engine.strategy.templates import (
    StrategyTemplate,
    apply_template,
    get_template,
    instantiate,
    list_templates,
    new_draft,
    template_keys,
)
from src.engine.strategy.view_state import EditorViewState

validate = validate_strategy_config

ASSETS_DIR = Path(__file__).resolve().parent / "assets"
SCHEMA_PATH = ASSETS_DIR / "strategy_config_schema.json"
TEMPLATES_PATH = ASSETS_DIR / "strategy_templates.json"

__all__ = [
    "ASSETS_DIR",
    "SCHEMA_PATH",
    "TEMPLATES_PATH",
    "CatalogSignal",
    "EditorViewState",
    "EnsembleMethod",
    "Factor",
    "FactorLogic",
    "Operate",
    "Operation",
    "OperationSide",
    "PositionConfig",
    "SignalCatalog",
    "SignalDefinition",
    "SignalFreq",
    "SignalFunctionSpec",
    "SignalKey",
    "StrategyConfig",
    "StrategyConfigValidationError",
    "StrategyConfigValidationResult",
    "StrategyConfigViolation",
    "StrategyEditError",
    "StrategyEditor",
    "StrategyEngineError",
    "StrategyEngineRejectedError",
    "StrategyEngineTransportError",
    "StrategyPatchApplyError",
    "StrategyTemplate",
    "SubmissionResult",
    "add_factor",
    "add_factor_signal",
    "add_operation",
    "add_position",
    "add_signal_function",
    "apply_strategy_patch",
    "apply_template",
    "build_update_payload",
    "change_signal_function",
    "diff_strategy_configs",
    "factor_is_satisfied",
    "from_wire_format",
    "get_signal_catalog",
    "get_signal_function",
    "get_template",
    "instantiate",
    "is_canonical_signal_name",
    "list_signal_functions",
    "list_templates",
    "load_strategy_payload",
    "mint_strategy_id",
    "new_draft",
    "operation_is_triggered",
    "parse_signal_name",
    "parse_strategy_payload",
    "remove_factor",
    "remove_factor_signal",
    "remove_operation",
    "remove_position",
    "remove_signal_function",
    "rename_factor",
    "set_signal_param",
    "template_keys",
    "to_wire_format",
    "to_wire_json",
    "triggered_operations",
    "update_backtest_params",
    "update_metadata",
    "update_operation",
    "update_position",
    "update_signal_function",
    "validate",
    "validate_strategy_config",
    "validate_strategy_payload",
]
