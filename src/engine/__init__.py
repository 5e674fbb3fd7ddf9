"""Engine modules."""

from src.engine.strategy import StrategyConfig, StrategyEditor, validate_strategy_config

__all__ = [
    "StrategyConfig",
    "StrategyEditor",
    "validate_strategy_config",
]
