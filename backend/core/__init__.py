"""Core shared logic: bar models and technical indicators.

This package contains pure business logic with no I/O dependencies
(no Redis or network access). It is shared between the data layer
(app/) and the backtesting system (backtest/).
"""
