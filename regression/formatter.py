"""
regression/formatter.py

Human-readable rendering of a fitted SER equation.

    format_equation(model)          -> "Y = 0.1468×X1 + 0.2412×X2 + 305.0161"
    format_labeled_equation(model)  -> "Consumption = 0.1468×distance + 0.2412×tonnage + 305.0161"

Coefficients are rendered with four decimals, predictors first and the
intercept last.  Negative terms use the minus sign (U+2212), never ``+ -``;
a term that rounds to ``0.0000`` carries no sign.
"""

from __future__ import annotations

from regression.model import PredictorSet, RegressionModel

MINUS = "−"
MULTIPLY = "×"
DECIMALS = 4


def format_equation(model: RegressionModel) -> str:
    """Render *model* as ``Y = a×X1 [+ b×X2] + c``."""
    symbols = [f"X{i}" for i in range(1, model.predictor_set.predictor_count + 1)]
    return _render("Y", symbols, model)


def format_labeled_equation(model: RegressionModel, response: str = "Consumption") -> str:
    """Render *model* with business names (``distance``, ``tonnage``) for reports."""
    return _render(response, list(model.predictor_set.columns), model)


def _render(response: str, symbols: list[str], model: RegressionModel) -> str:
    values = _slope_values(model)
    values.append(model.intercept)
    suffixes = [f"{MULTIPLY}{symbol}" for symbol in symbols] + [""]

    parts: list[str] = []
    for position, (value, suffix) in enumerate(zip(values, suffixes)):
        digits = f"{abs(value):.{DECIMALS}f}"
        # a value that rounds to zero is rendered unsigned
        negative = value < 0 and float(digits) > 0.0
        magnitude = f"{digits}{suffix}"
        if position == 0:
            parts.append(f"{MINUS}{magnitude}" if negative else magnitude)
        else:
            parts.append(f"{MINUS if negative else '+'} {magnitude}")

    return f"{response} = " + " ".join(parts)


def _slope_values(model: RegressionModel) -> list[float]:
    values = [model.coefficients.distance]
    if model.predictor_set is PredictorSet.WITH_TONNAGE:
        values.append(model.coefficients.tonnage or 0.0)
    return values
