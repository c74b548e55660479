from __future__ import annotations

from typing import Iterable

from sklearn.linear_model import LinearRegression

from app.core.dates import add_months


def _month_index(year: int, month: int) -> int:
    return year * 12 + (month - 1)


def forecast_monthly_usage(
    history: Iterable[tuple[int, int, float]],
    *,
    start_year: int,
    start_month: int,
    months: int = 6,
) -> list[dict]:
    """Project monthly usage totals for ``months`` months from the start month.

    ``history`` holds ``(year, month, total)`` rows. Two or more months fit a
    linear trend; a single month is carried forward; no history predicts 0.
    Predictions never go below zero.
    """
    points = sorted((int(y), int(m), float(total)) for y, m, total in history)
    targets = [add_months(start_year, start_month, offset) for offset in range(months)]

    if len(points) >= 2:
        model = LinearRegression()
        model.fit(
            [[_month_index(y, m)] for y, m, _ in points],
            [total for _, _, total in points],
        )
        raw = model.predict([[_month_index(y, m)] for y, m in targets])
        values = [max(0.0, float(value)) for value in raw]
    elif points:
        values = [points[0][2]] * months
    else:
        values = [0.0] * months

    return [
        {"year": year, "month": month, "predicted_amount": round(value, 2)}
        for (year, month), value in zip(targets, values)
    ]
