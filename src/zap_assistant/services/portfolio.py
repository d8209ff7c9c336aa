"""Stock portfolio valuation and WhatsApp reporting."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from zap_assistant.core.config import PortfolioSettings, PositionSettings
from zap_assistant.core.errors import ExternalServiceError, ValidationError
from zap_assistant.core.features import is_present
from zap_assistant.di.health import HealthResult

from .http import check_endpoint, request_json
from .messaging import ZApiMessagingService


@dataclass(slots=True)
class PositionValue:
    """Current valuation of one holding."""

    ticker: str
    shares: float
    price: float | None
    position: float
    cost: float


@dataclass(slots=True)
class PortfolioValuation:
    """Totals across every holding."""

    positions: tuple[PositionValue, ...]
    current_value: float
    total_cost: float

    @property
    def total_pnl(self) -> float:
        return self.current_value - self.total_cost

    @property
    def total_pnl_percent(self) -> float:
        return (self.total_pnl / self.total_cost) * 100 if self.total_cost > 0 else 0.0


class PortfolioService:
    """Value the configured holdings with brapi.dev quotes and report them."""

    service_name = "portfolio"

    def __init__(
        self,
        settings: PortfolioSettings,
        logger: logging.Logger,
        messaging: ZApiMessagingService | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        if not is_present(settings.brapi_token):
            raise ValidationError("brapi.dev token is required for portfolio tracking")
        self._settings = settings
        self._logger = logger
        self._messaging = messaging
        self._client = client or httpx.Client(
            base_url=settings.base_url, timeout=settings.timeout_seconds
        )

    @property
    def can_send_reports(self) -> bool:
        return self._messaging is not None and bool(self._settings.whatsapp_number)

    def fetch_prices(self, tickers: Sequence[str]) -> dict[str, float]:
        """Return the last close for each ticker found in the quote list."""
        wanted = set(tickers)
        data = request_json(
            self._client,
            "GET",
            "/quote/list",
            service="brapi",
            params={"token": self._settings.brapi_token},
        )
        stocks = data.get("stocks") if isinstance(data, dict) else None
        if not isinstance(stocks, list):
            raise ExternalServiceError("brapi", "unexpected quote list format")

        prices = {
            item["stock"]: float(item.get("close") or 0)
            for item in stocks
            if isinstance(item, dict) and item.get("stock") in wanted
        }
        missing = sorted(wanted - prices.keys())
        if missing:
            self._logger.warning("Tickers not found in quote list: %s", ", ".join(missing))
        return prices

    def valuate(self, positions: Sequence[PositionSettings] | None = None) -> PortfolioValuation:
        holdings = list(positions if positions is not None else self._settings.positions)
        if not holdings:
            return PortfolioValuation((), 0.0, 0.0)

        prices = self.fetch_prices([item.ticker for item in holdings])
        values = []
        for item in holdings:
            price = prices.get(item.ticker)
            values.append(
                PositionValue(
                    ticker=item.ticker,
                    shares=item.shares,
                    price=price,
                    position=(price or 0.0) * item.shares,
                    cost=item.avg_price * item.shares,
                )
            )
        return PortfolioValuation(
            positions=tuple(values),
            current_value=sum(value.position for value in values),
            total_cost=sum(value.cost for value in values),
        )

    def send_report(self) -> str:
        """Format the current valuation and send it when messaging is available."""
        report = format_report(self.valuate())
        messaging = self._messaging
        number = self._settings.whatsapp_number
        if messaging is not None and number:
            messaging.send_text(number, report)
        else:
            self._logger.info("Messaging unavailable; portfolio report not sent")
        return report

    def check_health(self) -> HealthResult:
        ok, detail = check_endpoint(
            self._client, "/available", params={"token": self._settings.brapi_token}
        )
        return HealthResult(ok, detail)

    def close(self) -> None:
        self._client.close()


def format_report(valuation: PortfolioValuation) -> str:
    """Render ``valuation`` as a WhatsApp friendly text message."""
    if not valuation.positions:
        return "📊 Portfolio\nNo positions configured."
    lines = ["📊 Portfolio"]
    for value in valuation.positions:
        price = f"R$ {value.price:,.2f}" if value.price is not None else "n/a"
        lines.append(f"{value.ticker}: {value.shares:g} x {price} = R$ {value.position:,.2f}")
    sign = "+" if valuation.total_pnl >= 0 else "-"
    lines.append("")
    lines.append(f"Total: R$ {valuation.current_value:,.2f}")
    lines.append(
        f"P&L: {sign}R$ {abs(valuation.total_pnl):,.2f} "
        f"({sign}{abs(valuation.total_pnl_percent):.2f}%)"
    )
    return "\n".join(lines)


__all__ = ["PortfolioService", "PortfolioValuation", "PositionValue", "format_report"]
