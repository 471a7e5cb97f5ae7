# src/pricewatch/infrastructure/notify/messages.py
"""Human-readable alert texts shared by every notification channel."""

from html import escape

from pricewatch.domain.entities import Alert, AlertType, TrackedItem
from pricewatch.domain.value_objects import percent_change

_TITLES = {
    AlertType.PRICE_DROP: "Price drop",
    AlertType.TARGET_REACHED: "Target price reached",
    AlertType.PERCENTAGE_DROP: "Big price drop",
    AlertType.BACK_IN_STOCK: "Back in stock",
}


def alert_subject(alert: Alert, item: TrackedItem) -> str:
    return f"{_TITLES[alert.alert_type]}: {item.name[:50]} at {alert.new_price:,.2f}"


def alert_body(alert: Alert, item: TrackedItem) -> str:
    lines = [
        f"{_TITLES[alert.alert_type]}",
        "",
        f"Item: {item.name}",
        f"Old price: {alert.old_price:,.2f}",
        f"New price: {alert.new_price:,.2f}",
    ]
    pct = percent_change(alert.old_price, alert.new_price)
    if pct > 0:
        lines.append(f"Change: -{pct.normalize():f}%")
    if item.retailer:
        lines.append(f"Retailer: {item.retailer}")
    lines += ["", f"URL: {item.url}"]
    return "\n".join(lines)


def alert_html(alert: Alert, item: TrackedItem) -> str:
    """Telegram HTML flavour of alert_body()."""
    head, *rest = alert_body(alert, item).split("\n")
    return f"<b>{escape(head)}</b>\n" + escape("\n".join(rest))
