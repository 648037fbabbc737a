"""Dashboard rendering: weather, crypto and portfolio cards plus the page template."""

from datetime import datetime
from html import escape
from typing import Optional

from page_controller import ResourceState

WEATHER_ICONS = {
    "clear": ("sun", "☀️"),
    "clouds": ("cloud", "☁️"),
    "rain": ("rain", "\U0001f327️"),
}


def format_price(price: float) -> str:
    """USD with thousands separators and two decimals: $65,000.00."""
    sign = "-" if price < 0 else ""
    return f"{sign}${abs(price):,.2f}"


def format_change(change: float) -> tuple[str, str, str]:
    """Return (css class, arrow, text) for a 24h percent change."""
    if change >= 0:
        return "up", "▲", f"{change:.2f}%"
    return "down", "▼", f"{change:.2f}%"


def weather_icon(condition: str) -> str:
    name, glyph = WEATHER_ICONS.get((condition or "").lower(), WEATHER_ICONS["clear"])
    return f'<span class="weather-icon icon-{name}" aria-label="{name}">{glyph}</span>'


def format_time_for_zone(iso_ts: str, tz_name: str) -> str:
    from weather_manager import format_time
    return format_time(datetime.fromisoformat(iso_ts.replace("Z", "+00:00")), tz_name)


# ── Shared card states ──
def _loading_card() -> str:
    return '<div class="card card-loading"><div class="spinner" role="status" aria-label="Loading"></div></div>'


def _error_card(error: str) -> str:
    return f'<div class="card card-error"><div class="error-text">{escape(error)}</div></div>'


def _card_header(title: str, refresh_url: str, label: str) -> str:
    return (
        f'<div class="card-header"><div class="card-title">{escape(title)}</div>'
        f'<form method="post" action="{escape(refresh_url)}" class="refresh-form">'
        f'<button type="submit" class="refresh-btn" aria-label="{escape(label)}">&#x21bb;</button>'
        f'</form></div>'
    )


def _placeholder(text: str) -> str:
    return f'<div class="placeholder"><span class="info-icon">&#x2139;</span><p>{escape(text)}</p></div>'


def _time_zones(first_label: str, first_time: str, second_label: str, second_time: str) -> str:
    return (
        '<div class="time-zones">'
        f'<div><p class="tz-label">{escape(first_label)}</p><p class="mono">{escape(first_time)}</p></div>'
        f'<div><p class="tz-label">{escape(second_label)}</p><p class="mono">{escape(second_time)}</p></div>'
        '</div>'
    )


# ── Cards ──
def render_weather_card(data, is_loading: bool, error: str, refresh_url: str,
                        zone_labels: tuple = ("Abu Dhabi (GST)", "New York (EST)")) -> str:
    if is_loading:
        return _loading_card()
    if error:
        return _error_card(error)
    header = _card_header("Weather", refresh_url, "Refresh weather data")
    if not data:
        return f'<div class="card" id="weather-card">{header}{_placeholder("No weather data")}</div>'
    return (
        f'<div class="card" id="weather-card">{header}'
        '<div class="weather-main"><div>'
        f'<h3 class="location">{escape(data.location)}</h3>'
        f'<p class="hint">{escape(data.date)}</p>'
        f'<p class="temperature">{data.temperature}&deg;F</p>'
        f'<p class="hint description">{escape(data.description)}</p>'
        f'</div>{weather_icon(data.condition)}</div>'
        f'{_time_zones(zone_labels[0], data.timestamp, zone_labels[1], data.est_time)}'
        '</div>'
    )


def _price_row(quote) -> str:
    cls, arrow, pct = format_change(quote.price_change_percentage_24h)
    coin = "btc" if quote.symbol == "BTC" else "coin"
    return (
        f'<div class="price-row" data-symbol="{escape(quote.symbol)}">'
        f'<div class="price-label"><span class="coin-icon icon-{coin}"></span>'
        f'<div><p class="symbol">{escape(quote.symbol)}/USD</p>'
        f'<span class="change {cls}"><span class="arrow">{arrow}</span> {pct}</span></div></div>'
        f'<p class="price mono">{format_price(quote.current_price)}</p>'
        '</div>'
    )


def render_crypto_card(data, is_loading: bool, error: str, refresh_url: str,
                       zones: tuple = (("Abu Dhabi (GST)", "Asia/Dubai"), ("New York (EST)", "America/New_York"))) -> str:
    if is_loading:
        return _loading_card()
    if error:
        return _error_card(error)
    header = _card_header("Crypto Prices", refresh_url, "Refresh price data")
    if data is None or data.is_empty():
        return f'<div class="card" id="crypto-card">{header}{_placeholder("No price data")}</div>'
    rows = [_price_row(q) for q in (data.btc, data.eth) if q is not None]
    body = '<div class="divider"></div>'.join(rows)
    if data.btc is not None:
        (first_label, first_tz), (second_label, second_tz) = zones
        body += _time_zones(
            first_label, format_time_for_zone(data.btc.last_updated, first_tz),
            second_label, format_time_for_zone(data.btc.last_updated, second_tz),
        )
    return f'<div class="card" id="crypto-card">{header}<div class="prices">{body}</div></div>'


def render_portfolio_card(data, is_loading: bool, error: str, refresh_url: str) -> str:
    if is_loading:
        return _loading_card()
    if error:
        return _error_card(error)
    header = _card_header("Coinbase Portfolios", refresh_url, "Refresh portfolio data")
    if not data:
        return f'<div class="card" id="portfolio-card">{header}{_placeholder("No portfolios found")}</div>'
    items = "".join(
        f'<li class="portfolio" data-id="{escape(p.id)}">'
        '<span class="wallet-icon">&#x1f45b;</span><div>'
        f'<p class="portfolio-name">{escape(p.name or p.id)}</p>'
        f'<div class="hint ids"><p>Portfolio ID: {escape(p.id)}</p>'
        f'<p>Entity ID: {escape(p.entity_id)}</p>'
        + (f'<p>Organization ID: {escape(p.organization_id)}</p>' if p.organization_id else "")
        + '</div></div></li>'
        for p in data
    )
    return f'<div class="card" id="portfolio-card">{header}<ul class="portfolio-list">{items}</ul></div>'


def render_cards(snapshot: dict, config: Optional[dict] = None) -> dict:
    """Render every card from the controller's state. Returns {source: html}."""
    config = config or {}
    loc = config.get("location", {})
    ref = config.get("reference_timezone", {})
    first = (loc.get("label", "Abu Dhabi (GST)"), loc.get("timezone", "Asia/Dubai"))
    second = (ref.get("label", "New York (EST)"), ref.get("timezone", "America/New_York"))
    empty = ResourceState()
    weather = snapshot.get("weather", empty)
    crypto = snapshot.get("crypto", empty)
    portfolios = snapshot.get("portfolios", empty)
    return {
        "weather": render_weather_card(weather.data, weather.is_loading, weather.error, "/refresh/weather",
                                       zone_labels=(first[0], second[0])),
        "crypto": render_crypto_card(crypto.data, crypto.is_loading, crypto.error, "/refresh/crypto",
                                     zones=(first, second)),
        "portfolios": render_portfolio_card(portfolios.data, portfolios.is_loading, portfolios.error,
                                            "/refresh/portfolios"),
    }


def render_page(snapshot: dict, config: Optional[dict] = None, poll_seconds: int = 30) -> str:
    """Build the single-page dashboard. Cards re-render from /api/cards every poll_seconds (at least 1s)."""
    cards = render_cards(snapshot, config)
    slots = "".join(f'<div class="slot" id="slot-{name}">{html}</div>' for name, html in cards.items())
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width,initial-scale=1.0">
<title>Dashboard</title>
<meta name="theme-color" content="#09090b">
<link rel="preconnect" href="https://fonts.googleapis.com">
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&family=JetBrains+Mono:wght@400;600&display=swap" rel="stylesheet">
<style>
:root {{
  --bg-primary: #09090b;
  --bg-card: #161619;
  --bg-accent: #1c1c20;
  --border-subtle: rgba(255,255,255,0.06);
  --border-accent: rgba(212,160,23,0.3);
  --text-primary: #f1f5f9;
  --text-muted: #64748b;
  --accent-primary: #d4a017;
  --success: #34d399;
  --danger: #f87171;
  --radius: 12px;
  --mono: 'JetBrains Mono', monospace;
}}
* {{ box-sizing:border-box; margin:0; padding:0; }}
body {{ font-family:'Inter',sans-serif; background:var(--bg-primary); color:var(--text-primary); }}
main {{ max-width:960px; margin:0 auto; padding:24px 16px; }}
.grid {{ display:grid; grid-template-columns:repeat(auto-fit,minmax(320px,1fr)); gap:16px; }}
/* ── Card ── */
.card {{
  background:var(--bg-card);
  border:1px solid var(--border-subtle);
  border-radius:var(--radius); padding:20px;
  transition:border-color 0.2s ease;
}}
.card:hover {{ border-color:var(--border-accent); }}
.card-header {{ display:flex; justify-content:space-between; align-items:center; margin-bottom:14px; }}
.card-title {{ font-size:0.7rem; font-weight:600; text-transform:uppercase; letter-spacing:0.1em; color:var(--text-muted); }}
.card-loading {{ display:flex; align-items:center; justify-content:center; min-height:200px; }}
.spinner {{ width:32px; height:32px; border:3px solid var(--border-subtle); border-top-color:var(--accent-primary); border-radius:50%; animation:spin 0.8s linear infinite; }}
@keyframes spin {{ to {{ transform:rotate(360deg); }} }}
.error-text {{ color:var(--danger); }}
.refresh-btn {{ background:none; border:none; color:var(--text-primary); font-size:1.1rem; padding:6px 10px; border-radius:50%; cursor:pointer; }}
.refresh-btn:hover {{ background:var(--bg-accent); }}
.hint {{ color:var(--text-muted); font-size:0.85rem; }}
.mono {{ font-family:var(--mono); }}
.placeholder {{ display:flex; gap:8px; align-items:center; color:var(--text-muted); }}
.weather-main {{ display:flex; justify-content:space-between; align-items:center; }}
.temperature {{ font-size:2rem; font-weight:700; margin-top:8px; }}
.weather-icon {{ font-size:2rem; }}
.time-zones {{ display:grid; grid-template-columns:1fr 1fr; gap:16px; border-top:1px solid var(--border-subtle); margin-top:16px; padding-top:16px; font-size:0.85rem; color:var(--text-muted); }}
.tz-label {{ color:var(--text-primary); font-weight:500; }}
.price-row {{ display:flex; justify-content:space-between; align-items:center; padding:12px 0; }}
.price {{ font-size:1.25rem; font-weight:700; }}
.change.up {{ color:var(--success); }}
.change.down {{ color:var(--danger); }}
.divider {{ border-top:1px solid var(--border-subtle); }}
.portfolio-list {{ list-style:none; display:flex; flex-direction:column; gap:12px; }}
.portfolio {{ display:flex; gap:12px; padding:12px; border-radius:8px; background:var(--bg-accent); }}
.portfolio-name {{ font-weight:500; }}
.ids {{ font-size:0.75rem; }}
</style>
</head>
<body>
<main>
<div class="grid">{slots}</div>
</main>
<script>
(function() {{
  function applyCards(cards) {{
    Object.keys(cards).forEach(function(name) {{
      var slot = document.getElementById("slot-" + name);
      if (slot) slot.innerHTML = cards[name];
    }});
  }}
  setInterval(function() {{
    fetch("/api/cards").then(function(r) {{ return r.json(); }}).then(applyCards).catch(function() {{}});
  }}, {max(1000, int(poll_seconds * 1000))});
}})();
</script>
</body>
</html>"""
