"""Currency symbols, formatting and default-currency detection."""

import locale as _locale
import logging
import os
import re
from decimal import Decimal
from pathlib import Path

from .money import DEFAULT_TOLERANCE, Money

logger = logging.getLogger(__name__)

FALLBACK_CURRENCY = "USD"

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$", "EUR": "€", "GBP": "£", "LKR": "Rs", "INR": "₹",
    "AUD": "A$", "CAD": "C$", "JPY": "¥", "CNY": "¥", "CHF": "Fr",
    "SGD": "S$", "AED": "د.إ", "MYR": "RM", "THB": "฿", "KRW": "₩",
    "BRL": "R$", "ZAR": "R", "SEK": "kr", "NZD": "NZ$", "PKR": "₨",
}  # fmt: skip

COUNTRY_TO_CURRENCY: dict[str, str] = {
    "US": "USD",
    # Eurozone
    "DE": "EUR", "FR": "EUR", "IT": "EUR", "ES": "EUR", "NL": "EUR",
    "BE": "EUR", "AT": "EUR", "PT": "EUR", "IE": "EUR", "FI": "EUR",
    "GR": "EUR", "SK": "EUR", "SI": "EUR", "EE": "EUR", "LV": "EUR",
    "LT": "EUR", "CY": "EUR", "MT": "EUR", "LU": "EUR",
    "GB": "GBP",
    "LK": "LKR",
    "IN": "INR",
    "AU": "AUD",
    "CA": "CAD",
    "JP": "JPY",
    "CN": "CNY",
    "CH": "CHF", "LI": "CHF",
    "SG": "SGD",
    "AE": "AED",
    "MY": "MYR",
    "TH": "THB",
    "KR": "KRW",
    "BR": "BRL",
    "ZA": "ZAR",
    "SE": "SEK",
    "NZ": "NZD",
    "PK": "PKR",
}  # fmt: skip

TIMEZONE_TO_CURRENCY: dict[str, str] = {
    "Asia/Colombo": "LKR",
    "Asia/Kolkata": "INR", "Asia/Calcutta": "INR",
    "Europe/London": "GBP",
    "America/New_York": "USD", "America/Chicago": "USD", "America/Denver": "USD",
    "America/Los_Angeles": "USD", "America/Anchorage": "USD", "Pacific/Honolulu": "USD",
    "Europe/Berlin": "EUR", "Europe/Paris": "EUR", "Europe/Rome": "EUR",
    "Europe/Madrid": "EUR", "Europe/Amsterdam": "EUR", "Europe/Brussels": "EUR",
    "Europe/Vienna": "EUR", "Europe/Lisbon": "EUR", "Europe/Dublin": "EUR",
    "Europe/Helsinki": "EUR", "Europe/Athens": "EUR", "Europe/Luxembourg": "EUR",
    "Australia/Sydney": "AUD", "Australia/Melbourne": "AUD", "Australia/Brisbane": "AUD",
    "Australia/Perth": "AUD", "Australia/Adelaide": "AUD",
    "America/Toronto": "CAD", "America/Vancouver": "CAD",
    "Asia/Tokyo": "JPY",
    "Asia/Shanghai": "CNY", "Asia/Hong_Kong": "CNY",
    "Europe/Zurich": "CHF",
    "Asia/Singapore": "SGD",
    "Asia/Dubai": "AED",
    "Asia/Kuala_Lumpur": "MYR",
    "Asia/Bangkok": "THB",
    "Asia/Seoul": "KRW",
    "America/Sao_Paulo": "BRL",
    "Africa/Johannesburg": "ZAR",
    "Europe/Stockholm": "SEK",
    "Pacific/Auckland": "NZD",
    "Asia/Karachi": "PKR",
}  # fmt: skip


def currency_symbol(currency: str) -> str:
    """Symbol for ``currency``, or ``"<CODE> "`` when unknown."""
    code = currency.upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def format_money(money: Money) -> str:
    """
    Format the magnitude of ``money`` with its currency symbol.

    Example:
        Money.of("-12.5", "USD") -> "$12.50"
        Money.of("3", "XYZ") -> "XYZ 3.00"
    """
    return f"{currency_symbol(money.currency)}{money.abs().to_major():.2f}"


def format_signed(money: Money) -> str:
    """Like :func:`format_money` but keeps a leading minus for negatives."""
    sign = "-" if money.amount < 0 else ""
    return f"{sign}{format_money(money)}"


def describe_balance(
    name: str, money: Money, tolerance: Decimal = DEFAULT_TOLERANCE
) -> str:
    """Human summary of a balance from the viewer's side."""
    if money.is_zero(tolerance):
        return "Settled up"
    if money.amount > 0:
        return f"{name} owes you {format_money(money)}"
    return f"You owe {name} {format_money(money)}"


# ============================================================================
# Default currency detection
# ============================================================================


def _detect_timezone() -> str | None:
    tz = os.environ.get("TZ", "").lstrip(":")
    if tz:
        return tz

    timezone_file = Path("/etc/timezone")
    if timezone_file.is_file():
        name = timezone_file.read_text(encoding="utf-8").strip()
        if name:
            return name

    localtime = Path("/etc/localtime")
    if localtime.is_symlink():
        target = str(localtime.resolve())
        if "zoneinfo/" in target:
            return target.split("zoneinfo/", 1)[1]

    return None


def _detect_locale() -> str | None:
    for var in ("LC_ALL", "LC_MONETARY", "LANG"):
        value = os.environ.get(var)
        if value and value not in ("C", "POSIX"):
            return value
    return _locale.getlocale()[0]


def _region_from_locale(locale_name: str) -> str | None:
    # "en_LK.UTF-8", "en-LK", "zh_Hant_TW@calendar" -> the trailing region
    base = re.split(r"[.@]", locale_name, maxsplit=1)[0]
    parts = re.split(r"[-_]", base)
    if len(parts) < 2:
        return None
    return parts[-1].upper()


def infer_default_currency(
    timezone: str | None = None, locale: str | None = None
) -> str:
    """
    Guess the user's home currency. Never raises.

    The timezone is tried first since it is not affected by language
    settings, then the region of the locale, then ``USD``. Arguments that
    are omitted are detected from the environment.

    Args:
        timezone: IANA timezone name, e.g. "Asia/Colombo"
        locale: Locale name, e.g. "en_LK.UTF-8" or "en-LK"

    Returns:
        ISO currency code
    """
    try:
        tz = timezone or _detect_timezone()
        if tz and tz in TIMEZONE_TO_CURRENCY:
            return TIMEZONE_TO_CURRENCY[tz]

        locale_name = locale or _detect_locale()
        if locale_name:
            region = _region_from_locale(locale_name)
            mapped = COUNTRY_TO_CURRENCY.get(region or "")
            if mapped and mapped in CURRENCY_SYMBOLS:
                return mapped
    except (OSError, ValueError) as e:
        logger.debug(f"Currency detection failed, using {FALLBACK_CURRENCY}: {e}")

    return FALLBACK_CURRENCY
