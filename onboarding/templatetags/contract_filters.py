from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django import template

register = template.Library()

CURRENCY_SYMBOLS = {'NGN': '₦', 'USD': '$'}


def _decimal(value):
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


@register.filter
def money(value, currency='NGN'):
    """Format an amount, e.g. ``{{ fee|money:"NGN" }}`` -> ``₦500,000.00``"""
    amount = _decimal(value)
    if amount is None:
        return ''
    symbol = CURRENCY_SYMBOLS.get(currency or 'NGN', f"{currency} ")
    return f"{symbol}{amount:,.2f}"


@register.filter
def naira(value):
    return money(value, 'NGN')


@register.filter
def percent(value):
    number = _decimal(value)
    if number is None:
        return ''
    text = f"{number:.2f}".rstrip('0').rstrip('.')
    return f"{text}%"


@register.filter
def longdate(value):
    """``2026-10-19`` -> ``19 October 2026``"""
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        return value or ''
    return f"{value.day} {value:%B %Y}"
