"""
Plain-text notification content built from an order snapshot.

Each builder returns ``(subject, body)``; sending is left to the Celery
tasks in ``orders.tasks`` and ``payments.tasks``.
"""
from __future__ import annotations

from typing import List, Tuple

from django.conf import settings

from core.money import format_amount

BRAND_NAME = "South Place"


def _support_line() -> str:
    support = getattr(settings, "SUPPORT_EMAIL", "")
    return f"Questions? Reply to this email or contact {support}." if support else "Questions? Just reply to this email."


def _item_lines(order) -> List[str]:
    lines = []
    for item in order.items.all():
        label = item.name
        if item.variant:
            label = f"{label} ({item.variant})"
        lines.append(f"  {item.quantity} x {label}  {format_amount(item.line_total)}")
        for extra in item.extras or []:
            qty = extra.get("quantity") or 1
            suffix = f" x{qty}" if qty != 1 else ""
            lines.append(f"      + {extra.get('name', 'Extra')}{suffix}")
    return lines


def _totals_lines(order) -> List[str]:
    lines = [
        f"Subtotal:      {format_amount(order.subtotal)}",
        f"Delivery fee:  {format_amount(order.delivery_fee)}",
    ]
    if order.vat_amount:
        lines.append(f"VAT ({format_amount(order.vat_rate)}%):  {format_amount(order.vat_amount)}")
    lines.append(f"Total:         {format_amount(order.total)}")
    return lines


def status_label(status: str) -> str:
    return (status or "").replace("_", " ")


def payment_confirmation(order) -> Tuple[str, str]:
    subject = f"Your {BRAND_NAME} order {order.order_number} is confirmed"
    body = "\n".join([
        f"Hi {order.customer_name},",
        "",
        f"Thanks for your order! We have received your payment for order {order.order_number}.",
        "",
        "Items:",
        *_item_lines(order),
        "",
        *_totals_lines(order),
        "",
        f"Delivery to: {order.delivery_address}, {order.delivery_city}",
        f"Estimated delivery: {order.estimated_delivery}",
        "",
        _support_line(),
    ])
    return subject, body


def staff_new_order(order) -> Tuple[str, str]:
    subject = f"New order received: {order.order_number}"
    body = "\n".join([
        f"Order {order.order_number} has been paid.",
        "",
        f"Customer: {order.customer_name}",
        f"Email: {order.customer_email}",
        f"Phone: {order.customer_phone}",
        f"Delivery: {order.delivery_method} to {order.delivery_address}, {order.delivery_city}",
        f"Instructions: {order.special_instructions or '-'}",
        "",
        "Items:",
        *_item_lines(order),
        "",
        *_totals_lines(order),
    ])
    return subject, body


def order_delivered(order) -> Tuple[str, str]:
    subject = f"Your {BRAND_NAME} order {order.order_number} has been delivered"
    body = "\n".join([
        f"Hi {order.customer_name},",
        "",
        f"Your order {order.order_number} has been delivered. Enjoy your meal!",
        "",
        *_totals_lines(order),
        "",
        _support_line(),
    ])
    return subject, body


def order_status_update(order, status: str) -> Tuple[str, str]:
    label = status_label(status)
    subject = f"Update on your order {order.order_number}: {label}"
    body = "\n".join([
        f"Hi {order.customer_name},",
        "",
        f"Your order {order.order_number} is now {label.lower()}.",
        f"Estimated delivery: {order.estimated_delivery}",
        "",
        "Items:",
        *_item_lines(order),
        "",
        _support_line(),
    ])
    return subject, body
