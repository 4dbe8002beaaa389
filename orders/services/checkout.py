from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from django.db import transaction

from core.exceptions import ValidationError
from core.money import format_amount, from_minor, q2
from menu.extras import ExtraSelection, load_extra_groups, load_global_groups, validate_selections
from orders.models import Order, OrderItem, make_temp_order_number
from orders.pricing import (
    CartLine,
    CartLineExtra,
    DeliveryMethod,
    PriceBreakdown,
    PricingConfig,
    check_quantity,
    compute_total,
    cross_validate,
    load_pricing_config,
)

logger = logging.getLogger(__name__)


def _clean(value) -> str:
    return (value or "").strip()


def build_cart_lines(items: List[dict]) -> List[CartLine]:
    """
    Turn validated checkout items into priced ``CartLine``s.

    Menu item, variant and extra prices come from the catalog; the prices a
    client sent are ignored here and only matter to ``cross_validate``.
    """
    from menu.models import MenuItem

    ids = {item["id"] for item in items}
    catalog = MenuItem.objects.in_bulk(ids)
    groups_by_item: Dict[int, list] = {}
    global_groups = None

    lines: List[CartLine] = []
    for item in items:
        quantity = check_quantity(item.get("quantity"))
        menu_item = catalog.get(item["id"])
        if menu_item is None or not menu_item.is_available:
            raise ValidationError(detail=f"Menu item {item['id']} is not available.", item_id=item["id"])

        variant = _clean(item.get("variant"))
        variant_price = menu_item.variant_price(variant) if variant else None
        if variant and variant_price is None and item.get("variantPrice") is not None:
            raise ValidationError(
                detail=f"Variant {variant!r} is not available for {menu_item.name}.",
                item_id=menu_item.id,
            )

        raw_extras = item.get("extras") or []
        for extra in raw_extras:
            check_quantity(extra.get("quantity", 1))
        extras: List[CartLineExtra] = []
        if raw_extras:
            if global_groups is None:
                global_groups = load_global_groups()
            if menu_item.id not in groups_by_item:
                groups_by_item[menu_item.id] = load_extra_groups(menu_item, global_groups)
            selections = [
                ExtraSelection(
                    extra_item_id=extra["id"],
                    group_id=extra.get("groupId"),
                    quantity=extra.get("quantity", 1),
                )
                for extra in raw_extras
            ]
            for group, extra_item, extra_qty in validate_selections(groups_by_item[menu_item.id], selections):
                extras.append(CartLineExtra(
                    extra_item_id=extra_item.id,
                    unit_price=extra_item.price,
                    group_id=group.id,
                    quantity=extra_qty,
                    name=extra_item.name,
                ))

        lines.append(CartLine(
            catalog_item_id=menu_item.id,
            unit_price=q2(menu_item.price),
            quantity=quantity,
            variant_price=q2(variant_price) if variant_price is not None else None,
            extras=tuple(extras),
            name=menu_item.name,
            variant=variant,
        ))
    return lines


def prepare_checkout(data: dict, config: Optional[PricingConfig] = None) -> Tuple[PriceBreakdown, List[CartLine]]:
    """Price a validated checkout payload and reject mismatching client totals."""
    config = config or load_pricing_config()
    method = DeliveryMethod.parse(data.get("deliveryMethod"))
    lines = build_cart_lines(data["items"])
    breakdown = compute_total(lines, method, config)
    cross_validate(breakdown, data)
    return breakdown, lines


def checkout_preview(data: dict, config: Optional[PricingConfig] = None) -> dict:
    breakdown, _ = prepare_checkout(data, config)
    method = DeliveryMethod.parse(data.get("deliveryMethod"))
    temp_number = make_temp_order_number()
    logger.info("Checkout prepared %s total=%s", temp_number, format_amount(breakdown.total))
    return {
        "tempOrderNumber": temp_number,
        "breakdown": breakdown.as_dict(),
        "estimatedDelivery": method.estimated_delivery,
    }


def _extras_snapshot(line: CartLine, group_names: Dict[int, str]) -> List[dict]:
    return [
        {
            "id": extra.extra_item_id,
            "name": extra.name,
            "price": format_amount(extra.unit_price),
            "quantity": extra.quantity,
            "groupId": extra.group_id,
            "groupName": group_names.get(extra.group_id, ""),
        }
        for extra in line.extras
    ]


def create_order(data: dict, user=None, config: Optional[PricingConfig] = None) -> Order:
    """
    Persist a PENDING/UNPAID order with its breakdown pinned.

    Pricing settings changed after this point never affect the order.
    """
    from menu.models import ExtraGroup

    breakdown, lines = prepare_checkout(data, config)
    method = DeliveryMethod.parse(data.get("deliveryMethod"))
    group_ids = {extra.group_id for line in lines for extra in line.extras}
    group_names = dict(ExtraGroup.objects.filter(id__in=group_ids).values_list("id", "name"))

    with transaction.atomic():
        order = Order(
            user=user if getattr(user, "is_authenticated", False) else None,
            customer_name=_clean(data.get("customerName")),
            customer_email=_clean(data.get("customerEmail")),
            customer_phone=_clean(data.get("customerPhone")),
            delivery_address=_clean(data.get("deliveryAddress")),
            delivery_city=_clean(data.get("deliveryCity")),
            special_instructions=_clean(data.get("specialInstructions")),
            delivery_method=method.value,
            subtotal=breakdown.subtotal,
            delivery_fee=breakdown.delivery_fee,
            vat_rate=breakdown.vat_rate,
            vat_amount=breakdown.vat_amount,
            total=breakdown.total,
        )
        order.clean()
        order.save()

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                menu_item_id=line.catalog_item_id,
                name=line.name,
                unit_price=line.unit_price,
                variant=line.variant,
                variant_price=line.variant_price,
                measurement=_clean(raw.get("measurement")),
                measurement_type=_clean(raw.get("measurementType")),
                quantity=line.quantity,
                extras=_extras_snapshot(line, group_names),
                line_total=from_minor(line.line_total_minor()),
            )
            for line, raw in zip(lines, data["items"])
        ])

    logger.info(
        "Order %s created (%s lines, total=%s, method=%s)",
        order.order_number, len(lines), format_amount(order.total), method.value,
    )
    return order


def order_total_matches(order: Order, amount) -> bool:
    try:
        return q2(amount) == q2(order.total)
    except ValueError:
        return False
