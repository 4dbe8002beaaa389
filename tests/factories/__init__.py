from .accounts import StaffUserFactory, UserFactory
from .menu import (
    ExtraGroupFactory,
    ExtraItemFactory,
    MenuCategoryFactory,
    MenuItemExtraGroupFactory,
    MenuItemFactory,
)
from .orders import OrderFactory, OrderItemFactory
from .payments import PaymentFactory, WebhookEventFactory

__all__ = [
    "UserFactory",
    "StaffUserFactory",
    "MenuCategoryFactory",
    "MenuItemFactory",
    "ExtraGroupFactory",
    "ExtraItemFactory",
    "MenuItemExtraGroupFactory",
    "OrderFactory",
    "OrderItemFactory",
    "PaymentFactory",
    "WebhookEventFactory",
]
