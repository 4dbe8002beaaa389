from django.dispatch import Signal

# Sent after a fulfillment status change is written (inside the transaction).
# Receivers get kwargs: order, old, new, by_user
order_status_changed: Signal = Signal()
