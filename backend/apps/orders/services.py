"""
Order materializer.

Turns an accepted custom order into one fulfillment order per line item.
Each line is written on its own, keyed by (custom order, item index), so a
retry after a partial failure fills in the gaps without duplicating the
lines that already exist.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import transaction

from apps.core.exceptions import StateConflict
from apps.custom_orders.models import CustomOrder
from apps.custom_orders.validation import shipping_shares
from .models import FulfillmentOrder

logger = logging.getLogger(__name__)


MATERIALIZABLE_STATUSES = (
    CustomOrder.STATUS_ACCEPTED,
    CustomOrder.STATUS_PAID,
    CustomOrder.STATUS_SHIPPED,
    CustomOrder.STATUS_DELIVERED,
)

PAYMENT_METHODS = {
    CustomOrder.PAYMENT_COD: FulfillmentOrder.PAYMENT_COD,
    CustomOrder.PAYMENT_BANK_TRANSFER: FulfillmentOrder.PAYMENT_BANK_TRANSFER,
}


@dataclass
class MaterializationResult:
    """
    Outcome of one materialization pass.

    ``order_ids`` is indexed like the custom order's items; a failed line
    holds None and its index is listed in ``failed``.
    """
    custom_order_id: str
    order_ids: List[Optional[str]] = field(default_factory=list)
    created: int = 0
    reused: int = 0
    failed: List[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            'customOrderId': self.custom_order_id,
            'orderIds': self.order_ids,
            'created': self.created,
            'reused': self.reused,
            'failed': self.failed,
            'complete': self.complete,
        }


class OrderMaterializer:

    def materialize(self, custom_order: CustomOrder) -> MaterializationResult:
        """
        Create (or find) the fulfillment order for every item.

        Shipping is split evenly across items regardless of their value, with
        any leftover cents on the first items.

        Raises:
            StateConflict: if the custom order has not been accepted
        """
        if custom_order.status not in MATERIALIZABLE_STATUSES:
            raise StateConflict(
                f'Custom order is {custom_order.status}; only accepted orders can be materialized',
                code='CUSTOM_ORDER_NOT_ACCEPTED',
            )

        items = list(custom_order.items.all())
        shares = shipping_shares(custom_order.shipping_cost, len(items))
        result = MaterializationResult(custom_order_id=str(custom_order.id))

        for index, (item, share) in enumerate(zip(items, shares)):
            try:
                with transaction.atomic():
                    order, created = FulfillmentOrder.objects.get_or_create(
                        custom_order=custom_order,
                        item_index=index,
                        defaults={
                            'item_id': item.item_id,
                            'item_name': item.name,
                            'item_image': item.image_url or '',
                            'buyer_id': custom_order.buyer_id,
                            'buyer_name': custom_order.buyer_name,
                            'buyer_address': custom_order.buyer_address,
                            'buyer_phone': custom_order.buyer_phone,
                            'seller_id': custom_order.seller_id,
                            'seller_name': custom_order.seller_name,
                            'price': item.unit_price,
                            'quantity': item.quantity,
                            'shipping': share,
                            'total': item.line_total + share,
                            'payment_method': PAYMENT_METHODS[custom_order.payment_method],
                            'status': CustomOrder.STATUS_PENDING,
                        },
                    )
            except Exception as e:
                logger.error(
                    f'[orders] Failed to materialize item {index} of custom order {custom_order.id}: {e}',
                    exc_info=True,
                )
                result.order_ids.append(None)
                result.failed.append(index)
                continue

            result.order_ids.append(str(order.id))
            if created:
                result.created += 1
            else:
                result.reused += 1

        if result.failed:
            logger.warning(
                f'[orders] Custom order {custom_order.id} partially materialized: '
                f'{len(result.failed)} of {len(items)} items failed'
            )
        else:
            logger.info(
                f'[orders] Custom order {custom_order.id} materialized: '
                f'{result.created} created, {result.reused} reused'
            )

        return result

    def list_orders_for_custom_order(self, custom_order_id) -> List[FulfillmentOrder]:
        return list(FulfillmentOrder.objects.filter(custom_order_id=custom_order_id).order_by('item_index'))


# Create singleton instance
order_materializer = OrderMaterializer()
