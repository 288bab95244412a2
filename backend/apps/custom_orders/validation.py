"""
Custom order proposal rules.

Pure functions, no database access: the request serializer and the service
both run proposals through ``normalize_proposal`` before anything is stored.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple

from apps.core.exceptions import ValidationFailed
from .models import CustomOrder, ITEM_TYPE_DIGITAL, ITEM_TYPE_PHYSICAL

CENT = Decimal('0.01')
ITEM_TYPES = (ITEM_TYPE_PHYSICAL, ITEM_TYPE_DIGITAL)
PAYMENT_METHODS = (CustomOrder.PAYMENT_COD, CustomOrder.PAYMENT_BANK_TRANSFER)


@dataclass
class ProposalItem:
    item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    item_type: str = ITEM_TYPE_PHYSICAL
    description: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass
class Proposal:
    items: List[ProposalItem] = field(default_factory=list)
    shipping_cost: Decimal = Decimal('0')
    payment_method: str = CustomOrder.PAYMENT_COD
    item_type: str = ITEM_TYPE_PHYSICAL
    total_amount: Decimal = Decimal('0')
    grand_total: Decimal = Decimal('0')

    @property
    def is_digital(self) -> bool:
        return self.item_type == ITEM_TYPE_DIGITAL


def to_money(value) -> Decimal:
    """
    Raises:
        InvalidOperation, TypeError, ValueError: on non-numeric input
    """
    if isinstance(value, bool):
        raise TypeError('boolean is not an amount')
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise InvalidOperation(str(value))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(items: Sequence, shipping_cost) -> Tuple[Decimal, Decimal]:
    """
    Returns:
        (total_amount, grand_total) where total_amount is the sum of
        unit_price x quantity and grand_total adds shipping
    """
    total_amount = sum((to_money(item.unit_price) * int(item.quantity) for item in items), Decimal('0'))
    total_amount = total_amount.quantize(CENT)
    return total_amount, (total_amount + to_money(shipping_cost)).quantize(CENT)


def _get(raw, *names, default=None):
    for name in names:
        if isinstance(raw, dict) and name in raw:
            return raw[name]
        if not isinstance(raw, dict) and hasattr(raw, name):
            return getattr(raw, name)
    return default


def normalize_proposal(
    items: Sequence,
    shipping_cost,
    payment_method: Optional[str],
    item_type: Optional[str] = None
) -> Proposal:
    """
    Validate a seller's proposal and apply the digital-goods rules.

    Items may be dicts (snake_case or camelCase keys) or objects with the
    same attributes. When the order or any item is digital, shipping is
    forced to 0, every quantity to 1, and only bank transfer is accepted.

    Raises:
        ValidationFailed: with per-field messages in ``details``
    """
    errors: Dict[str, object] = {}
    item_type = item_type or ITEM_TYPE_PHYSICAL

    if item_type not in ITEM_TYPES:
        errors['item_type'] = f'Item type must be one of: {", ".join(ITEM_TYPES)}'

    if not items:
        errors['items'] = 'At least one item is required'
        items = []

    parsed: List[ProposalItem] = []
    item_errors: Dict[int, Dict[str, str]] = {}
    for index, raw in enumerate(items):
        problems = {}
        line_type = _get(raw, 'item_type', 'itemType') or item_type
        if line_type not in ITEM_TYPES:
            problems['item_type'] = f'Item type must be one of: {", ".join(ITEM_TYPES)}'

        name = str(_get(raw, 'name', default='') or '').strip()
        if not name:
            problems['name'] = 'Item name is required'

        try:
            unit_price = to_money(_get(raw, 'unit_price', 'unitPrice'))
            if unit_price <= 0:
                problems['unit_price'] = 'Unit price must be greater than 0'
        except (InvalidOperation, TypeError, ValueError):
            unit_price = Decimal('0')
            problems['unit_price'] = 'Unit price must be a number'

        try:
            quantity_raw = _get(raw, 'quantity')
            if isinstance(quantity_raw, bool):
                raise TypeError('boolean is not a quantity')
            quantity = int(quantity_raw)
            if Decimal(str(quantity_raw)) != quantity:
                raise ValueError(quantity_raw)
        except (InvalidOperation, TypeError, ValueError):
            quantity = 0
            problems['quantity'] = 'Quantity must be a whole number'

        if problems:
            item_errors[index] = problems

        parsed.append(ProposalItem(
            item_id=str(_get(raw, 'item_id', 'id') or f'item-{index + 1}'),
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            item_type=line_type,
            description=(str(_get(raw, 'description') or '').strip() or None),
            image_url=_get(raw, 'image_url', 'imageUrl') or None,
        ))

    is_digital = item_type == ITEM_TYPE_DIGITAL or any(p.item_type == ITEM_TYPE_DIGITAL for p in parsed)

    if is_digital:
        item_type = ITEM_TYPE_DIGITAL
        shipping = Decimal('0.00')
        for index, item in enumerate(parsed):
            item.quantity = 1
            problems = item_errors.get(index)
            if problems:
                problems.pop('quantity', None)
                if not problems:
                    del item_errors[index]
    else:
        try:
            shipping = to_money(shipping_cost if shipping_cost not in (None, '') else 0)
            if shipping < 0:
                errors['shipping_cost'] = 'Shipping cost cannot be negative'
        except (InvalidOperation, TypeError, ValueError):
            shipping = Decimal('0.00')
            errors['shipping_cost'] = 'Shipping cost must be a number'

    for index, item in enumerate(parsed):
        if item.quantity <= 0 and 'quantity' not in item_errors.get(index, {}):
            item_errors.setdefault(index, {})['quantity'] = 'Quantity must be greater than 0'

    if not payment_method:
        errors['payment_method'] = 'A payment method is required'
    elif payment_method not in PAYMENT_METHODS:
        errors['payment_method'] = f'Payment method must be one of: {", ".join(PAYMENT_METHODS)}'
    elif is_digital and payment_method != CustomOrder.PAYMENT_BANK_TRANSFER:
        errors['payment_method'] = 'Digital items can only be paid by bank transfer'

    if item_errors:
        errors['items'] = {str(index): problems for index, problems in sorted(item_errors.items())}

    if errors:
        raise ValidationFailed('Invalid custom order', code='INVALID_CUSTOM_ORDER', details=errors)

    total_amount, grand_total = compute_totals(parsed, shipping)
    return Proposal(
        items=parsed,
        shipping_cost=shipping,
        payment_method=payment_method,
        item_type=item_type,
        total_amount=total_amount,
        grand_total=grand_total,
    )


def shipping_shares(shipping_cost, item_count: int) -> List[Decimal]:
    """
    Even split of shipping across items in whole cents.

    Leftover cents go one each to the first items, so the shares always add
    up to the shipping cost.
    """
    if item_count <= 0:
        return []
    total = to_money(shipping_cost)
    base = (total / item_count).quantize(CENT, rounding=ROUND_DOWN)
    leftover = int((total - base * item_count) / CENT)
    return [base + CENT if index < leftover else base for index in range(item_count)]
