"""Shipment creation and status tracking"""
import logging
import secrets

from django.db import transaction
from django.utils import timezone

from storefront.orders.models import Order
from storefront.orders.services import OrderError, change_order_status
from .models import Shipment, TrackingEvent

logger = logging.getLogger(__name__)

TRACKING_NUMBER_ATTEMPTS = 10


class ShipmentError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


def generate_tracking_number(today=None):
    """SHP<YYYYMMDD><6 hex chars>"""
    today = today or timezone.localdate()
    for _ in range(TRACKING_NUMBER_ATTEMPTS):
        candidate = f"SHP{today:%Y%m%d}{secrets.token_hex(3).upper()}"
        if not Shipment.objects.filter(tracking_number=candidate).exists():
            return candidate
    raise ShipmentError('Could not generate a unique tracking number, please try again')


def create_shipment(order, shipping_method, **details):
    """
    Open a shipment for `order`, copying the recipient from its shipping
    address. Cancelled orders cannot be shipped.
    """
    if order.status == Order.STATUS_CANCELLED:
        raise ShipmentError('Cannot create a shipment for a cancelled order')

    address = order.shipping_address or {}
    with transaction.atomic():
        shipment = Shipment.objects.create(
            order=order,
            tracking_number=generate_tracking_number(),
            shipping_method=shipping_method,
            customer_name=address.get('name') or order.user.name or order.user.email,
            customer_phone=address.get('phone', ''),
            shipping_address=address,
            shipping_cost=order.shipping_cost,
            carrier=details.get('carrier') or '',
            carrier_tracking_url=details.get('carrier_tracking_url') or '',
            estimated_delivery=details.get('estimated_delivery'),
            notes=details.get('notes') or '',
            weight=details.get('weight'),
            dimensions=details.get('dimensions'),
        )
        TrackingEvent.objects.create(
            shipment=shipment,
            status=shipment.status,
            description='Shipment created',
            timestamp=timezone.now(),
            carrier=shipment.carrier,
        )
    logger.info(f"Shipment {shipment.tracking_number} created for order {order.order_number}")
    return shipment


def update_shipment_status(shipment, new_status, location='', description='', notes=None):
    """
    Move a shipment to `new_status` and record a tracking event.
    Delivery stamps actual_delivery and completes the order.
    """
    now = timezone.now()
    with transaction.atomic():
        shipment.status = new_status
        if notes is not None:
            shipment.notes = notes
        if new_status == 'delivered':
            shipment.actual_delivery = now
        shipment.save()

        TrackingEvent.objects.create(
            shipment=shipment,
            status=new_status,
            location=location or 'Unknown',
            description=description or f'Status updated to {new_status}',
            timestamp=now,
            carrier=shipment.carrier,
        )

        if new_status == 'delivered' and shipment.order.status in (Order.STATUS_PENDING, Order.STATUS_PROCESSING):
            try:
                change_order_status(shipment.order, Order.STATUS_COMPLETED)
            except OrderError as e:
                raise ShipmentError(e.message)

    logger.info(f"Shipment {shipment.tracking_number} status changed to {new_status}")
    return shipment
