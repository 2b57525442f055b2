"""Business record (order) lookups used to build reply snapshots.

Returns detached record copies. Sensitive columns are copied too: the
redacting projection happens in the snapshot builder, which is the only
consumer of ``OrderRecord``.

Example:
    svc = OrderLookupService(SessionLocal)
    order = svc.find_by_reference("123456")
"""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, sessionmaker

from src.db.models import CustomerContact, Order, OrderItem, OrderVolume
from src.orchestrator.models import OrderItemRecord, OrderRecord, OrderVolumeRecord
from src.services.channel_normalizer import digits_only

logger = logging.getLogger(__name__)


def order_to_record(order: Order) -> OrderRecord:
    """Copy an Order row into a detached OrderRecord."""
    return OrderRecord(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        erp_order_number=order.erp_order_number,
        order_type=order.order_type,
        delivery_date=order.delivery_date,
        shipping_date=order.shipping_date,
        carrier_name=order.carrier_name,
        tracking_code=order.tracking_code,
        freight_modality=order.freight_modality,
        municipality=order.municipality,
        customer_name=order.customer_name,
        customer_document=order.customer_document,
        delivery_address=order.delivery_address,
        total_value=order.total_value,
        freight_value=order.freight_value,
    )


class OrderLookupService:
    """Read-only order repository."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_by_reference(self, reference: str) -> OrderRecord | None:
        """Find an order by its internal or ERP order number.

        Customers quote either number, so both columns are matched. The most
        recently created order wins if both match different rows.
        """
        if not reference:
            return None
        with self._session_factory() as db:
            order = (
                db.query(Order)
                .filter(
                    or_(
                        Order.order_number == reference,
                        Order.erp_order_number == reference,
                    )
                )
                .order_by(Order.created_at.desc())
                .first()
            )
            return order_to_record(order) if order else None

    def find_by_id(self, record_id: str) -> OrderRecord | None:
        if not record_id:
            return None
        with self._session_factory() as db:
            order = db.get(Order, record_id)
            return order_to_record(order) if order else None

    def find_last_for_customer(
        self, customer_id: str | None, address_suffix: str | None
    ) -> OrderRecord | None:
        """Resolve a customer's last known order.

        Looks the customer up by id first, then by the suffix of their
        WhatsApp/phone number.

        Args:
            customer_id: Known customer contact id.
            address_suffix: Last digits of the sender's address.

        Returns:
            The customer's last order, or None.
        """
        with self._session_factory() as db:
            contact = None
            if customer_id:
                contact = db.get(CustomerContact, customer_id)
            if contact is None and address_suffix:
                contact = self._find_contact_by_suffix(db, address_suffix)
            if contact is None or not contact.last_order_id:
                return None
            order = db.get(Order, contact.last_order_id)
            return order_to_record(order) if order else None

    def _find_contact_by_suffix(self, db: Session, suffix: str) -> CustomerContact | None:
        rows = (
            db.query(CustomerContact)
            .filter(
                or_(
                    CustomerContact.whatsapp.isnot(None),
                    CustomerContact.phone.isnot(None),
                )
            )
            .order_by(CustomerContact.created_at.desc())
            .all()
        )
        for contact in rows:
            if any(
                digits_only(number).endswith(suffix)
                for number in (contact.whatsapp, contact.phone)
            ):
                return contact
        return None

    def list_items(self, record_id: str) -> list[OrderItemRecord]:
        with self._session_factory() as db:
            rows = (
                db.query(OrderItem)
                .filter(OrderItem.order_id == record_id)
                .order_by(OrderItem.item_code)
                .all()
            )
            return [
                OrderItemRecord(
                    item_code=row.item_code,
                    description=row.description,
                    quantity=row.quantity or 0,
                    unit=row.unit,
                )
                for row in rows
            ]

    def list_volumes(self, record_id: str) -> list[OrderVolumeRecord]:
        with self._session_factory() as db:
            rows = (
                db.query(OrderVolume)
                .filter(OrderVolume.order_id == record_id)
                .order_by(OrderVolume.volume_number)
                .all()
            )
            return [
                OrderVolumeRecord(
                    volume_number=row.volume_number,
                    weight_kg=row.weight_kg,
                    length_cm=row.length_cm,
                    width_cm=row.width_cm,
                    height_cm=row.height_cm,
                    packaging_type=row.packaging_type,
                )
                for row in rows
            ]
