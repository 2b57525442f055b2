"""Business record lookup and redacted snapshot projection.

Reference numbers are pulled out of free text with an ordered list of
patterns; the first pattern that matches wins. Explicit "pedido"/"ordem"
forms come first, a bare 6-digit token comes last.

The snapshot is a whitelist projection: only status, date and logistics
fields are copied, and free-text fields are scrubbed of anything shaped
like a CPF/CNPJ before they reach a prompt.
"""

import logging
import re
from datetime import date, datetime

from src.orchestrator.models import (
    OrderItemRecord,
    OrderRecord,
    OrderVolumeRecord,
    RecordSnapshot,
    VolumeSummary,
)
from src.orchestrator.ports import RecordStore

logger = logging.getLogger(__name__)

# Ordered by priority; group 1 is the reference number.
REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"pedido\s*(?:n[°º]?|numero|número|#)?\s*[:\-]?\s*(\d{4,})", re.IGNORECASE),
    re.compile(r"ordem\s*(?:n[°º]?|numero|número|#)?\s*[:\-]?\s*(\d{4,})", re.IGNORECASE),
    re.compile(r"n[°º]?\s*(\d{5,})", re.IGNORECASE),
    re.compile(r"#\s*(\d{4,})"),
    re.compile(r"\b(\d{6})\b"),
)

STATUS_LABELS: dict[str, str] = {
    "almox_ssm_pending": "Aguardando Almoxarifado SSM",
    "almox_ssm_received": "Recebido Almox SSM",
    "order_generation_pending": "Aguardando Geração de Ordem",
    "order_in_creation": "Ordem em Criação",
    "order_generated": "Ordem Gerada",
    "almox_general_received": "Recebido Almox Geral",
    "almox_general_separating": "Em Separação",
    "almox_general_ready": "Pronto para Produção",
    "separation_started": "Separação Iniciada",
    "in_production": "Em Produção",
    "awaiting_material": "Aguardando Material",
    "separation_completed": "Separação Concluída",
    "production_completed": "Produção Concluída",
    "awaiting_lab": "Aguardando Laboratório",
    "in_lab_analysis": "Em Análise no Laboratório",
    "lab_completed": "Laboratório Concluído",
    "in_quality_check": "Em Verificação de Qualidade",
    "in_packaging": "Em Embalagem",
    "ready_for_shipping": "Pronto para Expedição",
    "freight_quote_requested": "Cotação de Frete Solicitada",
    "freight_quote_received": "Cotação de Frete Recebida",
    "freight_approved": "Frete Aprovado",
    "ready_to_invoice": "Pronto para Faturar",
    "invoice_requested": "Faturamento Solicitado",
    "awaiting_invoice": "Aguardando Fatura",
    "invoice_issued": "Nota Fiscal Emitida",
    "invoice_sent": "Nota Fiscal Enviada",
    "released_for_shipping": "Liberado para Expedição",
    "in_expedition": "Em Expedição",
    "pickup_scheduled": "Coleta Agendada",
    "awaiting_pickup": "Aguardando Coleta",
    "in_transit": "Em Trânsito",
    "collected": "Coletado",
    "delivered": "Entregue",
    "completed": "Concluído",
    "cancelled": "Cancelado",
}

ORDER_TYPE_LABELS: dict[str, str] = {
    "reposicao_estoque": "Reposição de Estoque",
    "reposicao_ecommerce": "Reposição E-commerce",
    "vendas_balcao": "Vendas Balcão",
    "vendas_ecommerce": "Vendas E-commerce",
    "transferencia_filial": "Transferência de Filiais",
    "remessa_conserto": "Remessa para Conserto",
    # legacy codes
    "reposicao": "Reposição de Estoque",
    "vendas": "Vendas Balcão",
    "transferencia": "Transferência de Filiais",
    "ecommerce": "Vendas E-commerce",
}

MISSING_DATE = "Não definida"
MISSING_CARRIER = "Pendente"
MISSING_TRACKING = "Aguardando"

# CPF (000.000.000-00) and CNPJ (00.000.000/0000-00), punctuated or bare
_TAX_ID_PATTERN = re.compile(
    r"\b\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}\b|\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b"
)


def extract_reference(text: str | None) -> str | None:
    """Extract a candidate reference number from free text.

    Patterns are tried in priority order; the first match wins.

    Args:
        text: Inbound message text.

    Returns:
        The captured reference number, or None.
    """
    if not text:
        return None
    for pattern in REFERENCE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def translate_status(code: str | None) -> str:
    """Localized status label; unknown codes pass through unchanged."""
    if not code:
        return ""
    return STATUS_LABELS.get(code, code)


def translate_order_type(code: str | None) -> str | None:
    if not code:
        return None
    return ORDER_TYPE_LABELS.get(code, code)


def format_date(value: str | None) -> str:
    """Format an ISO date/datetime as dd/mm/YYYY.

    Missing values render as 'Não definida'; unparseable values pass through.
    """
    if not value:
        return MISSING_DATE
    text = value.strip()
    try:
        parsed: date = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        try:
            parsed = date.fromisoformat(text[:10])
        except ValueError:
            return text
    return parsed.strftime("%d/%m/%Y")


def scrub_tax_ids(value: str | None) -> str | None:
    """Remove CPF/CNPJ-shaped substrings from a free-text field."""
    if value is None:
        return None
    return _TAX_ID_PATTERN.sub("[removido]", value)


def _format_dimensions(volume: OrderVolumeRecord) -> str | None:
    dims = (volume.length_cm, volume.width_cm, volume.height_cm)
    if any(d is None for d in dims):
        return None
    return "x".join(f"{d:g}" for d in dims) + " cm"


def build_snapshot(
    record: OrderRecord,
    items: list[OrderItemRecord],
    volumes: list[OrderVolumeRecord],
    lookup_method: str,
) -> RecordSnapshot:
    """Project a record into a redacted snapshot.

    Only operational fields are copied. Customer name, tax document,
    delivery address and every monetary column are left behind.

    Args:
        record: Full record from the record store.
        items: Line items of the record.
        volumes: Physical volumes of the record.
        lookup_method: How the record was found (reference, record_id,
            customer_last_order).

    Returns:
        RecordSnapshot safe to render into a prompt.
    """
    total_weight = sum(v.weight_kg or 0.0 for v in volumes)
    return RecordSnapshot(
        record_id=scrub_tax_ids(record.id),
        order_number=scrub_tax_ids(record.order_number),
        erp_order_number=scrub_tax_ids(record.erp_order_number),
        lookup_method=lookup_method,
        status_code=scrub_tax_ids(record.status),
        status_label=scrub_tax_ids(translate_status(record.status)),
        order_type_label=scrub_tax_ids(translate_order_type(record.order_type)),
        delivery_date=scrub_tax_ids(format_date(record.delivery_date)),
        shipping_date=scrub_tax_ids(format_date(record.shipping_date)),
        carrier_name=scrub_tax_ids(record.carrier_name) or MISSING_CARRIER,
        tracking_code=scrub_tax_ids(record.tracking_code) or MISSING_TRACKING,
        freight_modality=scrub_tax_ids(record.freight_modality),
        municipality=scrub_tax_ids(record.municipality),
        item_count=len(items),
        total_quantity=float(sum(i.quantity or 0 for i in items)),
        volume_count=len(volumes),
        total_weight_kg=round(total_weight, 3),
        volumes=tuple(
            VolumeSummary(
                volume_number=v.volume_number,
                weight_kg=v.weight_kg,
                dimensions_cm=_format_dimensions(v),
                packaging_type=scrub_tax_ids(v.packaging_type),
            )
            for v in volumes
        ),
    )


def find_record(
    store: RecordStore,
    message_text: str,
    record_id: str | None,
    contact_type: str,
    customer_id: str | None,
    sender_suffix: str | None,
) -> RecordSnapshot | None:
    """Resolve the record a message refers to and snapshot it.

    Lookup order: reference number extracted from the text, the record id
    attached to the event, then (for customers only) the customer's last
    known order.

    Returns:
        RecordSnapshot, or None when nothing was found.
    """
    record: OrderRecord | None = None
    method = ""

    reference = extract_reference(message_text)
    if reference:
        logger.info("Extracted reference number %s", reference)
        record = store.find_by_reference(reference)
        method = "reference"

    if record is None and record_id:
        record = store.find_by_id(record_id)
        method = "record_id"

    if record is None and contact_type == "customer" and (customer_id or sender_suffix):
        record = store.find_last_for_customer(customer_id, sender_suffix)
        method = "customer_last_order"

    if record is None:
        logger.info("No business record found for message")
        return None

    snapshot = build_snapshot(
        record,
        store.list_items(record.id),
        store.list_volumes(record.id),
        lookup_method=method,
    )
    logger.info(
        "Record %s found via %s (status=%s)",
        snapshot.order_number, method, snapshot.status_label,
    )
    return snapshot
