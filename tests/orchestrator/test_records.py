"""Tests for reference extraction, record lookup and snapshot redaction."""

import dataclasses

import pytest

from src.orchestrator.context.records import (
    MISSING_CARRIER,
    MISSING_DATE,
    MISSING_TRACKING,
    build_snapshot,
    extract_reference,
    find_record,
    format_date,
    scrub_tax_ids,
    translate_status,
)
from src.orchestrator.models import OrderItemRecord, OrderRecord, OrderVolumeRecord
from tests.helpers import FakeRecordStore


class TestExtractReference:

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Qual o status do pedido 123456?", "123456"),
            ("Pedido nº 98765 por favor", "98765"),
            ("pedido #4321", "4321"),
            ("ordem: 55555 já saiu?", "55555"),
            ("nº 12345", "12345"),
            ("é o #7788", "7788"),
            ("o código é 654321 ok", "654321"),
        ],
    )
    def test_patterns(self, text, expected):
        assert extract_reference(text) == expected

    def test_explicit_pedido_wins_over_bare_number(self):
        assert extract_reference("Pedido 7777, nota 123456") == "7777"

    def test_longer_digit_runs_are_not_bare_references(self):
        assert extract_reference("me liga no 11987654321") is None

    @pytest.mark.parametrize("text", ["", None, "bom dia, tudo certo?"])
    def test_no_reference(self, text):
        assert extract_reference(text) is None


class TestFormatting:

    def test_format_date(self):
        assert format_date("2026-03-10") == "10/03/2026"
        assert format_date("2026-03-02T14:30:00") == "02/03/2026"
        assert format_date("2026-03-02T14:30:00Z") == "02/03/2026"

    def test_missing_date(self):
        assert format_date(None) == MISSING_DATE
        assert format_date("") == MISSING_DATE

    def test_unparseable_date_passes_through(self):
        assert format_date("semana que vem") == "semana que vem"

    def test_translate_status(self):
        assert translate_status("in_transit") == "Em Trânsito"
        assert translate_status("custom_status") == "custom_status"

    def test_scrub_tax_ids(self):
        assert scrub_tax_ids("Transp 12.345.678/0001-90") == "Transp [removido]"
        assert scrub_tax_ids("CPF 123.456.789-09 ok") == "CPF [removido] ok"
        assert scrub_tax_ids(None) is None


class TestBuildSnapshot:

    @pytest.fixture
    def volumes(self):
        return [
            OrderVolumeRecord(volume_number=1, weight_kg=10.5, length_cm=30, width_cm=20,
                              height_cm=10, packaging_type="caixa"),
            OrderVolumeRecord(volume_number=2, weight_kg=4.5),
        ]

    @pytest.fixture
    def items(self):
        return [
            OrderItemRecord(item_code="A1", description="Parafuso", quantity=100),
            OrderItemRecord(item_code="B2", description="Porca", quantity=50),
        ]

    def test_operational_fields(self, sample_order, items, volumes):
        snapshot = build_snapshot(sample_order, items, volumes, lookup_method="reference")
        assert snapshot.order_number == "123456"
        assert snapshot.status_label == "Em Trânsito"
        assert snapshot.order_type_label == "Vendas E-commerce"
        assert snapshot.delivery_date == "10/03/2026"
        assert snapshot.shipping_date == "02/03/2026"
        assert snapshot.carrier_name == "Rapidão Cometa"
        assert snapshot.tracking_code == "BR123456789"
        assert snapshot.item_count == 2
        assert snapshot.total_quantity == 150
        assert snapshot.volume_count == 2
        assert snapshot.total_weight_kg == 15.0
        assert snapshot.volumes[0].dimensions_cm == "30x20x10 cm"
        assert snapshot.volumes[1].dimensions_cm is None

    def test_sensitive_fields_never_present(self, sample_order, items, volumes):
        snapshot = build_snapshot(sample_order, items, volumes, lookup_method="reference")
        field_names = {f.name for f in dataclasses.fields(snapshot)}
        assert not field_names & {
            "customer_name", "customer_document", "delivery_address",
            "total_value", "freight_value",
        }
        rendered = repr(snapshot) + repr(snapshot.to_dict())
        for secret in ("Maria Souza", "123.456.789-09", "Rua das Flores", "1890.5", "120.0"):
            assert secret not in rendered

    def test_tax_ids_scrubbed_from_every_text_field(self):
        cpf, cnpj = "123.456.789-09", "12.345.678/0001-90"
        record = OrderRecord(
            id=f"id {cnpj}",
            order_number=f"1000 {cpf}",
            erp_order_number=f"ERP {cnpj}",
            status=f"custom {cpf}",
            order_type=f"tipo {cnpj}",
            delivery_date=f"ver {cpf}",
            shipping_date=f"ver {cnpj}",
            carrier_name=f"Rapido Transportes CNPJ {cnpj}",
            tracking_code=cpf,
            freight_modality=f"FOB {cpf}",
            municipality=f"Campinas {cnpj}",
            customer_document=cpf,
        )
        volumes = [OrderVolumeRecord(volume_number=1, packaging_type=f"caixa {cnpj}")]
        snapshot = build_snapshot(record, [], volumes, lookup_method="record_id")

        def text_values(obj):
            for f in dataclasses.fields(obj):
                value = getattr(obj, f.name)
                if isinstance(value, str):
                    yield f.name, value
                elif isinstance(value, tuple):
                    for nested in value:
                        yield from text_values(nested)

        leaked = [
            (name, value) for name, value in text_values(snapshot)
            if cpf in value or cnpj in value
        ]
        assert not leaked
        assert snapshot.carrier_name == "Rapido Transportes CNPJ [removido]"

    def test_missing_values_get_placeholders(self):
        record = OrderRecord(id="o", order_number="1000", status="awaiting_pickup")
        snapshot = build_snapshot(record, [], [], lookup_method="record_id")
        assert snapshot.carrier_name == MISSING_CARRIER
        assert snapshot.tracking_code == MISSING_TRACKING
        assert snapshot.delivery_date == MISSING_DATE
        assert snapshot.volume_count == 0


class TestFindRecord:

    def test_reference_lookup(self, sample_order):
        store = FakeRecordStore([sample_order])
        snapshot = find_record(store, "pedido 123456", None, "carrier", None, None)
        assert snapshot.record_id == "order-1"
        assert snapshot.lookup_method == "reference"

    def test_erp_number_also_matches(self, sample_order):
        store = FakeRecordStore([dataclasses.replace(sample_order, erp_order_number="777888")])
        snapshot = find_record(store, "é o 777888", None, "carrier", None, None)
        assert snapshot.record_id == "order-1"

    def test_record_id_fallback(self, sample_order):
        store = FakeRecordStore([sample_order])
        snapshot = find_record(store, "oi, tudo bem?", "order-1", "carrier", None, None)
        assert snapshot.lookup_method == "record_id"

    def test_unknown_reference_falls_back_to_record_id(self, sample_order):
        store = FakeRecordStore([sample_order])
        snapshot = find_record(store, "pedido 999999", "order-1", "carrier", None, None)
        assert store.reference_lookups == ["999999"]
        assert snapshot.lookup_method == "record_id"

    def test_customer_last_order(self, sample_order):
        store = FakeRecordStore([sample_order], last_order_by_customer={"87654321": "order-1"})
        snapshot = find_record(store, "cadê minha entrega?", None, "customer", None, "87654321")
        assert snapshot.lookup_method == "customer_last_order"

    def test_carrier_never_uses_customer_lookup(self, sample_order):
        store = FakeRecordStore([sample_order], last_order_by_customer={"87654321": "order-1"})
        assert find_record(store, "cadê a coleta?", None, "carrier", None, "87654321") is None

    def test_nothing_found(self):
        assert find_record(FakeRecordStore(), "bom dia", None, "unknown", None, None) is None
