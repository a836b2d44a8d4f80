import pytest

from invoice_ocr.schemas import Invoice, InvoiceItem
from invoice_ocr.services.reconciliation_service import line_net, reconcile_invoice


@pytest.fixture
def invoice():
    return Invoice.model_validate({
        "numeroFactura": "F-2024-001",
        "fecha": "15/03/2024",
        "proveedor": "Makro",
        "cliente": "Marangos Centro",
        "items": [
            {"descripcion": "TOMATE TRITURADO LATA 3 KG", "unidades": 2, "precioUd": 5, "dto": 10, "iva": 21},
            {"codArticulo": "X-9", "descripcion": "SERVILLETAS PAPEL", "unidades": 1, "precioUd": "3,00", "iva": "21%", "neto": 3},
            {"descripcion": "PRODUCTO SIN IVA", "neto": 5},
        ],
    })


def test_line_net():
    assert line_net(InvoiceItem(neto=12.5, unidades=100, precio_ud=100)) == 12.5
    assert line_net(InvoiceItem(unidades=2, precio_ud=5, dto=10)) == pytest.approx(9.0)
    assert line_net(InvoiceItem()) == 0


def test_item_parses_spanish_numbers():
    item = InvoiceItem.model_validate({"precioUd": "1.234,56", "iva": "10%", "dto": "", "codArticulo": 123})
    assert item.precio_ud == pytest.approx(1234.56)
    assert item.iva == 10
    assert item.dto is None
    assert item.cod_articulo == "123"


def test_header_matches(invoice, master_data):
    result = reconcile_invoice(invoice, master_data)
    assert result.numero_factura == "F-2024-001"
    assert result.fecha == "15/03/2024"
    assert result.supplier_match.codigo == "P002"
    assert result.delegation_match.codigo == "D02"
    assert len(result.rows) == 3
    for row in result.rows:
        assert row.cod_proveedor == "P002"
        assert row.cif == "A28647451"
        assert row.delegacion == "D02"
        assert row.proveedor == "Makro"


def test_master_vat_wins_over_extracted(invoice, master_data):
    row = reconcile_invoice(invoice, master_data).rows[0]
    assert row.cod_articulo == "A500"
    assert row.subfamilia == "Conservas"
    assert row.iva == 10
    assert row.neto == pytest.approx(9.0)
    assert row.importe == pytest.approx(9.9)


def test_unmatched_line_keeps_extracted_code_and_vat(invoice, master_data):
    row = reconcile_invoice(invoice, master_data).rows[1]
    assert row.article_match.method == "none"
    assert row.cod_articulo == "X-9"
    assert row.iva == 21
    assert row.importe == pytest.approx(3.63)


def test_line_without_vat(invoice, master_data):
    row = reconcile_invoice(invoice, master_data).rows[2]
    assert row.iva == 0
    assert row.importe == pytest.approx(5.0)


def test_from_record_uses_column_names(master_data):
    invoice = Invoice.from_record({
        "id": 7,
        "numero_factura": "F-7",
        "fecha_factura": "01/02/2024",
        "proveedor": "PESCADOS Y MARISCOS DEL SUR SL",
        "cliente": "Estrella Costa",
        "items": None,
    })
    result = reconcile_invoice(invoice, master_data)
    assert result.id == 7
    assert result.fecha == "01/02/2024"
    assert result.supplier_match.codigo == "P003"
    assert result.delegation_match.codigo == "D03"
    assert result.rows == []


def test_text_amounts_become_null():
    item = InvoiceItem.model_validate({"unidades": "2 cajas", "precioUd": "n/d", "neto": "5,00"})
    assert item.unidades is None
    assert item.precio_ud is None
    assert line_net(item) == 5
