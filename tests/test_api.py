from invoice_ocr.matching.resolvers import MasterData
from invoice_ocr.routers import invoices, masters
from invoice_ocr.services import supabase_service

INVOICE = {
    "numeroFactura": "F-100",
    "fecha": "10/04/2024",
    "proveedor": "MAKRO AUTOSERVICIO MAYORISTA, S.A.",
    "cliente": "Marangos Centro",
    "items": [
        {"descripcion": "TOMATE TRITURADO LATA 3 KG", "unidades": 4, "precioUd": 2.5, "iva": 21, "neto": 10},
    ],
}

RECORD = {
    "id": 42,
    "numero_factura": "F-100",
    "fecha_factura": "10/04/2024",
    "proveedor": "Makro",
    "cliente": "Marangos Centro",
    "items": INVOICE["items"],
}


def fake_extraction(result):
    async def process_invoice_image(image_base64, mime_type):
        return dict(result)
    return process_invoice_image


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestMatching:
    def test_supplier(self, client):
        response = client.post("/api/match/supplier", json={"query": "Makro"})
        assert response.status_code == 200
        assert response.json()["codigo"] == "P002"

    def test_article(self, client):
        response = client.post("/api/match/article", json={"query": "GAMBON 1 100/120 FR ARG BDQ 6X(2KG)"})
        body = response.json()
        assert body["codigo"] == "A100"
        assert body["method"] == "override"

    def test_delegation(self, client):
        response = client.post("/api/match/delegation", json={"query": "Marangos Centro"})
        assert response.json()["codigo"] == "D02"

    def test_query_is_required(self, client):
        assert client.post("/api/match/supplier", json={}).status_code == 422

    def test_master_data_missing(self, client):
        client.app.state.master_data = None
        response = client.post("/api/match/supplier", json={"query": "Makro"})
        assert response.status_code == 503


class TestMasters:
    def test_search(self, client):
        response = client.get("/api/masters/proveedores", params={"q": "makro"})
        body = response.json()
        assert body["table"] == "proveedores"
        assert body["total"] == 1
        assert body["items"][0]["codigo"] == "P002"

    def test_list_all(self, client):
        body = client.get("/api/masters/articulos").json()
        assert body["total"] == 6

    def test_unknown_table(self, client):
        assert client.get("/api/masters/clientes").status_code == 404

    def test_refresh(self, client, monkeypatch):
        fresh = MasterData.from_rows([{"codigo": "P9", "nombre": "Nuevo Proveedor SL"}], [], [])
        monkeypatch.setattr(masters, "load_master_data", lambda rules: fresh)

        response = client.post("/api/masters/refresh")

        assert response.status_code == 200
        assert response.json()["counts"] == {"proveedores": 1, "articulos": 0, "delegaciones": 0}
        assert client.app.state.master_data is fresh

    def test_refresh_failure_keeps_previous_data(self, client, monkeypatch, master_data):
        def fail(rules):
            raise ConnectionError("supabase unreachable")

        monkeypatch.setattr(masters, "load_master_data", fail)

        assert client.post("/api/masters/refresh").status_code == 502
        assert client.app.state.master_data is master_data


class TestProcessInvoice:
    def test_missing_image(self, client):
        assert client.post("/api/process-invoice", json={}).status_code == 400

    def test_pdf_is_rejected(self, client):
        response = client.post("/api/process-invoice", json={"imageBase64": "JVBERi0=", "mimeType": "application/pdf"})
        assert response.status_code == 415
        assert "error" in response.json()["detail"]

    def test_extraction_failure(self, client, monkeypatch):
        async def broken(image_base64, mime_type):
            raise RuntimeError("Missing Azure OpenAI env configuration")

        monkeypatch.setattr(invoices, "process_invoice_image", broken)
        response = client.post("/api/process-invoice", json={"imageBase64": "QUJD"})
        assert response.status_code == 500
        assert response.json()["detail"]["details"] == "Missing Azure OpenAI env configuration"

    def test_reconciled_without_database(self, client, monkeypatch):
        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction(INVOICE))

        response = client.post("/api/process-invoice", json={"imageBase64": "QUJD", "mimeType": "image/png"})

        body = response.json()
        assert body["success"] is True
        assert body["data"][0]["numeroFactura"] == "F-100"
        reconciled = body["reconciled"][0]
        assert reconciled["id"] is None
        assert reconciled["supplier_match"]["codigo"] == "P002"
        assert reconciled["delegation_match"]["codigo"] == "D02"
        assert reconciled["rows"][0]["cod_articulo"] == "A500"
        assert reconciled["rows"][0]["importe"] == 11

    def test_stored_invoice_id_is_returned(self, client, monkeypatch):
        stored = []

        def insert(data):
            stored.append(data)
            return {"id": 7}

        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction(INVOICE))
        monkeypatch.setattr(supabase_service, "is_configured", lambda: True)
        monkeypatch.setattr(supabase_service, "insert_processed_invoice", insert)

        body = client.post("/api/process-invoice", json={"imageBase64": "QUJD"}).json()

        assert stored[0]["numeroFactura"] == "F-100"
        assert body["reconciled"][0]["id"] == 7

    def test_database_error_does_not_fail_extraction(self, client, monkeypatch):
        def insert(data):
            raise ConnectionError("timeout")

        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction(INVOICE))
        monkeypatch.setattr(supabase_service, "is_configured", lambda: True)
        monkeypatch.setattr(supabase_service, "insert_processed_invoice", insert)

        response = client.post("/api/process-invoice", json={"imageBase64": "QUJD"})

        assert response.status_code == 200
        assert response.json()["reconciled"][0]["id"] is None

    def test_raw_reply_is_returned_but_not_reconciled(self, client, monkeypatch):
        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction({"raw": "ilegible"}))

        body = client.post("/api/process-invoice", json={"imageBase64": "QUJD"}).json()

        assert body["data"] == [{"raw": "ilegible"}]
        assert body["reconciled"] == []

    def test_empty_extraction(self, client, monkeypatch):
        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction({"items": []}))

        body = client.post("/api/process-invoice", json={"imageBase64": "QUJD"}).json()

        assert body == {"success": True, "data": [], "reconciled": []}


class TestStoredInvoices:
    def test_list(self, client, monkeypatch):
        monkeypatch.setattr(supabase_service, "list_processed_invoices", lambda: [RECORD])
        body = client.get("/api/invoices").json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == 42

    def test_database_not_configured(self, client, monkeypatch):
        def not_configured():
            raise RuntimeError("SUPABASE_URL / SUPABASE_SERVICE_KEY environment variables not set")

        monkeypatch.setattr(supabase_service, "list_processed_invoices", not_configured)
        assert client.get("/api/invoices").status_code == 503
        assert client.get("/api/analytics").status_code == 503

    def test_database_error(self, client, monkeypatch):
        def broken():
            raise ConnectionError("timeout")

        monkeypatch.setattr(supabase_service, "list_processed_invoices", broken)
        assert client.get("/api/invoices").status_code == 500

    def test_get_and_reconcile(self, client, monkeypatch):
        monkeypatch.setattr(
            supabase_service, "get_processed_invoice",
            lambda invoice_id: RECORD if invoice_id == 42 else None,
        )

        assert client.get("/api/invoices/42").json()["numero_factura"] == "F-100"
        assert client.get("/api/invoices/43").status_code == 404

        reconciled = client.get("/api/invoices/42/reconciled").json()
        assert reconciled["id"] == 42
        assert reconciled["fecha"] == "10/04/2024"
        assert reconciled["rows"][0]["cod_articulo"] == "A500"
        assert client.get("/api/invoices/43/reconciled").status_code == 404

    def test_delete(self, client, monkeypatch):
        existing = {42}
        monkeypatch.setattr(
            supabase_service, "delete_processed_invoices",
            lambda ids: len(existing.intersection(ids)),
        )

        assert client.delete("/api/invoices/42").json() == {"deleted": 1}
        assert client.delete("/api/invoices/43").status_code == 404
        assert client.post("/api/invoices/delete", json={"ids": [42, 43]}).json() == {"deleted": 1}
        assert client.post("/api/invoices/delete", json={"ids": []}).status_code == 422

    def test_analytics(self, client, monkeypatch):
        monkeypatch.setattr(supabase_service, "list_processed_invoices", lambda: [RECORD])
        body = client.get("/api/analytics").json()
        assert body["total_gasto"] == 10
        assert body["gasto_por_proveedor"] == [{"name": "Makro", "gasto": 10}]


def test_reconcile_payload(client):
    response = client.post("/api/reconcile", json=INVOICE)
    body = response.json()
    assert body["numero_factura"] == "F-100"
    assert body["supplier_match"]["method"] == "exact"
    assert body["rows"][0]["iva"] == 10


class TestMessyStoredData:
    BAD_RECORDS = [
        {"id": 1, "proveedor": "Makro", "items": [{"descripcion": "PAN", "unidades": "2 cajas", "neto": 5}]},
        {"id": 2, "proveedor": "Makro", "items": "sin lineas"},
    ]

    def test_text_amounts_are_stored_as_null(self, client, monkeypatch):
        stored = []

        def insert(data):
            stored.append(data)
            return {"id": 8}

        extracted = dict(INVOICE, items=[{"descripcion": "PAN", "unidades": "2 cajas", "neto": 5}])
        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction(extracted))
        monkeypatch.setattr(supabase_service, "is_configured", lambda: True)
        monkeypatch.setattr(supabase_service, "insert_processed_invoice", insert)

        body = client.post("/api/process-invoice", json={"imageBase64": "QUJD"}).json()

        assert stored[0]["items"][0]["unidades"] is None
        assert stored[0]["items"][0]["neto"] == 5
        assert body["reconciled"][0]["id"] == 8

    def test_invalid_extraction_is_not_stored(self, client, monkeypatch):
        def insert(data):
            raise AssertionError("invalid invoices must not be stored")

        extracted = dict(INVOICE, items="sin lineas")
        monkeypatch.setattr(invoices, "process_invoice_image", fake_extraction(extracted))
        monkeypatch.setattr(supabase_service, "is_configured", lambda: True)
        monkeypatch.setattr(supabase_service, "insert_processed_invoice", insert)

        response = client.post("/api/process-invoice", json={"imageBase64": "QUJD"})

        assert response.status_code == 200
        assert response.json()["reconciled"] == []

    def test_analytics_skips_rows_that_do_not_validate(self, client, monkeypatch):
        monkeypatch.setattr(supabase_service, "list_processed_invoices", lambda: self.BAD_RECORDS)

        response = client.get("/api/analytics")

        assert response.status_code == 200
        assert response.json()["total_gasto"] == 5
        assert response.json()["facturas"] == 1

    def test_reconciled_view_of_a_bad_row(self, client, monkeypatch):
        records = {r["id"]: r for r in self.BAD_RECORDS}
        monkeypatch.setattr(supabase_service, "get_processed_invoice", records.get)

        reconciled = client.get("/api/invoices/1/reconciled")
        assert reconciled.status_code == 200
        assert reconciled.json()["rows"][0]["unidades"] == 0
        assert client.get("/api/invoices/2/reconciled").status_code == 422
