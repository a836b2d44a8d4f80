from invoice_ocr.matching.resolvers import MasterData
from invoice_ocr.schemas import Invoice, InvoiceItem, ReconciledInvoice, ReconciledRow


def line_net(item: InvoiceItem) -> float:
    """Extracted net amount, or units * unit price less the discount."""
    if item.neto is not None:
        return item.neto
    unidades = item.unidades or 0.0
    precio_ud = item.precio_ud or 0.0
    dto = item.dto or 0.0
    return unidades * precio_ud * (1 - dto / 100)


def reconcile_invoice(invoice: Invoice, master_data: MasterData) -> ReconciledInvoice:
    """
    Fills supplier code and tax id, delegation code, and per-line article
    code, subfamily and VAT from the master data.
    """
    supplier_match = master_data.supplier_resolver.resolve(invoice.proveedor)
    delegation_match = master_data.delegation_resolver.resolve(invoice.cliente)

    rows = []
    for item in invoice.items:
        article_match = master_data.article_resolver.resolve(item.descripcion)
        iva = article_match.iva or item.iva or 0.0
        neto = line_net(item)
        rows.append(ReconciledRow(
            proveedor=invoice.proveedor or "",
            cif=supplier_match.cif,
            cod_proveedor=supplier_match.codigo,
            cliente=invoice.cliente or "",
            delegacion=delegation_match.codigo,
            cod_articulo=article_match.codigo or item.cod_articulo or "",
            subfamilia=article_match.subfamilia,
            descripcion=item.descripcion or "",
            unidades=item.unidades or 0.0,
            precio_ud=item.precio_ud or 0.0,
            dto=item.dto or 0.0,
            iva=iva,
            neto=neto,
            importe=round(neto * (1 + iva / 100), 2),
            article_match=article_match,
        ))

    return ReconciledInvoice(
        id=invoice.id,
        numero_factura=invoice.numero_factura,
        fecha=invoice.fecha,
        supplier_match=supplier_match,
        delegation_match=delegation_match,
        rows=rows,
    )
