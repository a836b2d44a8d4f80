from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Dict, Any


def _parse_amount(value: Any) -> Any:
    """
    Accepts numbers written with a decimal comma, e.g. '1.234,56' or '21%'.
    Text that is not a number ('2 cajas') becomes None.
    """
    if isinstance(value, str):
        cleaned = value.strip().replace("%", "").replace("€", "").strip()
        if "," in cleaned:
            cleaned = cleaned.replace(".", "").replace(",", ".")
        try:
            return float(cleaned)
        except ValueError:
            return None
    return value


# Master data rows as stored in Supabase
class Supplier(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    codigo: Optional[str] = None
    nombre: Optional[str] = None
    cif: Optional[str] = None


class Article(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    codigo: Optional[str] = None
    descripcion: Optional[str] = None
    subfamilia: Optional[str] = None
    iva: Optional[float] = None

    parse_iva = field_validator("iva", mode="before")(_parse_amount)


class Delegation(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    delegacion: Optional[str] = None
    codigo: Optional[str] = None
    razon_social: Optional[str] = None
    nombre_comercial: Optional[str] = None
    cliente: Optional[str] = None


# Match results
class SupplierMatch(BaseModel):
    codigo: str = ""
    cif: str = ""
    nombre: str = ""
    score: float = 0.0
    method: str = "none"


class ArticleMatch(BaseModel):
    codigo: str = ""
    subfamilia: str = ""
    iva: float = 0.0
    descripcion: str = ""
    score: float = 0.0
    method: str = "none"


class DelegationMatch(BaseModel):
    codigo: str = ""
    razon_social: str = ""
    score: float = 0.0
    method: str = "none"


# Invoice data as returned by the extraction model (camelCase keys)
class InvoiceItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    cod_central: Optional[str] = Field(None, alias="codCentral")
    cod_articulo: Optional[str] = Field(None, alias="codArticulo")
    descripcion: Optional[str] = None
    unidades: Optional[float] = None
    precio_ud: Optional[float] = Field(None, alias="precioUd")
    dto: Optional[float] = None
    iva: Optional[float] = None
    neto: Optional[float] = None

    parse_numbers = field_validator("unidades", "precio_ud", "dto", "iva", "neto", mode="before")(_parse_amount)


class Invoice(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: Optional[int] = None
    numero_factura: Optional[str] = Field(None, alias="numeroFactura")
    fecha: Optional[str] = None
    proveedor: Optional[str] = None
    cliente: Optional[str] = None
    items: List[InvoiceItem] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Invoice":
        """Builds an invoice from a `processed_invoices` row."""
        return cls(
            id=record.get("id"),
            numero_factura=record.get("numero_factura"),
            fecha=record.get("fecha_factura"),
            proveedor=record.get("proveedor"),
            cliente=record.get("cliente"),
            items=record.get("items") or [],
        )


# Reconciled output, one row per invoice line
class ReconciledRow(BaseModel):
    proveedor: str = ""
    cif: str = ""
    cod_proveedor: str = ""
    cliente: str = ""
    delegacion: str = ""
    cod_articulo: str = ""
    subfamilia: str = ""
    descripcion: str = ""
    unidades: float = 0.0
    precio_ud: float = 0.0
    dto: float = 0.0
    iva: float = 0.0
    neto: float = 0.0
    importe: float = 0.0
    article_match: ArticleMatch


class ReconciledInvoice(BaseModel):
    id: Optional[int] = None
    numero_factura: Optional[str] = None
    fecha: Optional[str] = None
    supplier_match: SupplierMatch
    delegation_match: DelegationMatch
    rows: List[ReconciledRow]


# Request bodies
class ProcessInvoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: Optional[str] = Field(None, alias="imageBase64", description="Base64 image or a full data URL.")
    mime_type: str = Field("image/jpeg", alias="mimeType")


class MatchRequest(BaseModel):
    query: str = Field(..., description="Free text as it appears on the invoice.")


class DeleteInvoicesRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
