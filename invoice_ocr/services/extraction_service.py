import json
import re
import time
from typing import Any, Dict

from invoice_ocr.config import (
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_TEMPERATURE,
    MAX_IMAGE_BYTES,
    OPENAI_DEPLOYMENT,
    OPENAI_MODEL,
    get_langfuse,
    get_openai_client,
)
from invoice_ocr.matching.normalizer import normalize_description
from invoice_ocr.services.cost_service import calculate_cost, estimate_tokens

SYSTEM_PROMPT = (
    "Eres un experto en procesamiento de facturas. "
    "Extrae TODOS los datos de la factura y devuelve un JSON estructurado."
)

USER_PROMPT = """Analiza esta factura y extrae todos los datos. Devuelve un JSON con la siguiente estructura:
{
  "numeroFactura": "número de la factura",
  "fecha": "fecha de la factura",
  "proveedor": "nombre del proveedor",
  "cliente": "nombre del cliente",
  "items": [
    {
      "codCentral": "código central del producto",
      "codArticulo": "código de artículo",
      "descripcion": "descripción del producto",
      "unidades": cantidad numérica,
      "precioUd": precio unitario numérico,
      "dto": descuento numérico (0 si no hay),
      "iva": porcentaje de IVA numérico,
      "neto": importe neto numérico
    }
  ]
}
Sé extremadamente preciso con los números y códigos. Extrae TODOS los productos de la factura."""

PDF_MIME_TYPE = "application/pdf"
_JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")


class UnsupportedDocumentError(ValueError):
    """The document type cannot be sent to the vision model."""


class DocumentTooLargeError(ValueError):
    pass


def build_data_url(image_base64: str, mime_type: str) -> str:
    if image_base64.startswith("data:"):
        return image_base64
    return f"data:{mime_type};base64,{image_base64}"


def _data_url_mime_type(data_url: str) -> str:
    return data_url[5:].split(";", 1)[0].split(",", 1)[0]


def parse_model_json(content: str) -> Dict[str, Any]:
    """Extracts the outermost JSON object from the model reply."""
    match = _JSON_BLOCK_RE.search(content or "")
    if not match:
        return {"raw": content}
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        print(f"Error parsing JSON from AI response: {e}")
        return {"raw": content}
    if not isinstance(parsed, dict):
        return {"raw": content}
    return parsed


def normalize_invoice_items(invoice_data: Dict[str, Any]) -> Dict[str, Any]:
    items = invoice_data.get("items")
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and item.get("descripcion"):
                item["descripcion"] = normalize_description(str(item["descripcion"]))
    return invoice_data


async def process_invoice_image(image_base64: str, mime_type: str = "image/jpeg") -> Dict[str, Any]:
    """
    Sends one invoice image to the vision model and returns the extracted
    invoice as a dict with camelCase keys. A reply without usable JSON is
    returned as {"raw": <reply>}.

    PDFs are rejected: they must be converted to one image per page before
    being submitted.
    """
    data_url = build_data_url(image_base64, mime_type)
    effective_mime_type = _data_url_mime_type(data_url)
    if effective_mime_type == PDF_MIME_TYPE:
        raise UnsupportedDocumentError(
            "Los PDFs deben convertirse a imágenes antes de enviarlos. "
            "Convierte el PDF a imagen(es) y envía cada página como imagen individual."
        )

    encoded = data_url.split(",", 1)[-1]
    if len(encoded) * 3 // 4 > MAX_IMAGE_BYTES:
        raise DocumentTooLargeError(f"Image exceeds the {MAX_IMAGE_BYTES // (1024 * 1024)}MB limit")

    client = get_openai_client()
    langfuse = get_langfuse()
    print(f"Procesando imagen con mimeType: {effective_mime_type}")

    with langfuse.start_as_current_span(
        name="invoice-extraction",
        input={"mime_type": effective_mime_type, "image_bytes": len(encoded) * 3 // 4},
    ) as span:
        llm_start_time = time.time()
        try:
            response = await client.chat.completions.create(
                name="invoice-extraction-generation",
                model=OPENAI_DEPLOYMENT,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": USER_PROMPT},
                            {"type": "image_url", "image_url": {"url": data_url, "detail": "high"}},
                        ],
                    },
                ],
                max_tokens=EXTRACTION_MAX_TOKENS,
                temperature=EXTRACTION_TEMPERATURE,
            )
        except Exception as e:
            span.update(level="ERROR", status_message=f"Extraction call failed: {e}")
            raise
        llm_time = time.time() - llm_start_time
        print(f"Extraction LLM Time: {llm_time:.3f} seconds")

        content = response.choices[0].message.content if response.choices else None
        content = content or "{}"
        invoice_data = normalize_invoice_items(parse_model_json(content))

        usage = getattr(response, "usage", None)
        if usage:
            prompt_tokens = usage.prompt_tokens
            completion_tokens = usage.completion_tokens
        else:
            prompt_tokens = estimate_tokens(SYSTEM_PROMPT + USER_PROMPT)
            completion_tokens = estimate_tokens(content)
            span.update(level="WARNING", status_message="Usage details missing from LLM response, tokens estimated.")
        cost = calculate_cost(OPENAI_MODEL, prompt_tokens, completion_tokens)
        print(f"Prompt Tokens: {prompt_tokens}")
        print(f"Completion Tokens: {completion_tokens}")
        print(f"Cost: ${cost:.6f}")

        span.update(
            output=invoice_data,
            metadata={"duration_seconds": llm_time, "total_cost": cost},
        )
    return invoice_data
