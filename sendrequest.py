import base64
import json
import mimetypes
import sys

import requests

API_URL = "http://localhost:8000/api/process-invoice"

def send_invoice(image_path, api_url=API_URL):
    mime_type = mimetypes.guess_type(image_path)[0] or "image/jpeg"
    with open(image_path, "rb") as f:
        image_base64 = base64.b64encode(f.read()).decode("ascii")

    headers = {
        "Content-Type": "application/json"
    }
    data = {"imageBase64": image_base64, "mimeType": mime_type}

    print(f"Uploading {image_path} ({mime_type}) to {api_url}...")
    response = requests.post(api_url, headers=headers, json=data, timeout=120)

    if response.status_code != 200:
        print(f"Error: {response.status_code}")
        print(response.text)
        return None

    result = response.json()
    for invoice in result.get("data", []):
        print(f"Invoice {invoice.get('numeroFactura', 'N/A')} from {invoice.get('proveedor', 'N/A')}: "
              f"{len(invoice.get('items') or [])} items")
    for reconciled in result.get("reconciled", []):
        supplier = reconciled["supplier_match"]
        print(f"  Supplier code: {supplier['codigo'] or '-'} (method={supplier['method']}, score={supplier['score']})")
        for row in reconciled["rows"]:
            print(f"  {row['descripcion'][:40]:<40} -> {row['cod_articulo'] or '-':<10} "
                  f"IVA {row['iva']}%  Importe {row['importe']:.2f}")

    print("\n\nFull response:", json.dumps(result, indent=2, ensure_ascii=False))
    return result

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python sendrequest.py <invoice-image> [api-url]")
        sys.exit(1)
    send_invoice(sys.argv[1], *sys.argv[2:3])
