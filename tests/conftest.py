import pytest
from fastapi.testclient import TestClient

from invoice_ocr.matching.resolvers import MasterData
from invoice_ocr.services import supabase_service

PROVEEDORES = [
    {"codigo": "P001", "nombre": "JOSE PEDROSA - JOPIAD", "cif": "B11111111"},
    {"codigo": "P002", "nombre": "MAKRO AUTOSERVICIO MAYORISTA S.A.", "cif": "A28647451"},
    {"codigo": "P003", "nombre": "Pescados y Mariscos del Sur, S.L.", "cif": "B29000000"},
    {"codigo": 4, "nombre": "Frutas Tercera Generación SL", "cif": "B22222222"},
]

ARTICULOS = [
    {"codigo": "A100", "descripcion": "Gambon 1 10/20 iqf arg bdo 6x(2kg)", "subfamilia": "Marisco congelado", "iva": 10},
    {"codigo": "A200", "descripcion": "Langostino colas 31/35prems/blq ecu10x2k", "subfamilia": "Marisco congelado", "iva": 10},
    {"codigo": "A300", "descripcion": "Mascarpone 500Gr", "subfamilia": "Lácteos", "iva": "10"},
    {"codigo": "A400", "descripcion": "Aceite de oliva virgen extra 5l", "subfamilia": "Aceites", "iva": 4},
    {"codigo": "A401", "descripcion": "Aceite de oliva virgen extra 1l", "subfamilia": "Aceites", "iva": 4},
    {"codigo": "A500", "descripcion": "Tomate triturado lata 3kg", "subfamilia": "Conservas", "iva": 10},
]

DELEGACIONES = [
    {"delegacion": "D01", "razon_social": "Restaurantes del Puerto S.L.", "nombre_comercial": "El Puerto Pedregalejo"},
    {"delegacion": "D02", "razon_social": "Hostelería Marangos S.A.", "nombre_comercial": "Marangos Centro"},
    {"codigo": "D03", "razon_social": "Grupo Estrella Costa SL", "cliente": "Estrella Costa"},
]


@pytest.fixture
def master_data():
    return MasterData.from_rows(PROVEEDORES, ARTICULOS, DELEGACIONES)


@pytest.fixture
def client(master_data, monkeypatch):
    """Test client with in-memory master data and Supabase switched off."""
    from main import app

    monkeypatch.setattr(supabase_service, "is_configured", lambda: False)
    app.state.master_data = master_data
    app.state.matching_rules = master_data.rules
    yield TestClient(app)
