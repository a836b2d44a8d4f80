from invoice_ocr.services.master_search import search_masters

ROWS = [
    {"codigo": "P010", "nombre": "Makro Autoservicio Mayorista", "cif": "A28647451"},
    {"codigo": "P011", "nombre": "Distribuciones Makro", "cif": "B11111111"},
    {"codigo": "P012", "nombre": "Makro", "cif": None},
    {"codigo": "P013", "nombre": "Pescados del Sur", "cif": "B29000000"},
]
FIELDS = ["codigo", "nombre", "cif"]


def test_empty_query_returns_all_rows_in_order():
    assert search_masters(ROWS, FIELDS, "") == ROWS
    assert search_masters(ROWS, FIELDS, "   ") == ROWS


def test_substring_filter_is_case_insensitive():
    codes = [row["codigo"] for row in search_masters(ROWS, FIELDS, "MAKRO")]
    assert set(codes) == {"P010", "P011", "P012"}


def test_closest_match_first():
    codes = [row["codigo"] for row in search_masters(ROWS, FIELDS, "makro")]
    # ranked by closeness, not just by containing the query
    assert codes == ["P012", "P011", "P010"]


def test_search_any_field():
    assert [row["codigo"] for row in search_masters(ROWS, FIELDS, "b2900")] == ["P013"]
    assert search_masters(ROWS, FIELDS, "inexistente") == []
