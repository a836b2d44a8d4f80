import os
from dotenv import load_dotenv
from langfuse.openai import AsyncAzureOpenAI
from langfuse import Langfuse

load_dotenv()

# Azure OpenAI Configuration
OPENAI_ENDPOINT = os.getenv("OPENAI_ENDPOINT")
OPENAI_KEY = os.getenv("OPENAI_KEY")
OPENAI_DEPLOYMENT = os.getenv("OPENAI_DEPLOYMENT")
OPENAI_API_VERSION = os.getenv("OPENAI_API_VERSION")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")

# Supabase Configuration
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY", "")

PROCESSED_INVOICES_TABLE = "processed_invoices"
MASTER_TABLES = {
    "proveedores": ["codigo", "nombre", "cif"],
    "articulos": ["codigo", "descripcion", "subfamilia"],
    "delegaciones": ["delegacion", "nombre_comercial", "razon_social"],
}

# Extraction limits
MAX_IMAGE_BYTES = 10 * 1024 * 1024
EXTRACTION_MAX_TOKENS = 4000
EXTRACTION_TEMPERATURE = 0.1

# Optional JSON file with matching rules merged over the defaults below
MATCHING_RULES_PATH = os.getenv("MATCHING_RULES_PATH")

# Matching defaults
MATCH_THRESHOLDS = {
    "supplier": 60,
    "delegation": 60,
    "article": 75,
}
DELEGATION_TRADE_NAME_WEIGHT = 0.9
PATTERN_WEIGHT = 10

TYPO_CORRECTIONS = {
    "tercer": "tercera",
    "eztrella": "estrella",
    "agliano": "aglianon",
    "ua": "va",
    "rf": "iqf",
    "bqd": "bdo",
    "prem": "prems",
}

# keyword found in the extracted supplier name -> exact master supplier name
SUPPLIER_OVERRIDES = {
    "jopiad": "JOSE PEDROSA - JOPIAD",
}

# extracted description prefix -> exact master article description
ARTICLE_OVERRIDES = {
    "GAMBON 1": "Gambon 1 10/20 iqf arg bdo 6x(2kg)",
    "GAMBON 1 100/120 FR ARG BDQ 6X(2KG)": "Gambon 1 10/20 iqf arg bdo 6x(2kg)",
    "LANGOSTINO COLA 31/35 PREM S/BLQ ECU 10X(2KG)": "Langostino colas 31/35prems/blq ecu10x2k",
    "CALAMAR PAT 4 10/13 BLQ ARG LLN (1X5KG/AP)": "Calamar pat 4 10/13 blq arg llin (1x5kg)",
    "CALAMAR DEL CABO EXTRA M 18/25 ENV SUD (1X4KG)": "Calamar del cabo extra M 18/25 (Limpio)",
    "CALAMAR PAT 4": "Calamar pat 4 10/13 blq arg llin (1x5kg)",
    "BOQUERON VINAGRE": "Boqueron vinagre bdja 9X(500gr)",
    "GUISANTES CN 4X(2,5KG)": "Guisantes C.nav 4x(2,5kg)",
    "AAFR SALMON 5/6": "AAFR salmon 5/6 1x6kg ap",
    "CACAHUETES": "Cacahuetes Garrapiñados",
    "HAMBURGUE TERNERA": "Hamburguesa ternera",
    "ENSALADA MEZCLUM FLORETTE": "Ensalada mezclum 500 gr. Florette",
    "BURGER POTATO ROLLS 100G": "Burger potato rolls 100gr (c/18u)",
    "MANTEQUILLA 82%MG CAMPINA 10K+": "Mantequilla 82 10Kgs",
    "MASCARPONE 500 GR": "Mascarpone 500Gr",
    "CREMETTE": "Cremette 30 cubo 3,5kg",
}

# Model pricing configuration
MODEL_PRICES = {
    "default": {"prompt": 0.0025 / 1000, "completion": 0.01 / 1000},
    "gpt-4o": {"prompt": 0.0025 / 1000, "completion": 0.01 / 1000},
    "gpt-4o-mini": {"prompt": 0.00015 / 1000, "completion": 0.0006 / 1000},
    "gpt-4.1": {"prompt": 0.002 / 1000, "completion": 0.008 / 1000},
    "gpt-4.1-mini": {"prompt": 0.0004 / 1000, "completion": 0.0016 / 1000},
}

# Initialize clients on first use so the app can start without credentials
_openai_client: AsyncAzureOpenAI | None = None
_langfuse: Langfuse | None = None


def get_openai_client() -> AsyncAzureOpenAI:
    global _openai_client
    if _openai_client is None:
        if not (OPENAI_ENDPOINT and OPENAI_KEY and OPENAI_DEPLOYMENT and OPENAI_API_VERSION):
            raise RuntimeError("Missing Azure OpenAI env configuration")
        _openai_client = AsyncAzureOpenAI(
            azure_endpoint=OPENAI_ENDPOINT,
            api_key=OPENAI_KEY,
            azure_deployment=OPENAI_DEPLOYMENT,
            api_version=OPENAI_API_VERSION,
        )
    return _openai_client


def get_langfuse() -> Langfuse:
    global _langfuse
    if _langfuse is None:
        _langfuse = Langfuse()
    return _langfuse
