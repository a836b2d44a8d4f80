import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from invoice_ocr.matching.resolvers import MasterData
from invoice_ocr.routers import analytics, invoices, masters, matching
from invoice_ocr.services.master_data_service import load_master_data, load_rules

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    print("Lifespan: Loading matching rules...")
    app.state.matching_rules = load_rules()

    print("Lifespan: Loading master data (proveedores, articulos, delegaciones)...")
    try:
        app.state.master_data = await asyncio.to_thread(load_master_data, app.state.matching_rules)
        print(f"Lifespan: Master data ready: {app.state.master_data.counts()}")
    except Exception as e:
        print(f"Lifespan: Error loading master data: {e}")
        print("Lifespan: Matching will run against empty master lists until /api/masters/refresh succeeds.")
        app.state.master_data = MasterData(rules=app.state.matching_rules)

    yield
    # Shutdown
    print("Lifespan: Shutting down.")

# Initialize FastAPI app
app = FastAPI(title="Invoice OCR", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(invoices.router, tags=["Invoices"])
app.include_router(matching.router, tags=["Matching"])
app.include_router(masters.router, tags=["Master data"])
app.include_router(analytics.router, tags=["Analytics"])

# Health check endpoint
@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Invoice OCR System"}
