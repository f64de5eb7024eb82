from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from creditledger.api.health import router as health_router
from creditledger.api.routes_audit import router as audit_router
from creditledger.api.routes_credit_notes import router as credit_notes_router
from creditledger.api.routes_inventory import router as inventory_router
from creditledger.api.routes_invoices import router as invoices_router
from creditledger.config import settings
from creditledger.db import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup; RESET_DB=1 drops and recreates the tables
    init_db()
    yield


app = FastAPI(title="Credit Ledger - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(credit_notes_router, tags=["credit-notes"])

app.include_router(inventory_router, tags=["inventory"])

app.include_router(invoices_router, tags=["invoices"])

app.include_router(audit_router, tags=["audit"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("creditledger.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
