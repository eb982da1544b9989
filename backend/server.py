"""
Guardian Intel - Realtime API Backend

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
import logging

from config import client, db, CORS_ORIGINS

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("guardian")

# Créer l'app
app = FastAPI(
    title="Guardian Intel Realtime",
    description="Flux temps réel (SSE) : alertes tempête, intel, clients prioritaires",
    version="1.0.0"
)

# ==================== IMPORT DES ROUTES ====================

from routes import events
from realtime_service import realtime_service

# Routes avec préfixe /api
app.include_router(events.router, prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== ROUTE RACINE ====================

@app.get("/")
async def root():
    return {
        "name": "Guardian Intel Realtime API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    logger.info("🚀 Guardian Intel Realtime démarré")

    # Index sur les champs pollés
    await db.weather_events.create_index("created_at")
    await db.intel_items.create_index("created_at")
    await db.customers.create_index([("updated_at", -1), ("lead_score", 1)])
    await db.sessions.create_index("token")

    logger.info("✅ Index MongoDB créés")


@app.on_event("shutdown")
async def shutdown():
    realtime_service.shutdown()
    client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
