import logging
import os
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlmodel import Session
import database
import models
from fastapi.middleware.cors import CORSMiddleware
from routers.auth import router as auth_router
from routers.users import router as users_router
from routers.customers import router as customers_router
from routers.products import router as products_router
from routers.jobs import router as jobs_router
from seed import seed_demo_data

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Environment detection
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")  # Default to development

# Set CORS origins based on environment
if ENVIRONMENT == "production":
    # In production, use both Front_URL and Domain_Front_URL
    Front_URL = os.getenv("Front_URL")
    Domain_Front_URL = os.getenv("Domain_Front_URL")
    if not Front_URL or not Domain_Front_URL:
        raise ValueError("Front_URL and Domain_Front_URL must be set in production environment")
    ALLOWED_ORIGINS = [Front_URL, Domain_Front_URL]
else:
    # In development, use Local_Front_URL
    ALLOWED_ORIGINS = [os.getenv("Local_Front_URL", "http://localhost:5173")]


app = FastAPI(
    title="East Meadow Delivery API",
    description="Delivery scheduling backend for a landscape-supply yard",
    version="2.0.0"
)


# Create tables
def create_db_and_tables():
    models.SQLModel.metadata.create_all(database.engine)


create_db_and_tables()

if os.getenv("SEED_DEMO_DATA") == "1":
    with Session(database.engine) as session:
        seed_demo_data(session)


# Root endpoint (no authentication required)
@app.get("/")
def root():
    return JSONResponse(content={"message": "East Meadow Delivery API is running. For documentation, please refer to /docs."})


@app.get("/health")
def health():
    return {"status": "OK"}


app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(customers_router, prefix="/api")
app.include_router(products_router, prefix="/api")
app.include_router(jobs_router, prefix="/api")


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Delivery API ready (%s)", ENVIRONMENT)


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
