from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tourship.core.config import APP_NAME, APP_VERSION, CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from tourship.core.errors import register_error_handlers
from tourship.core.rate_limit import rate_limit_middleware
from tourship.db.database import close_database_connection, init_indexes, test_connection
from tourship.router.admin import router as admin_router
from tourship.router.admin_attractions import router as admin_attractions_router
from tourship.router.attractions import router as attractions_router
from tourship.router.auth import router as auth_router
from tourship.router.guide import router as guide_router
from tourship.router.organiser import router as organiser_router
from tourship.router.organiser_trips import router as organiser_trips_router
from tourship.router.system import router as system_router
from tourship.router.trips import router as trips_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Test database connection
    print("🚀 Starting up Tourship API...")
    await test_connection()
    await init_indexes()
    yield
    # Shutdown: Close database connection
    print("🛑 Shutting down Tourship API...")
    await close_database_connection()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

register_error_handlers(app)
app.middleware("http")(rate_limit_middleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers. Organiser trips go before the organiser directory so
# /api/organiser/trips is not captured by /api/organiser/{organiser_id}.
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(admin_attractions_router)
app.include_router(attractions_router)
app.include_router(guide_router)
app.include_router(organiser_trips_router)
app.include_router(organiser_router)
app.include_router(trips_router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
