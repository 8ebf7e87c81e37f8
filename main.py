from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from api.routes import geocoding, neighbourhoods
from core.config import settings
from services.cache import build_resolution_cache
from services.geocoding import ReportedDeviceLocation, build_geo_provider
from services.neighbourhoods import GeoResolutionService, NeighbourhoodTaxonomy
from services.redis import close_redis, get_redis, redis_healthy

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Set specific log levels
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)  # Reduce noise from access logs

logger = logging.getLogger(__name__)


def load_taxonomy() -> NeighbourhoodTaxonomy:
    """Bundled taxonomy unless TAXONOMY_PATH points elsewhere"""
    if settings.TAXONOMY_PATH:
        return NeighbourhoodTaxonomy.from_file(settings.TAXONOMY_PATH)
    return NeighbourhoodTaxonomy.load_default()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A broken taxonomy is fatal
    taxonomy = load_taxonomy()
    app.state.taxonomy = taxonomy

    redis_client = await get_redis() if settings.CACHE_BACKEND == "redis" else None
    cache = build_resolution_cache(settings, redis=redis_client)

    provider = None
    app.state.device_location = ReportedDeviceLocation(max_age=settings.DEVICE_LOCATION_MAX_AGE)
    try:
        provider = build_geo_provider(
            settings,
            country_code=taxonomy.country_code,
            device_locator=app.state.device_location,
        )
        app.state.resolution_service = GeoResolutionService.from_settings(
            settings, provider, taxonomy, cache
        )
        logger.info(f"Geocoding via {settings.GEOCODER_PROVIDER}, cache backend {settings.CACHE_BACKEND}")
    except ValueError as e:
        # Taxonomy endpoints keep working; resolution endpoints return 503
        logger.error(f"Geocoding disabled: {e}")
        app.state.resolution_service = None

    yield

    if provider is not None:
        await provider.aclose()
    await close_redis()


app = FastAPI(
    title="Neighbourhood Resolver API",
    description="Resolve locations to neighbourhoods and rank neighbourhoods by distance",
    version="1.0.0",
    lifespan=lifespan
)

allowed_origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(geocoding.router)
app.include_router(neighbourhoods.router)


@app.get("/")
async def root():
    return {"message": "Neighbourhood Resolver API", "status": "running"}


@app.get("/health")
async def health():
    result = {
        "status": "healthy",
        "geocoding": getattr(app.state, "resolution_service", None) is not None,
    }
    if settings.CACHE_BACKEND == "redis":
        result["redis"] = await redis_healthy()
    return result
