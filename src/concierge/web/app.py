"""
Concierge Web API - FastAPI application.

Hosts the onboarding router and the recommendation endpoints the chat
frontend calls once the interview is complete.
"""

import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from concierge import __version__
from concierge.catalog import CatalogError, CatalogSearch, StorefrontCatalog
from concierge.config import settings
from concierge.recommendation import ComboOffer, RecommendationService
from onboarding.api import SessionStore, get_session_store
from onboarding.api import router as onboarding_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Concierge", version=__version__)

_catalog: StorefrontCatalog | None = None


@app.on_event("startup")
async def startup_event():
    """Apply the configured log level and log configuration."""
    logging.getLogger().setLevel(settings.log_level)
    logger.info("Concierge starting up...")
    logger.info(f"  Environment: {settings.concierge_env}")
    logger.info(f"  Profile service: {settings.profile_api_base_url}")
    if settings.storefront_configured:
        logger.info(f"  Storefront: {settings.shopify_store_domain} (API {settings.shopify_api_version})")
    else:
        logger.warning("  Storefront not configured: recommendation endpoints will fail")


# CORS middleware for the chat widget dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(onboarding_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# =============================================================================
# Models
# =============================================================================


class RecommendationRequest(BaseModel):
    query: str = Field(min_length=1)
    user_id: str | None = None  # Completed onboarding session to personalize with


class ComboReplyRequest(BaseModel):
    text: str
    pending: ComboOffer


class ComboReplyResponse(BaseModel):
    accepted: bool
    message: str
    recommended_combos: list[dict] = Field(default_factory=list)


# =============================================================================
# Dependencies
# =============================================================================


def get_catalog() -> CatalogSearch:
    """Shared storefront client, created on first use."""
    global _catalog
    if _catalog is None:
        _catalog = StorefrontCatalog()
    return _catalog


# =============================================================================
# Recommendation Endpoints
# =============================================================================


@app.post("/recommendations")
async def post_recommendations(
    request: RecommendationRequest,
    catalog: CatalogSearch = Depends(get_catalog),
    sessions: SessionStore = Depends(get_session_store),
) -> dict:
    """
    Products and combos for a chat query.

    The profile of a completed onboarding session (if user_id is given)
    unlocks combo recommendations. Catalog failures map to 502.
    """
    profile = None
    if request.user_id:
        state = sessions.get(request.user_id)
        if state is not None and state.complete:
            profile = state.profile

    service = RecommendationService(catalog)
    try:
        attachments = await service.recommend(request.query, profile)
    except CatalogError as e:
        logger.error(f"Recommendation failed for {request.query!r}: {e}")
        raise HTTPException(status_code=502, detail="Catalog search failed")

    return attachments.model_dump(by_alias=True)


@app.post("/recommendations/combo-reply", response_model=ComboReplyResponse)
async def post_combo_reply(request: ComboReplyRequest) -> ComboReplyResponse:
    """Visitor's yes/no to a suggested combo."""
    accepted, message, combos = RecommendationService.respond_to_suggested_combo(
        request.text, request.pending
    )
    return ComboReplyResponse(
        accepted=accepted,
        message=message,
        recommended_combos=[c.model_dump(by_alias=True) for c in combos],
    )
