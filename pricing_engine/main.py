from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from pricing_engine.core.config import settings
from pricing_engine.routers import coupons, pricing, pricing_rules

OPENAPI_TAGS = [
    {
        "name": "Pricing Rules",
        "description": "Manage prioritized condition/action pricing rules and their conflicts.",
    },
    {"name": "Coupons", "description": "Create, generate, validate, and redeem coupons."},
    {"name": "Pricing", "description": "Calculate prices and preview rule effects."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Pricing rule engine API. "
        "Manage pricing rules and coupons, detect rule conflicts, "
        "and calculate itemized prices."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(
    pricing_rules.router,
    prefix="/v1/pricing_rules",
    tags=["Pricing Rules"],
)
app.include_router(coupons.router, prefix="/v1/coupons", tags=["Coupons"])
app.include_router(pricing.router, prefix="/v1/pricing", tags=["Pricing"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
