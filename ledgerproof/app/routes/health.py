"""
Liveness endpoints.

The verifier holds no connections or state, so being able to answer is the
whole health check.
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    return {"ok": True}


@router.get("/v1/health/status")
async def health_status():
    return {"status": "healthy", "service": "ledgerproof"}
