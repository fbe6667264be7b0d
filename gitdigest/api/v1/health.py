import shutil

import httpx
from fastapi import APIRouter
from loguru import logger

from gitdigest.core.config import settings

async def github_ok() -> bool:
    try:
        async with httpx.AsyncClient(timeout=2) as client:
            r = await client.get(f"{settings.GITHUB_API_BASE}/zen")
            return r.status_code == 200
    except httpx.HTTPError as e:
        logger.warning(f"github_ok failed: {e!r}")
        return False

router = APIRouter(tags=["health"])

@router.get("/health")
async def health():
    return {
        "status": "ok",
        "strategy": settings.ACQUISITION_STRATEGY,
        "git": shutil.which("git") is not None,
    }

@router.get("/health/github")
async def health_github():
    return {"status": "ok", "github": await github_ok()}
