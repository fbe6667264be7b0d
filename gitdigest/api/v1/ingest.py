import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from loguru import logger

from gitdigest.core.config import settings
from gitdigest.schemas.ingest import IngestRepoRequest, IngestRepoResponse
from gitdigest.services.ingestion.acquirer import RepositoryAcquirer
from gitdigest.services.ingestion.errors import IngestError
from gitdigest.services.ingestion.models import IngestResult
from gitdigest.services.ingestion.runner import get_acquirer, ingest, ingest_events

router = APIRouter(tags=["ingest"])

def acquirer_dependency() -> RepositoryAcquirer:
    return get_acquirer(settings.ACQUISITION_STRATEGY)

def _to_response(result: IngestResult) -> IngestRepoResponse:
    return IngestRepoResponse(
        repo_url=result.repo_url,
        short_repo_url=result.short_repo_url,
        summary=result.summary,
        tree=result.tree,
        content=result.content,
        token_count=result.token_count,
        branch=result.branch,
    )

@router.post("/ingest", response_model=IngestRepoResponse)
async def ingest_repo(payload: IngestRepoRequest, acquirer: RepositoryAcquirer = Depends(acquirer_dependency)):
    try:
        result = await asyncio.wait_for(
            ingest(payload.repo_url, payload.to_options(), acquirer=acquirer),
            timeout=settings.INGEST_TIMEOUT_SECONDS,
        )
    except IngestError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except asyncio.TimeoutError:
        raise HTTPException(status_code=500, detail="Ingestion timed out. Please try again.")
    except Exception:
        logger.exception("Ingest error")
        raise HTTPException(status_code=500, detail="Failed to process repository")

    return _to_response(result)

@router.post("/ingest/stream")
async def ingest_repo_stream(payload: IngestRepoRequest, acquirer: RepositoryAcquirer = Depends(acquirer_dependency)):
    """NDJSON: progress lines, then one result or error line."""
    options = payload.to_options()

    async def lines():
        try:
            async for item in ingest_events(payload.repo_url, options, acquirer=acquirer):
                if isinstance(item, IngestResult):
                    body = {"type": "result", **_to_response(item).model_dump()}
                else:
                    body = {"type": "progress", "current": item.current, "total": item.total, "stage": item.stage}
                yield json.dumps(body) + "\n"
        except IngestError as e:
            yield json.dumps({"type": "error", "status_code": e.status_code, "detail": e.message}) + "\n"
        except Exception:
            logger.exception("Ingest stream error")
            yield json.dumps({"type": "error", "status_code": 500, "detail": "Failed to process repository"}) + "\n"

    return StreamingResponse(lines(), media_type="application/x-ndjson")
