from fastapi import APIRouter, HTTPException, Request

from gitdigest.services.ingestion.errors import IngestError

router = APIRouter(tags=["oauth"])

@router.get("/oauth/config")
async def oauth_config(request: Request):
    loader = request.app.state.oauth_config
    try:
        config = await loader.get()
    except IngestError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return config.model_dump(by_alias=True, exclude_none=True)
