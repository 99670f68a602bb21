from fastapi import APIRouter, Depends

from ..config import Settings
from ..typesense import TypesenseClient
from .dependencies import get_settings, get_typesense_client

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(
    settings: Settings = Depends(get_settings),
    client: TypesenseClient = Depends(get_typesense_client),
):
    typesense_ok = await client.health()
    return {
        "status": "ok" if typesense_ok else "degraded",
        "typesense": f"{settings.typesense_protocol}://{settings.typesense_host}:{settings.typesense_port}",
        "typesense_ok": typesense_ok,
    }
