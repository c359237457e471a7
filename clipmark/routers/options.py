from fastapi import APIRouter

from clipmark.services.options import resolve_options

router = APIRouter()


@router.get("/options", summary="Effective default options")
async def get_options() -> dict:
    """Return the defaults after environment overrides, keyed by camelCase name."""
    return resolve_options().model_dump(by_alias=True)
