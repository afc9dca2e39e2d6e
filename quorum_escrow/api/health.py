from fastapi import APIRouter

from quorum_escrow.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/config/public")
async def public_config() -> dict:
    """Public contract configuration (quorum rules, paging, address format)."""
    return {
        "contract_name": settings.contract_name,
        "contract_version": settings.contract_version,
        "address_prefix": settings.address_prefix,
        "default_page_limit": settings.default_page_limit,
        "forbid_creator_approval": settings.forbid_creator_approval,
    }
