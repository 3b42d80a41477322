"""Admin API endpoints gated on the admin role."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from event_registry.api.dependencies import require_admin
from event_registry.api.serializers import report_json, view_json
from event_registry.containers import AppContainer

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


@router.post("/items/seed")
async def add_seed_items(request: Request) -> dict[str, object]:
    """Add the seed gift items, reporting each result."""
    container: AppContainer = request.app.state.container
    report = await container.admin_service.add_seed_items()
    return report_json(report)


@router.delete("/items/seed")
async def delete_seed_items(request: Request) -> dict[str, object]:
    """Delete the seed gift items and their claims."""
    container: AppContainer = request.app.state.container
    report = await container.admin_service.delete_seed_items()
    return report_json(report)


@router.get("/items/claimed")
async def claimed_items(request: Request) -> dict[str, object]:
    """Return items the backend reports as claimed."""
    container: AppContainer = request.app.state.container
    items = await container.admin_service.claimed_items()
    return {
        "items": [
            {"item_name": item.name, "total": item.total_quantity} for item in items
        ]
    }


@router.delete("/items/{item_name}")
async def delete_item(item_name: str, request: Request) -> dict[str, object]:
    """Delete one item together with its claims."""
    container: AppContainer = request.app.state.container
    result = await container.claim_service.delete_item(item_name)
    return {"item_name": item_name, "items": view_json(result.view)}


@router.get("/export/claims.csv")
async def export_claims(request: Request) -> Response:
    """Download every claim as CSV."""
    container: AppContainer = request.app.state.container
    content = await container.admin_service.export_claims_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="claims.csv"'},
    )
