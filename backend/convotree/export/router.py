"""Export and import API routes."""

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile
from pydantic import BaseModel

from convotree.export.service import ImportFormatError, export_json, import_json
from convotree.trees.router import get_tree_service
from convotree.trees.service import TreeService

router = APIRouter(prefix="/api", tags=["export"])


class ImportResponse(BaseModel):
    added: int
    run_ids: list[str]


@router.get("/export")
async def export_runs(
    service: TreeService = Depends(get_tree_service),
) -> Response:
    """Download the run store as a JSON export blob."""
    return Response(
        content=export_json(service.runs, service.root_key),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="convotree-export.json"'},
    )


@router.post("/import")
async def import_runs(
    file: UploadFile,
    service: TreeService = Depends(get_tree_service),
) -> ImportResponse:
    """Merge runs from an uploaded export blob, skipping ones already present."""
    content = await file.read()
    try:
        new_runs = import_json(content, service.runs)
    except ImportFormatError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    service.merge_runs(new_runs)
    return ImportResponse(added=len(new_runs), run_ids=[r.id for r in new_runs])
