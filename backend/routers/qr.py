from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from core.qr import export_filename, render_png, render_svg
from db.database import get_session
from routers.images import load_logo
from schemas.qr import QrOptions

router = APIRouter()


def _logo_bytes(opts: QrOptions, db: Session) -> Optional[bytes]:
    if not opts.logo_id:
        return None
    return bytes(load_logo(db, opts.logo_id).data)


@router.post("/normalize", response_model=QrOptions)
def normalize_options(opts: QrOptions):
    """Echo the options after color normalization and range clamping."""
    return opts


@router.post("/preview", response_class=Response)
def preview(opts: QrOptions, db: Session = Depends(get_session)):
    """Inline PNG with frame and caption; also the source for copy-to-clipboard."""
    return Response(content=render_png(opts, _logo_bytes(opts, db)), media_type="image/png")


@router.post("/export/png", response_class=Response)
def export_png(opts: QrOptions, db: Session = Depends(get_session)):
    return Response(
        content=render_png(opts, _logo_bytes(opts, db)),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("png")}"'},
    )


@router.post("/export/svg", response_class=Response)
def export_svg(opts: QrOptions):
    return Response(
        content=render_svg(opts),
        media_type="image/svg+xml",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("svg")}"'},
    )
