from fastapi import APIRouter, HTTPException, status

from app.services.vehicle_layouts import get_layout, is_known_layout_key, list_layouts
from app.utils.response_utils import ResponseWrapper, handle_http_error
from app.core.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/vehicle-layouts", tags=["vehicle layouts"])


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
def get_all_vehicle_layouts():
    """Vehicle layout catalog, for the trip form's vehicle picker"""
    try:
        layouts = list_layouts()
        return ResponseWrapper.success(
            data={"items": [layout.to_dict() for layout in layouts], "total": len(layouts)},
            message="Vehicle layouts fetched successfully",
        )
    except Exception as e:
        logger.exception(f"Unexpected error fetching vehicle layouts: {e}")
        raise handle_http_error(e)


@router.get("/{layout_key}", response_model=dict, status_code=status.HTTP_200_OK)
def get_vehicle_layout(layout_key: str):
    """
    Resolve a layout key. Catalog keys and ``custom_N`` resolve directly;
    anything else resolves to the default layout and is flagged as a fallback.
    """
    try:
        layout = get_layout(layout_key)
        return ResponseWrapper.success(
            data={
                "layout": layout.to_dict(),
                "requested_key": layout_key,
                "fallback": not is_known_layout_key(layout_key),
            },
            message=f"Vehicle layout {layout.key} fetched successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching vehicle layout {layout_key}: {e}")
        raise handle_http_error(e)
