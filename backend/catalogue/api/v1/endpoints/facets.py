"""Facet candidate endpoint backing the searchable multi-select pickers."""

from fastapi import APIRouter, Query

from catalogue.core.app_exceptions import AppError, ErrorCode
from catalogue.schemas.manuscripts import FacetListResponse, FacetOption
from catalogue.search.facets import FACET_NAMES, Debouncer, FacetPicker, load_reference_list

router = APIRouter()


@router.get("/{facet}", response_model=FacetListResponse)
async def list_facet_values(
    facet: str,
    q: str = Query("", max_length=200, description="Substring filter"),
    selected: str = Query("", description="Comma-joined checked values"),
) -> FacetListResponse:
    """Static (pre-search) candidates of a facet, filtered like the picker."""
    if facet not in FACET_NAMES:
        raise AppError(
            ErrorCode.UNKNOWN_FACET,
            message=f"Unknown facet: {facet}",
            details={"facets": list(FACET_NAMES)},
        )

    # Requests are one-shot, so the filter applies immediately
    picker = FacetPicker(
        load_reference_list(facet),
        selected=[value for value in selected.split(",") if value],
        debouncer=Debouncer(delay=0),
    )
    picker.set_query(q)

    return FacetListResponse(
        facet=facet,
        query=q,
        total=len(picker.items),
        status=picker.status_line,
        items=[
            FacetOption(
                label=item.label,
                value=item.value,
                count=item.count,
                selected=picker.is_selected(item.value),
            )
            for item in picker.filtered
        ],
    )
