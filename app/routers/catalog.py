# app/routers/catalog.py
from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.auth import require_admin
from app.core.realtime import ConnectionState
from app.schemas.catalog import CatalogState, FilterSelect, MoveRequest
from app.services.catalog_view import CatalogView

router = APIRouter(prefix="/catalog", tags=["Catalog"])


def get_catalog_view(request: Request) -> CatalogView:
    """
    The CatalogView owned by the running application (set in lifespan).
    """
    view = getattr(request.app.state, "catalog_view", None)
    if view is None or view.closed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog view not running",
        )
    return view


def _state(view: CatalogView, filter_name: str | None = None) -> CatalogState:
    subscription = view.subscription
    return CatalogState(
        active_filter=filter_name or view.active_filter,
        available_filters=view.available_filters,
        products=view.filtered(filter_name) if filter_name else view.visible,
        loaded=view.loaded,
        connection=(subscription.state if subscription else ConnectionState.DISCONNECTED).value,
        realtime_error=subscription.error if subscription else None,
        refresh_suspended=view.refresh_suspended,
        reorder_state=view.reorder_state.value,
    )


# -------- Public endpoints --------


@router.get("", response_model=CatalogState)
def read_catalog(
    filter: str | None = None,
    view: CatalogView = Depends(get_catalog_view),
):
    """
    Cached catalog as currently held in memory.

    - Without `filter`: the active filter's list.
    - With `filter`: that filter resolved against the cached snapshot,
      without touching the active filter.
    """
    return _state(view, filter)


# -------- Admin endpoints --------


@router.put(
    "/filter",
    response_model=CatalogState,
    dependencies=[Depends(require_admin)],
)
async def select_filter(
    payload: FilterSelect,
    view: CatalogView = Depends(get_catalog_view),
):
    """
    Change the active filter and resolve it against the store.
    """
    await view.set_filter(payload.filter_name)
    return _state(view)


@router.post(
    "/refresh",
    response_model=CatalogState,
    dependencies=[Depends(require_admin)],
)
async def refresh_catalog(view: CatalogView = Depends(get_catalog_view)):
    """
    Reload the view from the store right away.
    """
    await view.reload(force=True)
    return _state(view)


@router.post(
    "/move",
    response_model=CatalogState,
    dependencies=[Depends(require_admin)],
)
async def move_product(
    payload: MoveRequest,
    view: CatalogView = Depends(get_catalog_view),
):
    """
    Move a product inside the active filter's list and persist the order.

    `reorder_state` in the answer is "committed" or "rolled_back"; after a
    rollback the list is the one reloaded from the store.
    """
    try:
        await view.move_product(payload.old_index, payload.new_index)
    except IndexError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return _state(view)


@router.post(
    "/reconnect",
    response_model=CatalogState,
    dependencies=[Depends(require_admin)],
)
async def reconnect_realtime(view: CatalogView = Depends(get_catalog_view)):
    """
    Tear down and re-open the realtime subscription.
    """
    if view.subscription is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Realtime is not enabled for this catalog",
        )
    await view.subscription.reconnect()
    return _state(view)
