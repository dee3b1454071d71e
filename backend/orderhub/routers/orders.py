"""Order API: list/search, statistics and CRUD."""

from typing import Any, Dict, List, Optional

import pydantic
from fastapi import APIRouter, Depends, Header, Request, Response, status

from .. import errors, schemas
from ..services.order_service import OrderQueryService

router = APIRouter(prefix="/orders", tags=["Orders"])

ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": schemas.ErrorBody, "description": "Validation error"},
    500: {"model": schemas.ErrorBody, "description": "Store failure"},
}
NOT_FOUND = {404: {"model": schemas.ErrorBody, "description": "Order not found"}}


def field_errors(exc: pydantic.ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "code": err["type"],
        }
        for err in exc.errors()
    ]


def get_order_service(request: Request) -> OrderQueryService:
    return request.app.state.order_service


def get_account_id(request: Request, x_account_id: Optional[str] = Header(None)) -> str:
    """Tenant scope for the request; header values never widen it to "all"."""
    return (x_account_id or "").strip() or request.app.state.settings.default_account


def parse_order_query(request: Request) -> schemas.OrderQuery:
    try:
        return schemas.OrderQuery.model_validate(dict(request.query_params))
    except pydantic.ValidationError as exc:
        raise errors.ValidationError("Query parameters validation failed", fields=field_errors(exc)) from exc


@router.get(
    "/",
    response_model=schemas.OrderListResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def list_orders(
    query: schemas.OrderQuery = Depends(parse_order_query),
    account_id: str = Depends(get_account_id),
    service: OrderQueryService = Depends(get_order_service),
):
    return await service.list_orders(query, account_id)


@router.get("/stats", response_model=schemas.OrderStats, responses=ERROR_RESPONSES)
async def order_stats(
    account_id: str = Depends(get_account_id),
    service: OrderQueryService = Depends(get_order_service),
):
    return await service.get_stats(account_id)


@router.get(
    "/{order_id}",
    response_model=schemas.OrderOut,
    response_model_exclude_none=True,
    responses={**ERROR_RESPONSES, **NOT_FOUND},
)
async def get_order(
    order_id: str,
    account_id: str = Depends(get_account_id),
    service: OrderQueryService = Depends(get_order_service),
):
    order = await service.get_order(order_id, account_id)
    if order is None:
        raise errors.NotFoundError(order_id)
    return order


@router.post(
    "/",
    response_model=schemas.OrderOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_order(
    payload: schemas.OrderCreate,
    account_id: str = Depends(get_account_id),
    service: OrderQueryService = Depends(get_order_service),
):
    return await service.create_order(payload, account_id)


@router.put(
    "/{order_id}",
    response_model=schemas.OrderOut,
    response_model_exclude_none=True,
    responses={**ERROR_RESPONSES, **NOT_FOUND},
)
async def update_order(
    order_id: str,
    payload: schemas.OrderUpdate,
    account_id: str = Depends(get_account_id),
    service: OrderQueryService = Depends(get_order_service),
):
    order = await service.update_order(order_id, payload, account_id)
    if order is None:
        raise errors.NotFoundError(order_id)
    return order


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={**ERROR_RESPONSES, **NOT_FOUND},
)
async def delete_order(
    order_id: str,
    account_id: str = Depends(get_account_id),
    service: OrderQueryService = Depends(get_order_service),
):
    if not await service.delete_order(order_id, account_id):
        raise errors.NotFoundError(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
