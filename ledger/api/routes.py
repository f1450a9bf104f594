"""
HTTP routes.

Thin adapters: decode the request, call one service method, encode the
result. All failures are LedgerErrors handled in ledger.api.errors.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ledger.api.dependencies import (
    get_components,
    get_current_user,
    parse_date,
    parse_int,
    parse_transaction_type,
    request_timeout,
)
from ledger.api.export import transactions_to_csv
from ledger.models.ledger import (
    AccessToken,
    AuthenticatedUser,
    Category,
    CategoryCreate,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    User,
)
from ledger.orchestrator import AppComponents


class CredentialsRequest(BaseModel):
    username: str
    password: str


users_router = APIRouter(prefix="/users", tags=["users"])
categories_router = APIRouter(prefix="/categories", tags=["categories"])
transactions_router = APIRouter(prefix="/transactions", tags=["transactions"])


# =============================================================================
# USERS
# =============================================================================

@users_router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register_user(
    body: CredentialsRequest,
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    return await components.auth_service.register_user(
        body.username, body.password, timeout=timeout
    )


@users_router.post("/login", response_model=AccessToken)
async def login_user(
    body: CredentialsRequest,
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    return await components.auth_service.authenticate_user(
        body.username, body.password, timeout=timeout
    )


# =============================================================================
# CATEGORIES
# =============================================================================

@categories_router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    return await components.ledger_service.create_category(
        user.user_id, body, timeout=timeout
    )


@categories_router.get("", response_model=list[Category])
async def list_categories(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    name: Optional[str] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    return await components.ledger_service.list_categories(
        user.user_id,
        limit=parse_int(limit),
        offset=parse_int(offset),
        name_filter=name or None,
        timeout=timeout,
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

@transactions_router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: TransactionCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    return await components.ledger_service.create_transaction(
        user.user_id, body, timeout=timeout
    )


@transactions_router.get("", response_model=list[Transaction])
async def list_transactions(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    type: Optional[str] = None,
    description: Optional[str] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    filters = TransactionFilters(
        start_date=parse_date("start_date", start_date),
        end_date=parse_date("end_date", end_date),
        type=parse_transaction_type(type),
        description=description or None,
    )
    return await components.ledger_service.list_transactions(
        user.user_id,
        limit=parse_int(limit),
        offset=parse_int(offset),
        filters=filters,
        timeout=timeout,
    )


@transactions_router.get("/export/csv")
async def export_transactions_csv(
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    transactions = await components.ledger_service.export_transactions(
        user.user_id, timeout=timeout
    )
    return StreamingResponse(
        iter([transactions_to_csv(transactions)]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )


@transactions_router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    timeout: float = Depends(request_timeout),
):
    await components.ledger_service.delete_transaction(
        user.user_id, transaction_id, timeout=timeout
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
