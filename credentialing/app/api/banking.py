"""
Provider banking endpoints.

Every access is rate limited and audited under the ``provider_banking``
resource. ``includeDecrypted`` is recorded as audit metadata; it only
selects the representation returned and is not an authorization gate
(that belongs to the external auth layer).
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Query, Request

from credentialing.app.api.dependencies import get_banking_store
from credentialing.app.audit.rate_limit import banking_rate_limit
from credentialing.app.audit.route import AuditedRoute, audited
from credentialing.app.errors import NotFoundError
from credentialing.app.schemas.banking import BankingRecord, BankingUpdate
from credentialing.app.storage.memory import InMemoryBankingStore

logger = logging.getLogger("credentialing.api.banking")

router = APIRouter(
    prefix="/providers",
    tags=["Provider Banking"],
    route_class=AuditedRoute,
    dependencies=[Depends(banking_rate_limit)],
)

PROVIDER_BANKING = "provider_banking"


def _include_decrypted(request: Request) -> Dict[str, Any]:
    return {
        "includeDecrypted": request.query_params.get("includeDecrypted") == "true",
    }


def _serialize(record: BankingRecord, *, decrypted: bool) -> Dict[str, Any]:
    shown = record if decrypted else record.redacted()
    return shown.model_dump(mode="json", by_alias=True)


@router.get("/{physician_id}/banking", summary="Read provider banking details")
@audited(
    "view_banking",
    PROVIDER_BANKING,
    resource_id_params=("id", "physician_id"),
    metadata=_include_decrypted,
)
async def get_banking(
    physician_id: str,
    store: Annotated[InMemoryBankingStore, Depends(get_banking_store)],
    include_decrypted: Annotated[bool, Query(alias="includeDecrypted")] = False,
) -> Dict[str, Any]:
    record = store.get(physician_id)
    if record is None:
        raise NotFoundError(
            f"Banking information for provider '{physician_id}' not found"
        )
    return _serialize(record, decrypted=include_decrypted)


@router.put("/{physician_id}/banking", summary="Replace provider banking details")
@audited(
    "update_banking",
    PROVIDER_BANKING,
    resource_id_params=("id", "physician_id"),
    metadata=_include_decrypted,
)
async def put_banking(
    physician_id: str,
    update: BankingUpdate,
    store: Annotated[InMemoryBankingStore, Depends(get_banking_store)],
) -> Dict[str, Any]:
    fields = update.model_dump(exclude_none=True)
    record = store.put(BankingRecord(physician_id=physician_id, **fields))

    logger.info(
        "provider_banking_updated",
        extra={"physician_id": physician_id},
    )
    return _serialize(record, decrypted=False)
