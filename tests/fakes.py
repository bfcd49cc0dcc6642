"""
============================================================================
Test Doubles - Admin Capability & In-Memory Ledger
============================================================================

Python 3.8 Compatible

FakeAdminCapability answers the product GraphQL operations the gateway
issues and records every request. InMemoryTempProductLedger implements the
ledger contract over a list.
============================================================================
"""

import itertools
import os
import sys
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Set

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.storefront.admin_client import AdminCapability, GraphQLRequest, GraphQLResponse
from app.storefront.global_id import extract_local_id
from services.temp_product_ledger import TempProductLedger
from services.temp_product_models import DimensionSpec, StoreError, TempProductRecord


SHOP = "frames-test.myshopify.com"


class FakeAdminCapability(AdminCapability):
    """
    Scripted admin API.

    Args:
        failing_deletes: Local product ids whose delete reports a user error
        raise_on: operation_name -> exception raised when that operation runs
        publications: Sales channels returned by the publications query
    """

    def __init__(
        self,
        failing_deletes: Optional[Iterable[str]] = None,
        raise_on: Optional[Dict[str, Exception]] = None,
        publications: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        self.requests: List[GraphQLRequest] = []
        self.failing_deletes: Set[str] = set(failing_deletes or [])
        self.raise_on: Dict[str, Exception] = dict(raise_on or {})
        self.publications = publications if publications is not None else [
            {"id": "gid://shopify/Publication/1", "name": "Online Store"},
            {"id": "gid://shopify/Publication/2", "name": "Point of Sale"},
        ]
        self._ids = itertools.count(1001)

    def operations(self) -> List[Optional[str]]:
        return [request.operation_name for request in self.requests]

    def execute(self, request: GraphQLRequest) -> GraphQLResponse:
        self.requests.append(request)

        if request.operation_name in self.raise_on:
            raise self.raise_on[request.operation_name]

        handler: Callable[[GraphQLRequest], GraphQLResponse] = getattr(
            self, f"_on_{request.operation_name}"
        )
        return handler(request)

    def _on_createTempProduct(self, request: GraphQLRequest) -> GraphQLResponse:
        number = next(self._ids)
        product_input = request.variables["input"]
        return GraphQLResponse(data={
            "productSet": {
                "product": {
                    "id": f"gid://shopify/Product/{number}",
                    "title": product_input["title"],
                    "handle": f"custom-frame-{number}",
                    "onlineStoreUrl": None,
                    "variants": {"nodes": [{
                        "id": f"gid://shopify/ProductVariant/{number + 5000}",
                        "price": product_input["variants"][0]["price"],
                    }]},
                },
                "userErrors": [],
            }
        })

    def _on_salesChannels(self, request: GraphQLRequest) -> GraphQLResponse:
        return GraphQLResponse(data={"publications": {"nodes": list(self.publications)}})

    def _on_publishTempProduct(self, request: GraphQLRequest) -> GraphQLResponse:
        local_id = extract_local_id(request.variables["id"])
        return GraphQLResponse(data={
            "publishablePublish": {
                "publishable": {
                    "onlineStoreUrl": f"https://{SHOP}/products/custom-frame-{local_id}",
                },
                "userErrors": [],
            }
        })

    def _on_deleteTempProduct(self, request: GraphQLRequest) -> GraphQLResponse:
        gid = request.variables["input"]["id"]
        if extract_local_id(gid) in self.failing_deletes:
            return GraphQLResponse(data={
                "productDelete": {
                    "deletedProductId": None,
                    "userErrors": [{"field": ["id"], "message": "Product does not exist"}],
                }
            })
        return GraphQLResponse(data={
            "productDelete": {"deletedProductId": gid, "userErrors": []}
        })


class InMemoryTempProductLedger(TempProductLedger):
    """List-backed ledger with the same contract as SqlTempProductLedger."""

    def __init__(self, fail_inserts: bool = False) -> None:
        self.records: List[TempProductRecord] = []
        self.fail_inserts = fail_inserts

    def find_active(
        self,
        shop: str,
        spec: DimensionSpec,
        now: datetime,
    ) -> Optional[TempProductRecord]:
        matches = [
            record for record in self.records
            if record.matches(shop, spec) and record.is_active(now)
        ]
        if not matches:
            return None
        return max(matches, key=lambda record: record.created_at)

    def insert(
        self,
        shop: str,
        product_id: str,
        variant_id: str,
        spec: DimensionSpec,
        price: Decimal,
        created_at: datetime,
        delete_at: datetime,
    ) -> TempProductRecord:
        if self.fail_inserts:
            raise StoreError("disk full")
        record = TempProductRecord(
            id=uuid.uuid4().hex,
            shop=shop,
            product_id=product_id,
            variant_id=variant_id,
            height=spec.height,
            width=spec.width,
            material=spec.material.value,
            price=price,
            created_at=created_at,
            delete_at=delete_at,
        )
        self.records.append(record)
        return record

    def find_expired(
        self,
        now: datetime,
        shop: Optional[str] = None,
    ) -> List[TempProductRecord]:
        return [
            record for record in self.records
            if not record.deleted
            and record.delete_at <= now
            and (shop is None or record.shop == shop)
        ]

    def mark_deleted(self, ids: Iterable[str]) -> int:
        wanted = set(ids)
        changed = 0
        for record in self.records:
            if record.id in wanted and not record.deleted:
                record.deleted = True
                changed += 1
        return changed
