"""Category and listing services used by the admin console and the catalogue."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from shared.domain.base import Result
from shared.domain.errors import CustomFieldError, DuplicateError, DuplicateSlugError, GatewayError
from shared.infrastructure.gateway import CATEGORIES, PROPERTIES, ObjectStorage, RemoteGateway, Row

from .custom_fields import Icon, normalize_custom_data, parse_schema, validate_custom_data

logger = logging.getLogger(__name__)


def normalize_slug(slug: Optional[str]) -> str:
    return (slug or "").strip().lower()


@dataclass
class CategoryNode:
    row: Row
    children: List["CategoryNode"] = field(default_factory=list)

    @property
    def id(self):
        return self.row.get("id")

    @property
    def slug(self) -> str:
        return self.row.get("slug", "")

    @property
    def icon(self) -> Icon:
        return Icon.parse(self.row.get("icon"))

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


def _order(node: CategoryNode):
    return (node.row.get("order_index") or 0, node.row.get("title") or "")


def build_category_tree(rows: Iterable[Row]) -> List[CategoryNode]:
    """
    Nest categories under their parents.

    A category whose parent is missing, or whose parent chain loops back
    to itself, is placed at the root.
    """
    nodes = {row["id"]: CategoryNode(dict(row)) for row in rows}

    def in_cycle(node_id) -> bool:
        seen = {node_id}
        parent_id = nodes[node_id].row.get("parent_id")
        while parent_id is not None and parent_id in nodes:
            if parent_id in seen:
                return True
            seen.add(parent_id)
            parent_id = nodes[parent_id].row.get("parent_id")
        return False

    roots = []
    for node_id, node in nodes.items():
        parent_id = node.row.get("parent_id")
        if parent_id is None or parent_id not in nodes or in_cycle(node_id):
            if parent_id is not None:
                logger.warning(f"Category {node_id} has an unusable parent {parent_id}, shown at root")
            roots.append(node)
        else:
            nodes[parent_id].children.append(node)

    for node in nodes.values():
        node.children.sort(key=_order)
    roots.sort(key=_order)
    return roots


class CategoryService:
    def __init__(self, gateway: RemoteGateway):
        self.gateway = gateway

    async def fetch_tree(self, *, active_only: bool = True) -> Result[List[CategoryNode]]:
        try:
            rows = await self.gateway.select(
                CATEGORIES, {"status": "active"} if active_only else None, order_by="order_index"
            )
        except GatewayError as e:
            logger.warning(f"Failed to fetch categories: {e}")
            return Result.failure(e)
        return Result.success(build_category_tree(rows))

    async def _slug_taken(self, slug: str, exclude_id=None) -> bool:
        rows = await self.gateway.select(CATEGORIES, {"slug": slug})
        return any(str(row.get("id")) != str(exclude_id) for row in rows)

    def _prepare(self, data: Dict[str, Any]) -> Row:
        row = dict(data)
        if "slug" in row:
            row["slug"] = normalize_slug(row["slug"])
        if "title" in row:
            row["title"] = (row["title"] or "").strip()
        if "custom_fields" in row:
            row["custom_fields"] = [f.to_dict() for f in parse_schema(row["custom_fields"])]
        return row

    async def create_category(self, data: Dict[str, Any]) -> Result[Row]:
        row = self._prepare(data)
        if not row.get("title") or not row.get("slug"):
            return Result.failure(ValueError("Title and slug are required"))

        slug = row["slug"]
        try:
            if await self._slug_taken(slug):
                logger.warning(f"Rejected duplicate category slug {slug}")
                return Result.failure(DuplicateSlugError(slug))
            created = await self.gateway.insert(CATEGORIES, [row])
        except DuplicateError:
            # Lost a race with a concurrent insert of the same slug
            logger.warning(f"Category slug {slug} taken concurrently")
            return Result.failure(DuplicateSlugError(slug))
        except GatewayError as e:
            logger.warning(f"Failed to create category {slug}: {e}")
            return Result.failure(e)

        logger.info(f"Created category {slug}")
        return Result.success(created[0])

    async def update_category(self, category_id, changes: Dict[str, Any]) -> Result[Row]:
        patch = self._prepare(changes)
        if "slug" in patch and not patch["slug"]:
            return Result.failure(ValueError("Slug must not be empty"))
        if "title" in patch and not patch["title"]:
            return Result.failure(ValueError("Title must not be empty"))
        if patch.get("parent_id") is not None and str(patch["parent_id"]) == str(category_id):
            return Result.failure(ValueError("A category cannot be its own parent"))

        try:
            if "slug" in patch and await self._slug_taken(patch["slug"], exclude_id=category_id):
                return Result.failure(DuplicateSlugError(patch["slug"]))
            updated = await self.gateway.update(CATEGORIES, patch, {"id": category_id})
        except DuplicateError:
            return Result.failure(DuplicateSlugError(patch.get("slug", "")))
        except GatewayError as e:
            logger.warning(f"Failed to update category {category_id}: {e}")
            return Result.failure(e)

        if not updated:
            return Result.failure(GatewayError(f"Category {category_id} not found"))
        return Result.success(updated[0])

    async def delete_category(self, category_id) -> Result[int]:
        try:
            count = await self.gateway.delete(CATEGORIES, {"id": category_id})
        except GatewayError as e:
            logger.warning(f"Failed to delete category {category_id}: {e}")
            return Result.failure(e)
        logger.info(f"Deleted category {category_id}")
        return Result.success(count)


class ListingService:
    def __init__(self, gateway: RemoteGateway, storage: Optional[ObjectStorage] = None):
        self.gateway = gateway
        self.storage = storage

    async def fetch_active_listings(self, *, limit: Optional[int] = None) -> Result[List[Row]]:
        """Active listings, newest first."""
        try:
            rows = await self.gateway.select(
                PROPERTIES, {"status": "active"}, order_by="-created_at", limit=limit
            )
        except GatewayError as e:
            logger.warning(f"Failed to fetch listings: {e}")
            return Result.failure(e)
        return Result.success(rows)

    async def _schema_for(self, category_slug: Optional[str]):
        if not category_slug:
            return []
        rows = await self.gateway.select(CATEGORIES, {"slug": category_slug})
        return parse_schema(rows[0].get("custom_fields")) if rows else []

    async def save_listing(self, data: Dict[str, Any], listing_id=None) -> Result[Row]:
        """
        Insert (no ``listing_id``) or update a listing.

        ``custom_data`` is checked against the category's custom fields and
        nothing is written when it does not fit.
        """
        row = dict(data)
        try:
            if "custom_data" in row or listing_id is None:
                category = row.get("category")
                if category is None and listing_id is not None:
                    existing = await self.gateway.select(PROPERTIES, {"id": listing_id})
                    category = existing[0].get("category") if existing else None
                schema = await self._schema_for(category)
                custom_data = normalize_custom_data(schema, row.get("custom_data") or {})
                errors = validate_custom_data(schema, custom_data)
                if errors:
                    raise CustomFieldError(errors)
                row["custom_data"] = custom_data

            if listing_id is None:
                saved = await self.gateway.insert(PROPERTIES, [row])
            else:
                saved = await self.gateway.update(PROPERTIES, row, {"id": listing_id})
        except CustomFieldError as e:
            logger.warning(f"Rejected listing custom data: {e}")
            return Result.failure(e)
        except GatewayError as e:
            logger.warning(f"Failed to save listing {listing_id or '(new)'}: {e}")
            return Result.failure(e)

        if not saved:
            return Result.failure(GatewayError(f"Listing {listing_id} not found"))
        logger.info(f"Saved listing {saved[0].get('id')}")
        return Result.success(saved[0])

    async def set_status(self, listing_id, status: str) -> Result[Row]:
        return await self.save_listing({"status": status}, listing_id)

    async def delete_listing(self, listing_id) -> Result[int]:
        try:
            existing = await self.gateway.select(PROPERTIES, {"id": listing_id})
            count = await self.gateway.delete(PROPERTIES, {"id": listing_id})
        except GatewayError as e:
            logger.warning(f"Failed to delete listing {listing_id}: {e}")
            return Result.failure(e)

        if existing and self.storage is not None:
            await self._remove_media(existing[0])
        return Result.success(count)

    async def _remove_media(self, row: Row) -> None:
        # Orphaned files are harmless; failures here never fail the delete
        for bucket, urls in (("property-images", row.get("images")), ("property-videos", row.get("videos"))):
            paths = [p for p in (self.storage.path_from_url(bucket, u) for u in urls or []) if p]
            if not paths:
                continue
            try:
                await self.storage.remove(bucket, paths)
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Could not delete media of listing {row.get('id')}: {e}", exc_info=True)
