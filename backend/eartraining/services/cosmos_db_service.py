"""
Azure Cosmos DB Service
Provides data persistence for users, progress, password resets and the
chord-progression catalog.

The service is an explicit handle owned by the application: it is created on
startup, stored on app.state and injected into route handlers (see
core.dependencies.get_db).
"""
import logging
import random
from datetime import datetime, timezone
from typing import Optional
from azure.cosmos import CosmosClient, PartitionKey, exceptions

from eartraining.config import settings

logger = logging.getLogger(__name__)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# Composite indexes needed by multi-field ORDER BY queries
PROGRESS_INDEXING_POLICY = {
    "indexingMode": "consistent",
    "includedPaths": [{"path": "/*"}],
    "excludedPaths": [{"path": "/\"_etag\"/?"}],
    "compositeIndexes": [
        [
            {"path": "/current_level", "order": "descending"},
            {"path": "/total_xp", "order": "descending"}
        ]
    ]
}

PROGRESSIONS_INDEXING_POLICY = {
    "indexingMode": "consistent",
    "includedPaths": [{"path": "/*"}],
    "excludedPaths": [{"path": "/\"_etag\"/?"}],
    "compositeIndexes": [
        [
            {"path": "/difficulty", "order": "ascending"},
            {"path": "/category", "order": "ascending"},
            {"path": "/name", "order": "ascending"}
        ]
    ]
}

LEADERBOARD_SORTS = {
    "xp": "c.total_xp DESC",
    "points": "c.total_points DESC",
    "accuracy": "c.overall_accuracy DESC",
    "level": "c.current_level DESC, c.total_xp DESC",
}


class CosmosDBService:
    """Service for Azure Cosmos DB operations"""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        key: Optional[str] = None,
        database_name: Optional[str] = None
    ):
        self.endpoint = endpoint or settings.COSMOS_DB_ENDPOINT
        self.key = key or settings.COSMOS_DB_KEY
        self.database_name = database_name or settings.COSMOS_DB_DATABASE_NAME
        self.client: Optional[CosmosClient] = None
        self.database = None
        self.containers = {}

        # Container names from settings
        self.container_names = {
            "users": settings.COSMOS_DB_USERS_CONTAINER,
            "progress": settings.COSMOS_DB_PROGRESS_CONTAINER,
            "password_resets": settings.COSMOS_DB_PASSWORD_RESETS_CONTAINER,
            "chord_progressions": settings.COSMOS_DB_CHORD_PROGRESSIONS_CONTAINER
        }

        # Per-container creation options
        self.container_options = {
            "progress": {"indexing_policy": PROGRESS_INDEXING_POLICY},
            # -1 enables per-item "ttl" without a container-wide expiry
            "password_resets": {"default_ttl": -1},
            "chord_progressions": {"indexing_policy": PROGRESSIONS_INDEXING_POLICY}
        }

    def _get_client(self) -> CosmosClient:
        if self.client is None:
            self.client = CosmosClient(url=self.endpoint, credential=self.key)
        return self.client

    async def initialize(self):
        """Initialize database and containers. Call on app startup."""
        try:
            client = self._get_client()
            # Create database if not exists
            self.database = client.create_database_if_not_exists(
                id=self.database_name
            )
            logger.info(f"Database '{self.database_name}' ready")

            # Create containers if not exist
            for key, container_name in self.container_names.items():
                container = self.database.create_container_if_not_exists(
                    id=container_name,
                    partition_key=PartitionKey(path="/partitionKey"),
                    offer_throughput=400,  # Minimum RU/s
                    **self.container_options.get(key, {})
                )
                self.containers[key] = container
                logger.info(f"Container '{container_name}' ready")

            return True
        except Exception as e:
            logger.error(f"Cosmos DB initialization error: {e}")
            self.database = None
            self.containers = {}
            raise

    async def close(self):
        """Release the HTTP pipeline held by the client."""
        if self.client is not None:
            self.client.__exit__(None, None, None)
            self.client = None
            self.database = None
            self.containers = {}
            logger.info("Cosmos DB client closed")

    async def ping(self) -> bool:
        """True when the database answers."""
        try:
            self._get_client().get_database_client(self.database_name).read()
            return True
        except exceptions.CosmosHttpResponseError as e:
            logger.warning(f"Cosmos DB ping failed: {e}")
            return False

    def _get_container(self, container_key: str):
        """Get a container by key."""
        if container_key not in self.containers:
            # Lazy initialization
            container_name = self.container_names.get(container_key)
            if not container_name:
                raise ValueError(f"Unknown container key: {container_key}")
            if not self.database:
                self.database = self._get_client().get_database_client(self.database_name)
            self.containers[container_key] = self.database.get_container_client(container_name)
        return self.containers[container_key]

    # ==================== GENERIC CRUD OPERATIONS ====================

    async def create_item(
        self,
        container_key: str,
        item: dict,
        partition_key: str
    ) -> dict:
        """Create a new item in a container."""
        try:
            container = self._get_container(container_key)
            item["partitionKey"] = partition_key
            result = container.create_item(body=item)
            logger.debug(f"Created item in {container_key}: {item.get('id')}")
            return result
        except exceptions.CosmosResourceExistsError:
            logger.warning(f"Item already exists in {container_key}: {item.get('id')}")
            raise
        except Exception as e:
            logger.error(f"Create item error in {container_key}: {e}")
            raise

    async def get_item(
        self,
        container_key: str,
        item_id: str,
        partition_key: str
    ) -> Optional[dict]:
        """Get an item by ID and partition key."""
        try:
            container = self._get_container(container_key)
            return container.read_item(item=item_id, partition_key=partition_key)
        except exceptions.CosmosResourceNotFoundError:
            return None
        except Exception as e:
            logger.error(f"Get item error in {container_key}: {e}")
            raise

    async def update_item(
        self,
        container_key: str,
        item_id: str,
        partition_key: str,
        updates: dict
    ) -> dict:
        """Update an existing item."""
        try:
            container = self._get_container(container_key)
            # Get current item
            item = container.read_item(item=item_id, partition_key=partition_key)
            # Apply updates
            item.update(updates)
            item["updated_at"] = utcnow_iso()
            # Replace item
            result = container.replace_item(item=item_id, body=item)
            logger.debug(f"Updated item in {container_key}: {item_id}")
            return result
        except Exception as e:
            logger.error(f"Update item error in {container_key}: {e}")
            raise

    async def upsert_item(
        self,
        container_key: str,
        item: dict,
        partition_key: str
    ) -> dict:
        """Create or update an item."""
        try:
            container = self._get_container(container_key)
            item["partitionKey"] = partition_key
            result = container.upsert_item(body=item)
            logger.debug(f"Upserted item in {container_key}: {item.get('id')}")
            return result
        except Exception as e:
            logger.error(f"Upsert item error in {container_key}: {e}")
            raise

    async def query_items(
        self,
        container_key: str,
        query: str,
        parameters: Optional[list] = None,
        partition_key: Optional[str] = None
    ) -> list:
        """Query items using SQL."""
        try:
            container = self._get_container(container_key)
            items = list(container.query_items(
                query=query,
                parameters=parameters or [],
                partition_key=partition_key,
                enable_cross_partition_query=partition_key is None
            ))
            return items
        except Exception as e:
            logger.error(f"Query error in {container_key}: {e}")
            raise

    # ==================== USER OPERATIONS ====================

    async def create_user(self, user_data: dict) -> dict:
        """Create a new user."""
        return await self.create_item("users", user_data, user_data["id"])

    async def get_user(self, user_id: str) -> Optional[dict]:
        """Get user by ID."""
        return await self.get_item("users", user_id, user_id)

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        """Get user by email."""
        query = "SELECT * FROM c WHERE c.email = @email"
        parameters = [{"name": "@email", "value": email.strip().lower()}]
        results = await self.query_items("users", query, parameters)
        return results[0] if results else None

    async def update_user(self, user_id: str, updates: dict) -> dict:
        """Update user data."""
        return await self.update_item("users", user_id, user_id, updates)

    async def list_users(self) -> list:
        """All users, oldest first."""
        query = "SELECT * FROM c ORDER BY c.created_at ASC"
        return await self.query_items("users", query)

    async def get_users_by_ids(self, user_ids: list[str]) -> dict[str, dict]:
        """Public profile fields for a set of users, keyed by id."""
        if not user_ids:
            return {}
        query = """
            SELECT c.id, c.name, c.email, c.avatar FROM c
            WHERE ARRAY_CONTAINS(@ids, c.id)
        """
        parameters = [{"name": "@ids", "value": list(user_ids)}]
        results = await self.query_items("users", query, parameters)
        return {user["id"]: user for user in results}

    # ==================== PROGRESS ====================

    async def get_progress(self, user_id: str) -> Optional[dict]:
        """Get the progress document of a user."""
        return await self.get_item("progress", f"progress_{user_id}", user_id)

    async def create_progress(self, progress_data: dict) -> dict:
        """
        Insert a progress document.

        The id is derived from the user id, so two concurrent inserts for the
        same user cannot both succeed; the loser reads the winner's document.
        """
        user_id = progress_data["user_id"]
        try:
            return await self.create_item("progress", progress_data, user_id)
        except exceptions.CosmosResourceExistsError:
            existing = await self.get_progress(user_id)
            if existing is None:
                raise
            return existing

    async def save_progress(self, progress_data: dict) -> dict:
        """Create or replace a progress document."""
        return await self.upsert_item("progress", progress_data, progress_data["user_id"])

    async def get_leaderboard(self, metric: str, limit: int) -> list:
        """Top progress documents by metric, only users with at least one exercise."""
        order_by = LEADERBOARD_SORTS.get(metric, LEADERBOARD_SORTS["xp"])
        query = f"""
            SELECT * FROM c
            WHERE c.total_exercises > 0
            ORDER BY {order_by}
            OFFSET 0 LIMIT @limit
        """
        parameters = [{"name": "@limit", "value": limit}]
        return await self.query_items("progress", query, parameters)

    # ==================== PASSWORD RESETS ====================

    async def create_password_reset(self, reset_data: dict, ttl_seconds: int) -> dict:
        """Store a reset token; the document expires after ttl_seconds."""
        reset_data["ttl"] = ttl_seconds
        return await self.create_item("password_resets", reset_data, reset_data["email"])

    async def get_password_reset_by_token(self, token: str) -> Optional[dict]:
        """Reset document for a token (used or not)."""
        query = "SELECT * FROM c WHERE c.token = @token"
        parameters = [{"name": "@token", "value": token}]
        results = await self.query_items("password_resets", query, parameters)
        return results[0] if results else None

    async def invalidate_password_resets(self, email: str) -> int:
        """Mark every unused token of an email as used. Returns how many."""
        query = "SELECT * FROM c WHERE c.email = @email AND c.used = false"
        parameters = [{"name": "@email", "value": email}]
        pending = await self.query_items("password_resets", query, parameters, email)
        for reset in pending:
            await self.update_item("password_resets", reset["id"], email, {"used": True})
        return len(pending)

    async def mark_password_reset_used(self, reset_id: str, email: str) -> dict:
        return await self.update_item("password_resets", reset_id, email, {"used": True})

    # ==================== CHORD PROGRESSIONS ====================

    @staticmethod
    def _progression_filter(filters: dict, search: Optional[str]) -> tuple[str, list]:
        clauses = []
        parameters = []
        for field in ("difficulty", "category", "mode", "is_active"):
            value = filters.get(field)
            if value is not None:
                clauses.append(f"c.{field} = @{field}")
                parameters.append({"name": f"@{field}", "value": value})
        if search:
            clauses.append(
                "(CONTAINS(c.name, @search, true)"
                " OR CONTAINS(c.description, @search, true)"
                " OR (IS_DEFINED(c.reference) AND CONTAINS(c.reference, @search, true)))"
            )
            parameters.append({"name": "@search", "value": search})
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, parameters

    async def query_progressions(
        self,
        filters: dict,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> tuple[list, int]:
        """One page of progressions matching filters, plus the total count."""
        where, parameters = self._progression_filter(filters, search)
        query = f"""
            SELECT * FROM c {where}
            ORDER BY c.difficulty ASC, c.category ASC, c.name ASC
            OFFSET @offset LIMIT @limit
        """
        page = await self.query_items(
            "chord_progressions",
            query,
            parameters + [
                {"name": "@offset", "value": offset},
                {"name": "@limit", "value": limit}
            ]
        )
        total = await self.count_progressions(filters, search)
        return page, total

    async def count_progressions(self, filters: Optional[dict] = None, search: Optional[str] = None) -> int:
        where, parameters = self._progression_filter(filters or {}, search)
        result = await self.query_items(
            "chord_progressions", f"SELECT VALUE COUNT(1) FROM c {where}", parameters
        )
        return result[0] if result else 0

    async def sample_progressions(
        self,
        filters: dict,
        size: int,
        search: Optional[str] = None
    ) -> tuple[list, int]:
        """Random sample of matching progressions, plus the total count."""
        where, parameters = self._progression_filter(filters, search)
        matching = await self.query_items("chord_progressions", f"SELECT * FROM c {where}", parameters)
        sample = random.sample(matching, min(size, len(matching)))
        return sample, len(matching)

    async def list_progressions(self, filters: Optional[dict] = None) -> list:
        """Every progression matching filters (no paging)."""
        where, parameters = self._progression_filter(filters or {}, None)
        return await self.query_items("chord_progressions", f"SELECT * FROM c {where}", parameters)

    async def get_progression(self, progression_id: str) -> Optional[dict]:
        return await self.get_item("chord_progressions", progression_id, progression_id)

    async def get_progression_by_name(self, name: str) -> Optional[dict]:
        query = "SELECT * FROM c WHERE c.name = @name"
        parameters = [{"name": "@name", "value": name}]
        results = await self.query_items("chord_progressions", query, parameters)
        return results[0] if results else None

    async def create_progression(self, progression_data: dict) -> dict:
        return await self.create_item("chord_progressions", progression_data, progression_data["id"])

    async def create_progressions(self, progressions: list[dict]) -> list:
        """Insert many progressions one by one (no cross-partition batch)."""
        created = []
        for progression in progressions:
            created.append(await self.create_progression(progression))
        return created
