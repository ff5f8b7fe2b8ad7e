"""
Local order store

Orders are keyed by order number. The core only needs get/update; create is
used by the order endpoints. JsonFileOrderStore keeps everything in one JSON
document and rewrites it atomically (temp file + rename) under an asyncio
lock, so concurrent updates inside one process cannot interleave.
"""
import asyncio
import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.exceptions import OrderExistsError, OrderNotFoundError

logger = logging.getLogger(__name__)

OrderRecord = Dict[str, Any]


def merge_order_patch(record: OrderRecord, patch: Dict[str, Any]) -> OrderRecord:
    """
    Apply a patch to an order record.

    Top-level keys are replaced, except ``metadata`` whose sections are
    shallow-merged: metadata["carrier"] = {**old_carrier, **new_carrier}.
    """
    merged = copy.deepcopy(record)
    for key, value in patch.items():
        if key != "metadata":
            merged[key] = copy.deepcopy(value)
            continue

        metadata = merged.setdefault("metadata", {})
        for section, section_value in (value or {}).items():
            current = metadata.get(section)
            if isinstance(current, dict) and isinstance(section_value, dict):
                metadata[section] = {**current, **copy.deepcopy(section_value)}
            else:
                metadata[section] = copy.deepcopy(section_value)
    return merged


class OrderStore(ABC):
    """Document store for local order records."""

    @abstractmethod
    async def get(self, order_number: str) -> Optional[OrderRecord]:
        """Return a copy of the order, or None."""

    @abstractmethod
    async def create(self, record: OrderRecord) -> OrderRecord:
        """Insert a new order. Raises OrderExistsError on duplicate order numbers."""

    @abstractmethod
    async def update(self, order_number: str, patch: Dict[str, Any]) -> OrderRecord:
        """Atomically apply ``patch``. Raises OrderNotFoundError when missing."""

    async def update_if_exists(self, order_number: str, patch: Dict[str, Any]) -> Optional[OrderRecord]:
        try:
            return await self.update(order_number, patch)
        except OrderNotFoundError:
            return None


class InMemoryOrderStore(OrderStore):
    """Process-local store, used when no store path is configured."""

    def __init__(self):
        self._orders: Dict[str, OrderRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, order_number: str) -> Optional[OrderRecord]:
        record = self._orders.get(order_number)
        return copy.deepcopy(record) if record is not None else None

    async def create(self, record: OrderRecord) -> OrderRecord:
        async with self._lock:
            order_number = record["orderNumber"]
            if order_number in self._orders:
                raise OrderExistsError(f"Order {order_number} already exists")
            self._orders[order_number] = copy.deepcopy(record)
            return copy.deepcopy(record)

    async def update(self, order_number: str, patch: Dict[str, Any]) -> OrderRecord:
        async with self._lock:
            record = self._orders.get(order_number)
            if record is None:
                raise OrderNotFoundError(f"Order {order_number} not found")
            merged = merge_order_patch(record, patch)
            self._orders[order_number] = merged
            return copy.deepcopy(merged)


class JsonFileOrderStore(OrderStore):
    """
    Single-file JSON store: {"orders": {"<orderNumber>": {...}}}.

    File I/O runs in a worker thread so the event loop never blocks on disk.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, OrderRecord]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Order store {self.path} is not valid JSON: {e}")
            raise
        orders = data.get("orders", {}) if isinstance(data, dict) else {}
        return orders if isinstance(orders, dict) else {}

    def _write(self, orders: Dict[str, OrderRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".orders-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"orders": orders}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def get(self, order_number: str) -> Optional[OrderRecord]:
        orders = await asyncio.to_thread(self._read)
        return orders.get(order_number)

    async def create(self, record: OrderRecord) -> OrderRecord:
        async with self._lock:
            orders = await asyncio.to_thread(self._read)
            order_number = record["orderNumber"]
            if order_number in orders:
                raise OrderExistsError(f"Order {order_number} already exists")
            orders[order_number] = record
            await asyncio.to_thread(self._write, orders)
            logger.info(f"Order {order_number} stored")
            return copy.deepcopy(record)

    async def update(self, order_number: str, patch: Dict[str, Any]) -> OrderRecord:
        async with self._lock:
            orders = await asyncio.to_thread(self._read)
            record = orders.get(order_number)
            if record is None:
                raise OrderNotFoundError(f"Order {order_number} not found")
            merged = merge_order_patch(record, patch)
            orders[order_number] = merged
            await asyncio.to_thread(self._write, orders)
            return merged


def create_order_store(path: str) -> OrderStore:
    if not path:
        logger.warning("ORDERS_STORE_PATH empty - orders are kept in memory only")
        return InMemoryOrderStore()
    return JsonFileOrderStore(path)
