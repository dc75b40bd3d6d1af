"""
Farm Client - Typed access to the farm game services.

All remote calls go through one transport primitive:

    await transport.invoke(service, method, payload_bytes) -> reply_bytes

The transport (login, session, framing) and the wire codec belong to the
gateway side. This module only builds request messages, hands them to the
codec, and turns decoded replies into dataclasses.

Usage:
    from farm_client import FarmClient, HttpGatewayTransport

    transport = HttpGatewayTransport("http://localhost:8800")
    client = FarmClient(transport, session)

    reply = await client.get_all_lands()
    await client.water_land([1, 2, 3])
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from constants import (
    COND_TYPE_LEVEL,
    ITEM_SERVICE,
    NORMAL_FERTILIZER_ID,
    PLANT_SERVICE,
    SEED_SHOP_ID,
    SHOP_SERVICE,
)
from planning.models import Land, to_int
from session import FarmSession

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """A remote call was rejected or its reply could not be decoded."""


# ============================================
# TRANSPORT + CODEC
# ============================================

class Transport:
    """Gateway connection. Implementations send one request and return the raw reply."""

    async def invoke(self, service: str, method: str, payload: bytes) -> bytes:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class JsonCodec:
    """Message codec for gateways that speak JSON bodies."""

    def encode(self, message: Dict[str, Any]) -> bytes:
        return json.dumps(message, separators=(",", ":")).encode("utf-8")

    def decode(self, payload: bytes) -> Dict[str, Any]:
        if not payload:
            return {}
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise TransportError(f"malformed reply: {e}") from e
        if not isinstance(data, dict):
            raise TransportError(f"malformed reply: expected object, got {type(data).__name__}")
        return data


class HttpGatewayTransport(Transport):
    """Posts encoded requests to a gateway bridge that owns the game session."""

    def __init__(self, base_url: str = "http://localhost:8800", timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def invoke(self, service: str, method: str, payload: bytes) -> bytes:
        try:
            response = await self.client.post(
                f"/invoke/{service}/{method}",
                content=payload,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{service}.{method}: {e}") from e
        if response.status_code != 200:
            reason = response.headers.get("X-Error-Message") or response.text[:200]
            raise TransportError(f"{service}.{method} HTTP {response.status_code}: {reason}")
        return response.content

    async def fetch_session(self) -> Dict[str, Any]:
        """Logged-in player and server time as seen by the bridge (GET /session)."""
        try:
            response = await self.client.get("/session")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"session: {e}") from e
        if not isinstance(data, dict):
            raise TransportError("session: expected object")
        return data

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Server pushes relayed by the bridge, one JSON object per line (GET /events).

        Lines that are not JSON objects are skipped.
        """
        try:
            async with self.client.stream("GET", "/events", timeout=None) as response:
                if response.status_code != 200:
                    raise TransportError(f"events HTTP {response.status_code}")
                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        event = json.loads(line)
                    except ValueError:
                        logger.debug(f"Skipping bad event line: {line[:80]}")
                        continue
                    if isinstance(event, dict):
                        yield event
        except httpx.HTTPError as e:
            raise TransportError(f"events: {e}") from e

    async def close(self) -> None:
        await self.client.aclose()


# ============================================
# REPLY DATA CLASSES
# ============================================

@dataclass
class AllLandsReply:
    lands: List[Land] = field(default_factory=list)
    operation_limits: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ShopGoods:
    id: int
    item_id: int                      # seed id for the seed shop
    price: int
    unlocked: bool
    limit_count: int = 0
    bought_num: int = 0
    conds: List[Dict[str, int]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShopGoods":
        return cls(
            id=to_int(data.get("id")),
            item_id=to_int(data.get("item_id")),
            price=to_int(data.get("price")),
            unlocked=bool(data.get("unlocked")),
            limit_count=to_int(data.get("limit_count")),
            bought_num=to_int(data.get("bought_num")),
            conds=[
                {"type": to_int(c.get("type")), "param": to_int(c.get("param"))}
                for c in data.get("conds") or [] if isinstance(c, dict)
            ],
        )

    @property
    def required_level(self) -> int:
        for cond in self.conds:
            if cond["type"] == COND_TYPE_LEVEL:
                return cond["param"]
        return 0

    @property
    def sold_out(self) -> bool:
        return self.limit_count > 0 and self.bought_num >= self.limit_count


@dataclass
class ItemCount:
    id: int
    count: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemCount":
        return cls(id=to_int(data.get("id")), count=to_int(data.get("count")))


@dataclass
class BuyResult:
    get_items: List[ItemCount] = field(default_factory=list)
    cost_items: List[ItemCount] = field(default_factory=list)


def _items(values: Any) -> List[ItemCount]:
    return [ItemCount.from_dict(v) for v in values or [] if isinstance(v, dict)]


# ============================================
# FARM CLIENT
# ============================================

class FarmClient:
    """
    One method per remote operation.

    Batch operations take any number of land ids in one call. Fertilize and
    plant take a single land: the server only accepts them one drag at a
    time, pacing is up to the caller.
    """

    def __init__(self, transport: Transport, session: FarmSession, codec: Optional[JsonCodec] = None):
        self.transport = transport
        self.session = session
        self.codec = codec or JsonCodec()

    async def _call(self, service: str, method: str, request: Dict[str, Any]) -> Dict[str, Any]:
        payload = self.codec.encode(request)
        reply = await self.transport.invoke(service, method, payload)
        return self.codec.decode(reply)

    # ============================================
    # LANDS
    # ============================================

    async def get_all_lands(self) -> AllLandsReply:
        data = await self._call(PLANT_SERVICE, "AllLands", {})
        lands = [Land.from_dict(raw) for raw in data.get("lands") or [] if isinstance(raw, dict)]
        limits = [l for l in data.get("operation_limits") or [] if isinstance(l, dict)]
        return AllLandsReply(lands=lands, operation_limits=limits)

    async def harvest(self, land_ids: List[int]) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "Harvest", {
            "land_ids": list(land_ids),
            "host_gid": self.session.user.gid,
            "is_all": True,
        })

    async def water_land(self, land_ids: List[int]) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "WaterLand", {
            "land_ids": list(land_ids),
            "host_gid": self.session.user.gid,
        })

    async def weed_out(self, land_ids: List[int]) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "WeedOut", {
            "land_ids": list(land_ids),
            "host_gid": self.session.user.gid,
        })

    async def insecticide(self, land_ids: List[int]) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "Insecticide", {
            "land_ids": list(land_ids),
            "host_gid": self.session.user.gid,
        })

    async def remove_plant(self, land_ids: List[int]) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "RemovePlant", {"land_ids": list(land_ids)})

    async def fertilize_one(self, land_id: int, fertilizer_id: int = NORMAL_FERTILIZER_ID) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "Fertilize", {
            "land_ids": [land_id],
            "fertilizer_id": fertilizer_id,
        })

    async def plant_one(self, seed_id: int, land_id: int) -> Dict[str, Any]:
        return await self._call(PLANT_SERVICE, "Plant", {
            "items": [{"seed_id": seed_id, "land_ids": [land_id]}],
        })

    # ============================================
    # SHOP + BAG
    # ============================================

    async def get_shop_goods(self, shop_id: int = SEED_SHOP_ID) -> List[ShopGoods]:
        data = await self._call(SHOP_SERVICE, "ShopInfo", {"shop_id": shop_id})
        return [ShopGoods.from_dict(g) for g in data.get("goods_list") or [] if isinstance(g, dict)]

    async def buy_goods(self, goods_id: int, num: int, price: int) -> BuyResult:
        data = await self._call(SHOP_SERVICE, "BuyGoods", {
            "goods_id": goods_id,
            "num": num,
            "price": price,
        })
        return BuyResult(get_items=_items(data.get("get_items")), cost_items=_items(data.get("cost_items")))

    async def get_bag(self) -> List[ItemCount]:
        data = await self._call(ITEM_SERVICE, "Bag", {})
        bag = data.get("item_bag")
        items = bag.get("items") if isinstance(bag, dict) else data.get("items")
        return _items(items)
