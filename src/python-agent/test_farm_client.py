import json

import httpx
import pytest

from constants import PLANT_SERVICE, SHOP_SERVICE
from farm_client import FarmClient, HttpGatewayTransport, JsonCodec, Transport, TransportError
from session import FarmSession, UserState


class FakeTransport(Transport):
    def __init__(self, replies=None):
        self.replies = replies or {}
        self.requests = []

    async def invoke(self, service, method, payload):
        self.requests.append((service, method, json.loads(payload)))
        reply = self.replies.get(method, {})
        if isinstance(reply, Exception):
            raise reply
        return json.dumps(reply).encode()


def _client(replies=None):
    transport = FakeTransport(replies)
    session = FarmSession(user=UserState(gid=9527))
    return FarmClient(transport, session), transport


@pytest.mark.asyncio
async def test_all_lands_decoded():
    client, transport = _client({"AllLands": {
        "lands": [
            {"id": 1, "unlocked": True, "plant": {
                "id": 1020002, "name": "Carrot", "dry_num": 1,
                "phases": [{"phase": 1, "begin_time": "1700000000000"}],
                "weed_owners": [{"low": 7, "high": 0}],
            }},
            {"id": 2, "unlocked": False},
            "junk",
        ],
        "operation_limits": [{"id": 10, "day_times": 3}],
    }})

    reply = await client.get_all_lands()

    assert transport.requests == [(PLANT_SERVICE, "AllLands", {})]
    assert [land.id for land in reply.lands] == [1, 2]
    plant = reply.lands[0].plant
    assert plant.phases[0].begin_time == 1700000000   # ms → s
    assert plant.weed_owners == [7]
    assert reply.lands[1].plant is None
    assert reply.operation_limits == [{"id": 10, "day_times": 3}]


@pytest.mark.asyncio
async def test_batch_requests_carry_host_gid():
    client, transport = _client()
    await client.harvest([1, 2])
    await client.water_land([3])
    await client.remove_plant([4])

    assert transport.requests[0] == (PLANT_SERVICE, "Harvest", {"land_ids": [1, 2], "host_gid": 9527, "is_all": True})
    assert transport.requests[1] == (PLANT_SERVICE, "WaterLand", {"land_ids": [3], "host_gid": 9527})
    assert transport.requests[2] == (PLANT_SERVICE, "RemovePlant", {"land_ids": [4]})


@pytest.mark.asyncio
async def test_per_land_requests():
    client, transport = _client()
    await client.plant_one(20002, 5)
    await client.fertilize_one(5, 1011)

    assert transport.requests[0][2] == {"items": [{"seed_id": 20002, "land_ids": [5]}]}
    assert transport.requests[1][2] == {"land_ids": [5], "fertilizer_id": 1011}


@pytest.mark.asyncio
async def test_shop_and_bag():
    client, transport = _client({
        "ShopInfo": {"goods_list": [
            {"id": 31, "item_id": 20002, "price": 4, "unlocked": True, "conds": [{"type": 1, "param": 3}]},
        ]},
        "BuyGoods": {"get_items": [{"id": 20002, "count": 2}], "cost_items": [{"id": 1001, "count": 8}]},
        "Bag": {"item_bag": {"items": [{"id": 1011, "count": 30}]}},
    })

    goods = await client.get_shop_goods(2)
    assert goods[0].required_level == 3
    assert not goods[0].sold_out
    assert transport.requests[0] == (SHOP_SERVICE, "ShopInfo", {"shop_id": 2})

    result = await client.buy_goods(31, 2, 4)
    assert result.get_items[0].id == 20002
    assert result.cost_items[0].count == 8

    bag = await client.get_bag()
    assert [(i.id, i.count) for i in bag] == [(1011, 30)]


@pytest.mark.asyncio
async def test_transport_error_propagates():
    client, _ = _client({"WaterLand": TransportError("rejected")})
    with pytest.raises(TransportError):
        await client.water_land([1])


def test_codec_rejects_malformed_reply():
    codec = JsonCodec()
    assert codec.decode(b"") == {}
    with pytest.raises(TransportError):
        codec.decode(b"not json")
    with pytest.raises(TransportError):
        codec.decode(b"[1, 2]")


@pytest.mark.asyncio
async def test_http_gateway_invoke():
    def handler(request):
        if request.url.path == "/invoke/gamepb.plantpb.PlantService/AllLands":
            return httpx.Response(200, content=b'{"lands": []}')
        return httpx.Response(500, headers={"X-Error-Message": "code=1000020"})

    client = httpx.AsyncClient(base_url="http://gateway", transport=httpx.MockTransport(handler))
    transport = HttpGatewayTransport("http://gateway", client=client)

    assert await transport.invoke(PLANT_SERVICE, "AllLands", b"{}") == b'{"lands": []}'
    with pytest.raises(TransportError, match="code=1000020"):
        await transport.invoke(PLANT_SERVICE, "Harvest", b"{}")
    await transport.close()


@pytest.mark.asyncio
async def test_http_gateway_session_and_events():
    def handler(request):
        if request.url.path == "/session":
            return httpx.Response(200, json={"gid": 9527, "name": "Alice", "level": 8})
        if request.url.path == "/events":
            body = b'{"type": "landsChanged", "land_ids": [1]}\n\nnot json\n{"type": "levelChanged", "level": 9}\n'
            return httpx.Response(200, content=body)
        return httpx.Response(404)

    client = httpx.AsyncClient(base_url="http://gateway", transport=httpx.MockTransport(handler))
    transport = HttpGatewayTransport("http://gateway", client=client)

    assert (await transport.fetch_session())["gid"] == 9527
    events = [event async for event in transport.events()]
    assert [e["type"] for e in events] == ["landsChanged", "levelChanged"]
    await transport.close()
