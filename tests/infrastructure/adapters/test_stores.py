import json

import httpx
import pytest

from lexis.domain.errors import StoreError
from lexis.infrastructure.adapters.stores import HttpKeyValueStore, JsonFileStore, MemoryStore

# --- MemoryStore ---


@pytest.mark.asyncio
async def test_memory_store_copies_values():
    store = MemoryStore()
    value = {"items": [1, 2]}
    await store.set("k", value)
    value["items"].append(3)

    loaded = await store.get("k")
    assert loaded == {"items": [1, 2]}
    loaded["items"].clear()
    assert await store.get("k") == {"items": [1, 2]}
    assert await store.get("missing", "default") == "default"


# --- JsonFileStore ---


@pytest.mark.asyncio
async def test_json_store_persists_between_instances(tmp_path):
    path = tmp_path / "nested" / "vocab.json"
    await JsonFileStore(path).set("words", [{"id": "w1"}])
    await JsonFileStore(path).set("other", 1)

    store = JsonFileStore(path)
    assert await store.get("words") == [{"id": "w1"}]
    assert await store.get("other") == 1
    assert json.loads(path.read_text())["words"] == [{"id": "w1"}]
    # No temp files left behind
    assert [p.name for p in path.parent.iterdir()] == ["vocab.json"]


@pytest.mark.asyncio
async def test_json_store_missing_file_returns_default(tmp_path):
    assert await JsonFileStore(tmp_path / "none.json").get("words", []) == []


@pytest.mark.asyncio
async def test_json_store_corrupt_file_raises(tmp_path):
    path = tmp_path / "vocab.json"
    path.write_text("{not json")
    with pytest.raises(StoreError):
        await JsonFileStore(path).get("words")

    path.write_text("[1, 2]")
    with pytest.raises(StoreError):
        await JsonFileStore(path).set("words", [])


# --- HttpKeyValueStore ---


def make_http_store(handler, **kwargs):
    store = HttpKeyValueStore("http://kv.test/api/", **kwargs)
    store._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), headers=store._headers
    )
    return store


@pytest.mark.asyncio
async def test_http_store_round_trip():
    data = {}
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        key = request.url.path.rsplit("/", 1)[-1]
        if request.method == "PUT":
            data[key] = json.loads(request.content)["value"]
            return httpx.Response(204)
        if key not in data:
            return httpx.Response(404)
        return httpx.Response(200, json={"value": data[key]})

    store = make_http_store(handler, token="secret")
    assert await store.get("words", []) == []
    await store.set("words", [{"id": "w1"}])
    assert await store.get("words") == [{"id": "w1"}]

    assert str(requests[0].url) == "http://kv.test/api/words"
    assert requests[1].headers["Authorization"] == "Bearer secret"
    await store.aclose()


@pytest.mark.asyncio
async def test_http_store_errors_raise_store_error():
    store = make_http_store(lambda request: httpx.Response(500))
    with pytest.raises(StoreError):
        await store.get("words")
    with pytest.raises(StoreError):
        await store.set("words", [])


@pytest.mark.asyncio
async def test_http_store_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    store = make_http_store(handler)
    with pytest.raises(StoreError, match="refused"):
        await store.get("words")
