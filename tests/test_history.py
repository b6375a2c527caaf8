import asyncio
import base64
import os
from datetime import datetime, timezone

import pytest

from pneumo_backend.history import HistoryStore
from pneumo_backend.models import BoundingBox, DetectionResult, RawAPIResponse


def make_result(result_id, status="detected", boxes=(), image_uri=None):
    return DetectionResult(
        id=result_id,
        image_uri=image_uri or f"file:///{result_id}.png",
        timestamp=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        status=status,
        bounding_boxes=list(boxes),
        average_confidence=0.5,
        processing_time=1200,
    )


@pytest.mark.anyio
async def test_add_and_load_newest_first(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    box = BoundingBox(id=1, x=10, y=20, width=5, height=5, confidence=0.8)

    await store.add(make_result("a", boxes=[box]), RawAPIResponse(diagnosis="Pneumothorax detected (50%)"))
    await store.add(make_result("b", status="not_detected"))

    items = await store.load()
    assert [item.id for item in items] == ["b", "a"]
    assert items[1].detections_count == 1
    assert items[1].thumbnail_uri == "file:///a.png"
    assert items[1].timestamp == "2026-01-02T03:04:05+00:00"
    assert items[1].api_response.diagnosis == "Pneumothorax detected (50%)"
    assert items[0].api_response is None

    # a fresh store sees the persisted file
    reloaded = await HistoryStore(str(tmp_path / "history.json")).load()
    assert [item.id for item in reloaded] == ["b", "a"]


@pytest.mark.anyio
async def test_get_and_remove(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    await store.add(make_result("a"))
    await store.add(make_result("b"))

    assert (await store.get("a")).id == "a"
    assert await store.get("zzz") is None

    assert await store.remove("a") is True
    assert await store.remove("a") is False
    assert [item.id for item in await store.load()] == ["b"]


@pytest.mark.anyio
async def test_clear(tmp_path):
    path = tmp_path / "history.json"
    store = HistoryStore(str(path))
    await store.add(make_result("a"))

    await store.clear()

    assert not path.exists()
    assert await store.load() == []
    await store.clear()


@pytest.mark.anyio
async def test_max_items_drops_oldest(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"), max_items=2)
    for result_id in ["a", "b", "c"]:
        await store.add(make_result(result_id))

    assert [item.id for item in await store.load()] == ["c", "b"]


@pytest.mark.anyio
async def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    assert await HistoryStore(str(path)).load() == []


@pytest.mark.anyio
async def test_readers_never_see_partial_writes(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    await store.add(make_result("seed", image_uri="file:///" + "x" * 200_000))
    empty_reads = []

    async def writer(index):
        await store.add(make_result(f"r{index}", image_uri="file:///" + "y" * 200_000))

    async def reader():
        for _ in range(200):
            if not await store.load():
                empty_reads.append(True)
            await asyncio.sleep(0)

    await asyncio.gather(*(writer(i) for i in range(5)), reader())

    assert empty_reads == []
    assert len(await store.load()) == 6
    assert [name for name in os.listdir(tmp_path) if name.endswith(".tmp")] == []


@pytest.mark.anyio
async def test_inline_images_are_stored_as_thumbnail_only(tmp_path):
    path = tmp_path / "history.json"
    store = HistoryStore(str(path))
    big_image = "data:image/png;base64," + base64.b64encode(b"\x00" * 2_000_000).decode("utf-8")
    thumbnail = "data:image/png;base64,iVBORw0KGgo="

    for index in range(6):
        result = make_result(f"big{index}", image_uri=big_image)
        await store.add(result, RawAPIResponse(original_image=big_image, diagnosis="ok"), thumbnail_uri=thumbnail)

    items = await store.load()
    assert all(item.image_uri == thumbnail and item.thumbnail_uri == thumbnail for item in items)
    assert all(item.api_response.original_image == thumbnail for item in items)
    assert path.stat().st_size < 10_000


@pytest.mark.anyio
async def test_inline_image_without_thumbnail_is_dropped(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    item = await store.add(make_result("a", image_uri="data:image/png;base64,AAAA"))

    assert item.image_uri == ""
    assert item.thumbnail_uri == ""
