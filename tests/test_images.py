import io

import pygame
import requests

from images import ImageCache, type_icon_url
from scheduling import Inbox

from conftest import DeferredExecutor


def _png_bytes(color=(200, 50, 50)):
    surface = pygame.Surface((8, 8))
    surface.fill(color)
    buf = io.BytesIO()
    pygame.image.save(surface, buf, "icon.png")
    return buf.getvalue()


def test_icon_url():
    assert type_icon_url(45041) == "https://images.evetech.net/types/45041/icon?size=64"


def test_one_request_per_type_and_decode_on_drain():
    calls = []
    png = _png_bytes()

    def fetch(type_id):
        calls.append(type_id)
        return png

    executor, inbox = DeferredExecutor(), Inbox()
    cache = ImageCache(fetch, executor, inbox)
    assert cache.get(11) is None
    assert cache.get(11) is None
    assert cache.get(None) is None
    assert len(executor.jobs) == 1

    executor.run_all()
    assert calls == [11]
    assert 11 not in cache  # not stored until the main thread drains
    inbox.drain()
    assert 11 in cache
    assert cache.get(11).get_size() == (8, 8)
    assert len(executor.jobs) == 0


def test_arrivals_in_one_tick_count_once():
    png = _png_bytes()
    executor, inbox = DeferredExecutor(), Inbox()
    cache = ImageCache(lambda type_id: png, executor, inbox)
    for type_id in (11, 12, 13):
        cache.get(type_id)
    executor.run_all()
    inbox.drain()
    assert cache.take_arrivals() == 3
    assert cache.take_arrivals() == 0
    assert len(cache) == 3


def test_failed_download_is_never_retried():
    calls = []

    def fetch(type_id):
        calls.append(type_id)
        raise requests.ConnectionError("offline")

    executor, inbox = DeferredExecutor(), Inbox()
    cache = ImageCache(fetch, executor, inbox)
    cache.get(45041)
    executor.run_all()
    assert inbox.drain() == 0
    assert 45041 not in cache
    assert cache.get(45041) is None
    assert executor.jobs == []
    assert calls == [45041]


def test_undecodable_bytes_leave_id_absent():
    executor, inbox = DeferredExecutor(), Inbox()
    cache = ImageCache(lambda type_id: b"definitely not an image", executor, inbox)
    cache.get(7)
    executor.run_all()
    inbox.drain()
    assert 7 not in cache
    assert cache.take_arrivals() == 0
