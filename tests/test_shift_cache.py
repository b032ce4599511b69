from __future__ import annotations

import pytest

from conftest import make_shift
from fuelshift_client.shift_cache import CacheKey, ShiftCache


def test_storage_names() -> None:
    assert CacheKey.system().storage_name == "activeShift_system"
    assert CacheKey.for_identity("emp-a").storage_name == "activeShift_emp-a"


def test_identity_key_needs_an_id() -> None:
    with pytest.raises(ValueError):
        CacheKey.for_identity("")


def test_save_load_clear(cache) -> None:
    shift = make_shift("shift-1", identities=["emp-a", "emp-b"])
    key = CacheKey.for_identity("emp-a")

    cache.save(key, shift)
    assert cache.load(key) == shift
    assert cache.load(CacheKey.system()) is None

    cache.clear(key)
    assert cache.load(key) is None
    cache.clear(key)


def test_keys_are_isolated(cache) -> None:
    cache.save(CacheKey.for_identity("emp-a"), make_shift("shift-a"))
    cache.save(CacheKey.system(), make_shift("shift-s"))

    assert cache.load(CacheKey.for_identity("emp-a")).id == "shift-a"
    assert cache.load(CacheKey.system()).id == "shift-s"
    assert cache.load(CacheKey.for_identity("emp-b")) is None


def test_corrupt_entry_is_dropped(tmp_path) -> None:
    cache = ShiftCache(base_dir=tmp_path)
    path = tmp_path / "activeShift_emp-a.json"
    path.write_text("{not json")

    assert cache.load(CacheKey.for_identity("emp-a")) is None
    assert not path.exists()


def test_unsafe_identity_chars_stay_inside_cache_dir(tmp_path) -> None:
    cache = ShiftCache(base_dir=tmp_path)
    cache.save(CacheKey.for_identity("../evil"), make_shift("shift-1"))

    assert [p.name for p in tmp_path.iterdir()] == ["activeShift_.._evil.json"]
    assert cache.load(CacheKey.for_identity("../evil")).id == "shift-1"


def test_unusable_cache_dir_degrades_to_misses(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    cache = ShiftCache(base_dir=blocker / "cache")
    key = CacheKey.for_identity("emp-a")

    cache.save(key, make_shift("shift-1"))
    cache.clear(key)

    assert cache.load(key) is None
