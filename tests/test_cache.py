"""
AI output cache tests
"""
from ielts_admin.cache import CacheKey, MemoryCache, derive_key


def test_key_ignores_whitespace_differences():
    assert derive_key("Convert", "Section 1\n  Question 1") == derive_key("Convert ", "Section 1 Question 1")


def test_key_depends_on_prompt_and_text():
    assert derive_key("a", "text").digest != derive_key("b", "text").digest
    # the separator keeps prompt/text boundaries apart
    assert derive_key("ab", "c").digest != derive_key("a", "bc").digest


def test_long_inputs_sharing_a_prefix_do_not_collide():
    prefix = "x" * 500
    assert derive_key("p", prefix + "one").digest != derive_key("p", prefix + "two").digest


def test_hit_requires_matching_input():
    cache = MemoryCache()
    cache.put(CacheKey(digest="same", normalized="first input"), "first output")

    assert cache.get(CacheKey(digest="same", normalized="first input")) == "first output"
    assert cache.get(CacheKey(digest="same", normalized="second input")) is None


def test_lru_eviction():
    cache = MemoryCache(max_entries=2)
    a, b, c = derive_key("p", "a"), derive_key("p", "b"), derive_key("p", "c")
    cache.put(a, "A")
    cache.put(b, "B")
    assert cache.get(a) == "A"
    cache.put(c, "C")

    assert len(cache) == 2
    assert cache.get(b) is None
    assert cache.get(a) == "A"
    assert cache.get(c) == "C"
