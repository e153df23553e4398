from __future__ import annotations

from mapquery.name_index import LocationRecord, NameIndex, clean_name


def _record(vertex_id: int, name: str) -> LocationRecord:
    return LocationRecord(id=vertex_id, lon=-122.25 + vertex_id * 1e-3, lat=37.86, name=name)


def _index(names: list[str]) -> NameIndex:
    index = NameIndex()
    for i, name in enumerate(names):
        index.insert(clean_name(name), name, _record(i, name))
    return index


def test_clean_name_strips_punctuation_and_folds_case() -> None:
    assert clean_name("Saint John's Church") == "saint johns church"
    assert clean_name("Café 1-2-3!") == "caf "
    assert clean_name("") == ""


def test_clean_name_is_idempotent() -> None:
    for raw in ("Top Dog", "Peet's Coffee & Tea", "  7-Eleven  ", "Ünïcode"):
        once = clean_name(raw)
        assert clean_name(once) == once


def test_exact_lookup_accumulates_records_for_collapsed_keys() -> None:
    index = NameIndex()
    a = _record(1, "Saint John's Church")
    b = _record(2, "saint johns church")
    index.insert(clean_name(a.name), a.name, a)
    index.insert(clean_name(b.name), b.name, b)

    records = index.exact_lookup("saint johns church")

    assert records == (a, b)
    assert len(index) == 1
    # The first display name is the one reported by prefix search.
    assert index.prefix_search("saint") == ["Saint John's Church"]


def test_exact_lookup_not_found_for_missing_or_non_terminal_path() -> None:
    index = _index(["Berkeley Bowl"])

    assert index.exact_lookup("berkeley") is None
    assert index.exact_lookup("oakland") is None
    assert index.contains("berkeley bowl") is True
    assert index.contains("berkeley") is False


def test_prefix_search_is_depth_first_in_character_order() -> None:
    index = _index(["Dog", "door", "Dig", "Cat", "dog house", "A"])

    assert index.prefix_search("d") == ["Dig", "Dog", "dog house", "door"]
    assert index.prefix_search("do") == ["Dog", "dog house", "door"]
    assert index.prefix_search("x") == []


def test_prefix_search_empty_prefix_returns_every_key_once() -> None:
    names = ["Top Dog", "Toad", "Tap", "Top Dog", "top dog!", "Ann"]
    index = _index(names)

    result = index.prefix_search("")

    # "Top Dog" and "top dog!" collapse to one key.
    assert sorted(result) == ["Ann", "Tap", "Toad", "Top Dog"]
    assert len(result) == len(index)
    assert len(index.exact_lookup("top dog") or ()) == 3


def test_prefix_search_order_is_independent_of_insert_order() -> None:
    names = ["bart", "bancroft", "ashby", "ball", "b"]
    forward = _index(names)
    backward = _index(list(reversed(names)))

    assert forward.prefix_search("") == backward.prefix_search("")
    assert forward.prefix_search("ba") == ["ball", "bancroft", "bart"]


def test_pattern_search_matches_wildcards_at_fixed_length() -> None:
    index = _index(["dog", "dig", "dug", "door", "do", "cat"])

    assert index.pattern_search("d.g") == ["dig", "dog", "dug"]
    assert index.pattern_search("...") == ["cat", "dig", "dog", "dug"]
    assert index.pattern_search("do") == ["do"]
    assert index.pattern_search("d..r") == ["door"]
    assert index.pattern_search("z..") == []
