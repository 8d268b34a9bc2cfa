from daipk.util import clean_keys, is_valid_key, to_field


def test_util_is_valid_key():
    assert is_valid_key("a")
    assert is_valid_key(0)
    assert is_valid_key(-1.5)
    assert is_valid_key(False)
    assert is_valid_key(float("inf"))
    assert not is_valid_key("")
    assert not is_valid_key(None)
    assert not is_valid_key(float("nan"))
    assert not is_valid_key(b"a")
    assert not is_valid_key(["a"])


def test_util_to_field():
    assert to_field("user:1") == "user:1"
    assert to_field(42) == "42"
    assert to_field(2.0) == "2"
    assert to_field(2.5) == "2.5"
    assert to_field(True) == "1"
    assert to_field(False) == "0"


def test_util_clean_keys():
    assert clean_keys([]) == {}
    cleaned = clean_keys(["b", "a", None, "b", "", 3, 3.0, float("nan"), 0, False])
    assert list(cleaned) == ["b", "a", "3", "0"]
    assert cleaned["3"] == 3
    assert isinstance(cleaned["3"], int)
    assert cleaned["0"] == 0
    assert cleaned["0"] is not False
    # keys with equal string form share an entry
    assert list(clean_keys(["1", 1])) == ["1"]
