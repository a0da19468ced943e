import fnmatch
import json

import pytest

from mailtemp.redis_storage import (
    ACTIVE_KEY_PREFIX,
    DEFAULT_EXPIRATION,
    EMAIL_KEY_PREFIX,
    RedisStorage,
)
from mailtemp.storage import EmailMessage


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                removed += 1
        return removed

    def exists(self, *keys):
        return sum(1 for key in keys if key in self.data)

    def scan_iter(self, match=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def close(self):
        self.closed = True


@pytest.fixture
def fake():
    return FakeRedis()


@pytest.fixture
def store(fake):
    return RedisStorage(fake)


def _message(subject):
    return EmailMessage(sender="a@example.com", to="b@example.com",
                        subject=subject, timestamp="2024-01-01T00:00:00Z")


def test_save_appends_and_round_trips(store):
    first, second = _message("one"), _message("two")
    store.save_email("box", first)
    store.save_email("box", second)
    assert store.get_emails("box") == [first, second]


def test_saved_value_is_json_list_with_expiry(store, fake):
    store.save_email("box", _message("one"))
    key = EMAIL_KEY_PREFIX + "box"
    assert json.loads(fake.data[key])[0]["subject"] == "one"
    assert fake.ttls[key] == DEFAULT_EXPIRATION
    assert [m.subject for m in store.get_emails("box")] == ["one"]


def test_missing_and_null_lists_read_empty(store, fake):
    assert store.get_emails("nobody") == []
    fake.data[EMAIL_KEY_PREFIX + "nullbox"] = "null"
    assert store.get_emails("nullbox") == []
    store.save_email("nullbox", _message("x"))
    assert [m.subject for m in store.get_emails("nullbox")] == ["x"]


def test_corrupt_json_raises(store, fake):
    fake.data[EMAIL_KEY_PREFIX + "bad"] = "{not json"
    with pytest.raises(json.JSONDecodeError):
        store.get_emails("bad")
    with pytest.raises(json.JSONDecodeError):
        store.save_email("bad", _message("x"))


def test_clear_emails(store):
    store.save_email("box", _message("one"))
    store.clear_emails("box")
    assert store.get_emails("box") == []


def test_active_email_lifecycle(store, fake):
    assert store.is_active_email("abc") is False
    store.add_active_email("abc")
    store.add_active_email("def")
    store.save_email("abc", _message("ignored by listing"))
    assert fake.data[ACTIVE_KEY_PREFIX + "abc"] == "1"
    assert fake.ttls[ACTIVE_KEY_PREFIX + "abc"] == DEFAULT_EXPIRATION
    assert store.is_active_email("abc") is True
    assert sorted(store.get_active_emails()) == ["abc", "def"]
    store.delete_active_email("abc")
    assert store.is_active_email("abc") is False
    assert store.get_active_emails() == ["def"]


def test_active_keys_as_bytes_are_decoded(fake):
    fake.data[(ACTIVE_KEY_PREFIX + "raw").encode()] = b"1"
    fake.scan_iter = lambda match=None: iter([(ACTIVE_KEY_PREFIX + "raw").encode()])
    assert RedisStorage(fake).get_active_emails() == ["raw"]


def test_close_closes_client(store, fake):
    message = _message("before close")
    store.save_email("box", message)
    assert store.get_emails("box") == [message]
    store.close()
    assert fake.closed is True


def test_from_url_rejects_bad_scheme():
    with pytest.raises(ValueError):
        RedisStorage.from_url("notredis://localhost")