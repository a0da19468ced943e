from unittest import mock

import redis

from mailtemp.config import Config
from mailtemp.factory import create_storage
from mailtemp.redis_storage import RedisStorage
from mailtemp.storage import EmailMessage, MemoryStorage


class PingingClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.closed = False
        self.data = {}

    def ping(self):
        if self.fail:
            raise redis.ConnectionError("refused")
        return True

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value

    def close(self):
        self.closed = True


def test_memory_storage_without_redis_url():
    storage = create_storage(Config(redis_url=""))
    assert isinstance(storage, MemoryStorage)
    storage.add_active_email("abc")
    assert storage.get_active_emails() == ["abc"]


def test_falls_back_on_malformed_url():
    storage = create_storage(Config(redis_url="notredis://localhost"))
    assert isinstance(storage, MemoryStorage)
    storage.add_active_email("box")
    assert storage.is_active_email("box") is True
    assert storage.get_active_emails() == ["box"]


def test_falls_back_when_ping_fails():
    client = PingingClient(fail=True)
    with mock.patch("redis.Redis.from_url", return_value=client):
        storage = create_storage(Config(redis_url="redis://localhost:6379/0"))
    assert isinstance(storage, MemoryStorage)
    assert client.closed is True
    msg = EmailMessage(subject="kept in memory")
    storage.save_email("box", msg)
    assert storage.get_emails("box") == [msg]
    assert client.data == {}


def test_uses_redis_when_reachable():
    client = PingingClient()
    with mock.patch("redis.Redis.from_url", return_value=client):
        storage = create_storage(Config(redis_url="redis://localhost:6379/0"))
    assert isinstance(storage, RedisStorage)
    msg = EmailMessage(subject="hi")
    storage.save_email("box", msg)
    assert storage.get_emails("box") == [msg]
    storage.close()
    assert client.closed is True