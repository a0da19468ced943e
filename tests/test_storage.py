import threading

from mailtemp.storage import EmailMessage, MemoryStorage


def _message(subject="hello", code=""):
    return EmailMessage(
        sender="sender@example.com",
        to="box@example.com",
        subject=subject,
        body="body text",
        timestamp="2024-01-01T00:00:00Z",
        code=code,
    )


def test_to_dict_omits_empty_optional_fields():
    data = _message().to_dict()
    assert data == {
        "from": "sender@example.com",
        "to": "box@example.com",
        "subject": "hello",
        "body": "body text",
        "timestamp": "2024-01-01T00:00:00Z",
    }


def test_to_dict_includes_html_and_code_when_set():
    msg = _message(code="123456")
    msg.html_content = "<b>123456</b>"
    data = msg.to_dict()
    assert data["htmlContent"] == "<b>123456</b>"
    assert data["code"] == "123456"


def test_dict_round_trip():
    msg = _message(code="4321")
    msg.html_content = "<p>x</p>"
    assert EmailMessage.from_dict(msg.to_dict()) == msg


def test_from_dict_missing_keys_are_empty():
    msg = EmailMessage.from_dict({"subject": "only"})
    assert msg == EmailMessage(subject="only")


def test_save_and_get_keep_order():
    store = MemoryStorage()
    first, second = _message("one"), _message("two")
    store.save_email("box", first)
    store.save_email("box", second)
    assert store.get_emails("box") == [first, second]
    assert store.get_emails("other") == []


def test_get_emails_returns_a_copy():
    store = MemoryStorage()
    store.save_email("box", _message())
    got = store.get_emails("box")
    got.clear()
    assert len(store.get_emails("box")) == 1


def test_clear_emails():
    store = MemoryStorage()
    store.save_email("box", _message())
    store.save_email("keep", _message())
    store.clear_emails("box")
    store.clear_emails("missing")
    assert store.get_emails("box") == []
    assert len(store.get_emails("keep")) == 1


def test_active_email_lifecycle():
    store = MemoryStorage()
    assert store.is_active_email("abc") is False
    store.add_active_email("abc")
    store.add_active_email("def")
    assert store.is_active_email("abc") is True
    assert sorted(store.get_active_emails()) == ["abc", "def"]
    store.delete_active_email("abc")
    store.delete_active_email("never")
    assert store.is_active_email("abc") is False
    assert store.get_active_emails() == ["def"]


def test_concurrent_saves_are_all_kept():
    store = MemoryStorage()

    def worker():
        for _ in range(50):
            store.save_email("box", _message())

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store.get_emails("box")) == 4 * 50


def test_close_keeps_data_readable():
    store = MemoryStorage()
    store.add_active_email("abc")
    store.close()
    assert store.is_active_email("abc") is True