import json
import os
import stat

from stationery_server.storage import LocalStorage


def read_file(path):
    with open(path) as f:
        return json.load(f)


def test_items_survive_reload(storage_file):
    storage = LocalStorage(storage_file)
    storage.set_item("greeting", "hello")

    reloaded = LocalStorage(storage_file)
    assert reloaded.get_item("greeting") == "hello"
    assert read_file(storage_file) == {"greeting": "hello"}


def test_remove_item(storage_file):
    storage = LocalStorage(storage_file)
    storage.set_item("a", "1")
    storage.set_item("b", "2")

    storage.remove_item("a")
    storage.remove_item("missing")
    assert storage.get_item("a") is None
    assert read_file(storage_file) == {"b": "2"}

    storage.remove_item("b")
    assert read_file(storage_file) == {}


def test_file_is_private(storage_file):
    LocalStorage(storage_file).set_item("adminAuthenticated", "true")
    assert stat.S_IMODE(os.stat(storage_file).st_mode) == 0o600


def test_corrupt_file_starts_empty(storage_file):
    with open(storage_file, "w") as f:
        f.write("{not json")
    storage = LocalStorage(storage_file)
    assert storage.get_item("adminAuthenticated") is None

    storage.set_item("adminAuthenticated", "true")
    assert read_file(storage_file) == {"adminAuthenticated": "true"}


def test_non_object_file_starts_empty(storage_file):
    with open(storage_file, "w") as f:
        json.dump(["a", "b"], f)
    assert LocalStorage(storage_file).get_item("a") is None
