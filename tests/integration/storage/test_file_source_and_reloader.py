import json
import logging
import os
import time

import pytest

from pathgate import Gate, StaticRightsOracle
from pathgate.storage import FileRuleSource, HotReloader, atomic_write, load_rules


def _doc(**kw):
    base = {"admin": ["/admin"], "user": [], "public": ["/login"], "root_is_public": True}
    base.update(kw)
    return json.dumps(base)


def test_atomic_write_and_content_etag_changes(tmp_path):
    path = tmp_path / "rules.json"
    atomic_write(str(path), data=_doc())
    src = FileRuleSource(str(path))
    et1 = src.etag()
    atomic_write(str(path), data=_doc(public=["/login", "/register"]))
    assert src.etag() != et1
    assert src.load()["public"] == ["/login", "/register"]


def test_include_mtime_in_etag_allows_touch_trigger(tmp_path):
    path = tmp_path / "rules.json"
    atomic_write(str(path), data=_doc())
    plain = FileRuleSource(str(path))
    with_mtime = FileRuleSource(str(path), include_mtime_in_etag=True)
    et_plain, et_mtime = plain.etag(), with_mtime.etag()

    st = os.stat(str(path))
    new_mtime = max(st.st_mtime, time.time()) + 2
    os.utime(str(path), (st.st_atime, new_mtime))

    assert plain.etag() == et_plain
    assert with_mtime.etag() != et_mtime


def test_missing_file_has_no_etag(tmp_path):
    assert FileRuleSource(str(tmp_path / "none.json")).etag() is None


def test_load_rules_yaml(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "rules.yaml"
    path.write_text("admin: [/ops]\nuser: [/app]\npublic: []\nroot_is_public: false\n", encoding="utf-8")
    rules = load_rules(str(path))
    assert rules.admin_prefixes == ("/ops",)
    assert rules.root_is_public is False


def test_reloader_applies_changes_once(tmp_path):
    path = tmp_path / "rules.json"
    atomic_write(str(path), data=_doc())
    gate = Gate(StaticRightsOracle())
    reloader = HotReloader(gate, FileRuleSource(str(path)), poll_interval=None)
    assert reloader.last_etag is None

    assert reloader.check_and_reload() is True
    first = reloader.last_etag
    assert first == FileRuleSource(str(path)).etag()
    assert gate.rules.public_prefixes == ("/login",)
    assert reloader.check_and_reload() is False
    assert reloader.last_reload_at is not None

    atomic_write(str(path), data=_doc(public=["/login", "/docs"]))
    assert reloader.check_and_reload() is True
    assert reloader.last_etag not in (None, first)
    assert gate.reject("/docs/intro", None) is False


def test_reloader_keeps_last_good_rules_on_invalid_document(tmp_path, caplog):
    caplog.set_level(logging.ERROR, logger="pathgate.storage")
    path = tmp_path / "rules.json"
    atomic_write(str(path), data=_doc())
    gate = Gate(StaticRightsOracle())
    reloader = HotReloader(gate, FileRuleSource(str(path)))
    assert reloader.check_and_reload() is True

    atomic_write(str(path), data='{"admin": "/oops"}')
    assert reloader.check_and_reload(force=True) is False
    assert gate.rules.admin_prefixes == ("/admin",)
    assert reloader.last_error is not None
    assert reloader.suppressed_until > 0
    # suppressed until the backoff window passes
    assert reloader.check_and_reload() is False
    assert any("invalid rule document" in r.getMessage() for r in caplog.records)


def test_reloader_warns_on_missing_file(tmp_path, caplog):
    caplog.set_level(logging.WARNING, logger="pathgate.storage")
    gate = Gate(StaticRightsOracle())
    before = gate.rules
    reloader = HotReloader(gate, FileRuleSource(str(tmp_path / "absent.json")))
    assert reloader.check_and_reload() is False
    assert gate.rules is before
    assert isinstance(reloader.last_error, FileNotFoundError)
    assert reloader.last_etag is None
    assert any("rules not found" in r.getMessage() for r in caplog.records)


def test_background_thread_start_stop(tmp_path):
    path = tmp_path / "rules.json"
    atomic_write(str(path), data=_doc(public=["/bg"]))
    gate = Gate(StaticRightsOracle())
    reloader = HotReloader(gate, FileRuleSource(str(path)), poll_interval=0.2)
    reloader.start()
    try:
        deadline = time.time() + 5
        while gate.rules.public_prefixes != ("/bg",) and time.time() < deadline:
            time.sleep(0.05)
        assert gate.rules.public_prefixes == ("/bg",)
    finally:
        reloader.stop(timeout=2.0)
    assert reloader._thread is None
