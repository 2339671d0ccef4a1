import logging
import threading

import pytest

from pathgate import CallableRightsOracle, Gate, PathRuleSet, StaticRightsOracle
from pathgate.core.engine import classify, default_path_of


class RecordingOracle:
    def __init__(self, admin=False, user=False):
        self.admin = admin
        self.user = user
        self.calls = []

    def has_admin_rights(self, request):
        self.calls.append("admin")
        return self.admin

    def has_user_rights(self, request):
        self.calls.append("user")
        return self.user


class RaisingOracle:
    def has_admin_rights(self, request):
        raise RuntimeError("store down")

    def has_user_rights(self, request):
        raise ConnectionError("store down")


def _gate(oracle, rules=None):
    return Gate(oracle, rules if rules is not None else PathRuleSet.default())


def test_scenario_a_admin_path_without_admin_rights_is_rejected():
    assert _gate(RecordingOracle(admin=False)).reject("/admin/x", None) is True


def test_scenario_b_admin_path_with_admin_rights_is_accepted():
    oracle = RecordingOracle(admin=True)
    decision = _gate(oracle).decide("/admin/x", None)
    assert decision.allowed
    assert decision.category == "admin"
    assert decision.prefix == "/admin"
    assert oracle.calls == ["admin"]


def test_scenario_c_user_path_without_rights_is_rejected():
    oracle = RecordingOracle(admin=False, user=False)
    assert _gate(oracle).reject("/repo/y", None) is True
    assert oracle.calls == ["user"]


def test_scenario_d_static_asset_is_public_without_oracle_call():
    oracle = RecordingOracle()
    decision = _gate(oracle).decide("/style/app.css", None)
    assert decision.allowed and decision.category == "public"
    assert oracle.calls == []


def test_scenario_e_unknown_path_is_rejected():
    oracle = RecordingOracle(admin=True, user=True)
    decision = _gate(oracle).decide("/unknown/page", None)
    assert decision.rejected
    assert decision.category == "unmatched"
    assert oracle.calls == []


def test_scenario_f_root_override_without_root_in_public_list():
    rules = PathRuleSet(["/"], ["/"], [], root_is_public=True)
    oracle = RecordingOracle()
    assert _gate(oracle, rules).decide("/", None).category == "root"
    assert oracle.calls == []


def test_root_without_override_follows_lists():
    rules = PathRuleSet([], [], ["/login"], root_is_public=False)
    assert _gate(RecordingOracle(), rules).reject("/", None) is True


def test_user_path_with_user_rights_is_accepted_even_if_not_public():
    rules = PathRuleSet([], ["/repo"], [])
    assert _gate(RecordingOracle(user=True), rules).reject("/repo/z", None) is False


def test_admin_match_governs_paths_also_listed_as_user():
    rules = PathRuleSet(["/shared"], ["/shared"], ["/shared"])
    denied = RecordingOracle(admin=False, user=True)
    assert _gate(denied, rules).reject("/shared/doc", None) is True
    assert denied.calls == ["admin"]

    allowed = RecordingOracle(admin=True, user=False)
    assert _gate(allowed, rules).reject("/shared/doc", None) is False
    assert allowed.calls == ["admin"]


def test_prefix_match_is_literal():
    rules = PathRuleSet(["/admin"], [], [])
    gate = _gate(RecordingOracle(admin=False), rules)
    assert gate.decide("/administrator", None).category == "admin"
    assert gate.decide("/Admin", None).category == "unmatched"
    assert gate.decide("admin", None).category == "unmatched"


def test_empty_prefix_matches_everything():
    rules = PathRuleSet([], [], [""], root_is_public=False)
    assert _gate(RecordingOracle(), rules).reject("/anything", None) is False


def test_clear_opens_only_public_paths():
    gate = _gate(RecordingOracle())
    gate.clear()
    assert gate.reject("/admin/x", None) is True  # no longer admin, but not public either
    assert gate.decide("/admin/x", None).category == "unmatched"
    assert gate.reject("/login", None) is False


def test_gate_mutators_delegate_to_rules():
    gate = _gate(RecordingOracle(user=True), PathRuleSet())
    gate.add_user_prefix("/u")
    gate.add_admin_prefix("/a")
    gate.add_public_prefix("/p")
    assert gate.decide("/u/1", None).category == "user"
    gate.set_user_prefixes([])
    gate.set_admin_prefixes(["/u"])
    gate.set_public_prefixes(["/q"])
    assert gate.decide("/u/1", None).category == "admin"
    assert gate.rules.public_prefixes == ("/q",)


def test_oracle_failure_fails_closed(caplog):
    caplog.set_level(logging.ERROR, logger="pathgate.engine")
    gate = _gate(RaisingOracle())
    assert gate.reject("/admin/x", None) is True
    assert gate.reject("/repo/x", None) is True
    assert any("treating as absent" in r.getMessage() for r in caplog.records)


def test_async_oracle_in_sync_path_fails_closed():
    class AsyncOracle:
        async def has_admin_rights(self, request):
            return True

        async def has_user_rights(self, request):
            return True

    gate = _gate(AsyncOracle())
    assert gate.is_async_oracle is True
    assert gate.reject("/admin/x", None) is True


def test_truthy_answers_are_coerced():
    oracle = RecordingOracle(admin=1, user="")
    gate = _gate(oracle)
    assert gate.decide("/admin", None).allowed is True
    assert gate.decide("/data", None).allowed is False


def test_rights_oracle_accessors():
    gate = _gate(StaticRightsOracle())
    replacement = StaticRightsOracle(admin=True)
    gate.set_rights_oracle(replacement)
    assert gate.rights_oracle is replacement
    assert gate.reject("/admin", None) is False
    gate.rights_oracle = StaticRightsOracle()
    assert gate.reject("/admin", None) is True


def test_set_rules_swaps_policy():
    gate = _gate(StaticRightsOracle())
    gate.set_rules(PathRuleSet([], [], ["/"]))
    assert gate.reject("/admin/x", None) is False


def test_independent_gates_do_not_share_rules():
    a = Gate.default(StaticRightsOracle())
    b = Gate.default(StaticRightsOracle())
    a.clear()
    assert b.rules.admin_prefixes == ("/admin",)


def test_rejected_extracts_path_from_request():
    gate = _gate(StaticRightsOracle())
    assert gate.rejected({"PATH_INFO": "/login", "SCRIPT_NAME": ""}) is False
    assert gate.rejected({"type": "http", "path": "/admin"}) is True


class _URL:
    def __init__(self, path):
        self.path = path


class _StarletteLike:
    def __init__(self, path):
        self.url = _URL(path)


class _FlaskLike:
    def __init__(self, path):
        self.path = path


def test_default_path_of_shapes():
    assert default_path_of({"SCRIPT_NAME": "/app", "PATH_INFO": "/x"}) == "/app/x"
    assert default_path_of({"SCRIPT_NAME": "", "PATH_INFO": ""}) == "/"
    assert default_path_of({"SCRIPT_NAME": "", "PATH_INFO": "/caf\u00c3\u00a9"}) == "/caf\u00e9"
    assert default_path_of({"PATH_INFO": "/caf\u00e9"}) == "/caf\ufffd"
    assert default_path_of({"PATH_INFO": "/\u20ac"}) == "/\u20ac"
    assert default_path_of({"type": "http", "path": "/scope"}) == "/scope"
    assert default_path_of(_StarletteLike("/s")) == "/s"
    assert default_path_of(_FlaskLike("/f")) == "/f"
    with pytest.raises(TypeError):
        default_path_of(object())


def test_classify_reports_first_matching_prefix():
    rules = PathRuleSet(["/a", "/ab"], [], [])
    assert classify(rules.snapshot(), "/abc") == ("admin", "/a")


@pytest.mark.asyncio
async def test_decide_async_awaits_async_oracle():
    class AsyncOracle:
        def __init__(self):
            self.calls = 0

        async def has_admin_rights(self, request):
            self.calls += 1
            return True

        async def has_user_rights(self, request):
            self.calls += 1
            return False

    oracle = AsyncOracle()
    gate = _gate(oracle)
    assert (await gate.decide_async("/admin/x", None)).allowed is True
    assert await gate.reject_async("/repo/x", None) is True
    assert oracle.calls == 2


@pytest.mark.asyncio
async def test_decide_async_accepts_sync_oracle_and_fails_closed_on_error():
    assert await _gate(StaticRightsOracle(user=True)).reject_async("/repo", None) is False
    assert await _gate(RaisingOracle()).reject_async("/admin", None) is True


@pytest.mark.asyncio
async def test_decide_async_run_sync_only_wraps_sync_methods():
    wrapped = []

    async def run_sync(func, *args):
        wrapped.append(func)
        return func(*args)

    async def admin(request):
        return True

    # plain methods returning coroutines go through run_sync, then get awaited
    gate = _gate(CallableRightsOracle(admin=admin))
    assert (await gate.decide_async("/admin/x", None, run_sync=run_sync)).allowed is True
    assert len(wrapped) == 1

    class CoroutineOracle:
        async def has_admin_rights(self, request):
            return True

        async def has_user_rights(self, request):
            return True

    wrapped.clear()
    gate = _gate(CoroutineOracle())
    assert (await gate.decide_async("/admin/x", None, run_sync=run_sync)).allowed is True
    assert wrapped == []


@pytest.mark.asyncio
async def test_decide_async_run_sync_failure_fails_closed():
    async def run_sync(func, *args):
        raise RuntimeError("pool gone")

    gate = _gate(StaticRightsOracle(admin=True))
    assert await gate.reject_async("/admin", None) is False
    assert (await gate.decide_async("/admin", None, run_sync=run_sync)).allowed is False


def test_decisions_stay_consistent_while_rules_change():
    gate = _gate(StaticRightsOracle(), PathRuleSet(["/x"], [], ["/x"], root_is_public=False))
    stop = threading.Event()
    outcomes = set()
    errors = []

    def flip():
        while not stop.is_set():
            gate.set_admin_prefixes([])
            gate.set_admin_prefixes(["/x"])

    def read():
        try:
            for _ in range(2000):
                d = gate.decide("/x/1", None)
                outcomes.add((d.category, d.allowed))
        except Exception as e:  # pragma: no cover
            errors.append(e)

    writer = threading.Thread(target=flip)
    readers = [threading.Thread(target=read) for _ in range(4)]
    writer.start()
    for t in readers:
        t.start()
    for t in readers:
        t.join()
    stop.set()
    writer.join()

    assert errors == []
    assert outcomes <= {("admin", False), ("public", True)}
