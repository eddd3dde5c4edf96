"""Tests for protocol framing, the serve loop and transports."""

import asyncio
import json
import sys

import pytest

from conftest import GatedExecutor
from lazycli.lib.engine import Engine
from lazycli.lib.errors import LazyError, ProtocolError
from lazycli.lib.loader import load_config_string
from lazycli.lib.models import Item, StepReference
from lazycli.lib.protocol import (
    InProcessTransport,
    Request,
    Server,
    SubprocessTransport,
    decode_frame,
    encode_frame,
    parse_action,
    parse_reference,
)
from lazycli.lib.registry import Registry

BRANCHES_REF = {"target": "branches", "packageName": "git"}


# =============================================================================
# Framing
# =============================================================================


class TestFraming:
    def test_encode_is_one_line(self):
        frame = encode_frame(Item(title="multi\nline"))
        assert frame.endswith("\n")
        assert frame.count("\n") == 1
        assert json.loads(frame) == {"title": "multi\nline", "actions": []}

    def test_decode_request(self):
        request = decode_frame('{"id": 7, "verb": "ref", "args": [{"target": "x"}]}')
        assert request.id == 7
        assert request.verb == "ref"

    def test_decode_rejects_unknown_verb(self):
        with pytest.raises(ProtocolError):
            decode_frame('{"verb": "explode"}')

    def test_decode_rejects_garbage(self):
        with pytest.raises(ProtocolError):
            decode_frame("not json")

    def test_parse_reference_from_string_or_dict(self):
        assert parse_reference('{"target": "a"}').target == "a"
        assert parse_reference({"target": "a", "packageName": "p"}).package_name == "p"

    def test_parse_action_invalid(self):
        with pytest.raises(ProtocolError):
            parse_action('{"type": "run"}')
        with pytest.raises(ProtocolError):
            parse_action("{oops")


# =============================================================================
# In-process transport
# =============================================================================


class TestInProcessTransport:
    def _request(self, engine, verb, *args):
        return asyncio.run(InProcessTransport(engine).request(verb, *args))

    def test_ls(self, engine):
        roots = self._request(engine, "ls")
        assert [r["title"] for r in roots] == ["Git Branches", "Status"]
        assert roots[0]["actions"][0]["type"] == "ref"

    def test_ref(self, engine):
        result = self._request(engine, "ref", BRANCHES_REF)
        assert result["type"] == "filter"
        assert [i["title"] for i in result["items"]] == ["main", "dev"]

    def test_ref_roundtrips_item_actions(self, engine):
        """Step actions from one list can be sent back through `ref` as-is."""
        listed = self._request(engine, "ref", BRANCHES_REF)
        log_action = listed["items"][1]["actions"][1]
        result = self._request(engine, "ref", log_action)
        assert result["items"][0]["preview"] == "log of dev"

    def test_run(self, engine):
        assert self._request(engine, "run", {"type": "run", "command": "echo hi"}) == {"stdout": "hi"}

    def test_submit(self, engine):
        action = self._request(
            engine, "submit", {"target": "deploy", "packageName": "dev/tools"}, {"tag": "v2"}
        )
        assert action["command"] == "echo deploy v2 to staging"

    def test_missing_argument(self, engine):
        with pytest.raises(ProtocolError):
            self._request(engine, "ref")


# =============================================================================
# Server
# =============================================================================


class TestServer:
    def test_handle_success(self, engine):
        response = asyncio.run(Server(engine).handle(Request(id=1, verb="ls")))
        assert response.ok
        assert response.id == 1

    def test_handle_failure_is_structured(self, engine):
        request = Request(id=2, verb="run", args=[{"type": "run", "command": "exit 9"}])
        response = asyncio.run(Server(engine).handle(request))
        assert not response.ok
        assert response.error["type"] == "ExecutionError"
        assert "9" in response.error["message"]

    def test_bad_frame(self, engine):
        response = asyncio.run(Server(engine).handle_line("{"))
        assert not response.ok
        assert response.error["type"] == "ProtocolError"

    def test_superseded_query_marked_stale(self):
        registry = Registry.load(
            [load_config_string("steps:\n  live:\n    type: query\n    items:\n      generator: '{{ query }}'\n", "p")]
        )
        executor = GatedExecutor()
        server = Server(Engine(registry, executor))
        ref = {"target": "live", "packageName": "p"}

        async def scenario():
            older = asyncio.create_task(server.handle(Request(id=1, verb="ref", args=[ref, "a"])))
            await asyncio.sleep(0)
            newer = asyncio.create_task(server.handle(Request(id=2, verb="ref", args=[ref, "ab"])))
            await asyncio.sleep(0)
            executor.gate("ab").set()
            executor.gate("a").set()
            return await older, await newer

        older, newer = asyncio.run(scenario())
        assert older.stale is True
        assert older.result is None
        assert newer.result["items"][0]["title"] == "ab"

    def test_superseded_query_behind_if_step_marked_stale(self):
        """An `if` step leading to a query step is sequenced like the query step."""
        registry = Registry.load(
            [
                load_config_string(
                    "steps:\n"
                    "  gate:\n"
                    "    type: if\n"
                    "    condition: 'true'\n"
                    "    success: live\n"
                    "    failure: live\n"
                    "  live:\n"
                    "    type: query\n"
                    "    items:\n"
                    "      generator: '{{ query }}'\n",
                    "p",
                )
            ]
        )
        executor = GatedExecutor()
        executor.gate("true").set()
        server = Server(Engine(registry, executor))
        ref = {"target": "gate", "packageName": "p"}

        async def scenario():
            older = asyncio.create_task(server.handle(Request(id=1, verb="ref", args=[ref, "0.4"])))
            await asyncio.sleep(0)
            newer = asyncio.create_task(server.handle(Request(id=2, verb="ref", args=[ref, "0.1"])))
            await asyncio.sleep(0)
            executor.gate("0.1").set()
            executor.gate("0.4").set()
            return await older, await newer

        older, newer = asyncio.run(scenario())
        assert older.stale is True
        assert older.result is None
        assert [i["title"] for i in newer.result["items"]] == ["0.1"]

    def test_if_step_leading_to_other_list_is_not_stale(self, engine):
        server = Server(engine)
        response = asyncio.run(
            server.handle(Request(id=1, verb="ref", args=[{"target": "repo", "packageName": "git"}]))
        )
        assert response.stale is None
        assert response.result["type"] == "filter"

    def test_query_sessions_are_capped(self, engine):
        server = Server(engine, max_sessions=2)

        async def scenario():
            for n in range(3):
                ref = {"target": "search", "packageName": "git", "params": {"n": n}}
                await server.handle(Request(id=n, verb="ref", args=[ref, "x"]))

        asyncio.run(scenario())
        assert len(server.sessions) == 2
        assert all('"n":0' not in key for key in server.sessions)

    def test_evicted_session_is_closed(self, engine):
        server = Server(engine, max_sessions=1)
        first = server._session(StepReference(target="search", package_name="git"))
        server._session(StepReference(target="search", package_name="git", params={"n": 1}))
        assert first.closed

    def test_serve_loop(self, engine):
        frames = [
            {"id": 1, "verb": "ls"},
            {"id": 2, "verb": "ref", "args": [BRANCHES_REF]},
            {"id": 3, "verb": "ref", "args": [{"target": "ghost", "packageName": "git"}]},
        ]

        async def scenario():
            reader = asyncio.StreamReader()
            for frame in frames:
                reader.feed_data((json.dumps(frame) + "\n").encode())
            reader.feed_data(b"\n")
            reader.feed_eof()
            written = []
            await Server(engine).serve(reader, written.append)
            return written

        responses = {r["id"]: r for r in map(json.loads, asyncio.run(scenario()))}
        assert set(responses) == {1, 2, 3}
        assert all(r["ok"] for r in responses.values())
        assert len(responses[1]["result"]) == 2
        assert responses[2]["result"]["type"] == "filter"
        assert "ghost" in responses[3]["result"]["items"][0]["title"]


# =============================================================================
# Subprocess transport
# =============================================================================


class TestSubprocessTransport:
    def _transport(self, config_dir):
        argv = [sys.executable, "-m", "lazycli.main", "--config-dir", str(config_dir), "--shell", "/bin/sh"]
        return SubprocessTransport(argv)

    def test_ls_matches_in_process(self, config_dir, engine):
        via_subprocess = asyncio.run(self._transport(config_dir).request("ls"))
        in_process = asyncio.run(InProcessTransport(engine).request("ls"))
        assert via_subprocess == in_process

    def test_run_silent(self, config_dir):
        result = asyncio.run(self._transport(config_dir).request("run", {"type": "run", "command": "true"}))
        assert result == {"stdout": ""}

    def test_failure_raises(self, config_dir):
        with pytest.raises(LazyError) as exc:
            asyncio.run(self._transport(config_dir).request("run", {"type": "run", "command": "exit 3"}))
        assert "exit" in exc.value.message or "3" in exc.value.message
