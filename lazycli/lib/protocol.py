"""Engine protocol: newline-delimited JSON frames and transports.

Request frame:   {"id": 1, "verb": "ref", "args": [{"target": "branches", "packageName": "git"}, "ma"]}
Response frame:  {"id": 1, "ok": true, "result": {...}}
                 {"id": 1, "ok": false, "error": {"type": "ExecutionError", "message": "..."}}
                 {"id": 1, "ok": true, "stale": true}

The same verbs are reachable in-process (InProcessTransport) or through a
`lazy` subprocess per request (SubprocessTransport).
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, Literal

from pydantic import TypeAdapter, ValidationError

from lazycli.lib.engine import Engine
from lazycli.lib.errors import LazyError, ProtocolError
from lazycli.lib.models import Action, IfStep, Model, QueryStep, StepReference
from lazycli.lib.session import QuerySession

log = logging.getLogger(__name__)

MAX_QUERY_SESSIONS = 64

Verb = Literal["ls", "ref", "run", "submit"]

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)


class Request(Model):
    id: int | str | None = None
    verb: Verb
    args: list[Any] = []


class Response(Model):
    id: int | str | None = None
    ok: bool = True
    result: Any = None
    error: dict[str, str] | None = None
    stale: bool | None = None

    @classmethod
    def failure(cls, request_id: int | str | None, error: Exception) -> "Response":
        message = error.message if isinstance(error, LazyError) else str(error)
        return cls(id=request_id, ok=False, error={"type": type(error).__name__, "message": message})


# =============================================================================
# Framing
# =============================================================================


def encode_frame(payload: Model | dict[str, Any] | list[Any]) -> str:
    """One JSON value per line."""
    if isinstance(payload, Model):
        payload = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False) + "\n"


def decode_frame(line: str) -> Request:
    try:
        return Request.model_validate_json(line)
    except ValidationError as e:
        raise ProtocolError(f"invalid request frame: {e}") from e


def _load(arg: Any, what: str) -> Any:
    if isinstance(arg, str):
        try:
            return json.loads(arg)
        except ValueError as e:
            raise ProtocolError(f"{what} is not valid JSON: {e}") from e
    return arg


def parse_reference(arg: Any) -> StepReference:
    try:
        return StepReference.model_validate(_load(arg, "step reference"))
    except ValidationError as e:
        raise ProtocolError(f"invalid step reference: {e}") from e


def parse_action(arg: Any) -> Action:
    try:
        return _action_adapter.validate_python(_load(arg, "action"))
    except ValidationError as e:
        raise ProtocolError(f"invalid action: {e}") from e


def parse_values(arg: Any) -> dict[str, Any]:
    values = _load(arg, "form values")
    if not isinstance(values, dict):
        raise ProtocolError("form values must be a JSON object")
    return values


def _arg(args: list[Any], index: int, verb: str) -> Any:
    if len(args) <= index:
        raise ProtocolError(f"`{verb}` expects at least {index + 1} argument(s)")
    return args[index]


async def dispatch(engine: Engine, verb: str, args: list[Any]) -> Any:
    """Run one verb and return its JSON-ready result."""
    if verb == "ls":
        return [item.to_json() for item in engine.ls()]
    if verb == "ref":
        query = args[1] if len(args) > 1 else None
        step_list = await engine.ref(parse_reference(_arg(args, 0, verb)), query)
        return step_list.to_json()
    if verb == "run":
        result = await engine.run(parse_action(_arg(args, 0, verb)))
        return result.to_json()
    if verb == "submit":
        reference = parse_reference(_arg(args, 0, verb))
        action = await engine.submit(reference, parse_values(_arg(args, 1, verb)))
        return _action_adapter.dump_python(action, mode="json", by_alias=True, exclude_none=True)
    raise ProtocolError(f"unknown verb `{verb}`")


# =============================================================================
# Long-lived server
# =============================================================================


class Server:
    """Answers request frames; query lists are superseded per step.

    At most `max_sessions` query sessions are kept; the least recently used
    one is closed and evicted first.
    """

    def __init__(self, engine: Engine, max_sessions: int = MAX_QUERY_SESSIONS):
        self.engine = engine
        self.max_sessions = max_sessions
        self.sessions: OrderedDict[str, QuerySession] = OrderedDict()

    async def handle(self, request: Request) -> Response:
        try:
            if request.verb == "ref":
                return await self._handle_ref(request)
            result = await dispatch(self.engine, request.verb, request.args)
        except Exception as e:
            log.debug("request %s failed", request.id, exc_info=True)
            return Response.failure(request.id, e)
        return Response(id=request.id, result=result)

    async def _handle_ref(self, request: Request) -> Response:
        reference = parse_reference(_arg(request.args, 0, "ref"))
        step = self.engine.registry.get_step(reference, reference.package_name)
        # an `if` step may lead to a query step, so it is sequenced too
        if not isinstance(step, (QueryStep, IfStep)):
            result = await dispatch(self.engine, "ref", request.args)
            return Response(id=request.id, result=result)

        session = self._session(reference)
        query = request.args[1] if len(request.args) > 1 else None
        step_list = await session.update(query)
        if step_list is None:
            return Response(id=request.id, stale=True)
        return Response(id=request.id, result=step_list.to_json())

    def _session(self, reference: StepReference) -> QuerySession:
        key = reference.model_dump_json()
        session = self.sessions.get(key)
        if session is None:
            session = self.sessions[key] = QuerySession(self.engine, reference)
            while len(self.sessions) > self.max_sessions:
                _, evicted = self.sessions.popitem(last=False)
                evicted.close()
        else:
            self.sessions.move_to_end(key)
        return session

    async def handle_line(self, line: str) -> Response:
        try:
            request = decode_frame(line)
        except ProtocolError as e:
            return Response.failure(None, e)
        return await self.handle(request)

    async def serve(self, reader: asyncio.StreamReader, write: Callable[[str], None]) -> None:
        """Read frames until EOF, answering each as soon as it completes."""
        pending: set[asyncio.Task] = set()

        async def answer(line: str) -> None:
            response = await self.handle_line(line)
            write(encode_frame(response))

        while True:
            raw = await reader.readline()
            if not raw:
                break
            line = raw.decode().strip()
            if not line:
                continue
            task = asyncio.create_task(answer(line))
            pending.add(task)
            task.add_done_callback(pending.discard)

        if pending:
            await asyncio.gather(*pending)
        for session in self.sessions.values():
            session.close()


# =============================================================================
# Transports
# =============================================================================


class Transport(ABC):
    """A way to reach an engine."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def request(self, verb: Verb, *args: Any) -> Any:
        """Send one request and return its JSON result.

        Raises:
            LazyError: If the engine reports a failure.
        """
        ...


class InProcessTransport(Transport):
    """Calls an Engine living in this process."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def name(self) -> str:
        return "in-process"

    async def request(self, verb: Verb, *args: Any) -> Any:
        return await dispatch(self.engine, verb, list(args))


class SubprocessTransport(Transport):
    """Spawns `lazy <verb> ...` per request and parses its stdout."""

    def __init__(self, argv: list[str] | None = None, env: dict[str, str] | None = None):
        self.argv = argv or ["lazy"]
        self.env = env

    @property
    def name(self) -> str:
        return "subprocess"

    async def request(self, verb: Verb, *args: Any) -> Any:
        cli_args = [a if isinstance(a, str) else json.dumps(a) for a in args]
        process = await asyncio.create_subprocess_exec(
            *self.argv,
            verb,
            *cli_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self.env,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise LazyError(message.removeprefix("Error: ") or f"`lazy {verb}` failed")

        lines = [line for line in stdout.decode().splitlines() if line.strip()]
        if verb == "ls":
            return [json.loads(line) for line in lines]
        if verb == "run" and not lines:
            return {"stdout": ""}
        return json.loads("\n".join(lines))
